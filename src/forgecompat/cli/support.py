"""Shared helpers for CLI commands: snapshot loading and error exits."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn

import click

from forgecompat.config import ForgeCompatConfig
from forgecompat.core.resolution.propagator import ChangePropagator
from forgecompat.core.store.memory import InMemoryRepository
from forgecompat.core.store.snapshot import load_snapshot
from forgecompat.core.versioning.semver import is_valid_version
from forgecompat.exceptions import ForgeCompatError

EXIT_OK = 0
EXIT_NO_RESULT = 1
EXIT_USAGE = 2

FORMAT_OPTION = click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)


def fail(message: str, code: int = EXIT_USAGE) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)


def current_config() -> ForgeCompatConfig:
    ctx = click.get_current_context()
    obj = ctx.find_root().obj
    return obj if isinstance(obj, ForgeCompatConfig) else ForgeCompatConfig()


def open_snapshot(path: Path) -> tuple[InMemoryRepository, ChangePropagator]:
    """Load *path* and wire a propagator to the loaded repository.

    The propagator is attached after loading, so loading itself triggers no
    resolution.
    """
    try:
        store = load_snapshot(path)
    except ForgeCompatError as exc:
        fail(str(exc))
    propagator = ChangePropagator.for_store(
        store, defer_full_rescan=current_config().defer_full_rescan
    )
    return store, propagator


def catalog_versions(snapshot: Path | None, catalog: str | None) -> list[str]:
    """Catalog version strings from ``--snapshot`` or a ``--catalog`` list.

    Exits with a usage error if neither or both are given.
    """
    if (snapshot is None) == (catalog is None):
        fail("pass exactly one of --snapshot or --catalog")
    if snapshot is not None:
        _, propagator = open_snapshot(snapshot)
        return propagator.catalog.all_valid_versions()
    versions = [v.strip() for v in (catalog or "").split(",") if v.strip()]
    invalid = [v for v in versions if not is_valid_version(v)]
    if invalid:
        fail(f"invalid catalog version(s): {', '.join(invalid)}")
    return [v for v in versions if v != "0.0.0"]
