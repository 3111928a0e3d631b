"""forgecompat CLI: engine and dependency compatibility for a mod catalog.

Entry point for the ``forgecompat`` command-line tool. Registers all
subcommands under a single Click group. Commands that operate on stored data
read a repository snapshot (JSON or YAML) exported from the host application.

Commands:
    resolve   -- Recompute every association set in a snapshot.
    check     -- Report (and optionally repair) stale associations.
    catalog   -- List the engine version catalog.
    extract   -- Extract an engine constraint from release notes.
    validate  -- Validate a constraint, optionally against a catalog.
    tree      -- Show the resolved dependency tree of an artifact.
    sync      -- Sync the catalog from the engine releases feed.

Usage::

    forgecompat resolve snapshot.json --output resolved.json
    forgecompat check snapshot.json
    forgecompat catalog snapshot.json --public
    forgecompat extract "Updated for SPT 3.8" --snapshot snapshot.json
    forgecompat validate "~3.8.0" --catalog 3.8.0,3.8.1
    forgecompat tree snapshot.json 100
    forgecompat sync snapshot.json
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from forgecompat import __version__
from forgecompat.cli.catalog_cmd import catalog_command
from forgecompat.cli.check_cmd import check_command
from forgecompat.cli.extract_cmd import extract_command, validate_command
from forgecompat.cli.resolve_cmd import resolve_command
from forgecompat.cli.sync_cmd import sync_command
from forgecompat.cli.tree_cmd import tree_command
from forgecompat.config import load_config
from forgecompat.exceptions import ConfigError


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """forgecompat: engine and dependency compatibility for a mod catalog.

    Resolves free-text semantic version constraints against the engine
    version catalog and against other mods' versions, and keeps the derived
    associations consistent.
    """
    _configure_logging(verbose)
    try:
        ctx.obj = load_config(config_path)
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc


# Register all subcommands
cli.add_command(resolve_command)
cli.add_command(check_command)
cli.add_command(catalog_command)
cli.add_command(extract_command)
cli.add_command(validate_command)
cli.add_command(tree_command)
cli.add_command(sync_command)
