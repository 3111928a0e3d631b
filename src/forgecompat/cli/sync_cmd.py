"""``forgecompat sync <snapshot>`` -- Sync engine versions from the releases feed.

Fetches the releases feed (or reads a saved payload with ``--from-file``),
upserts the stable releases into the snapshot's catalog and re-resolves
every artifact. The snapshot file is rewritten unless ``--dry-run`` is given.

Requires ``httpx`` unless ``--from-file`` is used:
``pip install forgecompat[registry]``.

Exit Codes:
    0 -- Sync completed.
    1 -- The feed returned no usable releases.
    2 -- Snapshot or payload could not be read or written.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from forgecompat.cli.support import (
    EXIT_NO_RESULT,
    EXIT_OK,
    FORMAT_OPTION,
    current_config,
    fail,
    open_snapshot,
)
from forgecompat.core.store.snapshot import dump_snapshot
from forgecompat.exceptions import ForgeCompatError
from forgecompat.importer.releases import fetch_engine_releases, parse_releases, sync_catalog


def _run_async(coro: object) -> object:
    """Run an async coroutine in a synchronous context."""
    return asyncio.run(coro)  # type: ignore[arg-type]


@click.command("sync")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--url", default=None, help="Releases endpoint (defaults to the configured URL).")
@click.option(
    "--from-file", "payload_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read a saved releases JSON payload instead of fetching.",
)
@click.option("--dry-run", is_flag=True, help="Do not rewrite the snapshot.")
@FORMAT_OPTION
def sync_command(
    snapshot: Path,
    url: str | None,
    payload_file: Path | None,
    dry_run: bool,
    output_format: str,
) -> None:
    """Sync the engine version catalog in SNAPSHOT from the releases feed.

    Examples:

        forgecompat sync snapshot.json

        forgecompat sync snapshot.json --from-file releases.json --dry-run
    """
    config = current_config()
    if payload_file is not None:
        try:
            payload = json.loads(payload_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            fail(f"Cannot read releases payload {payload_file}: {exc}")
        if not isinstance(payload, list):
            fail(f"Releases payload {payload_file} must be a JSON list")
    else:
        payload = _run_async(fetch_engine_releases(
            url or config.releases_url,
            config.github_token,
            timeout=config.request_timeout,
        ))

    releases = parse_releases(payload)  # type: ignore[arg-type]
    if not releases:
        click.echo("No stable releases found.", err=True)
        sys.exit(EXIT_NO_RESULT)

    store, propagator = open_snapshot(snapshot)
    # one coalesced rescan for the whole sync
    propagator.defer_full_rescan = True
    result = sync_catalog(store, releases)
    rescanned = propagator.run_pending()

    if not dry_run:
        try:
            dump_snapshot(store, snapshot)
        except ForgeCompatError as exc:
            fail(str(exc))

    if output_format == "json":
        click.echo(json.dumps({
            "created": result.created,
            "updated": result.updated,
            "rescanned": rescanned,
            "written": not dry_run,
        }, indent=2))
    else:
        from forgecompat.cli.output import console
        console.print(
            f"[bold]{len(result.created)}[/bold] created | "
            f"{len(result.updated)} updated | latest [green]{releases[-1].version}[/green]"
        )
    sys.exit(EXIT_OK)
