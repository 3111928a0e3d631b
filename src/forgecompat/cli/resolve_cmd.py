"""``forgecompat resolve <snapshot>`` -- Recompute every association set.

Runs the engine, dependency and parent compatibility resolvers over every
artifact in the snapshot, then prints the result. With ``--output`` the
resolved repository is written back out as a snapshot.

Exit Codes:
    0 -- Resolution completed.
    2 -- Snapshot could not be read or written.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from forgecompat.cli.support import EXIT_OK, FORMAT_OPTION, fail, open_snapshot
from forgecompat.core.store.snapshot import dump_snapshot
from forgecompat.exceptions import ForgeCompatError


@click.command("resolve")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the resolved snapshot to this file (.json, .yaml).",
)
@FORMAT_OPTION
def resolve_command(snapshot: Path, output: Path | None, output_format: str) -> None:
    """Resolve every artifact's engine and dependency associations.

    Examples:

        forgecompat resolve snapshot.json

        forgecompat resolve snapshot.yaml -o resolved.yaml --format json
    """
    store, propagator = open_snapshot(snapshot)
    engine_count = propagator.engine.resolve_all()
    dependency_count = propagator.dependencies.resolve_all()
    addon_count = propagator.compatibility.resolve_all()

    if output is not None:
        try:
            dump_snapshot(store, output)
        except ForgeCompatError as exc:
            fail(str(exc))

    if output_format == "json":
        artifacts = [
            {
                "id": artifact.id,
                "version": artifact.version,
                "version_constraint": artifact.version_constraint,
                "engine_versions": sorted(
                    store.get_engine_version(i).version for i in store.engine_links(artifact.id)
                ),
                "dependencies": {
                    str(d.id): sorted(store.dependency_links(d.id))
                    for d in store.list_dependencies(artifact.id)
                },
                "compatible_mod_versions": sorted(store.compat_links(artifact.id)),
            }
            for artifact in store.list_artifacts()
        ]
        click.echo(json.dumps({
            "artifacts": artifacts,
            "summary": {
                "artifacts": engine_count,
                "dependencies": dependency_count,
                "addon_versions": addon_count,
            },
        }, indent=2))
    else:
        from forgecompat.cli.output import console, print_resolution
        print_resolution(store)
        console.print(
            f"[bold]{engine_count}[/bold] artifacts | "
            f"{dependency_count} dependencies | {addon_count} addon versions"
        )
    sys.exit(EXIT_OK)
