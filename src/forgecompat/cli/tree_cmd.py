"""``forgecompat tree <snapshot> <artifact-id>`` -- Show a dependency tree.

For every mod the artifact depends on, the highest satisfied, publicly
visible version is shown and expanded recursively. Versions already shown
are not expanded again. ``--cycles`` also reports circular dependencies
between mods.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from forgecompat.cli.support import EXIT_OK, FORMAT_OPTION, fail, open_snapshot
from forgecompat.core.resolution.graph import ModDependencyGraph
from forgecompat.core.resolution.tree import build_dependency_tree
from forgecompat.exceptions import EntityNotFound


@click.command("tree")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("artifact_id", type=int)
@click.option(
    "--all", "include_unpublished", is_flag=True,
    help="Include unpublished and disabled versions.",
)
@click.option("--cycles", is_flag=True, help="Also report circular mod dependencies.")
@FORMAT_OPTION
def tree_command(
    snapshot: Path,
    artifact_id: int,
    include_unpublished: bool,
    cycles: bool,
    output_format: str,
) -> None:
    """Show the resolved dependency tree of ARTIFACT_ID.

    Examples:

        forgecompat tree snapshot.json 100

        forgecompat tree snapshot.json 100 --all --cycles --format json
    """
    store, _ = open_snapshot(snapshot)
    try:
        root = store.get_artifact(artifact_id)
        nodes = build_dependency_tree(store, artifact_id, include_unpublished=include_unpublished)
    except EntityNotFound as exc:
        fail(str(exc))

    found_cycles = ModDependencyGraph.from_store(store).detect_cycles() if cycles else []

    if output_format == "json":
        payload: dict = {
            "artifact_id": root.id,
            "version": root.version,
            "dependencies": [node.to_dict() for node in nodes],
        }
        if cycles:
            payload["cycles"] = found_cycles
        click.echo(json.dumps(payload, indent=2))
        sys.exit(EXIT_OK)

    from forgecompat.cli.output import console, print_tree
    print_tree(f"artifact {root.id} ({root.version})", nodes)
    for cycle in found_cycles:
        console.print(f"[yellow]cycle:[/yellow] {' -> '.join(f'mod {m}' for m in cycle)}")
    sys.exit(EXIT_OK)
