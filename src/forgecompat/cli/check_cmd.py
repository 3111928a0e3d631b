"""``forgecompat check <snapshot>`` -- Detect stale association sets.

Compares every persisted association with a fresh evaluation. With
``--fix`` the drifted sets are re-resolved; combine with ``--output`` to
write the repaired snapshot.

Exit Codes:
    0 -- Consistent, or every drift was repaired.
    1 -- Drift found (without ``--fix``).
    2 -- Snapshot could not be read or written.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from forgecompat.cli.support import EXIT_NO_RESULT, EXIT_OK, FORMAT_OPTION, fail, open_snapshot
from forgecompat.core.resolution.reconcile import AssociationDrift, Reconciler
from forgecompat.core.store.snapshot import dump_snapshot
from forgecompat.exceptions import ForgeCompatError


def _drift_to_json(drift: AssociationDrift) -> dict:
    return {
        "artifact_id": drift.target.artifact_id,
        "association": type(drift.target).__name__.replace("Target", "").lower(),
        "missing": sorted(drift.missing),
        "stale": sorted(drift.stale),
    }


@click.command("check")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--fix", is_flag=True, help="Re-resolve every drifted association set.")
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the repaired snapshot to this file (requires --fix).",
)
@FORMAT_OPTION
def check_command(snapshot: Path, fix: bool, output: Path | None, output_format: str) -> None:
    """Check a snapshot for association sets that no longer match their constraints.

    Examples:

        forgecompat check snapshot.json

        forgecompat check snapshot.json --fix -o repaired.json
    """
    if output is not None and not fix:
        fail("--output requires --fix")

    store, propagator = open_snapshot(snapshot)
    reconciler = Reconciler(store, propagator.catalog, propagator.matcher)
    drifts = reconciler.reconcile() if fix else reconciler.check()

    if fix and output is not None:
        try:
            dump_snapshot(store, output)
        except ForgeCompatError as exc:
            fail(str(exc))

    if output_format == "json":
        click.echo(json.dumps({
            "consistent": not drifts,
            "repaired": fix,
            "drifts": [_drift_to_json(d) for d in drifts],
        }, indent=2))
    else:
        from forgecompat.cli.output import print_drifts
        print_drifts(drifts, repaired=fix)

    sys.exit(EXIT_NO_RESULT if drifts and not fix else EXIT_OK)
