"""``forgecompat catalog <snapshot>`` -- List the engine version catalog.

Shows every valid engine version (the ``0.0.0`` sentinel is never listed)
with its publish date, color and the number of mods resolved to it.
``--public`` applies the visibility rule for non-privileged viewers.
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from forgecompat.cli.support import FORMAT_OPTION, open_snapshot


@click.command("catalog")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--public", is_flag=True,
    help="Only show versions visible to non-privileged viewers.",
)
@click.option(
    "--recent", is_flag=True,
    help="Only show versions from the last three minor releases.",
)
@FORMAT_OPTION
def catalog_command(snapshot: Path, public: bool, recent: bool, output_format: str) -> None:
    """List the engine versions in a snapshot, newest last.

    Examples:

        forgecompat catalog snapshot.json

        forgecompat catalog snapshot.json --public --recent --format json
    """
    _, propagator = open_snapshot(snapshot)
    catalog = propagator.catalog
    privileged = not public
    if recent:
        entries = list(reversed(catalog.versions_for_last_three_minors(privileged)))
    else:
        entries = catalog.visible_versions(privileged)

    if output_format == "json":
        click.echo(json.dumps({
            "versions": [
                {
                    "id": ev.id,
                    "version": ev.version,
                    "publish_date": ev.publish_date.isoformat() if ev.publish_date else None,
                    "color_class": ev.color_class,
                    "mod_count": catalog.mod_count(ev),
                    "latest_minor": catalog.is_latest_minor(ev),
                }
                for ev in entries
            ],
        }, indent=2))
        return

    from forgecompat.cli.output import print_catalog
    print_catalog(entries, catalog)
