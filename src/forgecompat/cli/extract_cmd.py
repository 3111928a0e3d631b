"""``forgecompat extract`` and ``forgecompat validate`` -- import-side checks.

``extract`` scans free text for an engine version mention that resolves
against the catalog. ``validate`` checks a constraint's syntax and, given a
catalog, re-validates it the way imported tags are (exact versions missing
from the catalog degrade to ``~MAJOR.MINOR.0``).

The catalog comes from ``--snapshot FILE`` or ``--catalog 3.8.0,3.8.1``.

Exit Codes:
    0 -- A constraint was produced.
    1 -- Nothing usable was found or the constraint does not resolve.
    2 -- Malformed constraint or bad arguments.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from forgecompat.cli.support import (
    EXIT_NO_RESULT,
    EXIT_OK,
    FORMAT_OPTION,
    catalog_versions,
    current_config,
    fail,
)
from forgecompat.core.versioning.constraints import ConstraintMatcher, ensure_valid_constraint
from forgecompat.exceptions import UnresolvableConstraint
from forgecompat.importer.normalizer import extract_constraint_from_text, validate_constraint

_SNAPSHOT_OPTION = click.option(
    "--snapshot",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the catalog from a repository snapshot.",
)
_CATALOG_OPTION = click.option(
    "--catalog",
    default=None,
    help="Comma-separated catalog versions, e.g. 3.8.0,3.8.1.",
)


@click.command("extract")
@click.argument("text")
@_SNAPSHOT_OPTION
@_CATALOG_OPTION
@FORMAT_OPTION
def extract_command(
    text: str, snapshot: Path | None, catalog: str | None, output_format: str
) -> None:
    """Extract an engine constraint from release notes TEXT.

    Examples:

        forgecompat extract "Updated for SPT 3.8" --catalog 3.8.0,3.8.1

        forgecompat extract "$(cat notes.txt)" --snapshot snapshot.json
    """
    versions = catalog_versions(snapshot, catalog)
    constraint = extract_constraint_from_text(text, versions, current_config().brand_aliases)

    if output_format == "json":
        click.echo(json.dumps({"constraint": constraint}))
    elif constraint is None:
        click.echo("No engine version found.", err=True)
    else:
        click.echo(constraint)
    sys.exit(EXIT_OK if constraint is not None else EXIT_NO_RESULT)


@click.command("validate")
@click.argument("constraint")
@_SNAPSHOT_OPTION
@_CATALOG_OPTION
@FORMAT_OPTION
def validate_command(
    constraint: str, snapshot: Path | None, catalog: str | None, output_format: str
) -> None:
    """Validate CONSTRAINT and show the catalog versions it matches.

    Without a catalog only the syntax is checked.

    Examples:

        forgecompat validate "^1.2.0"

        forgecompat validate 3.7.99 --catalog 3.7.0,3.7.1,3.8.0
    """
    try:
        cleaned = ensure_valid_constraint(constraint)
    except UnresolvableConstraint as exc:
        fail(str(exc))

    if snapshot is None and catalog is None:
        if output_format == "json":
            click.echo(json.dumps({"constraint": cleaned, "valid": True}))
        else:
            click.echo(f"{cleaned or '(empty)'}: valid")
        sys.exit(EXIT_OK)

    versions = catalog_versions(snapshot, catalog)
    matcher = ConstraintMatcher()
    validated = validate_constraint(cleaned, versions, matcher)
    matches = matcher.filter_matching(validated, versions) if validated else []

    if output_format == "json":
        click.echo(json.dumps({
            "constraint": cleaned,
            "validated": validated,
            "matches": matches,
        }, indent=2))
    elif validated is None:
        click.echo(f"{cleaned}: does not resolve against the catalog", err=True)
    else:
        click.echo(f"{validated}: {', '.join(matches)}")
    sys.exit(EXIT_OK if validated is not None else EXIT_NO_RESULT)
