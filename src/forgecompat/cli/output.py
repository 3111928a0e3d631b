"""Rich output formatting helpers for the forgecompat CLI.

Engine version colors follow the catalog's display classes:
    green = latest minor, red = older minor or major, gray = sentinel/unknown
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from forgecompat.core.catalog.catalog import VersionCatalog
from forgecompat.core.resolution.reconcile import AssociationDrift
from forgecompat.core.resolution.tree import DependencyNode
from forgecompat.core.store.memory import InMemoryRepository
from forgecompat.core.store.models import EngineVersion

_COLOR_STYLES: dict[str, str] = {
    "green": "bold green",
    "red": "red",
    "gray": "dim",
}

console = Console()


def color_style(color_class: str) -> str:
    return _COLOR_STYLES.get(color_class, "white")


def _engine_label(store: InMemoryRepository, engine_ids: set[int]) -> Text:
    if not engine_ids:
        return Text("-", style="dim")
    versions = sorted(
        (store.get_engine_version(i) for i in engine_ids),
        key=lambda ev: (0, ev.semver) if ev.semver is not None else (1, ev.version),
    )
    text = Text()
    for index, ev in enumerate(versions):
        if index:
            text.append(", ")
        text.append(ev.version, style=color_style(ev.color_class))
    return text


def print_resolution(store: InMemoryRepository) -> None:
    """Print every artifact with its resolved engine and dependency links."""
    artifacts = store.list_artifacts()
    if not artifacts:
        console.print("[dim]No artifacts in snapshot.[/dim]")
        return

    table = Table(title="Resolved Compatibility", show_header=True, header_style="bold")
    table.add_column("Artifact", justify="right")
    table.add_column("Version", style="bold")
    table.add_column("Constraint", style="dim")
    table.add_column("Engine Versions")
    table.add_column("Dependencies", justify="right")

    for artifact in artifacts:
        dependencies = store.list_dependencies(artifact.id)
        satisfied = sum(1 for d in dependencies if store.dependency_links(d.id))
        dep_text = (
            Text("-", style="dim")
            if not dependencies
            else Text(
                f"{satisfied}/{len(dependencies)}",
                style="green" if satisfied == len(dependencies) else "yellow",
            )
        )
        table.add_row(
            str(artifact.id),
            artifact.version,
            artifact.version_constraint or "-",
            _engine_label(store, store.engine_links(artifact.id)),
            dep_text,
        )
    console.print(table)


def print_drifts(drifts: list[AssociationDrift], repaired: bool = False) -> None:
    if not drifts:
        console.print("[bold green]All associations are consistent.[/bold green]")
        return

    title = "Repaired Associations" if repaired else "Stale Associations"
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Artifact", justify="right")
    table.add_column("Association")
    table.add_column("Missing", style="green")
    table.add_column("Stale", style="red")
    for drift in drifts:
        table.add_row(
            str(drift.target.artifact_id),
            type(drift.target).__name__.replace("Target", "").lower(),
            ", ".join(str(i) for i in sorted(drift.missing)) or "-",
            ", ".join(str(i) for i in sorted(drift.stale)) or "-",
        )
    console.print(table)
    verb = "repaired" if repaired else "found"
    console.print(f"[bold]{len(drifts)}[/bold] drifted association set(s) {verb}")


def print_catalog(entries: list[EngineVersion], catalog: VersionCatalog) -> None:
    if not entries:
        console.print("[dim]Engine version catalog is empty.[/dim]")
        return

    table = Table(title="Engine Versions", show_header=True, header_style="bold")
    table.add_column("Version", style="bold")
    table.add_column("Published")
    table.add_column("Mods", justify="right")
    table.add_column("Latest Minor", justify="center")

    for ev in reversed(entries):
        published = ev.publish_date.strftime("%Y-%m-%d") if ev.publish_date else "unpublished"
        latest = Text("yes", style="green") if catalog.is_latest_minor(ev) else Text("-", style="dim")
        table.add_row(
            Text(ev.version, style=color_style(ev.color_class)),
            published,
            str(catalog.mod_count(ev)),
            latest,
        )
    console.print(table)


def _add_branch(parent: Tree, node: DependencyNode) -> None:
    label = Text.assemble(
        (node.mod_name, "bold"),
        " ",
        (node.version, "cyan"),
        (f"  ({', '.join(node.constraints)})", "dim"),
    )
    branch = parent.add(label)
    for child in node.dependencies:
        _add_branch(branch, child)


def print_tree(root_label: str, nodes: list[DependencyNode]) -> None:
    tree = Tree(Text(root_label, style="bold"))
    if not nodes:
        tree.add(Text("no resolved dependencies", style="dim"))
    for node in nodes:
        _add_branch(tree, node)
    console.print(tree)
