"""
Extensions command for validating and discovering extension manifests
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from extensionflow.core.errors import ValidationError
from extensionflow.core.extensions import (
    ExtensionRegistry,
    ExtensionSource,
    load_manifest,
    scan_directory,
    validate_manifest,
)
from extensionflow.core.utils.logger import get_logger

logger = get_logger(__name__)

app = typer.Typer(name="extensions", help="Validate, discover and search extension manifests")
console = Console()


def _scan(directory: Path, source: str) -> ExtensionRegistry:
    try:
        extension_source = ExtensionSource(source)
    except ValueError:
        console.print(f"[red]Unknown source '{source}'[/red] (expected: builtin, marketplace, custom)")
        raise typer.Exit(1)

    if not directory.is_dir():
        console.print(f"[red]Not a directory:[/red] {directory}")
        raise typer.Exit(1)

    registry = ExtensionRegistry()
    scan_directory(directory, registry=registry, source=extension_source)
    return registry


def _print_entries(entries, title: str) -> None:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Version", style="magenta")
    table.add_column("Source")
    table.add_column("Capabilities", style="green")

    for entry in entries:
        manifest = entry.manifest
        table.add_row(
            manifest.id,
            manifest.name,
            manifest.version,
            entry.source.value,
            ", ".join(capability.id for capability in manifest.capabilities),
        )
    console.print(table)


@app.command()
def validate(
    manifest_path: Path = typer.Argument(..., help="Path to a manifest.json file"),
):
    """
    Validate an extension manifest
    """
    try:
        manifest = load_manifest(manifest_path)
        validate_manifest(manifest)
    except ValidationError as e:
        console.print(f"[red]Invalid manifest:[/red] {escape(e.message)}")
        raise typer.Exit(1)

    console.print(f"[green]Valid manifest:[/green] {manifest.id} {manifest.version}")
    for capability in manifest.capabilities:
        console.print(f"  {capability.id}: {', '.join(capability.operations)}")


@app.command()
def scan(
    directory: Path = typer.Argument(..., help="Directory containing <extension>/manifest.json folders"),
    source: str = typer.Option("custom", "--source", "-s", help="Source to record: builtin, marketplace, custom"),
):
    """
    Discover and register every manifest under a directory
    """
    registry = _scan(directory, source)
    _print_entries(registry.get_all_extensions(), f"Registered extensions ({registry.get_extension_count()})")

    capabilities = Table(title="Capability index")
    capabilities.add_column("Capability", style="green")
    capabilities.add_column("Extensions")
    for capability in registry.get_all_capabilities():
        extension_ids = [entry.manifest.id for entry in registry.get_extensions_by_capability(capability)]
        capabilities.add_row(capability, ", ".join(extension_ids))
    console.print(capabilities)


@app.command()
def search(
    directory: Path = typer.Argument(..., help="Directory containing <extension>/manifest.json folders"),
    query: str = typer.Argument(..., help="Case-insensitive text to look for"),
    source: str = typer.Option("custom", "--source", "-s", help="Source to record: builtin, marketplace, custom"),
):
    """
    Search discovered extensions by name, description, id or capability name
    """
    registry = _scan(directory, source)
    matches = registry.search_extensions(query)
    if not matches:
        console.print(f"No extensions match '{query}'")
        return
    _print_entries(matches, f"Extensions matching '{query}'")
