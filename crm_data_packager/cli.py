"""
Command-line interface for CRM Data Packager.

Two commands: `extract` turns a data export into a folder tree and `pack`
turns the folder tree back into a data export.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .archive import extract_data_file, pack_data_folder
from .exceptions import PackagerException
from .log_config import setup_logging

app = typer.Typer(
    name="crm-data-packager",
    help="Extract CRM data exports into diffable folders and pack them back",
    add_completion=False,
)
console = Console()


def _version_callback(value: bool):
    if value:
        console.print(f"crm-data-packager {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
):
    """CRM Data Packager."""


@app.command()
def extract(
    source: Path = typer.Argument(..., help="Data export .zip file, or an unzipped export folder"),
    target: Path = typer.Argument(..., help="Folder to extract into (replaced if it exists)"),
    settings: Optional[Path] = typer.Argument(None, help="settings.json controlling the extraction"),
    write_yaml: bool = typer.Option(False, "--yaml", help="Also write a .yaml rendering of each record"),
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Logging level (default INFO)"),
):
    """Extract a data export into a folder tree."""
    setup_logging(log_level)

    try:
        folder = extract_data_file(source, target, settings, write_yaml=write_yaml)
    except PackagerException as e:
        console.print(f"[red]✗[/red] Extract failed: {e}")
        raise typer.Exit(1)

    table = Table(title=f"Extracted {source.name}")
    table.add_column("File", style="cyan")
    table.add_column("Path")
    table.add_row("Folder", str(folder.folder_path))
    table.add_row("Data", str(folder.data_path))
    table.add_row("Schema", str(folder.schema_path))
    table.add_row("Settings", str(folder.settings_path))
    console.print(table)


@app.command()
def pack(
    source: Path = typer.Argument(..., help="Extracted folder"),
    target: Path = typer.Argument(..., help="Data export .zip file, or a folder, to create"),
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Logging level (default INFO)"),
):
    """Pack an extracted folder tree into a data export."""
    setup_logging(log_level)

    try:
        data_file = pack_data_folder(source, target)
    except PackagerException as e:
        console.print(f"[red]✗[/red] Pack failed: {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Packed {source} into {data_file.file_path}")


if __name__ == "__main__":
    app()
