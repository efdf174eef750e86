"""Image inspection commands."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..image import Image
from .utils import format_bytes, handle_generic_error


@click.command("info")
@click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--json", "output_json",
    is_flag=True,
    help="Output results in JSON format"
)
def info(file: Path, output_json: bool) -> None:
    """Show format, dimensions, size and colorspace of FILE."""
    try:
        image = Image(file)
        details = {
            "path": str(file),
            "format": image.format_name,
            "width": image.width,
            "height": image.height,
            "size": image.size,
            "colorspace": image.colorspace,
            "mime_type": image.mime_type,
        }

        if output_json:
            click.echo(json.dumps(details, indent=2))
            return

        console = Console()
        table = Table(title=f"🖼️  {file.name}", show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value")
        table.add_row("Format", details["format"])
        table.add_row("Dimensions", f"{details['width']}x{details['height']}")
        table.add_row("Size", format_bytes(details["size"]))
        table.add_row("Colorspace", details["colorspace"])
        table.add_row("MIME type", details["mime_type"])
        console.print(table)

    except Exception as e:
        handle_generic_error("Info", e)


@click.command("exif")
@click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--json", "output_json",
    is_flag=True,
    help="Output results in JSON format"
)
def exif(file: Path, output_json: bool) -> None:
    """Show the EXIF tags of FILE."""
    try:
        tags = Image(file).exif

        if output_json:
            click.echo(json.dumps(tags, indent=2, sort_keys=True))
            return

        console = Console()
        if not tags:
            console.print(f"📭 No EXIF data in {file.name}")
            return

        table = Table(title=f"📷 EXIF: {file.name}", show_header=True, header_style="bold magenta")
        table.add_column("Tag", style="cyan", no_wrap=True)
        table.add_column("Value")
        for key in sorted(tags):
            table.add_row(key, tags[key])
        console.print(table)

    except Exception as e:
        handle_generic_error("Exif", e)
