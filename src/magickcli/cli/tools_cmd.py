"""Processor discovery command."""

import json

import click
from rich.console import Console
from rich.table import Table

from ..config import get_config
from ..system_tools import (
    MINIMUM_IMAGEMAGICK_VERSION,
    detect_processor,
    get_available_tools,
    valid_version_installed,
)
from .utils import handle_generic_error


@click.command("tools")
@click.option(
    "--json", "output_json",
    is_flag=True,
    help="Output results in JSON format"
)
def tools(output_json: bool) -> None:
    """Show which ImageMagick / GraphicsMagick processors are installed."""
    try:
        config = get_config()
        available = get_available_tools(config)
        active = config.CLI or detect_processor(config)

        if output_json:
            result = {
                "active": active,
                "tools": {
                    key: {
                        "available": tool.available,
                        "version": tool.version,
                        "path": tool.path,
                    }
                    for key, tool in available.items()
                },
            }
            click.echo(json.dumps(result, indent=2))
            return

        console = Console()
        table = Table(title="🛠️  Image processors", show_header=True, header_style="bold magenta")
        table.add_column("CLI", style="cyan", no_wrap=True)
        table.add_column("Status", justify="center")
        table.add_column("Version")
        table.add_column("Path", style="dim")

        for key, tool in available.items():
            status = "[green]✅ Available[/green]" if tool.available else "[red]❌ Missing[/red]"
            marker = " ⭐" if key == active else ""
            table.add_row(f"{key}{marker}", status, tool.version or "-", tool.path or "-")

        console.print(table)

        if active is None:
            console.print("[yellow]⚠️  No processor found. Install ImageMagick or GraphicsMagick.[/yellow]")
        elif active != "graphicsmagick" and available[active].available and not valid_version_installed(config):
            console.print(
                f"[yellow]⚠️  ImageMagick {MINIMUM_IMAGEMAGICK_VERSION} or newer is recommended.[/yellow]"
            )

    except Exception as e:
        handle_generic_error("Tools", e)
