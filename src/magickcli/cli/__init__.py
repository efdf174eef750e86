"""CLI module for magickcli commands.

Each command lives in its own module; this module assembles the group used
by the ``magickcli`` console script.
"""

from pathlib import Path

import click

from .. import __version__
from ..io import setup_logging
from .info_cmd import exif, info
from .run_cmd import run
from .tools_cmd import tools


@click.group()
@click.version_option(version=__version__, prog_name="magickcli")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for magickcli messages",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Also write a timestamped log file into this directory",
)
def main(log_level: str, log_dir: Path | None) -> None:
    """🪄 magickcli: ImageMagick / GraphicsMagick from the command line."""
    setup_logging(log_dir, log_level)


main.add_command(tools)
main.add_command(info)
main.add_command(exif)
main.add_command(run)

__all__ = [
    "exif",
    "info",
    "main",
    "run",
    "tools",
]
