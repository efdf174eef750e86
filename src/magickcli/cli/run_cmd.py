"""Raw tool passthrough command."""

import click

from ..config import get_config
from ..tool import get_tool
from .utils import handle_generic_error, handle_keyboard_interrupt


@click.command("run", context_settings={"ignore_unknown_options": True})
@click.argument("tool")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds before the command is killed (default: configured TIMEOUT)",
)
def run(tool: str, args: tuple[str, ...], timeout: float | None) -> None:
    """Run TOOL with ARGS through the configured processor.

    \b
    Examples:
        magickcli run identify photo.jpg
        magickcli run convert in.png -resize 50% out.png
        magickcli run --timeout 5 mogrify -strip photo.jpg
    """
    try:
        command = get_tool(tool, *args, config=get_config())
        output = command.call(timeout=timeout)
        if output:
            click.echo(output)
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Run")
    except Exception as e:
        handle_generic_error("Run", e)
