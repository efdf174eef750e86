"""Command-line tools of the ImageMagick / GraphicsMagick suites.

A :class:`Tool` is a :class:`~magickcli.command_builder.CommandBuilder` that
can execute itself. It is the low-level interface, close to the metal::

    mogrify = Mogrify()
    mogrify.resize("500x500")
    mogrify << "path/to/image.jpg"
    mogrify.call()   # mogrify -resize 500x500 path/to/image.jpg

Sub-classes only pin the tool name; they are lightweight and never execute
anything in the constructor.
"""

from __future__ import annotations

from typing import Any

from .command_builder import CommandBuilder
from .config import MagickConfig, get_config
from .shell import ExecutionResult, Shell
from .system_tools import detect_processor, discover_tool


class Tool(CommandBuilder):
    """Builder for one tool invocation, plus the means to run it."""

    #: Executable name of the tool, e.g. ``"mogrify"``.
    NAME: str = "magick"

    def __init__(
        self,
        name: str | None = None,
        *options: Any,
        config: MagickConfig | None = None,
        whiny: bool | None = None,
    ):
        super().__init__(name or self.NAME, *options, config=config)
        self.whiny = self.config.WHINY if whiny is None else whiny

    # ------------------------------------------------------------------
    # Processor information
    # ------------------------------------------------------------------
    @classmethod
    def available(cls, config: MagickConfig | None = None) -> bool:
        """Return ``True`` iff a processor can be found on the current system."""
        return detect_processor(config) is not None

    @classmethod
    def version(cls, config: MagickConfig | None = None) -> str:
        """Return the processor's version string ("unknown" if it can't be determined)."""
        config = config if config is not None else get_config()
        info = discover_tool(config.resolve_cli(), config)
        return info.version or "unknown"

    # ------------------------------------------------------------------
    # Options that mean something else on a plain builder
    # ------------------------------------------------------------------
    def format(self, *values: Any) -> Tool:
        """``-format``; identify uses it for its output template."""
        self.add_command("format", *values)
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def execute(
        self,
        stdin: str | bytes | None = None,
        whiny: bool | None = None,
        warnings: bool | None = None,
        timeout: float | None = None,
        binary: bool = False,
    ) -> ExecutionResult:
        """Run the command and return the raw result."""
        shell = Shell(self.config, self.escaper)
        return shell.run(
            self.argv(),
            stdin=stdin,
            timeout=timeout,
            whiny=self.whiny if whiny is None else whiny,
            warnings=warnings,
            binary=binary,
        )

    def call(
        self,
        stdin: str | bytes | None = None,
        whiny: bool | None = None,
        warnings: bool | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run the command and return its stripped stdout.

        Some commands (``identify -help``) exit with status 1 although
        nothing went wrong; pass ``whiny=False`` for those.
        """
        result = self.execute(stdin=stdin, whiny=whiny, warnings=warnings, timeout=timeout)
        return str(result.stdout).strip()


class SuiteTool(Tool):
    """A tool whose executable is fixed by the class; every positional argument is an option."""

    def __init__(self, *options: Any, config: MagickConfig | None = None, whiny: bool | None = None):
        super().__init__(self.NAME, *options, config=config, whiny=whiny)


class Animate(SuiteTool):
    NAME = "animate"


class Compare(SuiteTool):
    NAME = "compare"


class Composite(SuiteTool):
    NAME = "composite"


class Conjure(SuiteTool):
    NAME = "conjure"


class Convert(SuiteTool):
    NAME = "convert"


class Display(SuiteTool):
    NAME = "display"


class Identify(SuiteTool):
    NAME = "identify"


class Import(SuiteTool):
    NAME = "import"


class Mogrify(SuiteTool):
    NAME = "mogrify"


class Montage(SuiteTool):
    NAME = "montage"


class Stream(SuiteTool):
    NAME = "stream"


TOOLS: dict[str, type[Tool]] = {
    cls.NAME: cls
    for cls in (
        Animate,
        Compare,
        Composite,
        Conjure,
        Convert,
        Display,
        Identify,
        Import,
        Mogrify,
        Montage,
        Stream,
    )
}


def get_tool(name: str, *options: Any, config: MagickConfig | None = None, whiny: bool | None = None) -> Tool:
    """Instantiate the tool called *name* (any name works, known ones get their class)."""
    tool_cls = TOOLS.get(name, Tool)
    if tool_cls is Tool:
        return Tool(name, *options, config=config, whiny=whiny)
    return tool_cls(*options, config=config, whiny=whiny)
