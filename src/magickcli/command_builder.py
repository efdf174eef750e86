"""Incremental construction of ImageMagick / GraphicsMagick command lines.

A :class:`CommandBuilder` collects raw tokens in the order they are pushed
and only escapes them when the command is rendered::

    builder = CommandBuilder("mogrify")
    builder.resize("30x40").distort().toggle_plus("srt", "0.6 20")
    builder.render_args()   # ['-resize', '30x40', '+distort', 'srt', '0.6\\ 20']

Option methods come from a closed catalog (:data:`OPTION_NAMES` and
:data:`CREATION_OPERATORS`); anything else goes through
:meth:`CommandBuilder.push_raw_argument`.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from .config import RESOURCE_LIMITS, MagickConfig, get_config
from .errors import UsageError
from .escaping import DEFAULT_ESCAPER, Escaper

__all__ = [
    "CommandBuilder",
    "CREATION_OPERATORS",
    "OPTION_NAMES",
]

# Command-line options understood by mogrify/convert, in their dashed form.
OPTION_NAMES: frozenset[str] = frozenset(
    """
    adaptive-blur adaptive-resize adaptive-sharpen adjoin affine alpha annotate
    antialias append attenuate authenticate auto-gamma auto-level auto-orient
    backdrop background bench bias black-point-compensation black-threshold
    blend blue-primary blue-shift blur border bordercolor borderwidth
    brightness-contrast cache caption cdl channel charcoal chop clamp clip
    clip-mask clip-path clone clut coalesce colorize colormap color-matrix
    colors colorspace combine comment compose composite compress contrast
    contrast-stretch convolve crop cycle debug decipher deconstruct define delay
    delete density depth descend deskew despeckle direction displace display
    dispose dissimilarity-threshold dissolve distort dither draw duplicate edge
    emboss encipher encoding endian enhance equalize evaluate
    evaluate-sequence extent extract family features fft fill filter flatten
    flip floodfill flop font foreground format frame function fuzz fx gamma
    gaussian-blur geometry gravity green-primary hald-clut help
    highlight-color iconGeometry iconic identify ift immutable implode insert
    intent interlace interpolate interline-spacing interword-spacing kerning
    label lat layers level level-colors limit linear-stretch linewidth
    liquid-rescale list log loop lowlight-color magnify map mask mattecolor
    median metric mode modulate monitor monochrome morph morphology mosaic
    motion-blur name negate noise normalize opaque ordered-dither orient page
    paint path pause pen perceptible ping pointsize polaroid poly posterize
    precision preview print process profile quality quantize quiet
    radial-blur raise random-threshold red-primary regard-warnings region
    remap remote render repage resample resize respect-parentheses reverse
    roll rotate sample sampling-factor scale scene screen seed segment
    selective-blur separate sepia-tone set shade shadow shared-memory sharpen
    shave shear sigmoidal-contrast silent size sketch smush snaps solarize
    sparse-color splice spread statistic stegano stereo stretch strip stroke
    strokewidth style subimage-search swap swirl synchronize taint text-font
    texture threshold thumbnail tile tile-offset tint title transform
    transparent transparent-color transpose transverse treedepth trim type
    undercolor unique-colors units unsharp update verbose version view
    vignette virtual-pixel visual watermark wave weight white-point
    white-threshold window window-group write
    """.split()
)

# Pseudo-images that synthesize content, rendered as "name:value".
CREATION_OPERATORS: frozenset[str] = frozenset(
    """
    canvas caption gradient label logo pattern plasma radial-gradient rose
    text tile xc
    """.split()
)


class CommandBuilder:
    """Ordered list of command-line tokens for one tool invocation."""

    def __init__(
        self,
        tool: str,
        *options: Any,
        config: MagickConfig | None = None,
        escaper: Escaper | None = None,
    ):
        self.tool_name = tool
        self.config = config if config is not None else get_config()
        self.escaper = escaper if escaper is not None else DEFAULT_ESCAPER
        self.args: list[str] = []
        self.limits: dict[str, str] = dict(self.config.LIMITS)
        for option in options:
            self.push(option)

    # ------------------------------------------------------------------
    # Token accumulation
    # ------------------------------------------------------------------
    def push(self, token: Any) -> CommandBuilder:
        """Append *token* as-is (stringified and stripped)."""
        self.args.append(str(token).strip())
        return self

    def __lshift__(self, token: Any) -> CommandBuilder:
        return self.push(token)

    def push_raw_argument(self, token: Any) -> CommandBuilder:
        """Append a token that is not in the option catalog, e.g. a file path."""
        return self.push(token)

    def merge(self, tokens: Iterable[Any]) -> CommandBuilder:
        for token in tokens:
            self.push(token)
        return self

    def add_command(self, name: str, *values: Any) -> CommandBuilder:
        """Push ``-name`` followed by *values*."""
        self.push(f"-{name}")
        return self.merge(values)

    def add_creation_operator(self, name: str, *values: Any) -> CommandBuilder:
        """Push a single ``name:value`` token (``xc:``, ``canvas:khaki``)."""
        if not values:
            return self.push(f"{name}:")
        return self.push(":".join([name, *(str(value) for value in values)]))

    def toggle_plus(self, *values: Any) -> CommandBuilder:
        """Switch the last option to its ``+`` form, then push *values*.

        ``builder.distort().toggle_plus("srt", "0.6 20")`` gives
        ``+distort srt "0.6 20"``.
        """
        if not self.args:
            raise UsageError("Cannot switch to '+' form: no option has been added yet")
        last = self.args[-1]
        if len(last) < 2 or not last.startswith("-"):
            raise UsageError(f"Cannot switch to '+' form: last token {last!r} is not an option")
        self.args[-1] = "+" + last[1:]
        return self.merge(values)

    def clone(self, *values: Any) -> CommandBuilder:
        return self.add_command("clone", *values)

    def stdin(self) -> CommandBuilder:
        """Append the ``-`` pseudo-filename (read from standard input)."""
        return self.push("-")

    def stdout(self) -> CommandBuilder:
        """Append the ``-`` pseudo-filename (write to standard output)."""
        return self.push("-")

    @contextmanager
    def stack(self) -> Iterator[CommandBuilder]:
        """Wrap the tokens pushed inside the block in an ImageMagick stack.

        Example:
            with convert.stack() as stack:
                stack << "wand.gif"
                stack.rotate(30)
        """
        self.push("(")
        yield self
        self.push(")")

    def set_limit(self, resource: str, value: Any) -> CommandBuilder:
        """Limit a resource for this command; a later call replaces the value."""
        if resource not in RESOURCE_LIMITS:
            raise ValueError(
                f"Unknown resource limit {resource!r}, expected one of {', '.join(RESOURCE_LIMITS)}"
            )
        self.limits[resource] = str(value).strip()
        return self

    def format(self, *values: Any) -> CommandBuilder:
        raise UsageError("You must call 'format' on the image object directly!")

    # ------------------------------------------------------------------
    # Option catalog
    # ------------------------------------------------------------------
    def operation(self, name: str, *values: Any) -> CommandBuilder:
        """Append a catalogued option or creation operator.

        Names shared by both catalogs (caption, label, text, tile) are options
        for mogrify and creation operators for every other tool.
        """
        name = name.replace("_", "-")
        is_option = name in OPTION_NAMES
        if name in CREATION_OPERATORS and (not is_option or self.tool_name != "mogrify"):
            return self.add_creation_operator(name, *values)
        if is_option:
            return self.add_command(name, *values)
        raise AttributeError(
            f"{name!r} is not a known option; use push_raw_argument() for custom arguments"
        )

    def option(self, name: str, *values: Any) -> CommandBuilder:
        """Append a catalogued option as ``-name``, even where the name is also a creator.

        ``montage.option("tile", "2x1")`` gives ``-tile 2x1``.
        """
        name = name.replace("_", "-")
        if name not in OPTION_NAMES:
            raise AttributeError(
                f"{name!r} is not a known option; use push_raw_argument() for custom arguments"
            )
        return self.add_command(name, *values)

    @staticmethod
    def is_operation(name: str) -> bool:
        name = name.replace("_", "-")
        return name in OPTION_NAMES or name in CREATION_OPERATORS

    def __getattr__(self, name: str) -> Callable[..., CommandBuilder]:
        if name.startswith("_") or not self.is_operation(name):
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

        def _operation(*values: Any) -> CommandBuilder:
            return self.operation(name, *values)

        _operation.__name__ = name
        return _operation

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def executable(self) -> list[str]:
        """The executable tokens, honouring CLI, CLI_PATH and CLI_PREFIX.

        ``gm identify`` for GraphicsMagick, ``magick identify`` for
        ImageMagick 7 (``convert`` becomes plain ``magick``).
        """
        cli = self.config.resolve_cli()
        exe = [self.tool_name]
        if cli == "graphicsmagick":
            exe.insert(0, "gm")
        elif cli == "imagemagick7":
            exe = ["magick"] if self.tool_name in ("convert", "magick") else ["magick", self.tool_name]

        if self.config.CLI_PATH:
            exe[0] = os.path.join(self.config.CLI_PATH, exe[0])
        return [*self.config.CLI_PREFIX, *exe]

    def _limit_tokens(self, escape: Callable[[str], str]) -> list[str]:
        tokens: list[str] = []
        for resource, value in self.limits.items():
            tokens += ["-limit", resource, escape(value)]
        return tokens

    def render_args(self) -> list[str]:
        """The argument tokens escaped for the host shell."""
        return self.escaper.escape_all(self.args)

    def render(self) -> list[str]:
        """Full command: prefix, executable, limits, escaped arguments."""
        return [
            *self.executable(),
            *self._limit_tokens(self.escaper.escape),
            *self.render_args(),
        ]

    def render_line(self) -> str:
        return " ".join(self.render())

    def argv(self) -> list[str]:
        """Unescaped argument vector for direct execution (no shell)."""
        return [*self.executable(), *self._limit_tokens(str), *self.args]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.tool_name!r}, args={self.args!r})"
