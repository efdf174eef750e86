"""magickcli - drive ImageMagick / GraphicsMagick from Python."""

from typing import Any

__version__: str = "0.1.0"

# Public re-exports for convenience ---------------------------------------------------

from .command_builder import CREATION_OPERATORS, OPTION_NAMES, CommandBuilder
from .config import DEFAULT_CONFIG, MagickConfig, configure, get_config, reset_config
from .errors import (
    CommandTimeoutError,
    ConfigurationError,
    ExecutableNotFoundError,
    InvalidImageError,
    MagickError,
    ToolError,
    UsageError,
)
from .escaping import Escaper, PosixEscaper, WindowsEscaper
from .image import Image, OperationQueue
from .image_list import ImageList
from .shell import ExecutionResult, Shell
from .system_tools import ToolInfo, detect_processor, valid_version_installed

# Tools --------------------------------------------------------------------------------
from .tool import (
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
    Tool,
    get_tool,
)


def mogrify(*options: Any, **kwargs: Any) -> Mogrify:
    return Mogrify(*options, **kwargs)


def convert(*options: Any, **kwargs: Any) -> Convert:
    return Convert(*options, **kwargs)


def identify(*options: Any, **kwargs: Any) -> Identify:
    return Identify(*options, **kwargs)


def composite(*options: Any, **kwargs: Any) -> Composite:
    return Composite(*options, **kwargs)


def montage(*options: Any, **kwargs: Any) -> Montage:
    return Montage(*options, **kwargs)


def cli() -> str:
    """Name of the command-line suite in use (detected if not configured)."""
    return get_config().resolve_cli()


__all__ = [
    "Animate",
    "CREATION_OPERATORS",
    "CommandBuilder",
    "CommandTimeoutError",
    "Compare",
    "Composite",
    "ConfigurationError",
    "Conjure",
    "Convert",
    "DEFAULT_CONFIG",
    "Display",
    "Escaper",
    "ExecutableNotFoundError",
    "ExecutionResult",
    "Identify",
    "Image",
    "ImageList",
    "Import",
    "InvalidImageError",
    "MagickConfig",
    "MagickError",
    "Mogrify",
    "Montage",
    "OPTION_NAMES",
    "OperationQueue",
    "PosixEscaper",
    "Shell",
    "Stream",
    "Tool",
    "ToolError",
    "ToolInfo",
    "UsageError",
    "WindowsEscaper",
    "cli",
    "composite",
    "configure",
    "convert",
    "detect_processor",
    "get_config",
    "get_tool",
    "identify",
    "montage",
    "mogrify",
    "reset_config",
    "valid_version_installed",
]
