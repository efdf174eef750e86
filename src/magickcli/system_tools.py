from __future__ import annotations

"""Utility helpers for locating the ImageMagick / GraphicsMagick binaries.

These lightweight checks find which processor is installed, report its
version and keep failures explicit so that users get fast feedback if the
environment is mis-configured.
"""

import os
import re
import subprocess
from dataclasses import dataclass
from functools import lru_cache
from shutil import which

from .errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class ToolInfo:
    """Metadata for an external binary discovered on the system."""

    name: str
    available: bool
    version: str | None = None
    path: str | None = None

    def require(self) -> None:
        """Raise *ConfigurationError* if the tool isn't available."""
        if not self.available:
            raise ConfigurationError(
                f"Required tool '{self.name}' not found in PATH.\n"
                "Install ImageMagick or GraphicsMagick, or set MAGICKCLI_CLI_PATH."
            )


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def _which(cmd: str) -> str | None:
    """Return full path if *cmd* is executable in $PATH, else *None*."""
    return which(cmd)


def _extract_version(output: str, pattern: str) -> str | None:
    match = re.search(pattern, output)
    if match:
        return match.group(1)
    return None


def _run_version_cmd(cmd: list[str], regex: str) -> str | None:
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.SubprocessError):
        return None  # Not installed or not runnable

    # gm prints its banner on stdout, some builds on stderr
    return _extract_version(completed.stdout, regex) or _extract_version(
        completed.stderr, regex
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

# Probe order: classic ImageMagick first, then GraphicsMagick, then IM7's
# single "magick" binary.
_PROCESSORS: dict[str, str] = {
    "imagemagick": "mogrify",
    "graphicsmagick": "gm",
    "imagemagick7": "magick",
}

_VERSION_ARGS: dict[str, list[str]] = {
    "imagemagick": ["-version"],
    "graphicsmagick": ["version"],
    "imagemagick7": ["-version"],
}

_VERSION_PATTERNS: dict[str, str] = {
    "imagemagick": r"ImageMagick (\S+)",
    "graphicsmagick": r"GraphicsMagick (\S+)",
    "imagemagick7": r"ImageMagick (\S+)",
}

MINIMUM_IMAGEMAGICK_VERSION = "6.6.3"


def _candidate(executable: str, cli_path: str | None) -> str:
    return os.path.join(cli_path, executable) if cli_path else executable


def discover_tool(cli_key: str, config=None) -> ToolInfo:
    """Return *ToolInfo* for the processor behind *cli_key*.

    Args:
        cli_key: imagemagick, imagemagick7 or graphicsmagick
        config: MagickConfig instance (uses the active config if None)

    Returns:
        ToolInfo with availability and version information
    """
    if cli_key not in _PROCESSORS:
        raise ValueError(f"Unknown tool: {cli_key}")

    if config is None:
        from .config import get_config

        config = get_config()

    executable = _PROCESSORS[cli_key]
    candidate = _candidate(executable, config.CLI_PATH)
    path = _which(candidate)
    if not path:
        return ToolInfo(name=candidate, available=False, version=None)

    version = _run_version_cmd(
        [candidate, *_VERSION_ARGS[cli_key]], _VERSION_PATTERNS[cli_key]
    )
    return ToolInfo(name=candidate, available=True, version=version, path=path)


@lru_cache(maxsize=None)
def _detect(cli_path: str | None) -> str | None:
    for cli_key, executable in _PROCESSORS.items():
        if _which(_candidate(executable, cli_path)):
            return cli_key
    return None


def detect_processor(config=None) -> str | None:
    """Return the CLI key of the first processor found, or *None*.

    The result is cached per CLI_PATH; call :func:`clear_detection_cache`
    after installing or removing a processor.
    """
    if config is None:
        from .config import get_config

        config = get_config()
    return _detect(config.CLI_PATH)


def clear_detection_cache() -> None:
    _detect.cache_clear()


def get_available_tools(config=None) -> dict[str, ToolInfo]:
    """Get availability status for every supported processor without requiring them."""
    return {key: discover_tool(key, config) for key in _PROCESSORS}


def _version_tuple(version: str) -> tuple[int, ...]:
    # "6.9.11-60" -> (6, 9, 11)
    core = version.split("-")[0]
    return tuple(int(part) for part in re.findall(r"\d+", core))


def valid_version_installed(config=None) -> bool:
    """Check that the installed ImageMagick is at least MINIMUM_IMAGEMAGICK_VERSION.

    GraphicsMagick has its own numbering and always passes.
    """
    if config is None:
        from .config import get_config

        config = get_config()

    cli = config.resolve_cli()
    if cli == "graphicsmagick":
        return True

    info = discover_tool(cli, config)
    if not info.available or not info.version:
        return False
    return _version_tuple(info.version) >= _version_tuple(MINIMUM_IMAGEMAGICK_VERSION)
