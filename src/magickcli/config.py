"""Configuration settings for magickcli.

A :class:`MagickConfig` is an immutable snapshot. Builders, shells, tools and
images capture the current snapshot when they are created, so changing the
configuration later never alters a command that is already being built or
run.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any

from .errors import ConfigurationError

SUPPORTED_CLIS: tuple[str, ...] = ("imagemagick", "imagemagick7", "graphicsmagick")

# Processor executable names accepted in place of a CLI name.
PROCESSOR_ALIASES: dict[str, str] = {
    "mogrify": "imagemagick",
    "magick": "imagemagick7",
    "gm": "graphicsmagick",
}

RESOURCE_LIMITS: tuple[str, ...] = (
    "area",
    "disk",
    "file",
    "map",
    "memory",
    "thread",
    "time",
)

# Variables kept when RESTRICTED_ENV is enabled.
BASE_ENV_VARS: tuple[str, ...] = ("HOME", "PATH", "LANG")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_timeout(value: str) -> float | None:
    value = value.strip()
    return float(value) if value else None


@dataclass(frozen=True)
class MagickConfig:
    """Configuration for the ImageMagick/GraphicsMagick command line."""

    # Which command-line suite to drive: "imagemagick", "imagemagick7" or
    # "graphicsmagick". None means detect it on first use (mogrify, then gm).
    # Override with: MAGICKCLI_CLI
    CLI: str | None = None

    # Directory holding the executables, for installs outside PATH.
    # Override with: MAGICKCLI_CLI_PATH
    CLI_PATH: str | None = None

    # Tokens placed before the executable, e.g. ("firejail", "--quiet").
    CLI_PREFIX: tuple[str, ...] = ()

    # Seconds before a command is killed. None disables the limit.
    # Override with: MAGICKCLI_TIMEOUT
    TIMEOUT: float | None = None

    # Resource limits rendered as "-limit <name> <value>" on every command.
    LIMITS: Mapping[str, str] = field(default_factory=dict)

    # Log every command line with its duration.
    # Override with: MAGICKCLI_DEBUG
    DEBUG: bool = False

    # Logger for DEBUG output. None uses the "magickcli.shell" logger.
    LOGGER: logging.Logger | None = None

    # Directory for working temp files. None uses the system default.
    # Override with: MAGICKCLI_TMPDIR
    TMPDIR: str | None = None

    # Raise on non-zero exit statuses.
    WHINY: bool = True

    # Forward stderr of successful commands to sys.stderr.
    WARNINGS: bool = True

    # Identify newly created / written images and raise if they are invalid.
    VALIDATE_ON_CREATE: bool = True
    VALIDATE_ON_WRITE: bool = True

    # Pass only HOME, PATH, LANG and CLI_ENV to child processes.
    RESTRICTED_ENV: bool = False

    # Extra environment variables for child processes.
    CLI_ENV: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Apply environment variable overrides, then validate and normalise."""
        env_overrides = {
            "CLI": ("MAGICKCLI_CLI", str),
            "CLI_PATH": ("MAGICKCLI_CLI_PATH", str),
            "TIMEOUT": ("MAGICKCLI_TIMEOUT", _parse_timeout),
            "DEBUG": ("MAGICKCLI_DEBUG", _parse_bool),
            "TMPDIR": ("MAGICKCLI_TMPDIR", str),
        }
        defaults = {f.name: f.default for f in fields(self)}

        # Environment only fills fields the caller left at their default.
        for attr_name, (env_var_name, parse) in env_overrides.items():
            env_value = os.getenv(env_var_name)
            if env_value and getattr(self, attr_name) == defaults[attr_name]:
                try:
                    object.__setattr__(self, attr_name, parse(env_value))
                except ValueError as e:
                    raise ConfigurationError(
                        f"Invalid value for {env_var_name}: {env_value!r}"
                    ) from e

        if self.CLI is not None:
            cli = PROCESSOR_ALIASES.get(str(self.CLI), str(self.CLI))
            if cli not in SUPPORTED_CLIS:
                raise ConfigurationError(
                    f"CLI has to be one of {', '.join(SUPPORTED_CLIS)}, was set to {self.CLI!r}"
                )
            object.__setattr__(self, "CLI", cli)

        prefix = self.CLI_PREFIX
        if isinstance(prefix, str):
            prefix = (prefix,)
        object.__setattr__(self, "CLI_PREFIX", tuple(str(token) for token in prefix))

        if self.TIMEOUT is not None and self.TIMEOUT <= 0:
            raise ConfigurationError(f"TIMEOUT must be positive, got {self.TIMEOUT}")

        limits: dict[str, str] = {}
        for resource, value in dict(self.LIMITS).items():
            if resource not in RESOURCE_LIMITS:
                raise ConfigurationError(
                    f"Unknown resource limit {resource!r}, expected one of {', '.join(RESOURCE_LIMITS)}"
                )
            limits[resource] = str(value)
        object.__setattr__(self, "LIMITS", MappingProxyType(limits))
        object.__setattr__(
            self,
            "CLI_ENV",
            MappingProxyType({str(k): str(v) for k, v in dict(self.CLI_ENV).items()}),
        )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def resolve_cli(self) -> str:
        """Return the configured CLI, detecting the installed one if unset."""
        if self.CLI is not None:
            return self.CLI

        from .system_tools import detect_processor

        detected = detect_processor(self)
        if detected is None:
            raise ConfigurationError("ImageMagick/GraphicsMagick is not installed")
        return detected

    def get_logger(self) -> logging.Logger:
        return self.LOGGER or logging.getLogger("magickcli.shell")

    def command_env(self) -> dict[str, str]:
        """Environment for child processes."""
        if self.RESTRICTED_ENV:
            env = {name: os.environ[name] for name in BASE_ENV_VARS if name in os.environ}
        else:
            env = dict(os.environ)
        env.update(self.CLI_ENV)
        return env

    def with_changes(self, **changes: Any) -> MagickConfig:
        return replace(self, **changes)


# Default configuration instance
DEFAULT_CONFIG = MagickConfig()

_current_config: MagickConfig = DEFAULT_CONFIG


def get_config() -> MagickConfig:
    """Return the active configuration snapshot."""
    return _current_config


def configure(config: MagickConfig | None = None, **changes: Any) -> MagickConfig:
    """Install a new configuration snapshot and return it.

    Examples:
        configure(CLI="graphicsmagick", TIMEOUT=5)
        configure(MagickConfig(DEBUG=True))
    """
    global _current_config

    base = config if config is not None else _current_config
    _current_config = replace(base, **changes) if changes else base
    return _current_config


def reset_config() -> MagickConfig:
    """Restore the default configuration."""
    global _current_config

    _current_config = DEFAULT_CONFIG
    return _current_config
