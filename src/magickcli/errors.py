"""Error taxonomy for magickcli.

Every failure raised by the package derives from :class:`MagickError`, so
callers can catch the whole family in one place while still telling an
unreadable image apart from a failing tool, a missing executable, a timeout
or a programming mistake.
"""

from __future__ import annotations

import logging
import re
import traceback
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

# Output fragments ImageMagick/GraphicsMagick print when the input is not an
# image they can decode.
INVALID_IMAGE_PATTERNS: tuple[str, ...] = (
    r"no decode delegate",
    r"did not return an image",
    r"improper image header",
)

_INVALID_IMAGE_RE = re.compile("|".join(INVALID_IMAGE_PATTERNS), re.IGNORECASE)


class MagickError(Exception):
    """Base exception class for all magickcli errors."""

    def __init__(
        self, message: str, cause: Exception | None = None, context: dict | None = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.cause:
            return f"{base_msg} (caused by: {self.cause})"
        return base_msg


class ToolError(MagickError):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str] | str,
        status: int,
        stdout: str = "",
        stderr: str = "",
        message: str | None = None,
    ):
        if not isinstance(command, str):
            command = " ".join(command)
        self.command = command
        self.status = status
        self.stdout = stdout
        self.stderr = stderr
        if message is None:
            message = f"`{command}` failed with status: {status} and error:\n{stderr}"
        super().__init__(
            message,
            context={"command": command, "status": status},
        )


class ExecutableNotFoundError(ToolError):
    """Raised when the executable could not be spawned (status 127)."""


class InvalidImageError(MagickError):
    """Raised when the working file is not an image the processor can read."""


class CommandTimeoutError(MagickError):
    """Raised when a command runs past its deadline.

    Timeouts are always fatal; ``WHINY = False`` does not suppress them.
    """

    def __init__(self, command: Sequence[str] | str, timeout: float):
        if not isinstance(command, str):
            command = " ".join(command)
        self.command = command
        self.timeout = timeout
        super().__init__(
            f"`{command}` timed out after {timeout}s",
            context={"command": command, "timeout": timeout},
        )


class UsageError(MagickError, TypeError):
    """Raised on programming mistakes, e.g. calling a facade-only operation."""


class ConfigurationError(MagickError, ValueError):
    """Raised when configuration is invalid or no processor is installed."""


def is_invalid_image_output(output: str) -> bool:
    """Return ``True`` if *output* carries the "not a readable image" signature."""
    return bool(_INVALID_IMAGE_RE.search(output or ""))


@contextmanager
def error_context(
    operation: str,
    error_type: type[MagickError] = MagickError,
    context: dict | None = None,
    logger: logging.Logger | None = None,
) -> Iterator[None]:
    """Wrap foreign exceptions raised inside the block into *error_type*.

    Usage:
        with error_context("read image stream", InvalidImageError):
            data = stream.read()

    magickcli errors pass through unchanged.
    """
    try:
        yield
    except MagickError:
        raise
    except Exception as e:
        if logger is None:
            logger = logging.getLogger(__name__)

        error_ctx = dict(context or {})
        error_ctx.update(
            {
                "operation": operation,
                "original_error_type": type(e).__name__,
            }
        )
        logger.debug(f"Traceback for {operation}: {traceback.format_exc()}")
        raise error_type(f"Failed to {operation}: {e}", cause=e, context=error_ctx) from e
