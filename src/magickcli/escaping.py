"""Per-platform escaping of command-line tokens.

Tokens are stored raw by :class:`~magickcli.command_builder.CommandBuilder`
and escaped exactly once when a command is rendered. The escaper is chosen
once, from the host platform, and injected wherever rendering happens.
"""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod

__all__ = [
    "Escaper",
    "PosixEscaper",
    "WindowsEscaper",
    "DEFAULT_ESCAPER",
    "default_escaper",
]

# Everything outside this set is backslash-escaped for POSIX shells.
_POSIX_UNSAFE = re.compile(r"[^A-Za-z0-9_\-.,:+/@\n]")
_DOUBLE_QUOTED = re.compile(r'^".+"$', re.DOTALL)


class Escaper(ABC):
    """Turns a raw token into a single shell word."""

    #: Short platform label, used in logs and ``repr``.
    NAME: str = "escaper"

    @abstractmethod
    def escape(self, token: str) -> str:
        """Return *token* escaped for the target shell."""

    def escape_all(self, tokens: list[str]) -> list[str]:
        return [self.escape(token) for token in tokens]

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PosixEscaper(Escaper):
    """Backslash escaping for Bourne-compatible shells.

    ``shlex.split`` on the escaped word yields the original token back.
    """

    NAME = "posix"

    def escape(self, token: str) -> str:
        token = str(token)
        if not token:
            return "''"
        escaped = _POSIX_UNSAFE.sub(lambda m: "\\" + m.group(0), token)
        # A backslash-newline is a line continuation, so quote newlines instead.
        return escaped.replace("\n", "'\n'")


class WindowsEscaper(Escaper):
    """Caret escaping for ``cmd.exe``.

    ``^`` is cmd's escape character; ``>`` would otherwise start a redirect.
    Values containing a single quote are wrapped in double quotes unless they
    already are.
    """

    NAME = "windows"

    def escape(self, token: str) -> str:
        escaped = str(token).replace("^", "^^").replace(">", "^>")
        if "'" in escaped and not _DOUBLE_QUOTED.match(escaped):
            escaped = '"' + escaped.replace("\\", "\\\\").replace('"', '\\"') + '"'
        return escaped


def default_escaper() -> Escaper:
    """Return the escaper matching the host platform."""
    if os.name == "nt":
        return WindowsEscaper()
    return PosixEscaper()


DEFAULT_ESCAPER: Escaper = default_escaper()
