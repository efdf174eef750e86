"""Subprocess execution for magickcli.

:meth:`Shell.execute` runs an argument vector and hands back what happened as
data, including a missing executable (status 127). :meth:`Shell.run` adds the
error policy on top: non-zero statuses become exceptions unless the caller
turned that off, and stray stderr output is forwarded to ``sys.stderr``.
Timeouts are always raised.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass

import psutil

from .config import MagickConfig, get_config
from .errors import (
    CommandTimeoutError,
    ExecutableNotFoundError,
    InvalidImageError,
    MagickError,
    ToolError,
    is_invalid_image_output,
)
from .escaping import DEFAULT_ESCAPER, Escaper

__all__ = [
    "BENIGN_STDERR",
    "NOT_FOUND_STATUS",
    "ExecutionResult",
    "Shell",
]

logger = logging.getLogger(__name__)

NOT_FOUND_STATUS = 127

# ImageMagick 7 prints this on every legacy "convert" call. It is not a
# warning about the image, so it is never forwarded.
BENIGN_STDERR = 'WARNING: The convert command is deprecated in IMv7, use "magick"'

_KILL_WAIT_SECONDS = 3.0


@dataclass(frozen=True)
class ExecutionResult:
    """Captured outcome of one command.

    Unpacks as ``stdout, stderr, status``.
    """

    stdout: str | bytes
    stderr: str
    status: int
    duration: float = 0.0

    def __iter__(self):
        return iter((self.stdout, self.stderr, self.status))

    @property
    def success(self) -> bool:
        return self.status == 0

    @property
    def not_found(self) -> bool:
        return self.status == NOT_FOUND_STATUS


def is_benign_warning(stderr: str) -> bool:
    return stderr.strip() == BENIGN_STDERR


def _kill_process_tree(process: subprocess.Popen) -> None:
    """Kill *process* and every process it spawned."""
    try:
        children = psutil.Process(process.pid).children(recursive=True)
    except psutil.NoSuchProcess:
        children = []

    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass

    if os.name != "nt":
        # The child leads its own session; this also reaches orphaned
        # grandchildren that psutil no longer sees under the parent.
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass

    process.kill()
    psutil.wait_procs(children, timeout=_KILL_WAIT_SECONDS)


class Shell:
    """Runs commands as child processes with captured stdout and stderr."""

    def __init__(self, config: MagickConfig | None = None, escaper: Escaper | None = None):
        self.config = config if config is not None else get_config()
        self.escaper = escaper if escaper is not None else DEFAULT_ESCAPER

    def command_line(self, command: Sequence[str]) -> str:
        """Shell-escaped rendering of *command*, for logs and error messages."""
        return " ".join(self.escaper.escape_all([str(token) for token in command]))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def execute(
        self,
        command: Sequence[str],
        stdin: str | bytes | None = None,
        timeout: float | None = None,
        binary: bool = False,
    ) -> ExecutionResult:
        """Run *command* and return its output.

        Args:
            command: Argument vector, executable first. No shell is involved.
            stdin: Data written to the child's standard input, then closed.
            timeout: Seconds before the process tree is killed. Defaults to
                the configured TIMEOUT.
            binary: Return stdout as bytes instead of text.

        Returns:
            ExecutionResult. A missing executable is reported with status 127.

        Raises:
            CommandTimeoutError: If the command did not finish in time.
        """
        argv = [str(token) for token in command]
        if timeout is None:
            timeout = self.config.TIMEOUT
        if isinstance(stdin, str):
            stdin = stdin.encode()

        start = time.perf_counter()
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE if stdin is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.config.command_env(),
                start_new_session=os.name != "nt",
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError):
            duration = time.perf_counter() - start
            self._log(argv, duration)
            return ExecutionResult(
                "" if not binary else b"",
                f'executable not found: "{argv[0]}"',
                NOT_FOUND_STATUS,
                duration,
            )

        with process:
            try:
                # communicate() feeds stdin while draining both pipes, so a
                # chatty child can't deadlock on a full buffer; a child that
                # closes stdin early doesn't raise BrokenPipeError.
                stdout, stderr = process.communicate(stdin, timeout=timeout)
            except subprocess.TimeoutExpired:
                _kill_process_tree(process)
                process.communicate()
                self._log(argv, time.perf_counter() - start)
                raise CommandTimeoutError(self.command_line(argv), timeout) from None
            except BaseException:
                _kill_process_tree(process)
                process.wait()
                raise

        duration = time.perf_counter() - start
        self._log(argv, duration)

        return ExecutionResult(
            stdout if binary else stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
            process.returncode,
            duration,
        )

    def run(
        self,
        command: Sequence[str],
        stdin: str | bytes | None = None,
        timeout: float | None = None,
        whiny: bool | None = None,
        warnings: bool | None = None,
        binary: bool = False,
    ) -> ExecutionResult:
        """Execute *command* and apply the error policy.

        Raises:
            InvalidImageError: Non-zero exit with a "not an image" signature.
            ExecutableNotFoundError: The executable could not be spawned.
            ToolError: Any other non-zero exit.
            CommandTimeoutError: Always, regardless of *whiny*.
        """
        result = self.execute(command, stdin=stdin, timeout=timeout, binary=binary)

        whiny = self.config.WHINY if whiny is None else whiny
        if whiny and result.status != 0:
            raise self.failure(command, result)

        warnings = self.config.WARNINGS if warnings is None else warnings
        if warnings and result.stderr and not is_benign_warning(result.stderr):
            sys.stderr.write(result.stderr)

        return result

    def failure(self, command: Sequence[str], result: ExecutionResult) -> MagickError:
        """Build the exception describing a failed *result*."""
        line = self.command_line(command)
        stdout = result.stdout if isinstance(result.stdout, str) else ""

        if result.not_found:
            return ExecutableNotFoundError(
                line, result.status, stdout, result.stderr, message=result.stderr
            )
        if is_invalid_image_output(f"{stdout}\n{result.stderr}"):
            return InvalidImageError(
                result.stderr.strip() or f"`{line}` did not return an image",
                context={"command": line, "status": result.status},
            )
        return ToolError(line, result.status, stdout, result.stderr)

    def _log(self, argv: Sequence[str], duration: float) -> None:
        if self.config.DEBUG:
            self.config.get_logger().info(f"[{duration:.2f}s] {self.command_line(argv)}")
        else:
            logger.debug(f"[{duration:.2f}s] {self.command_line(argv)}")
