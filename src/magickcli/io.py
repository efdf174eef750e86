"""I/O utilities for working files, atomic writes and logging."""

import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from .config import MagickConfig, get_config

CHUNK_SIZE = 8192


def setup_logging(log_dir: Path | None = None, log_level: str = "INFO") -> logging.Logger:
    """Set up logging configuration for magickcli.

    Args:
        log_dir: Directory to store log files. Without one, logs only go to stderr.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        # Create timestamped log file
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        handlers.append(logging.FileHandler(log_dir / f"magickcli_{timestamp}.log"))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    return logging.getLogger("magickcli")


def normalize_extension(ext: str | None) -> str:
    """``"JPG"`` -> ``".jpg"``; empty or None -> ``""``."""
    if not ext:
        return ""
    ext = str(ext).lower()
    return ext if ext.startswith(".") else f".{ext}"


def working_tempfile(ext: str | None = None, config: MagickConfig | None = None) -> Path:
    """Create an empty temp file for an image to work on and return its path.

    The file lives in the configured TMPDIR and keeps *ext* as its suffix so
    that the processors can infer the format from the name.
    """
    config = config if config is not None else get_config()
    fd, name = tempfile.mkstemp(
        prefix="magickcli-",
        suffix=normalize_extension(ext),
        dir=config.TMPDIR,
    )
    os.close(fd)
    return Path(name)


@contextmanager
def atomic_write(target_path: Path, mode: str = "wb"):
    """Context manager for atomic file writes using temporary files.

    Args:
        target_path: Final path where file should be written
        mode: File open mode

    Yields:
        File handle for writing

    Example:
        with atomic_write(Path("out.png")) as f:
            f.write(blob)
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temporary file in same directory as target
    with tempfile.NamedTemporaryFile(
        mode=mode,
        dir=target_path.parent,
        delete=False,
        suffix=f".tmp_{target_path.name}",
    ) as temp_file:
        try:
            yield temp_file
            temp_file.flush()
        except Exception:
            temp_file.close()
            Path(temp_file.name).unlink(missing_ok=True)
            raise
    os.replace(temp_file.name, target_path)


def copy_stream(source, destination) -> int:
    """Copy a readable binary stream into a writable one, chunk by chunk."""
    copied = 0
    while True:
        chunk = source.read(CHUNK_SIZE)
        if not chunk:
            break
        destination.write(chunk)
        copied += len(chunk)
    return copied
