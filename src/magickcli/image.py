"""High-level image facade.

An :class:`Image` wraps one working file. Mutations are queued on a
``mogrify`` command and applied lazily, right before anything reads the file::

    image = Image.open("input.jpg")
    image.resize("300x300").rotate(90)   # queued
    image.format("png")                  # flushes, then reformats
    image.write("output.png")
"""

from __future__ import annotations

import io
import logging
import os
import weakref
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO
from urllib.parse import urlparse

import numpy as np
import requests

from .command_builder import CommandBuilder
from .config import MagickConfig, get_config
from .errors import ExecutableNotFoundError, InvalidImageError, MagickError, ToolError, error_context
from .info import ImageInfo
from .io import atomic_write, copy_stream, working_tempfile
from .tool import Composite, Convert, Mogrify, Tool

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 15.0

BuilderHook = Callable[[Tool], Any]


class OperationQueue:
    """Pending ``mogrify`` options for one image, applied by :meth:`flush`."""

    def __init__(self, config: MagickConfig | None = None):
        self.config = config if config is not None else get_config()
        self.reset()

    def reset(self) -> None:
        self.builder = Mogrify(config=self.config)
        self.queued = False

    def __bool__(self) -> bool:
        return self.queued

    def enqueue(self, name: str, *values: Any) -> None:
        self.builder.operation(name, *values)
        self.queued = True

    def flush(self, path: str) -> bool:
        """Run the pending options on *path*; return ``False`` if nothing was queued."""
        if not self.queued:
            return False
        builder = self.builder
        # Reset first so a failing command doesn't get replayed on the next read.
        self.reset()
        builder << path
        builder.call()
        return True


class Image:
    """A working image file plus cached metadata and queued operations.

    _DANGER_: a path given to the constructor is modified in place. Use
    :meth:`open` to work on a temporary copy instead.

    A working file the image owns is deleted by :meth:`destroy`, or when the
    image is garbage collected.
    """

    def __init__(self, path: str | os.PathLike, tempfile: bool = False, config: MagickConfig | None = None):
        self.config = config if config is not None else get_config()
        self._queue = OperationQueue(self.config)
        self._finalizer: weakref.finalize | None = None
        self._set_path(os.fspath(path))
        if tempfile:
            self._take_ownership()

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def open(cls, path_or_url: str | os.PathLike, ext: str | None = None, config: MagickConfig | None = None) -> Image:
        """Open a copy of a local file or of a URL's contents.

        The extension is taken from the path unless *ext* is given.
        """
        location = os.fspath(path_or_url)
        if "://" in location:
            if ext is None:
                ext = os.path.splitext(urlparse(location).path)[1]
            with error_context("download image", context={"url": location}):
                response = requests.get(location, timeout=DOWNLOAD_TIMEOUT)
                response.raise_for_status()
            return cls.read(response.content, ext, config=config)

        if ext is None:
            ext = os.path.splitext(location)[1]
        with open(location, "rb") as f:
            return cls.read(f, ext, config=config)

    @classmethod
    def read(cls, stream: bytes | BinaryIO, ext: str | None = None, config: MagickConfig | None = None) -> Image:
        """Create an image from a binary blob or a readable binary stream."""
        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(stream)
        return cls.create(ext, writer=lambda f: copy_stream(stream, f), config=config)

    @classmethod
    def create(
        cls,
        ext: str | None = None,
        validate: bool | None = None,
        writer: Callable[[BinaryIO], Any] | None = None,
        config: MagickConfig | None = None,
    ) -> Image:
        """Create an image backed by a fresh temp file.

        Args:
            ext: Extension of the temp file, e.g. ``"png"``.
            validate: Identify the result and raise if it isn't an image.
                Defaults to VALIDATE_ON_CREATE.
            writer: Called with the open temp file to fill it.
        """
        config = config if config is not None else get_config()
        path = working_tempfile(ext, config)
        try:
            if writer is not None:
                with open(path, "wb") as f:
                    writer(f)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        image = cls(path, tempfile=True, config=config)
        if validate is None:
            validate = config.VALIDATE_ON_CREATE
        if validate:
            try:
                image.validate()
            except InvalidImageError:
                image.destroy()
                raise
        return image

    @classmethod
    def import_pixels(
        cls,
        blob: bytes | np.ndarray,
        columns: int,
        rows: int,
        depth: int | None = 8,
        map: str = "rgb",
        format: str = "png",
        config: MagickConfig | None = None,
    ) -> Image:
        """Create an image from raw pixel data with no header.

        ``Image.import_pixels(data, 256, 256, 16, "gray")`` runs
        ``convert -size 256x256 -depth 16 gray:blob.dat blob.png``.
        A numpy array is serialised in C order; with ``depth=None`` the
        depth follows its dtype.
        """
        if isinstance(blob, np.ndarray):
            if depth is None:
                depth = blob.dtype.itemsize * 8
            blob = np.ascontiguousarray(blob).tobytes()
        if depth is None:
            raise ValueError("depth is required for raw bytes")

        raw = cls.create(".dat", validate=False, writer=lambda f: f.write(blob), config=config)
        raw_path = raw.path
        converted = str(Path(raw_path).with_suffix(f".{format.lstrip('.')}"))
        try:
            convert = Convert(config=raw.config)
            convert.size(f"{columns}x{rows}").depth(depth)
            convert << f"{map}:{raw_path}" << converted
            convert.call()
        finally:
            raw.destroy()
        return cls(converted, tempfile=True, config=raw.config)

    # ------------------------------------------------------------------
    # Working file
    # ------------------------------------------------------------------
    def _set_path(self, path: str) -> None:
        self._path = path
        self.info = ImageInfo(path, self.config)

    @property
    def path(self) -> str:
        """Location of the working file, after applying queued operations."""
        self.flush()
        return self._path

    @property
    def tempfile(self) -> str | None:
        """The working file if this image owns (and will delete) it."""
        return self._path if self._owns_file else None

    @property
    def _owns_file(self) -> bool:
        return self._finalizer is not None and self._finalizer.alive

    def _take_ownership(self) -> None:
        self._release_ownership()
        self._finalizer = weakref.finalize(self, Path(self._path).unlink, missing_ok=True)

    def _release_ownership(self, delete: bool = False) -> None:
        if self._finalizer is None:
            return
        if delete:
            self._finalizer()
        else:
            self._finalizer.detach()
        self._finalizer = None

    def flush(self) -> None:
        if self._queue.flush(self._path):
            self.info.clear()

    def validate(self) -> None:
        """Raise :class:`InvalidImageError` unless the working file is readable."""
        self._identify(self.path)

    def is_valid(self) -> bool:
        try:
            self.validate()
        except InvalidImageError:
            return False
        return True

    def _identify(self, path: str) -> None:
        identify = self.info.identify()
        identify << path
        try:
            identify.call()
        except (InvalidImageError, ExecutableNotFoundError):
            raise
        except ToolError as e:
            raise InvalidImageError(str(e), cause=e, context={"path": path}) from e

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def __getattr__(self, name: str) -> Callable[..., Image]:
        if name.startswith("_") or not CommandBuilder.is_operation(name):
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

        def _enqueue(*values: Any) -> Image:
            self._queue.enqueue(name, *values)
            return self

        _enqueue.__name__ = name
        return _enqueue

    @contextmanager
    def combine_options(self) -> Iterator[Mogrify]:
        """Queue several options on one ``mogrify`` call.

        Example:
            with image.combine_options() as c:
                c.thumbnail("300x500>")
                c.background("white")
        """
        yield self._queue.builder
        self._queue.queued = True

    def mogrify(self, *args: Any) -> str:
        """Run ``mogrify`` with raw *args* on the working file right away."""
        mogrify = Mogrify(*args, config=self.config)
        mogrify << self.path
        output = mogrify.call()
        self.info.clear()
        return output

    def format(self, fmt: str, page: int | None = 0, build: BuilderHook | None = None) -> Image:
        """Convert the working file to *fmt*; the image then points at the new file.

        Only *page* is kept for multi-frame inputs; ``page=None`` keeps every
        frame (ImageMagick then writes ``<name>-0.<fmt>``). If the image owned
        its previous working file, that file is deleted.
        """
        old_path = self.path

        mogrify = Mogrify(config=self.config)
        mogrify.format(fmt)
        if build is not None:
            build(mogrify)
        mogrify << (f"{old_path}[{page}]" if page is not None else old_path)
        mogrify.call()

        stem = str(Path(old_path).with_suffix(""))
        new_path = f"{stem}.{fmt}" if page is not None else f"{stem}-0.{fmt}"
        owned = self._owns_file
        if new_path != old_path and owned:
            self._release_ownership(delete=True)
        if not os.path.exists(new_path):
            raise MagickError(f"Unable to format to {fmt}", context={"path": new_path})

        self._set_path(new_path)
        if owned:
            self._take_ownership()
        return self

    def collapse(self) -> Image:
        """Reduce a multi-frame image (an animated GIF) to its first frame."""
        mogrify = Mogrify(config=self.config)
        mogrify.quality(100)
        mogrify << f"{self.path}[0]"
        mogrify.call()
        self.info.clear()
        return self

    def composite(
        self,
        other: Image,
        ext: str = "jpg",
        mask: Image | None = None,
        build: BuilderHook | None = None,
    ) -> Image:
        """Overlay *other* on this image and return the result as a new image."""
        output = working_tempfile(ext, self.config)
        composite = Composite(config=self.config)
        if build is not None:
            build(composite)
        composite << other.path << self.path
        if mask is not None:
            composite << mask.path
        composite << str(output)
        try:
            composite.call()
        except BaseException:
            output.unlink(missing_ok=True)
            raise
        return Image(output, tempfile=True, config=self.config)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def write(self, output: str | os.PathLike | BinaryIO) -> Any:
        """Copy the working file to a path or into a writable stream.

        Writing to a path identifies the copy afterwards when
        VALIDATE_ON_WRITE is set.
        """
        source = self.path
        if isinstance(output, (str, os.PathLike)) or not hasattr(output, "write"):
            target = Path(os.fspath(output))
            with open(source, "rb") as src, atomic_write(target) as dst:
                copy_stream(src, dst)
            if self.config.VALIDATE_ON_WRITE:
                self._identify(str(target))
            return target

        with open(source, "rb") as src:
            copy_stream(src, output)
        return output

    def to_blob(self) -> bytes:
        return Path(self.path).read_bytes()

    def get_pixels(self) -> np.ndarray:
        """Pixels of the first frame as a ``uint8`` array of shape (rows, columns, 3)."""
        width, height = self.dimensions
        convert = Convert(config=self.config)
        convert << f"{self.path}[0]"
        convert.depth(8)
        convert << "RGB:-"
        result = convert.execute(binary=True)
        pixels = np.frombuffer(result.stdout, dtype=np.uint8)
        expected = width * height * 3
        if pixels.size != expected:
            raise InvalidImageError(
                f"Expected {expected} bytes of RGB data, got {pixels.size}",
                context={"path": self._path},
            )
        return pixels.reshape(height, width, 3)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def __getitem__(self, key: str) -> Any:
        """Identify lookup: ``image["width"]``, ``image["EXIF:Model"]``, ``image["%[fx:mean]"]``."""
        self.flush()
        return self.info[key]

    @property
    def format_name(self) -> str:
        return self["format"]

    @property
    def width(self) -> int:
        return self["width"]

    @property
    def height(self) -> int:
        return self["height"]

    @property
    def dimensions(self) -> tuple[int, int]:
        return self["dimensions"]

    @property
    def size(self) -> int:
        """Size of the working file in bytes.

        Read from the file system; identify's ``%b`` fails on some animated GIFs.
        """
        return os.path.getsize(self.path)

    @property
    def colorspace(self) -> str:
        return self["colorspace"]

    @property
    def mime_type(self) -> str:
        return self["mime_type"]

    @property
    def exif(self) -> dict[str, str]:
        return self["exif"]

    @property
    def signature(self) -> str:
        return self["signature"]

    def resolution(self, unit: str | None = None) -> tuple[int, int]:
        self.flush()
        return self.info.resolution(unit)

    @property
    def original_at(self) -> datetime | None:
        """Capture time from EXIF DateTimeOriginal, or None if absent or malformed."""
        value = self.exif.get("DateTimeOriginal")
        if not value:
            return None
        try:
            return datetime.strptime(value.strip(), "%Y:%m:%d %H:%M:%S")
        except ValueError:
            logger.debug(f"Unparseable DateTimeOriginal {value!r} in {self._path}")
            return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def destroy(self) -> None:
        """Delete the working file if this image owns it."""
        self._release_ownership(delete=True)
        self._queue.reset()

    def __enter__(self) -> Image:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.destroy()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Image):
            return NotImplemented
        return self.signature == other.signature

    def __hash__(self) -> int:
        return hash(self.signature)

    def __repr__(self) -> str:
        return f"Image({self._path!r})"
