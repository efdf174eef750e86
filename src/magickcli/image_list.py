"""Operations across several images at once."""

from __future__ import annotations

import os
from collections import UserList
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from .command_builder import CommandBuilder
from .config import MagickConfig, get_config
from .errors import UsageError
from .image import BuilderHook, Image
from .io import working_tempfile
from .tool import Convert, Mogrify, Montage


class _BatchMogrify(Mogrify):
    def format(self, *values: Any) -> Mogrify:
        raise UsageError("You must call 'format' on the image list directly!")


class ImageList(UserList):
    """A list of :class:`Image` objects.

    Paths may be added directly; they are turned into images when the list
    is first read. Operations from the option catalog run one ``mogrify``
    over every image::

        images = ImageList(["a.jpg", "b.jpg"])
        images.resize("100x100")     # mogrify -resize 100x100 a.jpg b.jpg
    """

    def __init__(self, images=None, config: MagickConfig | None = None):
        super().__init__(images or [])
        self.config = config if config is not None else get_config()

    def _coerce(self, item: Any) -> Image:
        if isinstance(item, (str, os.PathLike)):
            return Image(item, config=self.config)
        return item

    @property
    def images(self) -> list[Image]:
        self.data[:] = [self._coerce(item) for item in self.data]
        return self.data

    def __iter__(self) -> Iterator[Image]:
        return iter(self.images)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return self.__class__(self.data[index], config=self.config)
        item = self._coerce(self.data[index])
        self.data[index] = item
        return item

    def __add__(self, other):
        other_data = other.data if isinstance(other, UserList) else list(other)
        return self.__class__(self.data + other_data, config=self.config)

    def copy(self) -> ImageList:
        return self.__class__(self.data, config=self.config)

    # ------------------------------------------------------------------
    # Whole-list operations
    # ------------------------------------------------------------------
    def montage(self, ext: str = "jpg", build: BuilderHook | None = None) -> Image:
        """Tile the images into one picture and return it."""
        output = working_tempfile(ext, self.config)
        montage = Montage(config=self.config)
        if build is not None:
            build(montage)
        return self._run_into(montage, output)

    def coalesce(self, ext: str = "gif") -> Image:
        """Merge the images into one fully-drawn animation."""
        output = working_tempfile(ext, self.config)
        convert = Convert(config=self.config)
        for image in self.images:
            convert << image.path
        convert.coalesce()
        convert << str(output)
        try:
            convert.call()
        except BaseException:
            output.unlink(missing_ok=True)
            raise
        return Image(output, tempfile=True, config=self.config)

    def _run_into(self, tool, output) -> Image:
        for image in self.images:
            tool << image.path
        tool << str(output)
        try:
            tool.call()
        except BaseException:
            output.unlink(missing_ok=True)
            raise
        return Image(output, tempfile=True, config=self.config)

    def format(self, fmt: str, page: int | None = 0) -> ImageList:
        """Reformat every image in place; see :meth:`Image.format`."""
        for image in self.images:
            image.format(fmt, page)
        return self

    def clear_info(self) -> None:
        for image in self.images:
            image.info.clear()

    # ------------------------------------------------------------------
    # Batched mogrify
    # ------------------------------------------------------------------
    @contextmanager
    def batch(self) -> Iterator[Mogrify]:
        """Collect options in the block, then run one mogrify over all images.

        Example:
            with images.batch() as m:
                m.resize("50%").strip()
        """
        builder = _BatchMogrify(config=self.config)
        yield builder
        paths = [image.path for image in self.images]
        for path in paths:
            builder << path
        builder.call()
        self.clear_info()

    def mogrify(self, *args: Any) -> ImageList:
        """Run ``mogrify`` with raw *args* over every image."""
        with self.batch() as builder:
            builder.merge(args)
        return self

    def __getattr__(self, name: str) -> Callable[..., ImageList]:
        if name.startswith("_") or not CommandBuilder.is_operation(name):
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

        def _batched(*values: Any) -> ImageList:
            with self.batch() as builder:
                builder.operation(name, *values)
            return self

        _batched.__name__ = name
        return _batched
