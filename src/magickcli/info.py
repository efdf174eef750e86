"""Parsing of ``identify`` output into image metadata.

Every lookup goes through one ``identify -format ...`` call on the first
frame of the image and is cached until :meth:`ImageInfo.clear` is called.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .config import MagickConfig, get_config
from .errors import ExecutableNotFoundError, InvalidImageError, ToolError
from .tool import Identify

logger = logging.getLogger(__name__)

# Keys whose values some versions report as comma separated character codes,
# e.g. "48, 50, 50, 48" for "0220".
ASCII_ENCODED_EXIF_KEYS = ("ExifVersion", "FlashPixVersion")

CHEAP_INFO_KEYS = ("format", "width", "height", "dimensions", "size")

# "%m %w %h %b" output, e.g. "JPEG 500 300 15.2KB". Warnings printed on
# stdout before it are skipped by matching the whole line.
_CHEAP_INFO_PATTERN = re.compile(
    r"^(?P<format>[A-Za-z0-9_+-]+) (?P<width>\d+) (?P<height>\d+) (?P<size>\S+)\s*$",
    re.MULTILINE,
)

_SIZE_PATTERN = re.compile(r"^(?P<number>\d+(?:\.\d+)?)(?P<unit>[KMGTPE]?)(?:i?B)?$", re.IGNORECASE)
_SIZE_MULTIPLIERS = {
    "": 1,
    "K": 1024,
    "M": 1024**2,
    "G": 1024**3,
    "T": 1024**4,
    "P": 1024**5,
    "E": 1024**6,
}

_EXIF_LINE_PATTERN = re.compile(r"^(?:exif:)?(?P<key>[A-Za-z0-9_]+)=(?P<value>.*)$")


def parse_size(text: str) -> int:
    """Convert an identify ``%b`` value ("1234B", "1.5KB", "2MiB") to bytes."""
    match = _SIZE_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"Unrecognised file size: {text!r}")
    number = float(match.group("number"))
    return int(round(number * _SIZE_MULTIPLIERS[match.group("unit").upper()]))


def decode_comma_separated_ascii(value: str) -> str:
    if "," not in value:
        return value
    return "".join(chr(int(code)) for code in re.findall(r"\d+", value))


def parse_exif(output: str) -> dict[str, str]:
    """Parse ``%[EXIF:*]`` output.

    ImageMagick prints ``exif:Key=Value`` lines, GraphicsMagick ``Key=Value``.
    Lines that don't start a new pair continue the previous value.
    """
    exif: dict[str, str] = {}
    last_key: str | None = None
    for line in output.splitlines():
        if not line.strip():
            continue
        match = _EXIF_LINE_PATTERN.match(line)
        if match:
            last_key = match.group("key")
            exif[last_key] = match.group("value").strip()
        elif last_key is not None:
            exif[last_key] += "\n" + line.strip()
        else:
            logger.debug(f"Ignoring EXIF line without a key: {line!r}")

    for key in ASCII_ENCODED_EXIF_KEYS:
        if key in exif:
            exif[key] = decode_comma_separated_ascii(exif[key])
    return exif


class ImageInfo:
    """Cached identify lookups for the image at *path*.

    ``info["width"]``, ``info["exif"]``, ``info["EXIF:Model"]`` and any raw
    format string like ``info["%[fx:mean]"]`` are supported.
    """

    def __init__(self, path: str, config: MagickConfig | None = None):
        self.path = path
        self.config = config if config is not None else get_config()
        self._cache: dict[str, Any] = {}

    def __getitem__(self, key: str) -> Any:
        if key in CHEAP_INFO_KEYS:
            return self.cheap_info(key)
        if key == "colorspace":
            return self.colorspace
        if key == "mime_type":
            return self.mime_type
        if key == "resolution":
            return self.resolution()
        if key == "signature":
            return self.signature
        if key == "exif":
            return self.exif
        if key.lower().startswith("exif:"):
            return self.raw_exif(key)
        return self.raw(key)

    def clear(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def cheap_info(self, key: str) -> Any:
        """format, width, height, dimensions and size from a single call."""
        if key not in self._cache:
            output = self.raw("%m %w %h %b")
            match = _CHEAP_INFO_PATTERN.search(output)
            if not match:
                raise InvalidImageError(
                    f"Unable to read image information from identify output: {output!r}",
                    context={"path": self.path},
                )
            width = int(match.group("width"))
            height = int(match.group("height"))
            try:
                size = parse_size(match.group("size"))
            except ValueError as e:
                raise InvalidImageError(str(e), cause=e, context={"path": self.path}) from e
            self._cache.update(
                format=match.group("format"),
                width=width,
                height=height,
                dimensions=(width, height),
                size=size,
            )
        return self._cache[key]

    @property
    def colorspace(self) -> str:
        if "colorspace" not in self._cache:
            self._cache["colorspace"] = self.raw("%r")
        return self._cache["colorspace"]

    @property
    def mime_type(self) -> str:
        return f"image/{self.cheap_info('format').lower()}"

    def resolution(self, unit: str | None = None) -> tuple[int, int]:
        """Horizontal and vertical resolution, optionally converted to *unit*.

        Not cached, since the result depends on *unit*.
        """
        identify = self.identify()
        if unit:
            identify.units(unit)
        identify.format("%x %y")
        output = self._run(identify)
        numbers = [int(float(part)) for part in re.findall(r"\d+(?:\.\d+)?", output)[:2]]
        if len(numbers) != 2:
            raise InvalidImageError(f"Unable to read resolution from: {output!r}")
        return numbers[0], numbers[1]

    @property
    def signature(self) -> str:
        if "signature" not in self._cache:
            self._cache["signature"] = self.raw("%#")
        return self._cache["signature"]

    @property
    def exif(self) -> dict[str, str]:
        if "exif" not in self._cache:
            self._cache["exif"] = parse_exif(self.raw("%[EXIF:*]"))
        return self._cache["exif"]

    def raw_exif(self, key: str) -> str:
        """Single EXIF tag, ``info.raw_exif("EXIF:ExifVersion")``."""
        value = self.raw(f"%[{key}]")
        if key.split(":", 1)[1] in ASCII_ENCODED_EXIF_KEYS:
            value = decode_comma_separated_ascii(value)
        return value

    def raw(self, value: str) -> str:
        """Output of ``identify -format <value>`` for the first frame."""
        key = f"raw:{value}"
        if key not in self._cache:
            identify = self.identify()
            identify.format(value)
            self._cache[key] = self._run(identify)
        return self._cache[key]

    # ------------------------------------------------------------------
    # Command helpers
    # ------------------------------------------------------------------
    def identify(self) -> Identify:
        identify = Identify(config=self.config)
        # GraphicsMagick has no -quiet option.
        if self.config.resolve_cli() != "graphicsmagick":
            identify.quiet()
        return identify

    def _run(self, identify: Identify) -> str:
        identify << f"{self.path}[0]"
        try:
            return identify.call()
        except (InvalidImageError, ExecutableNotFoundError):
            raise
        except ToolError as e:
            raise InvalidImageError(str(e), cause=e, context={"path": self.path}) from e
