import os
from pathlib import Path

import pytest
from PIL import Image as PILImage

from magickcli.config import MagickConfig, reset_config
from magickcli.system_tools import clear_detection_cache, detect_processor

# ---------------------------------------------------------------------------
# Image fixtures, generated with Pillow so the repo carries no binaries
# ---------------------------------------------------------------------------


def _create_gif(path: Path, frames: int = 1, size: tuple[int, int] = (10, 10)) -> Path:
    """Create a small GIF at *path* with *frames* solid-colour frames."""
    imgs = []
    for i in range(frames):
        val = int(i * 255 / max(frames - 1, 1))
        imgs.append(PILImage.new("RGB", size, (val, 0, 255 - val)))
    imgs[0].save(path, save_all=True, append_images=imgs[1:], duration=100, loop=0)
    return path


@pytest.fixture
def png_path(tmp_path) -> Path:
    path = tmp_path / "red 10x20.png"
    PILImage.new("RGB", (10, 20), (255, 0, 0)).save(path)
    return path


@pytest.fixture
def jpeg_path(tmp_path) -> Path:
    path = tmp_path / "photo.jpg"
    exif = PILImage.Exif()
    exif[0x010F] = "magickcli camera"  # Make
    exif[0x0110] = "Model 7"  # Model
    PILImage.new("RGB", (40, 30), (0, 128, 255)).save(path, exif=exif.tobytes())
    return path


@pytest.fixture
def gif_path(tmp_path) -> Path:
    return _create_gif(tmp_path / "animation.gif", frames=4)


@pytest.fixture
def not_an_image(tmp_path) -> Path:
    path = tmp_path / "notes.jpg"
    path.write_text("this is plain text, not a JPEG\n")
    return path


# ---------------------------------------------------------------------------
# Configuration isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Every test starts from the default configuration."""
    for name in list(os.environ):
        if name.startswith("MAGICKCLI_"):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    clear_detection_cache()
    yield
    reset_config()
    clear_detection_cache()


@pytest.fixture
def im_config() -> MagickConfig:
    """Config pinned to classic ImageMagick so nothing needs detecting."""
    return MagickConfig(CLI="imagemagick")


# ---------------------------------------------------------------------------
# external_tools marker
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(config, items):
    if detect_processor(MagickConfig()) is not None:
        return
    skip = pytest.mark.skip(reason="ImageMagick/GraphicsMagick is not installed")
    for item in items:
        if "external_tools" in item.keywords:
            item.add_marker(skip)
