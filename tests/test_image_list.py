"""Tests for magickcli.image_list module."""

from pathlib import Path
from unittest.mock import patch

import pytest

from magickcli.config import MagickConfig
from magickcli.errors import UsageError
from magickcli.image import Image
from magickcli.image_list import ImageList


@pytest.fixture
def config(tmp_path):
    return MagickConfig(CLI="imagemagick", TMPDIR=str(tmp_path))


class TestImageListOffline:
    """List behaviour and command construction, without a processor."""

    def test_paths_coerced_lazily(self, config):
        images = ImageList(["a.jpg", Path("b.jpg")], config=config)

        assert images.data == ["a.jpg", Path("b.jpg")]
        first = images[0]
        assert isinstance(first, Image)
        assert images[0] is first
        assert all(isinstance(image, Image) for image in images)

    def test_list_operations_return_image_lists(self, config):
        images = ImageList(["a.jpg", "b.jpg", "c.jpg"], config=config)

        assert isinstance(images[1:], ImageList)
        assert isinstance(images + ["d.jpg"], ImageList)
        assert len(images + ["d.jpg"]) == 4
        assert isinstance(images.copy(), ImageList)

    def test_batched_operation(self, config):
        images = ImageList(["a.jpg", "b.jpg"], config=config)

        with patch("magickcli.tool.Shell.run") as mock_run:
            assert images.resize("50%") is images

        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == ["mogrify", "-resize", "50%", "a.jpg", "b.jpg"]

    def test_batch_context(self, config):
        images = ImageList(["a.jpg", "b.jpg"], config=config)

        with patch("magickcli.tool.Shell.run") as mock_run:
            with images.batch() as m:
                m.strip().quality(80)

        assert mock_run.call_args.args[0] == ["mogrify", "-strip", "-quality", "80", "a.jpg", "b.jpg"]

    def test_raw_mogrify(self, config):
        images = ImageList(["a.jpg"], config=config)

        with patch("magickcli.tool.Shell.run") as mock_run:
            images.mogrify("-gamma", "1.2")

        assert mock_run.call_args.args[0] == ["mogrify", "-gamma", "1.2", "a.jpg"]

    def test_format_in_batch_raises(self, config):
        images = ImageList(["a.jpg"], config=config)

        with patch("magickcli.tool.Shell.run") as mock_run:
            with pytest.raises(UsageError, match="image list directly"):
                with images.batch() as m:
                    m.format("png")

        mock_run.assert_not_called()

    def test_batch_clears_cached_info(self, config):
        images = ImageList(["a.jpg"], config=config)
        images[0].info._cache["width"] = 100

        with patch("magickcli.tool.Shell.run"):
            images.flip()

        assert images[0].info._cache == {}

    def test_montage_command(self, config, tmp_path):
        images = ImageList(["a.jpg", "b.jpg"], config=config)

        with patch("magickcli.tool.Shell.run") as mock_run:
            result = images.montage("png", build=lambda m: m.option("tile", "2x1"))

        argv = mock_run.call_args.args[0]
        assert argv[:5] == ["montage", "-tile", "2x1", "a.jpg", "b.jpg"]
        assert argv[-1] == result.tempfile
        assert Path(argv[-1]).parent == tmp_path
        assert argv[-1].endswith(".png")

    def test_coalesce_command(self, config):
        images = ImageList(["a.gif", "b.gif"], config=config)

        with patch("magickcli.tool.Shell.run") as mock_run:
            result = images.coalesce()

        argv = mock_run.call_args.args[0]
        assert argv[:4] == ["convert", "a.gif", "b.gif", "-coalesce"]
        assert argv[-1].endswith(".gif")
        assert isinstance(result, Image)

    def test_unknown_attribute(self, config):
        with pytest.raises(AttributeError):
            ImageList([], config=config).not_an_option()


@pytest.mark.external_tools
class TestImageListIntegration:
    """End-to-end tests against the installed processor."""

    def test_montage(self, png_path):
        images = ImageList([Image.open(png_path), Image.open(png_path)])

        result = images.montage("png")

        assert result.is_valid()

    def test_batched_resize(self, png_path):
        images = ImageList([Image.open(png_path), Image.open(png_path)])

        images.resize("5x10!")

        assert [image.dimensions for image in images] == [(5, 10), (5, 10)]

    def test_format(self, png_path):
        images = ImageList([Image.open(png_path)])

        images.format("gif")

        assert images[0].path.endswith(".gif")
        assert images[0].format_name == "GIF"
