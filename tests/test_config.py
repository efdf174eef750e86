"""Tests for magickcli.config module."""

import dataclasses
import logging
from unittest.mock import patch

import pytest

from magickcli.config import (
    DEFAULT_CONFIG,
    MagickConfig,
    configure,
    get_config,
    reset_config,
)
from magickcli.errors import ConfigurationError


class TestMagickConfig:
    """Tests for MagickConfig class."""

    def test_default_initialization(self):
        """Test that default values are set correctly."""
        config = MagickConfig()

        assert config.CLI is None
        assert config.CLI_PATH is None
        assert config.CLI_PREFIX == ()
        assert config.TIMEOUT is None
        assert dict(config.LIMITS) == {}
        assert config.DEBUG is False
        assert config.WHINY is True
        assert config.WARNINGS is True
        assert config.VALIDATE_ON_CREATE is True
        assert config.VALIDATE_ON_WRITE is True
        assert config.RESTRICTED_ENV is False

    def test_frozen(self):
        config = MagickConfig()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.TIMEOUT = 5  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("imagemagick", "imagemagick"),
            ("graphicsmagick", "graphicsmagick"),
            ("imagemagick7", "imagemagick7"),
            ("mogrify", "imagemagick"),
            ("gm", "graphicsmagick"),
            ("magick", "imagemagick7"),
        ],
    )
    def test_cli_values_and_aliases(self, value, expected):
        assert MagickConfig(CLI=value).CLI == expected

    def test_invalid_cli_rejected(self):
        with pytest.raises(ConfigurationError, match="CLI has to be one of"):
            MagickConfig(CLI="photoshop")

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            MagickConfig(TIMEOUT=-1)

    def test_prefix_string_becomes_tuple(self):
        assert MagickConfig(CLI_PREFIX="nice").CLI_PREFIX == ("nice",)

    def test_limits_validated_and_read_only(self):
        config = MagickConfig(LIMITS={"memory": 256})

        assert dict(config.LIMITS) == {"memory": "256"}
        with pytest.raises(TypeError):
            config.LIMITS["disk"] = "1GiB"  # type: ignore[index]

        with pytest.raises(ConfigurationError, match="Unknown resource limit"):
            MagickConfig(LIMITS={"bandwidth": 1})

    def test_get_logger_default_and_custom(self):
        custom = logging.getLogger("custom-magick")

        assert MagickConfig().get_logger().name == "magickcli.shell"
        assert MagickConfig(LOGGER=custom).get_logger() is custom


class TestEnvironmentOverrides:
    """Tests for MAGICKCLI_* environment variables."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MAGICKCLI_CLI", "gm")
        monkeypatch.setenv("MAGICKCLI_CLI_PATH", "/opt/gm/bin")
        monkeypatch.setenv("MAGICKCLI_TIMEOUT", "2.5")
        monkeypatch.setenv("MAGICKCLI_DEBUG", "true")
        monkeypatch.setenv("MAGICKCLI_TMPDIR", "/var/tmp")

        config = MagickConfig()

        assert config.CLI == "graphicsmagick"
        assert config.CLI_PATH == "/opt/gm/bin"
        assert config.TIMEOUT == 2.5
        assert config.DEBUG is True
        assert config.TMPDIR == "/var/tmp"

    def test_explicit_value_beats_env(self, monkeypatch):
        monkeypatch.setenv("MAGICKCLI_TIMEOUT", "2.5")

        assert MagickConfig(TIMEOUT=10).TIMEOUT == 10

    def test_invalid_env_value(self, monkeypatch):
        monkeypatch.setenv("MAGICKCLI_TIMEOUT", "soon")

        with pytest.raises(ConfigurationError, match="MAGICKCLI_TIMEOUT"):
            MagickConfig()


class TestCommandEnv:
    """Tests for the child process environment."""

    def test_full_environment_plus_cli_env(self, monkeypatch):
        monkeypatch.setenv("SOME_VARIABLE", "1")
        env = MagickConfig(CLI_ENV={"MAGICK_THREAD_LIMIT": "1"}).command_env()

        assert env["SOME_VARIABLE"] == "1"
        assert env["MAGICK_THREAD_LIMIT"] == "1"

    def test_restricted_environment(self, monkeypatch):
        monkeypatch.setenv("SOME_VARIABLE", "1")
        monkeypatch.setenv("PATH", "/usr/bin")
        env = MagickConfig(RESTRICTED_ENV=True, CLI_ENV={"MAGICK_THREAD_LIMIT": "1"}).command_env()

        assert "SOME_VARIABLE" not in env
        assert env["PATH"] == "/usr/bin"
        assert env["MAGICK_THREAD_LIMIT"] == "1"
        assert set(env) <= {"HOME", "PATH", "LANG", "MAGICK_THREAD_LIMIT"}


class TestGlobalConfiguration:
    """Tests for configure() / get_config()."""

    def test_configure_installs_new_snapshot(self):
        old = get_config()
        new = configure(CLI="graphicsmagick", TIMEOUT=5)

        assert get_config() is new
        assert new.CLI == "graphicsmagick"
        assert new.TIMEOUT == 5
        assert old.CLI is None

    def test_configure_with_instance(self):
        config = MagickConfig(DEBUG=True)

        assert configure(config) is config

    def test_reset(self):
        configure(DEBUG=True)

        assert reset_config() is DEFAULT_CONFIG
        assert get_config().DEBUG is False


class TestResolveCli:
    """Tests for processor resolution."""

    def test_configured_cli_wins(self):
        with patch("magickcli.system_tools.detect_processor") as mock_detect:
            assert MagickConfig(CLI="imagemagick7").resolve_cli() == "imagemagick7"
            mock_detect.assert_not_called()

    def test_detected_cli(self):
        with patch("magickcli.system_tools.detect_processor", return_value="graphicsmagick"):
            assert MagickConfig().resolve_cli() == "graphicsmagick"

    def test_nothing_installed(self):
        with patch("magickcli.system_tools.detect_processor", return_value=None):
            with pytest.raises(ConfigurationError, match="not installed"):
                MagickConfig().resolve_cli()
