"""Tests for magickcli.tool module."""

import sys
from unittest.mock import patch

import pytest

import magickcli
from magickcli.config import MagickConfig
from magickcli.errors import ExecutableNotFoundError, ToolError
from magickcli.shell import ExecutionResult
from magickcli.tool import TOOLS, Convert, Identify, Mogrify, Tool, get_tool

# Prefix that turns every command into "echo the arguments back".
ECHO_PREFIX = (sys.executable, "-c", "import sys; print(' '.join(sys.argv[1:]))")


@pytest.fixture
def echo_config():
    return MagickConfig(CLI="imagemagick", CLI_PREFIX=ECHO_PREFIX)


class TestToolConstruction:
    """Tests for tool classes."""

    def test_named_tools(self):
        assert set(TOOLS) == {
            "animate",
            "compare",
            "composite",
            "conjure",
            "convert",
            "display",
            "identify",
            "import",
            "mogrify",
            "montage",
            "stream",
        }
        assert Mogrify().tool_name == "mogrify"

    def test_positional_arguments_are_options(self, im_config):
        convert = Convert("in.png", "-strip", config=im_config)

        assert convert.tool_name == "convert"
        assert convert.args == ["in.png", "-strip"]

    def test_get_tool(self, im_config):
        assert isinstance(get_tool("identify", config=im_config), Identify)
        assert get_tool("mogrify", "-strip", config=im_config).args == ["-strip"]

        custom = get_tool("compose-something", "-x", config=im_config)
        assert type(custom) is Tool
        assert custom.tool_name == "compose-something"
        assert custom.args == ["-x"]

    def test_format_is_a_normal_option(self, im_config):
        identify = Identify(config=im_config)
        identify.format("%w %h")

        assert identify.args == ["-format", "%w %h"]

    def test_package_factories(self, im_config):
        mogrify = magickcli.mogrify("-strip", config=im_config)

        assert isinstance(mogrify, Mogrify)
        assert mogrify.args == ["-strip"]
        assert isinstance(magickcli.convert(config=im_config), Convert)

    def test_whiny_defaults_from_config(self):
        assert Tool("x", config=MagickConfig(WHINY=False)).whiny is False
        assert Tool("x", config=MagickConfig(WHINY=False), whiny=True).whiny is True


class TestToolExecution:
    """Tests for running tools."""

    def test_call_runs_argv(self, echo_config):
        mogrify = Mogrify(config=echo_config)
        mogrify.resize("30x40") << "my image.jpg"

        assert mogrify.call() == "mogrify -resize 30x40 my image.jpg"

    def test_call_with_limits(self, echo_config):
        convert = Convert(config=echo_config)
        convert.set_limit("thread", 1) << "in.png" << "out.png"

        assert convert.call() == "convert -limit thread 1 in.png out.png"

    def test_call_passes_stdin(self):
        config = MagickConfig(
            CLI="imagemagick",
            CLI_PREFIX=(sys.executable, "-c", "import sys; print(sys.stdin.read())"),
        )

        assert Identify(config=config).stdin().call(stdin="data") == "data"

    def test_call_strips_output(self, echo_config):
        assert Tool("  spaced  ", config=echo_config).call() == "spaced"

    def test_execute_returns_result(self, im_config):
        with patch("magickcli.tool.Shell.run") as mock_run:
            mock_run.return_value = ExecutionResult("6.9.11\n", "", 0)
            identify = Identify(config=im_config)
            identify.operation("version")

            result = identify.execute()

        assert result.stdout == "6.9.11\n"
        mock_run.assert_called_once()
        argv = mock_run.call_args.args[0]
        assert argv == ["identify", "-version"]
        assert mock_run.call_args.kwargs["whiny"] is True

    def test_not_whiny_call(self, im_config):
        with patch("magickcli.tool.Shell.run") as mock_run:
            mock_run.return_value = ExecutionResult("usage", "", 1)
            Identify(config=im_config, whiny=False).call()

        assert mock_run.call_args.kwargs["whiny"] is False

    def test_failure_raises_tool_error(self):
        config = MagickConfig(
            CLI="imagemagick",
            CLI_PREFIX=(sys.executable, "-c", "import sys; sys.exit(4)"),
        )

        with pytest.raises(ToolError) as exc_info:
            Mogrify(config=config).call()

        assert exc_info.value.status == 4

    def test_missing_processor(self):
        config = MagickConfig(CLI="imagemagick", CLI_PATH="/nonexistent/magickcli/bin")

        with pytest.raises(ExecutableNotFoundError):
            Mogrify(config=config).call()


class TestProcessorInfo:
    """Tests for Tool.available / Tool.version."""

    def test_available(self):
        with patch("magickcli.tool.detect_processor", return_value="imagemagick"):
            assert Tool.available() is True
        with patch("magickcli.tool.detect_processor", return_value=None):
            assert Tool.available() is False

    def test_version(self, im_config):
        with patch("magickcli.system_tools._which", return_value="/usr/bin/mogrify"):
            with patch("magickcli.system_tools._run_version_cmd", return_value="6.9.11-60"):
                assert Tool.version(im_config) == "6.9.11-60"
