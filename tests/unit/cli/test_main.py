"""Unit tests for the main CLI application."""

from pteropurge import __version__
from pteropurge.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


class TestMainApp:
    """Tests for global options and command registration."""

    def test_version(self) -> None:
        """--version prints the version and exits."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"pteropurge version {__version__}" in result.output

    def test_help_lists_commands(self) -> None:
        """Help lists all subcommands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("purge", "preview", "config"):
            assert command in result.output

    def test_no_args_shows_help(self) -> None:
        """Running without arguments shows usage."""
        result = runner.invoke(app, [])
        assert "Usage" in result.output
