"""Tests for the goodchild-check console script."""

from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from goodchild.checks.cli import app

runner = CliRunner()


def _config(required_files=None, excluded_dirs=None):
    config = MagicMock()
    config.deploy_required_files = required_files
    config.security_excluded_dirs = excluded_dirs
    return config


def test_deploy_exits_nonzero_when_files_missing(tmp_path):
    with patch("goodchild.checks.cli.get_config", return_value=_config()):
        result = runner.invoke(app, ["deploy", "--root", str(tmp_path)])
    assert result.exit_code == 1
    assert "Missing required files" in result.output


def test_deploy_succeeds_with_required_files(tmp_path):
    (tmp_path / "bot.py").write_text("")
    with patch(
        "goodchild.checks.cli.get_config",
        return_value=_config(required_files=["bot.py"]),
    ):
        result = runner.invoke(app, ["deploy", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert "Deployment check completed!" in result.output


def test_security_reports_without_failing(tmp_path):
    (tmp_path / "bot.py").write_text('password = "hunter2hunter2"\n')
    with patch("goodchild.checks.cli.get_config", return_value=_config()):
        result = runner.invoke(app, ["security", "--root", str(tmp_path), "--no-audit"])
    assert result.exit_code == 0
    assert "HARDCODED_CREDENTIALS" in result.output


def test_security_unexpected_error_exits_nonzero(tmp_path):
    with patch("goodchild.checks.cli.get_config", return_value=_config()), patch(
        "goodchild.checks.cli.run_security_check", side_effect=RuntimeError("disk on fire")
    ):
        result = runner.invoke(app, ["security", "--root", str(tmp_path)])
    assert result.exit_code == 1
    assert "Error running security check: disk on fire" in result.output
