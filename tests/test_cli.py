"""Tests for the command-line interface."""

import json
import logging
import shlex
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from ampere.cli import cli

PYTHON = shlex.quote(sys.executable)


def write_config(workspace: Path, body: str) -> Path:
    path = workspace / "ampere.toml"
    path.write_text(body)
    return path


def command_target(name: str, command: str) -> str:
    return f'[targets."{name}"]\nbuilder = "command"\n[targets."{name}".options]\ncommand = {json.dumps(command)}\n'


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def workspace(app_workspace: Path) -> Path:
    """Workspace with a main and a renderer script and a build target over them."""
    (app_workspace / "build_main.py").write_text(
        "from pathlib import Path\nPath('dist/main.js').write_text('')\nprint('main built')\n"
    )
    (app_workspace / "build_renderer.py").write_text("print('renderer built')\n")
    (app_workspace / "broken.py").write_text("import sys\nsys.exit(2)\n")

    body = (
        f"[runtime]\ncommand = {json.dumps(sys.executable)}\n\n"
        + command_target("app:main", f"{PYTHON} build_main.py")
        + command_target("app:renderer", f"{PYTHON} build_renderer.py")
        + command_target("app:broken", f"{PYTHON} broken.py")
        + '[targets."app:build"]\nbuilder = "build"\n[targets."app:build".options]\n'
        + 'output_path = "dist"\nmain = "main.js"\nmain_target = "app:main"\n'
        + 'renderer_targets = ["app:renderer"]\n'
    )
    write_config(app_workspace, body)
    return app_workspace


class TestRunCommand:
    """Tests for `ampere run`."""

    def test_command_target(self, runner, workspace, monkeypatch):
        """Test that a command target runs once."""
        monkeypatch.chdir(workspace)

        result = runner.invoke(cli, ["run", "app:renderer"])

        assert result.exit_code == 0, result.output
        assert "Target app:renderer succeeded" in result.output

    def test_failing_command_target(self, runner, workspace, monkeypatch):
        """Test that a failing command exits with code 1."""
        monkeypatch.chdir(workspace)

        result = runner.invoke(cli, ["run", "app:broken"])

        assert result.exit_code == 1
        assert "Target app:broken failed" in result.output

    def test_build_target(self, runner, workspace):
        """Test that a build target builds every task and checks the entry point."""
        result = runner.invoke(cli, ["run", "app:build", "--config", str(workspace / "ampere.toml")])

        assert result.exit_code == 0, result.output
        package_json = json.loads((workspace / "dist" / "package.json").read_text())
        assert package_json["main"] == "main.js"

    def test_build_events_logged(self, runner, workspace, caplog):
        """Test that broadcast events reach the debug log."""
        with caplog.at_level(logging.DEBUG, logger="ampere.cli"):
            result = runner.invoke(cli, ["-v", "run", "app:build", "-c", str(workspace / "ampere.toml")])

        assert result.exit_code == 0, result.output
        assert "Event task.scheduled" in caplog.text
        assert "Event build.completed: {'success': True}" in caplog.text

    def test_unknown_target(self, runner, workspace):
        """Test that an unknown target is reported."""
        result = runner.invoke(cli, ["run", "app:missing", "-c", str(workspace / "ampere.toml")])

        assert result.exit_code == 1
        assert "Unknown target 'app:missing'" in result.output

    def test_missing_config(self, runner, tmp_path):
        """Test that a missing config file is reported."""
        result = runner.invoke(cli, ["run", "app:build", "-c", str(tmp_path / "ampere.toml")])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestTargetsCommand:
    """Tests for `ampere targets`."""

    def test_lists_targets(self, runner, workspace):
        """Test that configured targets are listed with their builder."""
        result = runner.invoke(cli, ["targets", "-c", str(workspace / "ampere.toml")])

        assert result.exit_code == 0
        assert "app:build" in result.output
        assert "app:renderer" in result.output
        assert "command" in result.output

    def test_no_targets(self, runner, tmp_path):
        """Test the output for an empty workspace."""
        config = write_config(tmp_path, "")

        result = runner.invoke(cli, ["targets", "-c", str(config)])

        assert result.exit_code == 0
        assert "No targets configured" in result.output


class TestDoctorCommand:
    """Tests for `ampere doctor`."""

    def test_runtime_found(self, runner, workspace):
        """Test that a locatable runtime passes."""
        result = runner.invoke(cli, ["doctor", "-c", str(workspace / "ampere.toml")])

        assert result.exit_code == 0
        assert "Runtime:" in result.output

    def test_runtime_missing(self, runner, tmp_path):
        """Test that a missing runtime fails."""
        config = write_config(tmp_path, '[runtime]\ncommand = "ampere-missing-runtime"\n')

        result = runner.invoke(cli, ["doctor", "-c", str(config)])

        assert result.exit_code == 1
        assert "ampere-missing-runtime" in result.output
