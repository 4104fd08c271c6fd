"""Tests for workspace configuration and build output setup."""

import json

import pytest

from ampere.domain.enums import BuilderName
from ampere.domain.models import BuildOptions
from ampere.exceptions import ConfigurationError
from ampere.workspace.config import CONFIG_FILENAME, load_workspace_config
from ampere.workspace.output_path import ReplacementMain, setup_build_output_path

CONFIG = """
[runtime]
command = "node_modules/.bin/electron"
args = ["--inspect"]

[targets."app:main"]
builder = "command"
[targets."app:main".options]
command = "tsc -p src/main"
success_pattern = "Found 0 errors"

[targets."app:build"]
builder = "build"
[targets."app:build".options]
output_path = "dist"
main = "main/index.js"
main_target = "app:main"
"""


class TestLoadWorkspaceConfig:
    """Tests for load_workspace_config()."""

    def test_load(self, tmp_path):
        """Test that targets and runtime settings are parsed."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text(CONFIG)

        config = load_workspace_config(path)

        assert config.root == tmp_path.resolve()
        assert config.runtime.command == "node_modules/.bin/electron"
        assert config.runtime.args == ["--inspect"]
        assert config.get_target("app:main").builder == BuilderName.COMMAND
        assert config.get_target("app:build").options["main"] == "main/index.js"

    def test_defaults(self, tmp_path):
        """Test that an empty file gives the default runtime."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("")

        config = load_workspace_config(path)

        assert config.runtime.command == "electron"
        assert config.targets == {}

    def test_missing_file(self, tmp_path):
        """Test that a missing file is a configuration error."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_workspace_config(tmp_path / CONFIG_FILENAME)

    def test_malformed_toml(self, tmp_path):
        """Test that TOML syntax errors are wrapped."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("[targets\n")

        with pytest.raises(ConfigurationError, match="Could not parse"):
            load_workspace_config(path)

    def test_unknown_builder(self, tmp_path):
        """Test that an unknown builder is rejected on load."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text('[targets.app]\nbuilder = "webpack"\n')

        with pytest.raises(ConfigurationError, match="Invalid workspace configuration"):
            load_workspace_config(path)


class TestSetupBuildOutputPath:
    """Tests for setup_build_output_path()."""

    def _options(self, **overrides) -> BuildOptions:
        values = {"output_path": "dist", "main": "main/index.js", "main_target": "app:main"}
        values.update(overrides)
        return BuildOptions.model_validate(values)

    def test_writes_package_json(self, app_workspace):
        """Test that package.json is copied with main pointing at the entry point."""
        paths = setup_build_output_path(self._options(), app_workspace)

        package_json = json.loads(paths.package_json_path.read_text())
        assert package_json["name"] == "app"
        assert package_json["main"] == "main/index.js"
        assert paths.main_path == (app_workspace / "dist" / "main" / "index.js").resolve()
        assert paths.original_main_path == paths.main_path

    def test_missing_package_json(self, tmp_path):
        """Test that a missing source package.json is a configuration error."""
        with pytest.raises(ConfigurationError, match="package.json"):
            setup_build_output_path(self._options(), tmp_path)

    def test_cleans_output_path(self, app_workspace):
        """Test that stale output is removed by default."""
        stale = app_workspace / "dist" / "stale.js"
        stale.parent.mkdir()
        stale.write_text("")

        setup_build_output_path(self._options(), app_workspace)

        assert not stale.exists()

    def test_keeps_output_path(self, app_workspace):
        """Test that cleaning can be disabled."""
        kept = app_workspace / "dist" / "kept.js"
        kept.parent.mkdir()
        kept.write_text("")

        setup_build_output_path(self._options(clean_output_path=False), app_workspace)

        assert kept.exists()

    def test_replacement_main(self, app_workspace):
        """Test that a replacement entry point wraps the original one."""
        replacement = ReplacementMain(main="main_replaced.js", content=lambda rel: f"require('./{rel}');\n")

        paths = setup_build_output_path(self._options(), app_workspace, replacement)

        assert paths.main_path.name == "main_replaced.js"
        assert paths.main_path.read_text() == "require('./main/index.js');\n"
        assert paths.original_main_path == (app_workspace / "dist" / "main" / "index.js").resolve()
        assert json.loads(paths.package_json_path.read_text())["main"] == "main_replaced.js"
