"""Tests for option merging and normalization."""

import pytest
from pydantic import ValidationError

from ampere.domain.models import BuildOptions, CommandTargetOptions, ServeOptions, TargetRef
from ampere.domain.options import (
    get_target_ref,
    merge_build_options,
    merge_options,
    normalize_build_options,
    normalize_serve_options,
)


class TestGetTargetRef:
    """Tests for get_target_ref()."""

    def test_string(self):
        """Test that a plain target name becomes a reference."""
        assert get_target_ref("app:main") == TargetRef(target="app:main")

    def test_dict(self):
        """Test that a dict is parsed into a reference."""
        ref = get_target_ref({"target": "app:main", "options": {"watch": True}})

        assert ref.target == "app:main"
        assert ref.options == {"watch": True}

    def test_none(self):
        """Test that a missing reference is empty."""
        assert get_target_ref(None) == TargetRef()


class TestMergeOptions:
    """Tests for merge_options()."""

    def test_overrides_win(self):
        """Test that override values replace base values."""
        assert merge_options({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_ignores_none_and_empty_lists(self):
        """Test that unset override values keep the configured value."""
        merged = merge_options({"a": 1, "items": [1]}, {"a": None, "items": []})

        assert merged == {"a": 1, "items": [1]}

    def test_does_not_mutate(self):
        """Test that the base dict is copied."""
        base = {"a": 1}
        merge_options(base, {"a": 2})

        assert base == {"a": 1}


class TestMergeBuildOptions:
    """Tests for merge_build_options()."""

    def test_main_target_options_merged(self):
        """Test that main target options merge while keeping the name."""
        merged = merge_build_options(
            {"main_target": {"target": "app:main", "options": {"a": 1}}},
            {"main_target": {"options": {"b": 2}}},
        )

        assert merged["main_target"] == {"target": "app:main", "options": {"a": 1, "b": 2}}

    def test_main_target_replaced(self):
        """Test that an override naming a target replaces the name."""
        merged = merge_build_options({"main_target": "app:main"}, {"main_target": "other:main"})

        assert merged["main_target"]["target"] == "other:main"

    def test_renderers_merged_by_index(self):
        """Test that renderer overrides apply index-wise and extras are appended."""
        merged = merge_build_options(
            {"renderer_targets": ["app:one", "app:two"]},
            {"renderer_targets": [None, {"options": {"watch": True}}, "app:three"]},
        )

        assert merged["renderer_targets"] == [
            "app:one",
            {"target": "app:two", "options": {"watch": True}},
            {"target": "app:three", "options": None},
        ]

    def test_other_keys_overwritten(self):
        """Test that plain keys are replaced."""
        merged = merge_build_options({"output_path": "dist"}, {"output_path": "out"})

        assert merged["output_path"] == "out"


class TestNormalize:
    """Tests for option normalization."""

    def test_build_overrides_folded(self):
        """Test that *_overrides keys are folded into the targets."""
        normalized = normalize_build_options(
            {
                "output_path": "dist",
                "main": "main.js",
                "main_target": "app:main",
                "renderer_targets": ["app:renderer"],
                "main_target_overrides": {"options": {"watch": True}},
                "renderer_targets_overrides": [{"options": {"watch": True}}],
            }
        )

        assert "main_target_overrides" not in normalized
        assert "renderer_targets_overrides" not in normalized
        assert normalized["main_target"] == {"target": "app:main", "options": {"watch": True}}
        options = BuildOptions.model_validate(normalized)
        assert options.renderer_targets[0].options == {"watch": True}

    def test_serve_overrides_folded(self):
        """Test that build_target_overrides are folded into build_target."""
        normalized = normalize_serve_options(
            {
                "build_target": "app:build",
                "build_target_overrides": {"options": {"output_path": "dev"}},
            }
        )

        options = ServeOptions.model_validate(normalized)
        assert options.build_target_overrides is None
        assert options.build_target.target == "app:build"
        assert options.build_target.options == {"output_path": "dev"}

    def test_serve_without_overrides(self):
        """Test that a plain build target passes through."""
        normalized = normalize_serve_options({"build_target": "app:build"})

        assert normalized["build_target"] == {"target": "app:build", "options": None}


class TestOptionSchemas:
    """Tests for the option models."""

    def test_watch_requires_success_pattern(self):
        """Test that watch mode without a success pattern is rejected."""
        with pytest.raises(ValidationError, match="success_pattern"):
            CommandTargetOptions(command="tsc", watch=True)

    def test_effective_command(self):
        """Test that watch mode prefers the watch command."""
        options = CommandTargetOptions(
            command="tsc", watch_command="tsc --watch", watch=True, success_pattern="done"
        )

        assert options.effective_command == "tsc --watch"
        assert CommandTargetOptions(command="tsc", watch_command="tsc --watch").effective_command == "tsc"

    def test_build_target_needs_name(self):
        """Test that a reference without a target name is rejected."""
        with pytest.raises(ValidationError, match="missing a target name"):
            BuildOptions(output_path="dist", main="main.js", main_target={"options": {}})

    def test_unknown_option_rejected(self):
        """Test that misspelled options are caught."""
        with pytest.raises(ValidationError):
            CommandTargetOptions(command="tsc", comand="typo")
