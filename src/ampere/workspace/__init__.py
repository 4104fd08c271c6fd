"""Workspace configuration and build output setup."""

from ampere.workspace.config import (
    CONFIG_FILENAME,
    RuntimeConfig,
    TargetConfig,
    WorkspaceConfig,
    load_workspace_config,
)
from ampere.workspace.output_path import OutputPaths, ReplacementMain, setup_build_output_path

__all__ = [
    "CONFIG_FILENAME",
    "OutputPaths",
    "ReplacementMain",
    "RuntimeConfig",
    "TargetConfig",
    "WorkspaceConfig",
    "load_workspace_config",
    "setup_build_output_path",
]
