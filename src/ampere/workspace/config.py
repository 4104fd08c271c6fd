"""Workspace configuration loading.

A workspace is described by an ``ampere.toml`` file:

    [runtime]
    command = "electron"

    [targets."app:main"]
    builder = "command"
    [targets."app:main".options]
    command = "tsc -p src/main"
"""

import logging
from pathlib import Path
from typing import Any, Final

import tomli
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ampere.domain.enums import BuilderName
from ampere.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME: Final = "ampere.toml"


class RuntimeConfig(BaseModel):
    """How to launch the runtime that runs the built app."""

    model_config = ConfigDict(extra="forbid")

    command: str = "electron"
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


class TargetConfig(BaseModel):
    """A named target and the builder that runs it."""

    model_config = ConfigDict(extra="forbid")

    builder: BuilderName = BuilderName.COMMAND
    options: dict[str, Any] = Field(default_factory=dict)


class WorkspaceConfig(BaseModel):
    """Parsed ampere.toml."""

    root: Path = Field(default_factory=Path.cwd, exclude=True)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    targets: dict[str, TargetConfig] = Field(default_factory=dict)

    def get_target(self, name: str) -> TargetConfig:
        """Look up a target by name.

        Raises:
            ConfigurationError: If no such target is configured.
        """
        try:
            return self.targets[name]
        except KeyError:
            available = ", ".join(sorted(self.targets)) or "none"
            raise ConfigurationError(
                f"Unknown target '{name}'. Available targets: {available}"
            ) from None


def load_workspace_config(path: Path | None = None) -> WorkspaceConfig:
    """Load and validate a workspace configuration file.

    Args:
        path: Path to ampere.toml. Defaults to ./ampere.toml.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid.
    """
    path = Path(path) if path else Path.cwd() / CONFIG_FILENAME
    logger.debug(f"Loading workspace configuration from: {path}")

    if not path.is_file():
        raise ConfigurationError(f"Workspace configuration not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}") from e

    try:
        config = WorkspaceConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid workspace configuration in {path}: {e}") from e

    config.root = path.resolve().parent
    return config
