"""Core domain models for Ampere.

Target options are plain pydantic models so that a merged option set can be
validated against the schema of the builder that will consume it.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ampere.domain.enums import ReloadKind


def utc_now() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class TargetRef(BaseModel):
    """Reference to another target, optionally with option overrides."""

    target: str | None = None
    options: dict[str, Any] | None = None


class CommandTargetOptions(BaseModel):
    """Options for a target built by running a shell command."""

    model_config = ConfigDict(extra="forbid")

    command: str
    watch: bool = False
    watch_command: str | None = None
    cwd: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    running_pattern: str | None = None
    success_pattern: str | None = None
    failure_pattern: str | None = None

    @model_validator(mode="after")
    def require_success_pattern_in_watch_mode(self) -> "CommandTargetOptions":
        """A watch-mode task only reports results through its output."""
        if self.watch and not self.success_pattern:
            raise ValueError("success_pattern is required when watch is enabled")
        return self

    @property
    def effective_command(self) -> str:
        """Command line to run for the configured mode."""
        if self.watch and self.watch_command:
            return self.watch_command
        return self.command


class BuildOptions(BaseModel):
    """Options for the "build" builder."""

    model_config = ConfigDict(extra="forbid")

    output_path: str
    clean_output_path: bool = True
    main: str
    package_json_path: str = "package.json"
    main_target: str | TargetRef
    renderer_targets: list[str | TargetRef] = Field(default_factory=list)
    main_target_overrides: str | TargetRef | None = None
    renderer_targets_overrides: list[str | TargetRef] | None = None

    @field_validator("main_target", "renderer_targets")
    @classmethod
    def require_target_names(cls, value):
        """Merged overrides can leave a reference without a target name."""
        refs = value if isinstance(value, list) else [value]
        for ref in refs:
            if isinstance(ref, TargetRef) and not ref.target:
                raise ValueError("target reference is missing a target name")
        return value


class ServeOptions(BaseModel):
    """Options for the "serve" builder."""

    model_config = ConfigDict(extra="forbid")

    build_target: str | TargetRef
    build_target_overrides: str | TargetRef | None = None


class BuilderOutput(BaseModel):
    """Outward-facing result of an orchestration step."""

    success: bool
    error: str | None = None


class TaskResult(BaseModel):
    """One completion result reported by a build task."""

    success: bool
    error: str | None = None
    finished_at: datetime = Field(default_factory=utc_now)


class CycleOutcome(BaseModel):
    """Emitted once per closed rebuild cycle."""

    success: bool
    reload: ReloadKind | None = None
    main_touched: bool = False
    renderer_touched: bool = False
    closed_at: datetime = Field(default_factory=utc_now)

