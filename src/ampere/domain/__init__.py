"""Domain models for Ampere."""

from ampere.domain.enums import BuilderName, ReloadKind, TaskKind, TaskStatus
from ampere.domain.models import (
    BuilderOutput,
    BuildOptions,
    CommandTargetOptions,
    CycleOutcome,
    ServeOptions,
    TargetRef,
    TaskResult,
)

__all__ = [
    "BuilderName",
    "ReloadKind",
    "TaskKind",
    "TaskStatus",
    "BuilderOutput",
    "BuildOptions",
    "CommandTargetOptions",
    "CycleOutcome",
    "ServeOptions",
    "TargetRef",
    "TaskResult",
]
