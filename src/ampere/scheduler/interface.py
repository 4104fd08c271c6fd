"""Task scheduler abstraction.

A scheduler starts build tasks for named targets and hands back a
TaskHandle per task. Orchestrators only rely on this contract, never on
how a task actually compiles code.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ampere.domain.enums import BuilderName, TaskKind, TaskStatus
from ampere.domain.models import (
    BuildOptions,
    CommandTargetOptions,
    ServeOptions,
    TaskResult,
)
from ampere.exceptions import ConfigurationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

BUILDER_SCHEMAS: dict[BuilderName, type[BaseModel]] = {
    BuilderName.COMMAND: CommandTargetOptions,
    BuilderName.BUILD: BuildOptions,
    BuilderName.SERVE: ServeOptions,
}


class TaskHandle(ABC):
    """Handle for one scheduled build task."""

    def __init__(self, kind: TaskKind, target: str):
        self.kind = kind
        self.target = target

    @abstractmethod
    def status(self) -> AsyncIterator[TaskStatus]:
        """Stream of running/idle states. May repeat a state; iterate once."""
        ...

    @abstractmethod
    def results(self) -> AsyncIterator[TaskResult]:
        """Stream of completion results.

        Ends when the task ends. In watch mode a task is expected to keep
        producing results until stopped.
        """
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the task. The handle is released once this returns."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.target!r}, {self.kind.value})"


class TaskScheduler(ABC):
    """Abstract interface for starting build tasks."""

    @abstractmethod
    async def get_target_options(self, target: str) -> dict[str, Any]:
        """Return a copy of the options configured for a target."""
        ...

    @abstractmethod
    async def get_builder_name(self, target: str) -> BuilderName:
        """Return the builder a target is configured with."""
        ...

    @abstractmethod
    async def schedule(
        self,
        target: str,
        overrides: dict[str, Any] | None,
        kind: TaskKind,
        log: Any = None,
    ) -> TaskHandle:
        """Start a task for a target.

        Args:
            target: Target name.
            overrides: Options merged over the target's configured options.
            kind: Which part of the app the task builds.
            log: Logger the task writes its output to.

        Returns:
            TaskHandle for observing and stopping the task.
        """
        ...

    async def validate_options(self, options: dict[str, Any], builder: BuilderName) -> BaseModel:
        """Validate an option set against a builder's schema.

        Raises:
            ConfigurationError: If the options do not fit the schema.
        """
        try:
            name = BuilderName(builder)
        except ValueError:
            raise ConfigurationError(f"Unknown builder: {builder}") from None

        try:
            return BUILDER_SCHEMAS[name].model_validate(options)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid options for builder '{name.value}': {e}") from e

    async def validate_as(self, options: dict[str, Any], builder: BuilderName, schema: type[SchemaT]) -> SchemaT:
        """Validate options and check they produced the expected schema.

        Raises:
            ConfigurationError: If the options are invalid or the builder's
                schema is not ``schema``.
        """
        validated = await self.validate_options(options, builder)
        if not isinstance(validated, schema):
            raise ConfigurationError(
                f"Builder '{BuilderName(builder).value}' does not produce {schema.__name__} options"
            )
        return validated
