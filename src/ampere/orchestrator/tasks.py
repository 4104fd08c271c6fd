"""Scheduling and teardown of a group of main and renderer tasks."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from ampere.domain.enums import BuilderName, TaskKind
from ampere.domain.models import BuildOptions
from ampere.domain.options import get_target_ref, merge_build_options, merge_options, normalize_build_options
from ampere.events import EventBus, EventType
from ampere.exceptions import ConfigurationError
from ampere.logs import PrefixLogger, renderer_logger_name
from ampere.scheduler.interface import TaskHandle, TaskScheduler

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    """A task of the group together with how it is reported."""

    kind: TaskKind
    target: str
    name: str
    handle: TaskHandle

    @property
    def label(self) -> str:
        return f"{self.target} ({self.kind.value})"


async def resolve_build_options(
    scheduler: TaskScheduler,
    build_target: str,
    overrides: dict[str, Any] | None = None,
) -> BuildOptions:
    """Merge overrides into a build target's configured options and validate them.

    Raises:
        ConfigurationError: If the target is not a build target or the merged
            options are invalid.
    """
    builder = await scheduler.get_builder_name(build_target)
    if builder != BuilderName.BUILD:
        raise ConfigurationError(
            f"Target {build_target} must use the 'build' builder, not '{builder.value}'"
        )

    original = await scheduler.get_target_options(build_target)
    merged = normalize_build_options(merge_build_options(original, overrides))
    return await scheduler.validate_as(merged, builder, BuildOptions)


async def schedule_group(
    scheduler: TaskScheduler,
    options: BuildOptions,
    log: logging.LoggerAdapter,
    extra_overrides: dict[str, Any] | None = None,
    event_bus: EventBus | None = None,
) -> list[ScheduledTask]:
    """Schedule all renderer targets and the main target.

    If any target fails to start, the ones already started are stopped
    before the error propagates.

    Args:
        scheduler: Scheduler that starts the tasks.
        options: Validated build options naming the targets.
        log: Logger for "Scheduled ..." messages.
        extra_overrides: Options forced on every task, e.g. watch mode.
        event_bus: Receives a task.scheduled event per started task.
    """
    plan: list[tuple[TaskKind, str, dict[str, Any] | None, str]] = []
    count = len(options.renderer_targets)
    for i, renderer in enumerate(options.renderer_targets):
        ref = get_target_ref(renderer)
        plan.append((TaskKind.RENDERER, ref.target, ref.options, renderer_logger_name(i, count)))
    main_ref = get_target_ref(options.main_target)
    plan.append((TaskKind.MAIN, main_ref.target, main_ref.options, "Main"))

    tasks: list[ScheduledTask] = []
    try:
        for kind, target, target_options, name in plan:
            overrides = merge_options(target_options, extra_overrides)
            handle = await scheduler.schedule(target, overrides, kind, PrefixLogger(name))
            tasks.append(ScheduledTask(kind=kind, target=target, name=name, handle=handle))
            log.info(f'Scheduled {kind.value} target "{target}" as "{name}"')
            if event_bus:
                await event_bus.emit(
                    EventType.TASK_SCHEDULED, {"target": target, "kind": kind.value, "name": name}
                )
    except BaseException:
        await stop_group(tasks)
        raise
    return tasks


async def stop_group(tasks: list[ScheduledTask]) -> None:
    """Stop every task and wait until all of them are released."""
    if not tasks:
        return
    results = await asyncio.gather(*(task.handle.stop() for task in tasks), return_exceptions=True)
    for task, result in zip(tasks, results, strict=True):
        if isinstance(result, BaseException):
            logger.error(f"Failed to stop {task.label}: {result}")
