"""One-shot build orchestration.

Schedules the main and renderer targets once, waits for every one of them
to report its result and reduces the results to a single verdict.
"""

import asyncio
import logging
from pathlib import Path

from ampere.cycle.combiners import ResultsCombiner
from ampere.domain.models import BuilderOutput, BuildOptions, TaskResult
from ampere.events import EventBus, EventType
from ampere.exceptions import TaskSchedulingError
from ampere.logs import PrefixLogger
from ampere.orchestrator.tasks import ScheduledTask, schedule_group, stop_group
from ampere.scheduler.interface import TaskScheduler
from ampere.workspace.output_path import setup_build_output_path

logger = logging.getLogger(__name__)


async def first_result(task: ScheduledTask) -> TaskResult:
    """Wait for a task's first result."""
    async for result in task.handle.results():
        return result
    return TaskResult(success=False, error="Task ended without reporting a result")


class BuildOrchestrator:
    """Runs a build target's main and renderer tasks to completion."""

    def __init__(
        self,
        scheduler: TaskScheduler,
        options: BuildOptions,
        workspace_root: Path,
        event_bus: EventBus | None = None,
    ):
        self.scheduler = scheduler
        self.options = options
        self.workspace_root = workspace_root
        self.event_bus = event_bus
        self.log = PrefixLogger("Build")

    async def run(self) -> BuilderOutput:
        """Build once.

        Returns:
            BuilderOutput with the combined verdict. Errors are logged and
            reported as failure.
        """
        try:
            output = await self._run()
        except Exception as e:
            logger.debug("Build failed with an unhandled error", exc_info=True)
            self.log.error(str(e) or type(e).__name__)
            output = BuilderOutput(success=False, error=str(e))

        if self.event_bus:
            await self.event_bus.emit(EventType.BUILD_COMPLETED, {"success": output.success})
        return output

    async def _run(self) -> BuilderOutput:
        paths = await asyncio.to_thread(setup_build_output_path, self.options, self.workspace_root)
        tasks = await schedule_group(self.scheduler, self.options, self.log, event_bus=self.event_bus)
        try:
            results = await asyncio.gather(*(first_result(task) for task in tasks))
        finally:
            await stop_group(tasks)

        combiner = ResultsCombiner(len(tasks))
        combined = None
        for i, result in enumerate(results):
            combined = combiner.add(i, result)
        if combined is None:
            raise TaskSchedulingError("No build tasks were scheduled")

        if not combined.success:
            failed = [task.label for task, result in zip(tasks, results, strict=True) if not result.success]
            message = f"The following targets failed to build: {', '.join(failed)}"
            self.log.error(message)
            return BuilderOutput(success=False, error=message)

        if not paths.main_path.exists():
            message = (
                f"All targets finished, but main file {paths.main_path} does not exist. "
                "Wrong configuration?"
            )
            self.log.error(message)
            return BuilderOutput(success=False, error=message)

        return BuilderOutput(success=True)
