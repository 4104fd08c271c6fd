"""Watch-mode orchestration.

Flow:
1. Resolve and validate the build target's options (setup phase)
2. Prepare the output directory with a replacement entry point that
   listens for reload messages
3. Schedule the main and renderer targets in watch mode
4. Feed their statuses and results into a CycleAggregator
5. For every closed cycle: hot reload (respawn the runtime) if main code
   was rebuilt, soft reload (refresh windows) if only renderer code was
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Final

from ampere.cycle.aggregator import CycleAggregator
from ampere.domain.enums import ReloadKind
from ampere.domain.models import BuilderOutput, BuildOptions, CycleOutcome, ServeOptions
from ampere.domain.options import get_target_ref
from ampere.events import EventBus, EventType
from ampere.logs import PrefixLogger
from ampere.orchestrator.tasks import ScheduledTask, resolve_build_options, schedule_group, stop_group
from ampere.runtime.supervisor import CHANNEL_FD_ENV, RELOAD_MESSAGE, RuntimeSupervisor
from ampere.scheduler.interface import TaskScheduler
from ampere.workspace.config import RuntimeConfig
from ampere.workspace.output_path import OutputPaths, ReplacementMain, setup_build_output_path

logger = logging.getLogger(__name__)

REPLACED_MAIN: Final = "main_replaced.js"
WATCH_OVERRIDES: Final = {"watch": True}


def reload_listener_script(relative_main: str) -> str:
    """Entry point that reloads all windows on a reload message, then loads the app."""
    message = RELOAD_MESSAGE.decode().strip()
    return (
        "const electron = require('electron');\n"
        "const fs = require('fs');\n"
        f"const fd = Number(process.env.{CHANNEL_FD_ENV});\n"
        "if (!Number.isNaN(fd)) {\n"
        "    let buffered = '';\n"
        "    fs.createReadStream(null, { fd }).on('data', (chunk) => {\n"
        "        const lines = (buffered + chunk).split('\\n');\n"
        "        buffered = lines.pop();\n"
        f"        if (lines.includes('{message}')) {{\n"
        "            for (const window of electron.BrowserWindow.getAllWindows()) {\n"
        "                window.reload();\n"
        "            }\n"
        "        }\n"
        "    });\n"
        "}\n"
        f"require('./{relative_main}');\n"
    )


class ServeOrchestrator:
    """Keeps the runtime in sync with watch-mode rebuilds.

    Usage:
        orchestrator = ServeOrchestrator(scheduler, options, workspace_root)
        async for output in orchestrator.run():
            print(output.success)

    Closing the generator (or cancelling its consumer) stops every task and
    kills the runtime.
    """

    def __init__(
        self,
        scheduler: TaskScheduler,
        options: ServeOptions,
        workspace_root: Path,
        runtime_config: RuntimeConfig | None = None,
        event_bus: EventBus | None = None,
        supervisor_factory: Callable[[Path], RuntimeSupervisor] | None = None,
    ):
        self.scheduler = scheduler
        self.options = options
        self.workspace_root = workspace_root
        self.runtime_config = runtime_config or RuntimeConfig()
        self.event_bus = event_bus
        self.supervisor_factory = supervisor_factory or self._create_supervisor
        self.log = PrefixLogger("Serve")

    def _create_supervisor(self, app_path: Path) -> RuntimeSupervisor:
        return RuntimeSupervisor(
            app_path,
            command=self.runtime_config.command,
            args=self.runtime_config.args,
            workspace_root=self.workspace_root,
            env=self.runtime_config.env,
            event_bus=self.event_bus,
        )

    async def setup(self) -> tuple[BuildOptions, OutputPaths]:
        """Resolve the build options and prepare the output directory."""
        ref = get_target_ref(self.options.build_target)
        build_options = await resolve_build_options(self.scheduler, ref.target, ref.options)
        paths = await asyncio.to_thread(
            setup_build_output_path,
            build_options,
            self.workspace_root,
            ReplacementMain(main=REPLACED_MAIN, content=reload_listener_script),
        )
        return build_options, paths

    async def run(self) -> AsyncIterator[BuilderOutput]:
        """Yield one BuilderOutput per closed rebuild cycle.

        Failed cycles are yielded and watching continues. An unexpected
        error yields a final failure and ends the run.
        """
        try:
            build_options, paths = await self.setup()
        except Exception as e:
            self.log.error(str(e) or type(e).__name__)
            yield BuilderOutput(success=False, error=str(e))
            return

        tasks: list[ScheduledTask] = []
        try:
            async with self.supervisor_factory(paths.output_path) as supervisor:
                tasks = await schedule_group(
                    self.scheduler, build_options, self.log, WATCH_OVERRIDES, self.event_bus
                )
                aggregator = CycleAggregator(
                    [task.kind for task in tasks], paths.original_main_path, log=self.log
                )
                pumps = []
                for i, task in enumerate(tasks):
                    pumps.append(asyncio.create_task(self._pump_status(aggregator, i, task)))
                    pumps.append(asyncio.create_task(self._pump_results(aggregator, i, task)))
                try:
                    async for outcome in aggregator.outcomes():
                        await self._apply(outcome, supervisor)
                        yield BuilderOutput(success=outcome.success)
                finally:
                    for pump in pumps:
                        pump.cancel()
                    await asyncio.gather(*pumps, return_exceptions=True)
        except Exception as e:
            logger.debug("Serve failed with an unhandled error", exc_info=True)
            self.log.error(str(e) or type(e).__name__)
            yield BuilderOutput(success=False, error=str(e))
        finally:
            await stop_group(tasks)

    async def _pump_status(self, aggregator: CycleAggregator, index: int, task: ScheduledTask) -> None:
        try:
            async for status in task.handle.status():
                event = aggregator.task_status(index, status)
                if event is None or not (event.main or event.renderer):
                    continue
                running = [kind for kind, on in (("main", event.main), ("renderer", event.renderer)) if on]
                self.log.info(f"Building {' and '.join(running)}...")
                if self.event_bus:
                    await self.event_bus.emit(
                        EventType.BUILD_RUNNING, {"main": event.main, "renderer": event.renderer}
                    )
        except Exception as e:
            aggregator.fail(e)

    async def _pump_results(self, aggregator: CycleAggregator, index: int, task: ScheduledTask) -> None:
        try:
            async for result in task.handle.results():
                aggregator.task_result(index, result)
        except Exception as e:
            aggregator.fail(e)
            return

        self.log.warning(
            f'Target "{task.target}" ({task.kind.value}) completed, but expected to run in '
            "watch mode! File changes will not lead to recompile!"
        )
        if self.event_bus:
            await self.event_bus.emit(EventType.TASK_ENDED, {"target": task.target, "kind": task.kind.value})

    async def _apply(self, outcome: CycleOutcome, supervisor: RuntimeSupervisor) -> None:
        if self.event_bus:
            await self.event_bus.emit(EventType.CYCLE_COMPLETED, outcome.model_dump(mode="json"))
        if not outcome.success or outcome.reload is None:
            return

        self.log.info(f"Perform runtime {outcome.reload.value} reload")
        try:
            if outcome.reload == ReloadKind.HOT:
                await supervisor.open()
            else:
                await supervisor.signal()
        except Exception as e:
            self.log.error(str(e))
            if self.event_bus:
                await self.event_bus.emit(
                    EventType.RELOAD_FAILED, {"reload": outcome.reload.value, "error": str(e)}
                )
            return

        if self.event_bus:
            await self.event_bus.emit(EventType.RELOAD_PERFORMED, {"reload": outcome.reload.value})
