"""Build tasks that run shell commands.

A command target compiles by running a shell command. In one-shot mode the
exit code is the result. In watch mode the command keeps running and its
output is matched against the target's patterns to tell when a rebuild
starts and how it ended.
"""

import asyncio
import contextlib
import logging
import os
import re
import signal
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from ampere.domain.enums import BuilderName, TaskKind, TaskStatus
from ampere.domain.models import CommandTargetOptions, TaskResult
from ampere.domain.options import merge_options
from ampere.exceptions import TaskSchedulingError
from ampere.logs import PrefixLogger
from ampere.runtime.output import LineDecoder
from ampere.scheduler.interface import TaskHandle, TaskScheduler
from ampere.workspace.config import WorkspaceConfig

logger = logging.getLogger(__name__)

STOP_TIMEOUT_SECONDS = 5.0
READ_CHUNK_SIZE = 4096


class CommandTaskHandle(TaskHandle):
    """Handle for a running build command."""

    def __init__(
        self,
        kind: TaskKind,
        target: str,
        options: CommandTargetOptions,
        cwd: Path,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        super().__init__(kind, target)
        self.options = options
        self.cwd = cwd
        self.log = log or PrefixLogger(target)
        self.process: asyncio.subprocess.Process | None = None
        self._running_re = re.compile(options.running_pattern) if options.running_pattern else None
        self._success_re = re.compile(options.success_pattern) if options.success_pattern else None
        self._failure_re = re.compile(options.failure_pattern) if options.failure_pattern else None
        self._statuses: asyncio.Queue[TaskStatus | None] = asyncio.Queue()
        self._results: asyncio.Queue[TaskResult | None] = asyncio.Queue()
        self._reader: asyncio.Task | None = None
        self._failure_line: str | None = None
        self._status_taken = False
        self._results_taken = False
        self._stopped = False

    async def start(self) -> None:
        """Start the command.

        Raises:
            TaskSchedulingError: If the process could not be spawned.
        """
        command = self.options.effective_command
        env = {**os.environ, **self.options.env}
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self.cwd,
                env=env,
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            raise TaskSchedulingError(f"Could not start '{command}' for target {self.target}: {e}") from e

        self.process = process
        logger.debug(f"Started {self.target} with PID {process.pid}: {command}")
        self._statuses.put_nowait(TaskStatus.RUNNING)
        self._reader = asyncio.create_task(self._read_output(process))

    def _handle_line(self, line: str) -> None:
        self.log.info(line)
        if not self.options.watch:
            if self._failure_re and self._failure_re.search(line):
                self._failure_line = line
            return

        if self._failure_re and self._failure_re.search(line):
            self._results.put_nowait(TaskResult(success=False, error=line))
            self._statuses.put_nowait(TaskStatus.IDLE)
        elif self._success_re and self._success_re.search(line):
            self._results.put_nowait(TaskResult(success=True))
            self._statuses.put_nowait(TaskStatus.IDLE)
        elif self._running_re and self._running_re.search(line):
            self._statuses.put_nowait(TaskStatus.RUNNING)

    async def _read_output(self, process: asyncio.subprocess.Process) -> None:
        if process.stdout is None:
            raise TaskSchedulingError(f"Output of {self.target} is not captured")
        decoder = LineDecoder()
        while chunk := await process.stdout.read(READ_CHUNK_SIZE):
            for line in decoder.feed(chunk):
                self._handle_line(line)
        if rest := decoder.flush():
            self._handle_line(rest)

        returncode = await process.wait()
        if not self._stopped:
            if self.options.watch:
                logger.debug(f"Watch command for {self.target} exited with code {returncode}")
            else:
                if returncode != 0:
                    error = f"Command exited with code {returncode}"
                else:
                    error = self._failure_line
                self._results.put_nowait(TaskResult(success=returncode == 0 and error is None, error=error))
            self._statuses.put_nowait(TaskStatus.IDLE)
        self._results.put_nowait(None)

    async def status(self) -> AsyncIterator[TaskStatus]:
        if self._status_taken:
            raise RuntimeError(f"Status stream of {self.target} can only be iterated once")
        self._status_taken = True
        while (status := await self._statuses.get()) is not None:
            yield status

    async def results(self) -> AsyncIterator[TaskResult]:
        if self._results_taken:
            raise RuntimeError(f"Result stream of {self.target} can only be iterated once")
        self._results_taken = True
        while (result := await self._results.get()) is not None:
            yield result

    def _send(self, process: asyncio.subprocess.Process, sig: int) -> None:
        """Signal the shell and every process it started."""
        with contextlib.suppress(ProcessLookupError, PermissionError):
            if os.name == "posix":
                os.killpg(process.pid, sig)
            else:
                process.send_signal(sig)

    async def stop(self) -> None:
        """Terminate the command and wait for it to exit."""
        if self._stopped:
            return
        self._stopped = True

        if process := self.process:
            self._send(process, signal.SIGTERM)
            try:
                await asyncio.wait_for(process.wait(), timeout=STOP_TIMEOUT_SECONDS)
            except TimeoutError:
                self._send(process, signal.SIGKILL if os.name == "posix" else signal.SIGTERM)
                await process.wait()

        if self._reader:
            try:
                await asyncio.wait_for(self._reader, timeout=STOP_TIMEOUT_SECONDS)
            except TimeoutError:
                logger.warning(f"Output of {self.target} did not close after the command exited")
            except Exception as e:
                logger.warning(f"Output reader of {self.target} failed: {e}")
        self._statuses.put_nowait(None)
        self._results.put_nowait(None)
        logger.debug(f"Stopped task {self.target}")


class CommandTaskScheduler(TaskScheduler):
    """Schedules the command targets of a workspace."""

    def __init__(self, config: WorkspaceConfig):
        self.config = config

    async def get_target_options(self, target: str) -> dict[str, Any]:
        return dict(self.config.get_target(target).options)

    async def get_builder_name(self, target: str) -> BuilderName:
        return self.config.get_target(target).builder

    async def schedule(
        self,
        target: str,
        overrides: dict[str, Any] | None,
        kind: TaskKind,
        log: Any = None,
    ) -> CommandTaskHandle:
        target_config = self.config.get_target(target)
        if target_config.builder != BuilderName.COMMAND:
            raise TaskSchedulingError(
                f"Target {target} uses the '{target_config.builder.value}' builder; "
                "only command targets can be scheduled as build tasks"
            )

        options = merge_options(target_config.options, overrides)
        validated = await self.validate_as(options, BuilderName.COMMAND, CommandTargetOptions)

        cwd = self.config.root / validated.cwd if validated.cwd else self.config.root
        handle = CommandTaskHandle(kind, target, validated, cwd, log)
        await handle.start()
        return handle
