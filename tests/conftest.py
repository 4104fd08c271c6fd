"""Pytest configuration and fixtures."""

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from ampere.domain.enums import BuilderName, TaskKind, TaskStatus
from ampere.domain.models import TaskResult
from ampere.exceptions import ConfigurationError, TaskSchedulingError
from ampere.scheduler.interface import TaskHandle, TaskScheduler


class FakeTaskHandle(TaskHandle):
    """In-memory task whose signals are driven by the test."""

    def __init__(self, kind: TaskKind, target: str, overrides: dict[str, Any] | None = None):
        super().__init__(kind, target)
        self.overrides = overrides
        self.stopped = False
        self._statuses: asyncio.Queue[TaskStatus | None] = asyncio.Queue()
        self._results: asyncio.Queue[TaskResult | None] = asyncio.Queue()

    def set_status(self, status: TaskStatus) -> None:
        self._statuses.put_nowait(status)

    def emit_result(self, success: bool = True, error: str | None = None) -> None:
        self._results.put_nowait(TaskResult(success=success, error=error))

    def build(self, success: bool = True) -> None:
        """Run through one rebuild: running, result, idle."""
        self.set_status(TaskStatus.RUNNING)
        self.emit_result(success)
        self.set_status(TaskStatus.IDLE)

    def finish(self) -> None:
        """End the result stream as if the task completed."""
        self._results.put_nowait(None)

    async def status(self) -> AsyncIterator[TaskStatus]:
        while (status := await self._statuses.get()) is not None:
            yield status

    async def results(self) -> AsyncIterator[TaskResult]:
        while (result := await self._results.get()) is not None:
            yield result

    async def stop(self) -> None:
        self.stopped = True
        self._statuses.put_nowait(None)
        self._results.put_nowait(None)


class FakeScheduler(TaskScheduler):
    """Scheduler over an in-memory target table.

    ``on_schedule`` is called with every new handle so tests can script
    its signals before the orchestrator starts reading them.
    """

    def __init__(self, targets: dict[str, tuple[BuilderName, dict[str, Any]]]):
        self.targets = targets
        self.handles: list[FakeTaskHandle] = []
        self.fail_on: set[str] = set()
        self.on_schedule = None

    def _lookup(self, target: str) -> tuple[BuilderName, dict[str, Any]]:
        try:
            return self.targets[target]
        except KeyError:
            raise ConfigurationError(f"Unknown target '{target}'") from None

    async def get_target_options(self, target: str) -> dict[str, Any]:
        return dict(self._lookup(target)[1])

    async def get_builder_name(self, target: str) -> BuilderName:
        return self._lookup(target)[0]

    async def schedule(self, target, overrides, kind, log=None) -> FakeTaskHandle:
        self._lookup(target)
        if target in self.fail_on:
            raise TaskSchedulingError(f"Could not start {target}")
        handle = FakeTaskHandle(kind, target, overrides)
        self.handles.append(handle)
        if self.on_schedule:
            self.on_schedule(handle)
        return handle

    def handle(self, target: str) -> FakeTaskHandle:
        return next(h for h in self.handles if h.target == target)


@pytest.fixture
def app_workspace(tmp_path: Path) -> Path:
    """Workspace with a package.json and no build output yet."""
    (tmp_path / "package.json").write_text(json.dumps({"name": "app", "version": "1.0.0"}))
    return tmp_path


@pytest.fixture
def build_options() -> dict[str, Any]:
    """Build target options with one main and one renderer target."""
    return {
        "output_path": "dist",
        "main": "main.js",
        "main_target": "app:main",
        "renderer_targets": ["app:renderer"],
    }


@pytest.fixture
def fake_scheduler(build_options: dict[str, Any]) -> FakeScheduler:
    """Scheduler with an app:build build target over two command targets."""
    return FakeScheduler(
        {
            "app:build": (BuilderName.BUILD, build_options),
            "app:main": (BuilderName.COMMAND, {"command": "build-main"}),
            "app:renderer": (BuilderName.COMMAND, {"command": "build-renderer"}),
            "app:serve": (BuilderName.SERVE, {"build_target": "app:build"}),
        }
    )
