"""Cycle aggregation over a group of build tasks.

Task signals arrive concurrently from independent pump tasks. They are
combined per group and serialized through a single asyncio.Queue; one
consumer drains the queue and applies each event to the CycleState in a
single synchronous step, so no two events interleave inside a transition.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from pathlib import Path

from ampere.cycle.combiners import ResultsCombiner, RunningStateCombiner
from ampere.cycle.state import (
    CycleEvent,
    CycleState,
    ResultsAvailable,
    RunningStateChanged,
    close_cycle,
    transition,
)
from ampere.domain.enums import TaskKind, TaskStatus
from ampere.domain.models import CycleOutcome, TaskResult

logger = logging.getLogger(__name__)


class _Stop:
    pass


class _Failure:
    def __init__(self, error: BaseException):
        self.error = error


_STOP = _Stop()


class CycleAggregator:
    """Turns task statuses and results into one outcome per rebuild cycle.

    Usage:
        aggregator = CycleAggregator([TaskKind.MAIN, TaskKind.RENDERER], main_path)

        # From any number of producer coroutines
        aggregator.task_status(0, TaskStatus.RUNNING)
        aggregator.task_result(0, TaskResult(success=True))

        # From exactly one consumer
        async for outcome in aggregator.outcomes():
            ...
    """

    def __init__(
        self,
        kinds: Sequence[TaskKind],
        entry_point: Path,
        log: logging.Logger | logging.LoggerAdapter | None = None,
        entry_point_exists: Callable[[Path], bool] | None = None,
    ):
        self.kinds = list(kinds)
        self.entry_point = entry_point
        self.state = CycleState()
        self._log = log or logger
        self._entry_point_exists = entry_point_exists or Path.exists
        self._running = RunningStateCombiner(self.kinds)
        self._results = ResultsCombiner(len(self.kinds))
        self._statuses: list[TaskStatus | None] = [None] * len(self.kinds)
        self._queue: asyncio.Queue[CycleEvent | _Stop | _Failure] = asyncio.Queue()
        self._consuming = False

    # Producer side

    def task_status(self, index: int, status: TaskStatus) -> RunningStateChanged | None:
        """Record a task's status and enqueue a running-state event on change."""
        previous = self._statuses[index]
        self._statuses[index] = status
        if status == TaskStatus.RUNNING and previous != TaskStatus.RUNNING:
            self._results.task_started(index)

        event = self._running.update(index, status)
        if event is not None:
            self._queue.put_nowait(event)
        return event

    def task_result(self, index: int, result: TaskResult) -> ResultsAvailable | None:
        """Record a task's result and enqueue a results event once all are current."""
        event = self._results.add(index, result)
        if event is not None:
            self._queue.put_nowait(event)
        return event

    def fail(self, error: BaseException) -> None:
        """Abort the consumer with an error raised from outcomes()."""
        self._queue.put_nowait(_Failure(error))

    def close(self) -> None:
        """Let the consumer finish once queued events are processed."""
        self._queue.put_nowait(_STOP)

    # Consumer side

    def process(self, event: CycleEvent) -> CycleOutcome | None:
        """Apply one event; return the outcome if it closed a cycle."""
        self.state = transition(self.state, event)
        if not self.state.cycle_closed:
            return None

        success = bool(self.state.pending_verdict)
        if success and not self._entry_point_exists(self.entry_point):
            self._log.error(
                f"All targets finished, but main file {self.entry_point} does not exist. "
                "Wrong configuration?"
            )
            success = False

        self.state, outcome = close_cycle(self.state, success)
        logger.debug(f"Cycle closed: success={outcome.success} reload={outcome.reload}")
        return outcome

    async def outcomes(self) -> AsyncIterator[CycleOutcome]:
        """Drain the event queue, yielding one outcome per closed cycle.

        Raises:
            RuntimeError: If a second consumer is started.
            Exception: Whatever error was passed to fail().
        """
        if self._consuming:
            raise RuntimeError("CycleAggregator supports a single consumer")
        self._consuming = True

        while True:
            item = await self._queue.get()
            if isinstance(item, _Stop):
                return
            if isinstance(item, _Failure):
                raise item.error
            outcome = self.process(item)
            if outcome is not None:
                yield outcome
