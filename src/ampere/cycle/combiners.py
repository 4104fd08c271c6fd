"""Combine per-task signals into group-level cycle events."""

from collections.abc import Sequence

from ampere.cycle.state import ResultsAvailable, RunningStateChanged
from ampere.domain.enums import TaskKind, TaskStatus
from ampere.domain.models import TaskResult


class RunningStateCombiner:
    """OR-combines task statuses per kind and drops repeated states.

    Nothing is emitted until every task has reported a status once.
    """

    def __init__(self, kinds: Sequence[TaskKind]):
        self._kinds = list(kinds)
        self._statuses: list[TaskStatus | None] = [None] * len(self._kinds)
        self._last: RunningStateChanged | None = None

    def update(self, index: int, status: TaskStatus) -> RunningStateChanged | None:
        """Record a task's status.

        Returns:
            The new combined state if it differs from the last one emitted.
        """
        self._statuses[index] = status
        if any(s is None for s in self._statuses):
            return None

        running = [
            kind for kind, s in zip(self._kinds, self._statuses, strict=True)
            if s == TaskStatus.RUNNING
        ]
        combined = RunningStateChanged(
            main=TaskKind.MAIN in running,
            renderer=TaskKind.RENDERER in running,
        )
        if combined == self._last:
            return None
        self._last = combined
        return combined


class ResultsCombiner:
    """Waits for all tasks before combining their results.

    A combined event is produced once every task has a result and every
    task that started running since its last result has delivered a new
    one. Tasks that did not rebuild contribute their latest result.
    """

    def __init__(self, size: int):
        self._latest: list[TaskResult | None] = [None] * size
        self._rebuilding = [False] * size

    def task_started(self, index: int) -> None:
        """Mark a task as rebuilding; its previous result is now stale."""
        self._rebuilding[index] = True

    def add(self, index: int, result: TaskResult) -> ResultsAvailable | None:
        """Record a task's result and combine if all results are current."""
        self._latest[index] = result
        self._rebuilding[index] = False
        return self._combine()

    @property
    def waiting_for(self) -> list[int]:
        """Indexes of tasks whose result is missing or stale."""
        return [
            i for i, (result, rebuilding) in enumerate(zip(self._latest, self._rebuilding, strict=True))
            if result is None or rebuilding
        ]

    def _combine(self) -> ResultsAvailable | None:
        if self.waiting_for:
            return None
        return ResultsAvailable(results=tuple(r for r in self._latest if r is not None))
