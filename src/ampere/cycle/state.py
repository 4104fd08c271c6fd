"""Rebuild cycle state and its transition function.

A cycle starts when any task starts running and closes once no task is
running and a combined verdict over the tasks' latest results is known.
Exactly one CycleOutcome is produced per closed cycle.

Both functions here are pure: they take a CycleState and return a new one.
The entry-point existence check is performed by the caller between
transition() and close_cycle(), which receives the final verdict.
"""

from dataclasses import dataclass, replace

from ampere.domain.enums import ReloadKind
from ampere.domain.models import CycleOutcome, TaskResult


@dataclass(frozen=True)
class RunningStateChanged:
    """The OR-combined running state per task kind changed."""

    main: bool
    renderer: bool


@dataclass(frozen=True)
class ResultsAvailable:
    """Every task has a result that is current for this cycle."""

    results: tuple[TaskResult, ...]

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)


CycleEvent = RunningStateChanged | ResultsAvailable


@dataclass(frozen=True)
class CycleState:
    """Aggregation state for one group of tasks."""

    any_running: bool = False
    # Sticky until the cycle closes
    main_touched: bool = False
    renderer_touched: bool = False
    pending_verdict: bool | None = None
    cycle_closed: bool = False


def transition(state: CycleState, event: CycleEvent) -> CycleState:
    """Apply one event.

    The returned state has cycle_closed set when the event closed a cycle;
    the caller must then call close_cycle() before applying further events.
    """
    if isinstance(event, RunningStateChanged):
        state = replace(
            state,
            main_touched=state.main_touched or event.main,
            renderer_touched=state.renderer_touched or event.renderer,
            any_running=event.main or event.renderer,
        )
    elif isinstance(event, ResultsAvailable):
        state = replace(state, pending_verdict=event.success)
    else:
        raise TypeError(f"Unknown cycle event: {event!r}")

    closes = not state.any_running and state.pending_verdict is not None
    return replace(state, cycle_closed=closes)


def close_cycle(state: CycleState, success: bool) -> tuple[CycleState, CycleOutcome]:
    """Close the current cycle with the final verdict.

    Args:
        state: State returned by transition() with cycle_closed set.
        success: The verdict after the entry-point check.

    Returns:
        The reset state and the outcome to emit.
    """
    if not state.cycle_closed:
        raise ValueError("close_cycle() called on a state that did not close a cycle")

    reload = None
    if success:
        reload = ReloadKind.HOT if state.main_touched else ReloadKind.SOFT

    outcome = CycleOutcome(
        success=success,
        reload=reload,
        main_touched=state.main_touched,
        renderer_touched=state.renderer_touched,
    )
    state = replace(
        state,
        main_touched=False,
        renderer_touched=False,
        pending_verdict=None,
        cycle_closed=False,
    )
    return state, outcome
