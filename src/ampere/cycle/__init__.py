"""Rebuild cycle detection across a group of build tasks."""

from ampere.cycle.aggregator import CycleAggregator
from ampere.cycle.combiners import ResultsCombiner, RunningStateCombiner
from ampere.cycle.state import (
    CycleEvent,
    CycleState,
    ResultsAvailable,
    RunningStateChanged,
    close_cycle,
    transition,
)

__all__ = [
    "CycleAggregator",
    "CycleEvent",
    "CycleState",
    "ResultsAvailable",
    "ResultsCombiner",
    "RunningStateChanged",
    "RunningStateCombiner",
    "close_cycle",
    "transition",
]
