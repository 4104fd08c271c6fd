"""Orchestration of build task groups and the runtime process."""

from ampere.orchestrator.build import BuildOrchestrator
from ampere.orchestrator.serve import ServeOrchestrator
from ampere.orchestrator.tasks import ScheduledTask, resolve_build_options, schedule_group, stop_group

__all__ = [
    "BuildOrchestrator",
    "ScheduledTask",
    "ServeOrchestrator",
    "resolve_build_options",
    "schedule_group",
    "stop_group",
]
