"""Scheduling of build tasks."""

from ampere.scheduler.command import CommandTaskHandle, CommandTaskScheduler
from ampere.scheduler.interface import BUILDER_SCHEMAS, TaskHandle, TaskScheduler

__all__ = [
    "BUILDER_SCHEMAS",
    "CommandTaskHandle",
    "CommandTaskScheduler",
    "TaskHandle",
    "TaskScheduler",
]
