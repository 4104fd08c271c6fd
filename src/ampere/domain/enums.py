"""Enumerations for domain models."""

from enum import Enum


class TaskKind(str, Enum):
    """Which part of the app a build task produces code for."""

    MAIN = "main"
    RENDERER = "renderer"


class TaskStatus(str, Enum):
    """Progress state reported by a build task."""

    IDLE = "idle"
    RUNNING = "running"


class ReloadKind(str, Enum):
    """How the runtime picks up a finished rebuild.

    HOT respawns the runtime process, SOFT asks the running process to
    refresh its windows.
    """

    HOT = "hot"
    SOFT = "soft"


class BuilderName(str, Enum):
    """Builders a workspace target can be configured with."""

    COMMAND = "command"
    BUILD = "build"
    SERVE = "serve"
