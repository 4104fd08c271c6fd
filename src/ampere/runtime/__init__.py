"""Supervision of the runtime process that runs the built app."""

from ampere.runtime.output import LineDecoder
from ampere.runtime.supervisor import (
    CHANNEL_FD_ENV,
    RELOAD_MESSAGE,
    RuntimeProcess,
    RuntimeSupervisor,
)

__all__ = [
    "CHANNEL_FD_ENV",
    "RELOAD_MESSAGE",
    "LineDecoder",
    "RuntimeProcess",
    "RuntimeSupervisor",
]
