"""Exceptions raised by Ampere."""


class AmpereError(Exception):
    """Base class for all Ampere errors."""


class ConfigurationError(AmpereError):
    """Raised when workspace configuration or target options are invalid."""


class RuntimeNotFoundError(AmpereError):
    """Raised when the runtime executable cannot be located."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Could not find runtime executable '{command}'. Is it installed?")


class TaskSchedulingError(AmpereError):
    """Raised when a build task could not be started."""
