"""Event type definitions for the event bus."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events that can be broadcast."""

    # Build events
    BUILD_RUNNING = "build.running"
    BUILD_COMPLETED = "build.completed"
    CYCLE_COMPLETED = "cycle.completed"

    # Task events
    TASK_SCHEDULED = "task.scheduled"
    TASK_ENDED = "task.ended"

    # Reload events
    RELOAD_PERFORMED = "reload.performed"
    RELOAD_FAILED = "reload.failed"

    # Runtime process events
    RUNTIME_STARTED = "runtime.started"
    RUNTIME_EXITED = "runtime.exited"


class Event(BaseModel):
    """A broadcast event."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }
