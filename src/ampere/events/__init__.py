"""Event system for observing orchestration."""

from ampere.events.bus import EventBus
from ampere.events.types import Event, EventType

__all__ = ["Event", "EventBus", "EventType"]
