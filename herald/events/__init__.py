"""Live event broadcasting."""

from herald.events.broadcaster import EventBroadcaster
from herald.events.broadcaster import EventType

__all__ = ["EventBroadcaster", "EventType"]
