"""
Client events: the EventKind enum, one dataclass per event, and the dispatcher.
"""

from .dispatcher import EventDispatcher, resolve_event_kind
from .event_types import BaseEvent, ErrorSource, EventKind

__all__ = ["BaseEvent", "ErrorSource", "EventDispatcher", "EventKind", "resolve_event_kind"]
