"""
Synchronous event dispatcher for roomlink.

Maps each EventKind to an ordered list of subscriber callbacks. Unlike a
queue-backed bus, dispatch() runs every subscriber before it returns, so the
session state a subscriber observes is exactly the state after the message
that raised the event and before the next one is read.
"""

from collections import defaultdict
from collections.abc import Callable
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger
from .event_types import BaseEvent, EventKind

logger = get_logger(__name__)

EventHandler = Callable[[Any], Any]


def resolve_event_kind(kind: EventKind | str) -> EventKind:
    """
    Accept an EventKind or its wire name ("roomJoined") and return the EventKind.

    Raises:
        ValueError: If the name is not a known event
    """
    if isinstance(kind, EventKind):
        return kind
    try:
        return EventKind(kind)
    except ValueError:
        try:
            return EventKind[kind]
        except KeyError:
            raise ValueError(f"Unknown event kind: {kind!r}") from None


class EventDispatcher:
    """
    Typed publish/subscribe registry.

    Subscribers run synchronously, in registration order. Registering the
    same callback twice makes it run twice per event.
    """

    def __init__(self) -> None:
        self._subscribers: dict[EventKind, list[EventHandler]] = defaultdict(list)

    def subscribe(self, kind: EventKind | str, handler: EventHandler) -> None:
        """
        Subscribe a handler to an event kind.

        Args:
            kind: EventKind (or its wire name) to subscribe to
            handler: Callable receiving the event dataclass
        """
        if not callable(handler):
            raise TypeError("Handler must be callable")

        event_kind = resolve_event_kind(kind)
        self._subscribers[event_kind].append(handler)
        logger.debug(
            "Handler subscribed",
            event_kind=event_kind.value,
            handler_name=getattr(handler, "__name__", "unknown"),
            subscriber_count=len(self._subscribers[event_kind]),
        )

    def unsubscribe(self, kind: EventKind | str, handler: EventHandler) -> bool:
        """
        Remove the first registration of a handler.

        Returns:
            True if a registration was removed, False if none was found
        """
        event_kind = resolve_event_kind(kind)
        handlers = self._subscribers.get(event_kind)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def get_subscriber_count(self, kind: EventKind | str) -> int:
        return len(self._subscribers.get(resolve_event_kind(kind), []))

    def clear(self) -> None:
        """Remove every subscription."""
        self._subscribers.clear()

    def dispatch(self, event: BaseEvent) -> None:
        """
        Deliver an event to every subscriber of its kind.

        The subscriber list is copied first; handlers added or removed during
        delivery take effect from the next event. A handler that raises is
        logged and skipped; the remaining handlers still run.
        """
        handlers = list(self._subscribers.get(event.kind, ()))
        if not handlers:
            logger.debug("No subscribers for event", event_kind=event.kind.value)
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: A failing subscriber must not break delivery to the others or the transport loop
                logger.error(
                    "Error in event subscriber",
                    event_kind=event.kind.value,
                    handler_name=getattr(handler, "__name__", "unknown"),
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
