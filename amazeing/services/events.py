"""
Amazeing - Events

Typed notifications from the path engine and controller. Listeners can
subscribe to one event type or to every event with "*".
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

ANY_EVENT = "*"


class EventType(str, Enum):
    PATH_STARTED = "path_started"
    PATH_EXTENDED = "path_extended"
    PATH_TRUNCATED = "path_truncated"
    PATH_COMPLETED = "path_completed"
    PATH_CANCELLED = "path_cancelled"
    LEVEL_COMPLETE = "level_complete"
    UNDO_APPLIED = "undo_applied"
    SESSION_RESET = "session_reset"
    LEVEL_LOADED = "level_loaded"
    HINT_SHOWN = "hint_shown"


@dataclass(frozen=True)
class Event:
    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[Event], None]


class EventBus:
    """Specific listeners run first, then the "*" listeners."""

    def __init__(self):
        self._listeners: Dict[Union[EventType, str], List[Listener]] = {}

    def subscribe(self, event_type: Union[EventType, str], callback: Listener) -> Callable[[], None]:
        """Returns a function that removes the subscription."""
        key = event_type if event_type == ANY_EVENT else EventType(event_type)
        self._listeners.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def emit(self, event_type: EventType, **data: Any) -> Event:
        event = Event(EventType(event_type), data)
        logger.debug("event %s %s", event.type.value, data)

        # copies: a listener may unsubscribe while being notified
        for callback in list(self._listeners.get(event.type, [])):
            callback(event)
        for callback in list(self._listeners.get(ANY_EVENT, [])):
            callback(event)
        return event

    def listener_count(self, event_type: Union[EventType, str, None] = None) -> int:
        if event_type is None:
            return sum(len(v) for v in self._listeners.values())
        key = event_type if event_type == ANY_EVENT else EventType(event_type)
        return len(self._listeners.get(key, []))
