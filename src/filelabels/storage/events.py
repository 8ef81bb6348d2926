"""In-process events for label cleanup and change notification

The host application dispatches FileDeletedEvent and UserDeletedEvent when
files or users go away; the REST layer dispatches LabelsChangedEvent after
a user changes labels so other consumers can react.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileDeletedEvent:
    file_id: int


@dataclass(frozen=True)
class UserDeletedEvent:
    user_id: str


@dataclass(frozen=True)
class LabelsChangedEvent:
    """Fired after a user changes labels; carries the full current label map"""
    file_id: int
    user_id: str
    labels: Dict[str, str] = field(default_factory=dict)


Listener = Callable[[object], None]


class EventDispatcher:
    """Maps event types to listeners, called in registration order"""

    def __init__(self):
        self._listeners: Dict[Type, List[Listener]] = {}

    def add_listener(self, event_type: Type, listener: Listener):
        """Register ``listener``; registering the same listener twice is a no-op"""
        listeners = self._listeners.setdefault(event_type, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_listener(self, event_type: Type, listener: Listener):
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def has_listeners(self, event_type: Type) -> bool:
        return bool(self._listeners.get(event_type))

    def dispatch(self, event):
        """Call every listener registered for the event's type"""
        listeners = list(self._listeners.get(type(event), []))
        logger.debug(
            "Dispatching event",
            extra={"event_type": type(event).__name__, "listeners": len(listeners)},
        )
        for listener in listeners:
            listener(event)


# Global dispatcher instance
event_dispatcher = EventDispatcher()
