"""
Observer events

Broadcast channel for connection lifecycle signals (``connect``, ``error``,
``close``). Observers are for logging and alerting; the client does not
depend on any of them for correctness.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

CONNECT = "connect"
ERROR = "error"
CLOSE = "close"


class EventEmitter:
    """Minimal synchronous pub/sub"""

    def __init__(self):
        self._listeners: Dict[str, List[Callable[..., Any]]] = defaultdict(list)

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Subscribe to an event

        Args:
            event: Event name
            callback: Called with the event payload

        Returns:
            The callback, so this can be used as a decorator
        """
        self._listeners[event].append(callback)
        return callback

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        """Remove a subscription; unknown callbacks are ignored"""
        try:
            self._listeners[event].remove(callback)
        except ValueError:
            pass

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> None:
        """Deliver an event to every subscriber

        A failing subscriber is logged and does not stop delivery to the rest.
        """
        for callback in list(self._listeners.get(event, ())):
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Error in '{event}' event listener")
