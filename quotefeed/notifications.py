"""Notification port for cycle events."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List

from .logs import log_event

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Dict[str, Any]], None]


class Notifier(ABC):
    """Receives events such as ``new_quotes`` and ``source_disabled``."""

    @abstractmethod
    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """Deliver one event."""
        pass


class LogNotifier(Notifier):
    """Writes events to the log. Used when nothing else is listening."""

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        log_event(logger, logging.INFO, "notifier", event, **payload)


class BroadcastNotifier(Notifier):
    """
    Fan events out to subscriber callbacks.

    A subscriber that raises is logged and skipped; delivery to the other
    subscribers continues.
    """

    def __init__(self) -> None:
        """Initialize with no subscribers."""
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, payload)
            except Exception as e:
                log_event(logger, logging.WARNING, "notifier", "subscriber_failed", error=e, notification=event)
