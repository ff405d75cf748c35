"""
Notification payloads and in-process delivery for the secrets cache.

Defines Pydantic models for the six notification kinds and a small observer
registry (NotificationHub) that delivers them synchronously to subscribed
handlers.

Event types:
    update: An alias was fetched and its value is new or changed
    error: An alias exhausted its retries, or a scheduled cycle failed
    start: Scheduled refresh started
    stop: Scheduled refresh stopped
    remove: An alias mapping was removed
    clear: All cached values were dropped

Example:
    >>> cache.on(EventType.UPDATE, lambda event: print(event.alias, event.timestamp))
    >>> cache.on("error", lambda event: alert(event.alias, event.error))
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from aws_secrets_cache.store import utc_now

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    UPDATE = "update"
    ERROR = "error"
    START = "start"
    STOP = "stop"
    REMOVE = "remove"
    CLEAR = "clear"


class CacheEvent(BaseModel):
    """Base class for all notifications; timestamp is UTC."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    event_type: EventType
    timestamp: datetime = Field(default_factory=utc_now, description="Event timestamp (UTC)")


class SecretUpdatedEvent(CacheEvent):
    """
    Emitted when an alias is fetched and its value is new or changed.

    The timestamp equals the fetched_at of the new cache entry.
    """

    event_type: Literal[EventType.UPDATE] = EventType.UPDATE
    alias: str
    value: Any


class SecretErrorEvent(CacheEvent):
    """
    Emitted when an alias exhausts its retries (alias set) or when a scheduled
    refresh cycle fails as a whole (alias is None).
    """

    event_type: Literal[EventType.ERROR] = EventType.ERROR
    alias: str | None = None
    error: BaseException


class RefreshStartedEvent(CacheEvent):
    event_type: Literal[EventType.START] = EventType.START


class RefreshStoppedEvent(CacheEvent):
    event_type: Literal[EventType.STOP] = EventType.STOP


class SecretRemovedEvent(CacheEvent):
    event_type: Literal[EventType.REMOVE] = EventType.REMOVE
    alias: str


class CacheClearedEvent(CacheEvent):
    event_type: Literal[EventType.CLEAR] = EventType.CLEAR


EventHandler = Callable[[CacheEvent], None]


class NotificationHub:
    """
    Registry of handlers per event type.

    Handlers run synchronously on the emitting thread, in registration order,
    so notifications for one alias arrive in the order they were produced.
    A handler that raises is logged and skipped; it never interrupts delivery
    to other handlers or the operation that emitted the event.

    When disabled, every emitted event is dropped.
    """

    def __init__(self, enabled: bool = True, logger: logging.Logger = logger) -> None:
        self._enabled = enabled
        self._logger = logger
        self._handlers: dict[EventType, list[EventHandler]] = {kind: [] for kind in EventType}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def subscribe(self, event_type: EventType | str, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler.

        Returns:
            A callable that unsubscribes the handler.

        Raises:
            ValueError: Unknown event type
        """
        kind = EventType(event_type)
        with self._lock:
            self._handlers[kind].append(handler)
        return lambda: self.unsubscribe(kind, handler)

    def unsubscribe(self, event_type: EventType | str, handler: EventHandler) -> bool:
        kind = EventType(event_type)
        with self._lock:
            try:
                self._handlers[kind].remove(handler)
            except ValueError:
                return False
            return True

    def handler_count(self, event_type: EventType | str) -> int:
        with self._lock:
            return len(self._handlers[EventType(event_type)])

    def emit(self, event: CacheEvent) -> None:
        if not self._enabled:
            return

        with self._lock:
            handlers = list(self._handlers[event.event_type])

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                self._logger.exception(
                    "Notification handler failed",
                    extra={"event_type": event.event_type.value},
                )
