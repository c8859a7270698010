"""Synchronous point-to-point channel between the watcher and the mover."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from file_relay.errors import ChannelError

logger = logging.getLogger(__name__)


class DirectChannel:
    """
    Hands each message to a single subscriber on the sender's thread.

    ``send`` returns only after the subscriber has finished, so the
    producer can never run ahead of the consumer. Exceptions raised by
    the subscriber propagate to the sender unchanged.
    """

    def __init__(self, name: str = "fileMovingChannel"):
        self.name = name
        self._handler: Callable[[Any], Any] | None = None
        self._lock = threading.Lock()

    def subscribe(self, handler: Callable[[Any], Any]) -> None:
        """Register the consumer. Only one subscriber is allowed."""
        with self._lock:
            if self._handler is not None and self._handler != handler:
                raise ValueError(f"Channel '{self.name}' already has a subscriber")
            self._handler = handler
        logger.debug("Subscribed %r to channel '%s'", handler, self.name)

    def unsubscribe(self, handler: Callable[[Any], Any]) -> bool:
        """Remove *handler*. Returns False if it was not subscribed."""
        with self._lock:
            if self._handler is None or self._handler != handler:
                return False
            self._handler = None
        return True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return 0 if self._handler is None else 1

    def send(self, message: Any) -> Any:
        """Deliver *message* and return whatever the subscriber returns."""
        with self._lock:
            handler = self._handler
        if handler is None:
            raise ChannelError(f"Channel '{self.name}' has no subscribers")
        return handler(message)
