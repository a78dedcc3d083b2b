"""
One-shot feed signals ("match found", "transient error").

Each emitted event is delivered to every current subscriber exactly once;
late subscribers do not see earlier events. A subscriber that raises is
dropped, the same way a dead socket is dropped from a broadcast.
"""

from typing import Callable, List
import logging

from discovery.schemas.feed import FeedEvent

logger = logging.getLogger(__name__)

Handler = Callable[[FeedEvent], None]


class FeedEventBus:

    def __init__(self):
        self._handlers: List[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        self._handlers.append(handler)
        return lambda: self._remove(handler)

    def emit(self, event: FeedEvent) -> int:
        """Deliver ``event``; returns the number of handlers reached."""
        delivered = 0
        failed = []
        for handler in list(self._handlers):
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Error delivering {event.type.value} event: {e}", exc_info=True)
                failed.append(handler)

        for handler in failed:
            self._remove(handler)

        logger.debug(f"Emitted {event.type.value} to {delivered} subscriber(s)")
        return delivered

    def _remove(self, handler: Handler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)
