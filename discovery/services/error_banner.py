"""
Single-slot error banner for the feed.

A new error replaces whatever is showing. Transient errors clear themselves
after a delay unless a newer error has replaced them in the meantime;
persistent errors (lost connectivity) stay until ``clear_persistent`` is
called after an operation succeeds.
"""

from __future__ import annotations
from typing import Optional
import asyncio
import logging

from discovery.core.events import FeedEventBus
from discovery.core.exceptions import describe_error
from discovery.core.state import FeedStateStore
from discovery.schemas.feed import FeedEvent, FeedEventType

logger = logging.getLogger(__name__)


class ErrorBanner:

    def __init__(self, state: FeedStateStore, events: FeedEventBus):
        self.state = state
        self.events = events
        self._generation = 0
        self._persistent = False
        self._dismiss_task: Optional[asyncio.Task] = None

    @property
    def is_persistent(self) -> bool:
        return self._persistent and self.state.error_message is not None

    def report(
        self,
        message: str,
        *,
        dismiss_after: Optional[float],
        persistent: bool = False
    ) -> None:
        """
        Show ``message`` and emit the one-shot transient error signal.

        Args:
            message: User-facing text
            dismiss_after: Seconds before the message clears itself; ignored
                for persistent errors
            persistent: Keep the message until an operation succeeds
        """
        self._generation += 1
        self._persistent = persistent
        self._cancel_dismiss()

        self.state.update(error_message=message)
        self.events.emit(FeedEvent(type=FeedEventType.TRANSIENT_ERROR, message=message))

        if not persistent and dismiss_after is not None:
            self._dismiss_task = asyncio.create_task(
                self._dismiss_later(self._generation, dismiss_after)
            )

    def report_error(self, error: BaseException, fallback: str, *, dismiss_after: float) -> str:
        """Report ``error`` with the message the taxonomy assigns it."""
        message, persistent = describe_error(error, fallback)
        self.report(message, dismiss_after=dismiss_after, persistent=persistent)
        return message

    def clear_persistent(self) -> None:
        """Drop a connectivity error once a repository call has succeeded."""
        if self.is_persistent:
            logger.info("Connectivity restored, clearing error banner")
            self.clear()

    def clear(self) -> None:
        self._generation += 1
        self._persistent = False
        self._cancel_dismiss()
        if self.state.error_message is not None:
            self.state.update(error_message=None)

    def close(self) -> None:
        """Stop a pending auto-dismiss; the message itself is left as is."""
        self._cancel_dismiss()

    async def _dismiss_later(self, generation: int, delay: float) -> None:
        await asyncio.sleep(delay)
        if generation == self._generation:
            self._dismiss_task = None
            self.state.update(error_message=None)

    def _cancel_dismiss(self) -> None:
        if self._dismiss_task is not None and not self._dismiss_task.done():
            self._dismiss_task.cancel()
        self._dismiss_task = None
