"""
Observable state container for one user's discovery feed.

Components mutate the store through ``update``; listeners receive a frozen
``FeedSnapshot`` after every committed change and never touch the store.
"""

from typing import Callable, List, Optional
import logging

from discovery.schemas.feed import FeedSnapshot
from discovery.schemas.filters import FilterCriteria, SortOrder

logger = logging.getLogger(__name__)

Listener = Callable[[FeedSnapshot], None]


class FeedStateStore:

    FIELDS = (
        "user_id",
        "candidates",
        "is_loading",
        "is_loading_more",
        "error_message",
        "matches_today",
        "last_match",
        "has_new_matches",
        "search_query",
        "sort_order",
        "history_size",
        "can_undo",
    )

    def __init__(self, filters: Optional[FilterCriteria] = None):
        self.user_id = None
        self.candidates = []
        self.is_loading = False
        self.is_loading_more = False
        self.error_message = None
        self.matches_today = 0
        self.last_match = None
        self.has_new_matches = False
        self.search_query = ""
        self.sort_order = SortOrder.RELEVANCE
        self.history_size = 0
        self.can_undo = False
        self.filters = filters or FilterCriteria()
        self._listeners: List[Listener] = []

    def snapshot(self) -> FeedSnapshot:
        return FeedSnapshot(
            **{name: getattr(self, name) for name in self.FIELDS if name != "candidates"},
            candidates=list(self.candidates),
            filters=self.filters.model_copy(deep=True),
        )

    def update(self, **changes) -> None:
        """Apply ``changes`` and notify listeners once."""
        for name, value in changes.items():
            if name not in self.FIELDS:
                raise AttributeError(f"Unknown feed state field: {name}")
            setattr(self, name, value)
        self.publish()

    def publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        failed = []
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Feed state listener failed, unsubscribing: {e}", exc_info=True)
                failed.append(listener)
        for listener in failed:
            self._remove(listener)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._remove(listener)

    def _remove(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
