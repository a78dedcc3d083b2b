"""
Bounded history of recent swipes.

Entries are appended on every optimistic swipe. The oldest entry is evicted
once the cap is exceeded; the only other way out is an explicit removal by
undo (or by the rollback of a failed swipe).
"""

from __future__ import annotations
from typing import Iterator, List, Optional
import uuid
import logging

from discovery.core.config import settings
from discovery.schemas.swipe import SwipeHistoryEntry

logger = logging.getLogger(__name__)


class UndoStack:

    def __init__(self, limit: Optional[int] = None):
        self.limit = settings.history_limit if limit is None else limit
        self._entries: List[SwipeHistoryEntry] = []
        # Bumped by clear() so entries evicted before a clear stay gone
        self.generation = 0

    def push(self, entry: SwipeHistoryEntry) -> Optional[SwipeHistoryEntry]:
        """Append ``entry``; returns the evicted oldest entry, if any."""
        self._entries.append(entry)
        if len(self._entries) > self.limit:
            evicted = self._entries.pop(0)
            logger.debug(f"Swipe history full, evicted entry for {evicted.target_id}")
            return evicted
        return None

    def remove(self, entry_id: uuid.UUID) -> bool:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                del self._entries[index]
                return True
        return False

    def restore_oldest(self, entry: SwipeHistoryEntry, generation: Optional[int] = None) -> bool:
        """
        Put an evicted entry back at the old end if there is room for it.

        With ``generation``, nothing is restored once the stack has been
        cleared since that generation.
        """
        if generation is not None and generation != self.generation:
            logger.debug(f"History cleared since {entry.target_id} was evicted, not restoring")
            return False
        if len(self._entries) >= self.limit:
            return False
        self._entries.insert(0, entry)
        return True

    @property
    def latest(self) -> Optional[SwipeHistoryEntry]:
        return self._entries[-1] if self._entries else None

    def is_latest(self, entry: SwipeHistoryEntry) -> bool:
        return self.latest is not None and self.latest.id == entry.id

    def clear(self) -> None:
        self._entries.clear()
        self.generation += 1

    @property
    def entries(self) -> tuple:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SwipeHistoryEntry]:
        return iter(list(self._entries))
