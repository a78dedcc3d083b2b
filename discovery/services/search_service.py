"""
Debounced, cached remote profile search.

Keystrokes call ``schedule``; each call cancels the pending search and waits
for a quiet period before asking the repository. Results are cached per
(query, filter signature) for a limited time.
"""

from __future__ import annotations
from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime, timedelta, timezone
import asyncio
import logging

from discovery.core.config import settings
from discovery.repositories.discovery_repository import DiscoveryRepository
from discovery.schemas.profile import CandidateProfile

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
CacheKey = Tuple[str, str]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchCache:
    """
    Search results keyed by (query, filter signature).

    Entries older than ``ttl_seconds`` are treated as missing. When more than
    ``max_entries`` are stored, the ``evict_batch`` oldest are dropped.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        evict_batch: Optional[int] = None,
        clock: Optional[Clock] = None
    ):
        self.ttl = timedelta(
            seconds=settings.search_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        )
        self.max_entries = settings.search_cache_max_entries if max_entries is None else max_entries
        self.evict_batch = max(1, settings.search_cache_evict_batch if evict_batch is None else evict_batch)
        self.clock = clock or utcnow
        self._entries: Dict[CacheKey, Tuple[List[CandidateProfile], datetime]] = {}

    def get(self, query: str, signature: str) -> Optional[List[CandidateProfile]]:
        cached = self._entries.get((query, signature))
        if cached is None:
            return None
        results, stored_at = cached
        if self.clock() - stored_at >= self.ttl:
            del self._entries[(query, signature)]
            return None
        return list(results)

    def put(self, query: str, signature: str, results: List[CandidateProfile]) -> None:
        self._entries[(query, signature)] = (list(results), self.clock())
        if len(self._entries) > self.max_entries:
            oldest = sorted(self._entries, key=lambda key: self._entries[key][1])
            for key in oldest[: self.evict_batch]:
                del self._entries[key]
            logger.debug(f"Search cache trimmed to {len(self._entries)} entries")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries


class SearchService:

    def __init__(
        self,
        repository: DiscoveryRepository,
        cache: Optional[SearchCache] = None,
        debounce_seconds: Optional[float] = None,
        min_query_length: Optional[int] = None
    ):
        self.repository = repository
        self.cache = cache or SearchCache()
        self.debounce_seconds = (
            settings.search_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self.min_query_length = (
            settings.search_min_query_length if min_query_length is None else min_query_length
        )
        self._pending: Optional[asyncio.Task] = None

    @property
    def pending(self) -> Optional[asyncio.Task]:
        if self._pending is not None and not self._pending.done():
            return self._pending
        return None

    def is_searchable(self, query: str) -> bool:
        return len(query) >= self.min_query_length

    async def search(
        self,
        query: str,
        filter_tags: List[str],
        signature: str
    ) -> List[CandidateProfile]:
        """
        Search right away, serving from the cache when possible.

        Queries shorter than the minimum length return no results and never
        reach the repository.
        """
        if not self.is_searchable(query):
            return []

        cached = self.cache.get(query, signature)
        if cached is not None:
            logger.info(f"Using cached search results for '{query}'")
            return cached

        results = await self.repository.search_profiles(query, filter_tags)
        self.cache.put(query, signature, results)
        logger.info(f"Search completed: {len(results)} results for '{query}'")
        return results

    def schedule(
        self,
        query: str,
        filter_tags: List[str],
        signature: str,
        on_results: Callable[[str, List[CandidateProfile]], None],
        on_error: Optional[Callable[[Exception], None]] = None
    ) -> Optional[asyncio.Task]:
        """
        Debounce a keystroke.

        Cancels the pending search, then runs this one after the quiet period.
        Returns the scheduled task, or None when the query is too short to
        search.
        """
        self.cancel_pending()
        if not self.is_searchable(query):
            return None

        self._pending = asyncio.create_task(
            self._run_debounced(query, list(filter_tags), signature, on_results, on_error)
        )
        return self._pending

    def cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Search cache cleared")

    async def _run_debounced(self, query, filter_tags, signature, on_results, on_error) -> None:
        await asyncio.sleep(self.debounce_seconds)
        try:
            results = await self.search(query, filter_tags, signature)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Search error for '{query}': {e}")
            if on_error is None:
                raise
            on_error(e)
            return
        on_results(query, results)
