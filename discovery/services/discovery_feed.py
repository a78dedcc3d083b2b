"""
Discovery feed facade.

Wires the queue manager, filter pipeline, search, undo stack, match detector
and swipe processor around one ``FeedStateStore`` and exposes the entry
points the presentation layer calls. Callers observe the feed through
``subscribe`` (state snapshots) and ``on_event`` (one-shot signals).
"""

from __future__ import annotations
from typing import Callable, List, Optional
from datetime import datetime, timedelta, timezone
import asyncio
import logging

from discovery.core.config import Settings, settings
from discovery.core.events import FeedEventBus
from discovery.core.state import FeedStateStore
from discovery.repositories.discovery_repository import DiscoveryRepository
from discovery.schemas.feed import FeedEvent, FeedSnapshot
from discovery.schemas.filters import FilterCriteria, FilterUpdate, SortOrder
from discovery.schemas.profile import CandidateProfile, CollabType, ContentStyle
from discovery.schemas.swipe import SwipeAction, SwipeHistoryEntry, SwipeOutcome
from discovery.services.error_banner import ErrorBanner
from discovery.services.filter_pipeline import FilterPipeline
from discovery.services.match_detector import MatchDetector
from discovery.services.presence import InMemoryPresenceClient, PresenceClient
from discovery.services.queue_manager import CandidateQueueManager
from discovery.services.search_service import Clock, SearchCache, SearchService, utcnow
from discovery.services.swipe_service import SwipeActionProcessor
from discovery.services.undo_stack import UndoStack

logger = logging.getLogger(__name__)

SEARCH_FAILED_MESSAGE = "Search failed"


class DiscoveryFeed:

    def __init__(
        self,
        repository: DiscoveryRepository,
        presence: Optional[PresenceClient] = None,
        *,
        user_id: Optional[str] = None,
        config: Settings = settings,
        clock: Optional[Clock] = None
    ):
        self.repository = repository
        self.presence = presence or InMemoryPresenceClient()
        self.config = config
        self.clock = clock or utcnow
        self.user_id = user_id

        self.state = FeedStateStore()
        self.events = FeedEventBus()
        self.errors = ErrorBanner(self.state, self.events)
        self.history = UndoStack(config.history_limit)
        self.pipeline = FilterPipeline(self.presence)
        self.queue = CandidateQueueManager(
            repository,
            self.state,
            self.errors,
            self.pipeline,
            self.presence,
            self.history,
            fetch_limit=config.candidate_fetch_limit,
            load_more_limit=config.load_more_limit,
            page_size=config.page_size,
            error_dismiss_seconds=config.load_error_dismiss_seconds,
        )
        self.searcher = SearchService(
            repository,
            SearchCache(
                ttl_seconds=config.search_cache_ttl_seconds,
                max_entries=config.search_cache_max_entries,
                evict_batch=config.search_cache_evict_batch,
                clock=self.clock,
            ),
            debounce_seconds=config.search_debounce_seconds,
            min_query_length=config.search_min_query_length,
        )
        self.swipes = SwipeActionProcessor(
            repository,
            self.queue,
            self.history,
            MatchDetector(repository),
            self.state,
            self.events,
            self.errors,
            low_water_mark=config.low_water_mark,
            error_dismiss_seconds=config.swipe_error_dismiss_seconds,
        )

    # ── Observation ───────────────────────────────────────────────────────────

    def snapshot(self) -> FeedSnapshot:
        return self.state.snapshot()

    def subscribe(self, listener: Callable[[FeedSnapshot], None]) -> Callable[[], None]:
        return self.state.subscribe(listener)

    def on_event(self, handler: Callable[[FeedEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(handler)

    @property
    def filters(self) -> FilterCriteria:
        return self.state.filters

    # ── Loading ───────────────────────────────────────────────────────────────

    async def load(self, exclude_previously_decided: bool = True) -> bool:
        return await self.queue.load(self.user_id, exclude_previously_decided)

    async def load_more(self) -> bool:
        return await self.queue.load_more()

    async def refresh(self) -> bool:
        # Refresh works for a feed that was never loaded as well
        self.queue.current_user_id = self.user_id
        return await self.queue.refresh()

    # ── Swiping ───────────────────────────────────────────────────────────────

    async def handle_swipe(self, profile: CandidateProfile, action: SwipeAction) -> SwipeOutcome:
        return await self.swipes.handle_swipe(profile, action)

    async def undo_swipe(self, entry: Optional[SwipeHistoryEntry] = None) -> SwipeOutcome:
        return await self.swipes.undo_swipe(entry)

    @property
    def can_undo(self) -> bool:
        latest = self.history.latest
        return latest is not None and latest.persisted

    def acknowledge_matches(self) -> None:
        """The match banner was seen."""
        self.state.update(has_new_matches=False)

    def close(self) -> None:
        """Cancel every background task the feed owns."""
        self.searcher.cancel_pending()
        self.queue.cancel_pending()
        self.errors.close()

    # ── Search ────────────────────────────────────────────────────────────────

    def search(self, query: str) -> Optional[asyncio.Task]:
        """
        Handle one keystroke of the search box.

        An empty query leaves search mode. A query shorter than the minimum
        shows no results without touching the repository. Anything else is
        debounced; the returned task completes when its results are applied
        (or is cancelled by the next keystroke).
        """
        query = query.strip()
        self.state.update(search_query=query)

        if not query:
            self.searcher.cancel_pending()
            self.queue.clear_results()
            return None

        if not self.searcher.is_searchable(query):
            self.searcher.cancel_pending()
            self.queue.show_results([])
            return None

        return self.searcher.schedule(
            query,
            self.filters.search_tags(),
            self.filters.signature(),
            on_results=self._apply_search_results,
            on_error=self._report_search_error,
        )

    def _apply_search_results(self, query: str, results: List[CandidateProfile]) -> None:
        if query != self.state.search_query:
            logger.debug(f"Dropping stale results for '{query}'")
            return
        self.queue.show_results(results)

    def _report_search_error(self, error: Exception) -> None:
        self.errors.report_error(
            error, SEARCH_FAILED_MESSAGE, dismiss_after=self.config.swipe_error_dismiss_seconds
        )

    def clear_search_cache(self) -> None:
        self.searcher.clear_cache()

    # ── Filters & sorting ─────────────────────────────────────────────────────

    def update_filters(self, **changes) -> Optional[asyncio.Task]:
        """
        Change filter fields by name; the age bounds keep their gap.

        Returns the re-scheduled search task when a search is active.
        """
        for name, value in changes.items():
            if name not in FilterCriteria.model_fields:
                raise AttributeError(f"Unknown filter: {name}")
            setattr(self.filters, name, value)
        return self._filters_changed()

    def apply_filter_update(self, update: FilterUpdate) -> Optional[asyncio.Task]:
        changes = update.model_dump(exclude_none=True, exclude={"clear_category"})
        if update.clear_category:
            changes["category"] = None
        return self.update_filters(**changes)

    def filter_by_category(self, category: Optional[ContentStyle]) -> Optional[asyncio.Task]:
        return self.update_filters(category=category)

    def clear_all_filters(self) -> Optional[asyncio.Task]:
        self.state.filters = FilterCriteria()
        return self._filters_changed()

    def remove_filter(self, tag: str) -> Optional[asyncio.Task]:
        """Drop the filter behind one of ``active_filter_tags``."""
        filters = self.filters
        defaults = FilterCriteria()

        if tag == "Verified":
            filters.verified_only = False
        elif tag == "Online":
            filters.online_only = False
        elif tag.startswith("Within "):
            filters.max_distance = defaults.max_distance
        elif tag.startswith("Ages "):
            filters.max_age = defaults.max_age
            filters.min_age = defaults.min_age
        elif filters.category is not None and tag == filters.category.value:
            filters.category = None
        elif tag in {s.value for s in filters.content_styles}:
            filters.content_styles = {s for s in filters.content_styles if s.value != tag}
        elif tag in {c.value for c in filters.collaboration_types}:
            filters.collaboration_types = {c for c in filters.collaboration_types if c.value != tag}
        else:
            logger.debug(f"No active filter named '{tag}'")
            return None

        return self._filters_changed()

    def sort_by(self, order: SortOrder) -> None:
        self.state.update(sort_order=order)
        self.queue.recompute()

    def _filters_changed(self) -> Optional[asyncio.Task]:
        if self.queue.showing_results and self.searcher.is_searchable(self.state.search_query):
            # Filter signature changed, so the search has to run again
            return self.search(self.state.search_query)
        self.queue.recompute()
        return None

    @property
    def active_filter_tags(self) -> List[str]:
        filters = self.filters
        tags: List[str] = []
        if filters.verified_only:
            tags.append("Verified")
        if filters.online_only:
            tags.append("Online")
        if filters.distance_filter_active:
            tags.append(f"Within {filters.max_distance:g}mi")
        if filters.age_filter_active:
            tags.append(f"Ages {filters.min_age}-{filters.max_age}")
        if filters.category is not None:
            tags.append(filters.category.value)
        tags.extend(sorted(
            s.value for s in filters.content_styles if s != filters.category
        ))
        tags.extend(sorted(c.value for c in filters.collaboration_types))
        return tags

    @property
    def has_active_filters(self) -> bool:
        return not self.filters.is_empty

    # ── Feed statistics ───────────────────────────────────────────────────────

    @property
    def can_load_more(self) -> bool:
        return (
            not self.queue.is_loading_more
            and not self.state.is_loading
            and not self.queue.showing_results
            and bool(self.queue.fetched)
        )

    @property
    def total_profiles(self) -> int:
        return len(self.queue)

    @property
    def online_count(self) -> int:
        return sum(1 for p in self.queue.queue if self.presence.is_online(p.id))

    @property
    def new_today_count(self) -> int:
        since = self.clock() - timedelta(days=1)
        return sum(1 for p in self.queue.queue if _aware(p.created_at) >= since)

    def category_count(self, category: ContentStyle) -> int:
        """Fetched candidates in ``category``, regardless of the active filters."""
        return sum(1 for p in self.queue.fetched if category in p.content_tags)

    def collaboration_count(self, collab: CollabType) -> int:
        return sum(1 for p in self.queue.fetched if collab in p.collaboration_tags)


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
