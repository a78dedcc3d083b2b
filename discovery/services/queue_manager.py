"""
Candidate queue manager.

Owns the fetched candidates, the displayed queue derived from them and the
set of profile ids to exclude from future fetches. A new ``load`` supersedes
any load still in flight; results of a superseded load are never applied.
"""

from __future__ import annotations
from typing import List, Optional, Set
import asyncio
import logging

from discovery.core.config import settings
from discovery.core.exceptions import DiscoveryError, NotAuthenticated, ProfileNotFound
from discovery.core.state import FeedStateStore
from discovery.repositories.discovery_repository import DiscoveryRepository
from discovery.schemas.profile import CandidateProfile
from discovery.services.error_banner import ErrorBanner
from discovery.services.filter_pipeline import FilterPipeline
from discovery.services.presence import PresenceClient
from discovery.services.undo_stack import UndoStack

logger = logging.getLogger(__name__)


class CandidateQueueManager:

    def __init__(
        self,
        repository: DiscoveryRepository,
        state: FeedStateStore,
        errors: ErrorBanner,
        pipeline: FilterPipeline,
        presence: PresenceClient,
        history: UndoStack,
        fetch_limit: Optional[int] = None,
        load_more_limit: Optional[int] = None,
        page_size: Optional[int] = None,
        error_dismiss_seconds: Optional[float] = None
    ):
        self.repository = repository
        self.state = state
        self.errors = errors
        self.pipeline = pipeline
        self.presence = presence
        self.history = history
        self.fetch_limit = settings.candidate_fetch_limit if fetch_limit is None else fetch_limit
        self.load_more_limit = settings.load_more_limit if load_more_limit is None else load_more_limit
        self.page_size = settings.page_size if page_size is None else page_size
        self.error_dismiss_seconds = (
            settings.load_error_dismiss_seconds if error_dismiss_seconds is None else error_dismiss_seconds
        )

        self.current_user_id: Optional[str] = None
        self._current_user: Optional[CandidateProfile] = None
        self._fetched: List[CandidateProfile] = []
        self._queue: List[CandidateProfile] = []
        self._excluded: Set[str] = set()
        self._display_limit = self.page_size
        self._results: Optional[List[CandidateProfile]] = None
        self._loading_more = False
        self._load_task: Optional[asyncio.Task] = None
        self._background_reload: Optional[asyncio.Task] = None

    # ── Read-only views ───────────────────────────────────────────────────────

    @property
    def queue(self) -> List[CandidateProfile]:
        return list(self._queue)

    @property
    def fetched(self) -> List[CandidateProfile]:
        return list(self._fetched)

    @property
    def excluded_ids(self) -> frozenset:
        return frozenset(self._excluded)

    @property
    def pending_load(self) -> Optional[asyncio.Task]:
        if self._load_task is not None and not self._load_task.done():
            return self._load_task
        return None

    @property
    def background_reload(self) -> Optional[asyncio.Task]:
        return self._background_reload

    @property
    def showing_results(self) -> bool:
        return self._results is not None

    @property
    def is_loading_more(self) -> bool:
        return self._loading_more

    def __len__(self) -> int:
        return len(self._queue)

    # ── Loading ───────────────────────────────────────────────────────────────

    async def load(self, current_user_id: Optional[str], exclude_previously_decided: bool = True) -> bool:
        """
        Replace the queue with a fresh page of candidates.

        Cancels a load still in flight. Returns False when this load was
        superseded or failed with a transient error (already reported).

        Raises:
            NotAuthenticated: no user id supplied
            ProfileNotFound: the user has no stored profile
        """
        if self._load_task is not None and not self._load_task.done():
            logger.info(f"Superseding in-flight load for user {current_user_id}")
            self._load_task.cancel()

        self.current_user_id = current_user_id
        task = asyncio.create_task(self._perform_load(current_user_id, exclude_previously_decided))
        self._load_task = task

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.cancelled():
            logger.info(f"Load for user {current_user_id} superseded, results discarded")
            return False
        return task.result()

    async def _perform_load(self, user_id: Optional[str], exclude: bool) -> bool:
        self.state.update(is_loading=True, user_id=user_id)
        baseline = set(self._excluded)

        try:
            if not user_id:
                raise NotAuthenticated()

            current_user = await self.repository.fetch_profile(user_id)
            if current_user is None:
                raise ProfileNotFound()

            persisted: Set[str] = set()
            if exclude:
                persisted = set(await self.repository.fetch_excluded_ids(user_id))
                exclusion = baseline | persisted
            else:
                exclusion = set()

            fetched = await self.repository.fetch_candidates(
                current_user, self.fetch_limit, sorted(exclusion)
            )
            if fetched:
                await self.presence.prefetch_online_status([p.id for p in fetched])

        except asyncio.CancelledError:
            # A superseding load owns the flag; only clear it if nobody replaced us
            if asyncio.current_task() is self._load_task:
                self.state.update(is_loading=False)
            raise
        except Exception as e:
            return self._fail_load(e, user_id)

        # Commit: nothing below suspends, so a superseding load cannot interleave
        if exclude:
            self._excluded |= persisted
        else:
            # Keep ids excluded by swipes made while this load was running
            self._excluded -= baseline

        self._current_user = current_user
        self._fetched = _unique(p for p in fetched if p.id != user_id)
        self._display_limit = self.page_size
        self._queue = self._view()

        self.state.update(is_loading=False, candidates=list(self._queue))
        self.errors.clear_persistent()
        logger.info(
            f"Loaded {len(self._fetched)} candidates for user {user_id}, "
            f"showing {len(self._queue)}, {len(self._excluded)} excluded"
        )
        return True

    def _fail_load(self, error: Exception, user_id: Optional[str]) -> bool:
        fatal = isinstance(error, (NotAuthenticated, ProfileNotFound))
        if fatal:
            self._current_user = None
            self._fetched = []
            self._queue = []
            self.state.update(is_loading=False, candidates=[])
        else:
            self.state.update(is_loading=False)

        self.errors.report_error(
            error, "Failed to load profiles", dismiss_after=self.error_dismiss_seconds
        )
        logger.error(f"Error loading profiles for user {user_id}: {error}")

        if fatal:
            raise error
        return False

    async def load_more(self) -> bool:
        """Fetch another page with the current exclusion set and append it."""
        if self._loading_more:
            logger.debug("load_more ignored, already in flight")
            return False
        if self._current_user is None:
            logger.info("load_more ignored, nothing loaded yet")
            return False

        self._loading_more = True
        self.state.update(is_loading_more=True)
        try:
            page = await self.repository.fetch_candidates(
                self._current_user, self.load_more_limit, sorted(self._excluded)
            )
            if page:
                await self.presence.prefetch_online_status([p.id for p in page])
        except Exception as e:
            self.errors.report_error(e, "Failed to load more", dismiss_after=self.error_dismiss_seconds)
            logger.error(f"Error loading more profiles for user {self.current_user_id}: {e}")
            return False
        finally:
            self._loading_more = False
            self.state.update(is_loading_more=False)

        known = {p.id for p in self._fetched}
        added = _unique(p for p in page if p.id not in known and p.id != self._current_user.id)
        self._fetched.extend(added)
        self._display_limit += len(added)
        self.recompute()
        self.errors.clear_persistent()

        logger.info(f"Loaded {len(added)} more profiles for user {self.current_user_id}")
        return True

    async def refresh(self) -> bool:
        """
        Show everyone again: forget the exclusion set, the swipe history and
        today's match count, then reload without previous decisions.
        """
        self._excluded.clear()
        self.history.clear()
        self.state.update(matches_today=0, has_new_matches=False, history_size=0, can_undo=False)
        return await self.load(self.current_user_id, exclude_previously_decided=False)

    async def reload(self) -> bool:
        """Depletion reload with the current exclusion set; never raises."""
        try:
            return await self.load(self.current_user_id, exclude_previously_decided=True)
        except DiscoveryError as e:
            logger.warning(f"Depletion reload failed for user {self.current_user_id}: {e}")
            return False

    def schedule_reload(self) -> asyncio.Task:
        """Start a depletion reload without waiting for it."""
        self._background_reload = asyncio.create_task(self.reload())
        return self._background_reload

    def cancel_pending(self) -> None:
        """Cancel an in-flight load and any background reload."""
        for task in (self._load_task, self._background_reload):
            if task is not None and not task.done():
                task.cancel()
        self._background_reload = None

    # ── Exclusion set ─────────────────────────────────────────────────────────

    def exclude(self, profile_id: str) -> None:
        self._excluded.add(profile_id)

    def include(self, profile_id: str) -> None:
        self._excluded.discard(profile_id)

    def is_excluded(self, profile_id: str) -> bool:
        return profile_id in self._excluded

    # ── Queue mutation ────────────────────────────────────────────────────────

    def remove(self, profile_id: str) -> bool:
        before = len(self._queue)
        self._queue = [p for p in self._queue if p.id != profile_id]
        removed = len(self._queue) != before
        if removed:
            self._publish()
        return removed

    def reinsert_front(self, profile: CandidateProfile) -> None:
        self._queue = [profile] + [p for p in self._queue if p.id != profile.id]
        if all(p.id != profile.id for p in self._fetched):
            self._fetched.insert(0, profile)
        self._publish()

    def find(self, profile_id: str) -> Optional[CandidateProfile]:
        return next((p for p in self._queue if p.id == profile_id), None)

    def recompute(self) -> None:
        """Rebuild the displayed queue for the current filters, sort order and mode."""
        self._queue = self._view()
        self._publish()

    def show_results(self, profiles: List[CandidateProfile]) -> None:
        """Switch to displaying search results instead of the fetched candidates."""
        self._results = _unique(profiles)
        self.recompute()

    def clear_results(self) -> None:
        """Leave search mode and go back to the filtered candidates."""
        self._results = None
        self.recompute()

    def _view(self) -> List[CandidateProfile]:
        if self._results is not None:
            # Remote search already filtered these; only exclusion and sort apply
            visible = [
                p for p in self._results
                if p.id not in self._excluded and p.id != self.current_user_id
            ]
            return self.pipeline.sort(visible, self.state.sort_order)

        visible = [p for p in self._fetched if p.id not in self._excluded]
        derived = self.pipeline.derive(visible, self.state.filters, self.state.sort_order)
        return derived[: self._display_limit]

    def _publish(self) -> None:
        self.state.update(candidates=list(self._queue))


def _unique(profiles) -> List[CandidateProfile]:
    seen = set()
    result = []
    for profile in profiles:
        if profile.id not in seen:
            seen.add(profile.id)
            result.append(profile)
    return result
