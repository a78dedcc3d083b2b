"""
Swipe action processor.

Every decision runs through the same state machine:

    idle -> optimistically_applied -> persisted
                                   -> rolled_back

The optimistic phase mutates the queue, the exclusion set and the history
without suspending, and hands back a compensating closure. If the repository
call fails the closure is run and the feed is left exactly as it was before
the swipe.
"""

from __future__ import annotations
from typing import Callable, Optional
import asyncio
import logging

from discovery.core.config import settings
from discovery.core.events import FeedEventBus
from discovery.core.exceptions import NotAuthenticated, SwipeNotAllowed, describe_error
from discovery.core.state import FeedStateStore
from discovery.repositories.discovery_repository import DiscoveryRepository
from discovery.schemas.feed import FeedEvent, FeedEventType
from discovery.schemas.match import Match
from discovery.schemas.profile import CandidateProfile
from discovery.schemas.swipe import (
    SwipeAction,
    SwipeDecision,
    SwipeHistoryEntry,
    SwipeOutcome,
    SwipeState,
)
from discovery.services.error_banner import ErrorBanner
from discovery.services.match_detector import MatchDetector
from discovery.services.queue_manager import CandidateQueueManager
from discovery.services.undo_stack import UndoStack

logger = logging.getLogger(__name__)

Compensation = Callable[[], None]

SWIPE_FAILED_MESSAGE = "Failed to save swipe"
SWIPE_OFFLINE_MESSAGE = "Connection lost - swipe not saved"
UNDO_FAILED_MESSAGE = "Failed to undo swipe"


class SwipeActionProcessor:

    def __init__(
        self,
        repository: DiscoveryRepository,
        queue: CandidateQueueManager,
        history: UndoStack,
        detector: MatchDetector,
        state: FeedStateStore,
        events: FeedEventBus,
        errors: ErrorBanner,
        low_water_mark: Optional[int] = None,
        error_dismiss_seconds: Optional[float] = None
    ):
        self.repository = repository
        self.queue = queue
        self.history = history
        self.detector = detector
        self.state = state
        self.events = events
        self.errors = errors
        self.low_water_mark = settings.low_water_mark if low_water_mark is None else low_water_mark
        self.error_dismiss_seconds = (
            settings.swipe_error_dismiss_seconds if error_dismiss_seconds is None else error_dismiss_seconds
        )

    async def handle_swipe(self, profile: CandidateProfile, action: SwipeAction) -> SwipeOutcome:
        """
        Record ``action`` against ``profile``.

        Never raises for repository failures: they roll the swipe back and
        surface through the error banner. The returned outcome carries the
        final state and, for a like that completed a pair, the match.
        """
        user_id = self.queue.current_user_id
        if not user_id:
            message = self.errors.report_error(
                NotAuthenticated(), SWIPE_FAILED_MESSAGE, dismiss_after=self.error_dismiss_seconds
            )
            logger.warning(f"Swipe on {profile.id} rejected: no signed-in user")
            return SwipeOutcome(state=SwipeState.IDLE, error=message)

        decision = SwipeDecision(user_id=user_id, target_id=profile.id, action=action)
        entry, compensate = self._apply_optimistically(profile, decision)

        try:
            await self.repository.record_decision(decision)
        except asyncio.CancelledError:
            compensate()
            raise
        except Exception as e:
            compensate()
            message, persistent = describe_error(e, SWIPE_FAILED_MESSAGE)
            if persistent:
                message = SWIPE_OFFLINE_MESSAGE
            self.errors.report(message, dismiss_after=self.error_dismiss_seconds, persistent=persistent)
            logger.error(f"Error recording {action.value} on {profile.id}, rolled back: {e}")
            return SwipeOutcome(state=SwipeState.ROLLED_BACK, entry=entry, error=message)

        entry.persisted = True
        self._sync_history()
        self.errors.clear_persistent()
        logger.info(f"User {user_id} recorded {action.value} on {profile.id}")

        match = None
        if action.expresses_interest:
            match = await self._detect_match(user_id, profile)

        await self._replenish()
        return SwipeOutcome(state=SwipeState.PERSISTED, entry=entry, match=match)

    def _apply_optimistically(
        self,
        profile: CandidateProfile,
        decision: SwipeDecision
    ) -> tuple[SwipeHistoryEntry, Compensation]:
        entry = SwipeHistoryEntry(profile=profile, decision=decision)

        self.queue.exclude(profile.id)
        evicted = self.history.push(entry)
        generation = self.history.generation
        self.queue.remove(profile.id)
        self._sync_history()

        def compensate() -> None:
            self.queue.include(profile.id)
            self.queue.reinsert_front(profile)
            self.history.remove(entry.id)
            if evicted is not None:
                self.history.restore_oldest(evicted, generation)
            self._sync_history()

        return entry, compensate

    async def _detect_match(self, user_id: str, profile: CandidateProfile) -> Optional[Match]:
        try:
            match = await self.detector.detect(user_id, profile.id)
        except Exception as e:
            # The swipe itself is saved; a failed lookup only delays the match
            logger.error(f"Match check failed for {user_id} and {profile.id}: {e}")
            return None

        if match is None:
            return None

        self.state.update(
            matches_today=self.state.matches_today + 1,
            last_match=profile,
            has_new_matches=True,
        )
        self.events.emit(FeedEvent(type=FeedEventType.MATCH_FOUND, profile=profile, match=match))
        return match

    async def _replenish(self) -> None:
        remaining = len(self.queue)
        if remaining == 0:
            logger.info("Queue emptied by swipe, reloading before returning")
            await self.queue.reload()
        elif remaining < self.low_water_mark:
            logger.info(f"Queue below low-water mark ({remaining} left), reloading in background")
            self.queue.schedule_reload()

    async def undo_swipe(self, entry: Optional[SwipeHistoryEntry] = None) -> SwipeOutcome:
        """
        Reverse the most recent persisted swipe.

        Entries without a persisted decision, or anything other than the
        newest entry, are ignored. If the repository refuses the deletion
        the undo is itself rolled back.
        """
        entry = entry or self.history.latest
        if entry is None or entry.decision is None or not entry.persisted:
            logger.info("Undo ignored: no persisted decision to reverse")
            return SwipeOutcome(state=SwipeState.IDLE, entry=entry, error=SwipeNotAllowed.default_message)
        if not self.history.is_latest(entry):
            logger.info(f"Undo ignored: entry for {entry.target_id} is not the most recent swipe")
            return SwipeOutcome(state=SwipeState.IDLE, entry=entry, error=SwipeNotAllowed.default_message)

        user_id = self.queue.current_user_id
        if not user_id:
            logger.warning("Undo ignored: no signed-in user")
            return SwipeOutcome(state=SwipeState.IDLE, entry=entry, error=NotAuthenticated.default_message)

        profile = entry.profile
        self.queue.include(profile.id)
        self.history.remove(entry.id)
        self.queue.reinsert_front(profile)
        self._sync_history()

        try:
            await self.repository.delete_decision(entry.decision.user_id, profile.id)
        except asyncio.CancelledError:
            self._revert_undo(entry)
            raise
        except Exception as e:
            self._revert_undo(entry)
            message = self.errors.report_error(
                e, UNDO_FAILED_MESSAGE, dismiss_after=self.error_dismiss_seconds
            )
            logger.error(f"Error undoing swipe on {profile.id}, restored: {e}")
            return SwipeOutcome(state=SwipeState.ROLLED_BACK, entry=entry, error=message)

        entry.persisted = False
        self._sync_history()
        self.errors.clear_persistent()
        logger.info(f"User {user_id} undid {entry.decision.action.value} on {profile.id}")
        return SwipeOutcome(state=SwipeState.PERSISTED, entry=entry)

    def _revert_undo(self, entry: SwipeHistoryEntry) -> None:
        self.queue.exclude(entry.target_id)
        self.history.push(entry)
        self.queue.remove(entry.target_id)
        self._sync_history()

    def _sync_history(self) -> None:
        latest = self.history.latest
        self.state.update(
            history_size=len(self.history),
            can_undo=latest is not None and latest.persisted,
        )
