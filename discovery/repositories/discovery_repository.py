"""
Contract between the discovery engine and its backing store.

The engine only ever talks to this interface; the SQLAlchemy implementation
lives in ``sql_repository`` and tests substitute ``AsyncMock`` objects.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Collection, List, Optional

from discovery.schemas.match import Match
from discovery.schemas.profile import CandidateProfile
from discovery.schemas.swipe import SwipeDecision


class DiscoveryRepository(ABC):

    @abstractmethod
    async def fetch_profile(self, user_id: str) -> Optional[CandidateProfile]:
        """Return the stored profile of ``user_id`` or None."""

    @abstractmethod
    async def fetch_excluded_ids(self, user_id: str) -> List[str]:
        """Return the ids ``user_id`` has already decided on."""

    @abstractmethod
    async def fetch_candidates(
        self,
        for_user: CandidateProfile,
        limit: int,
        excluding: Collection[str],
    ) -> List[CandidateProfile]:
        """Return up to ``limit`` compatible profiles not in ``excluding``."""

    @abstractmethod
    async def record_decision(self, decision: SwipeDecision) -> None:
        """Persist a decision; creates the match when interest is mutual."""

    @abstractmethod
    async def delete_decision(self, user_id: str, target_id: str) -> None:
        """Remove a persisted decision (undo)."""

    @abstractmethod
    async def fetch_matches(self, for_user: str) -> List[Match]:
        """Return the active matches involving ``for_user``."""

    @abstractmethod
    async def search_profiles(self, query: str, filter_tags: List[str]) -> List[CandidateProfile]:
        """Free-text profile search, optionally restricted to content tags."""
