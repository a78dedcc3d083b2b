"""
SQLAlchemy implementation of the discovery repository contract.

Each call runs in its own short-lived session. Database errors are logged
and translated into the engine's error taxonomy: connection-level failures
become ``NetworkUnavailable``, everything else ``RepositoryError``.
"""

from __future__ import annotations
from typing import Collection, List, Optional
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
import logging

from discovery.core.exceptions import DiscoveryError, NetworkUnavailable, RepositoryError
from discovery.models.profile import as_utc
from discovery.schemas.match import Match
from discovery.schemas.profile import CandidateProfile
from discovery.schemas.swipe import SwipeDecision
from .discovery_repository import DiscoveryRepository
from .match_repository import MatchRepository
from .profile_repository import ProfileRepository
from .swipe_repository import SwipeRepository

logger = logging.getLogger(__name__)


def translate_error(error: SQLAlchemyError, operation: str) -> DiscoveryError:
    if isinstance(error, (OperationalError, InterfaceError)):
        return NetworkUnavailable()
    return RepositoryError(f"Failed to {operation}")


class SqlDiscoveryRepository(DiscoveryRepository):
    """
    Discovery repository backed by the profiles, swipes and matches tables.

    Example:
        engine = create_engine()
        repo = SqlDiscoveryRepository(create_session_factory(engine))
        profile = await repo.fetch_profile("user-1")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        profile_repo: Optional[ProfileRepository] = None,
        swipe_repo: Optional[SwipeRepository] = None,
        match_repo: Optional[MatchRepository] = None
    ):
        self.session_factory = session_factory
        self.profile_repo = profile_repo or ProfileRepository()
        self.swipe_repo = swipe_repo or SwipeRepository()
        self.match_repo = match_repo or MatchRepository()

    async def fetch_profile(self, user_id: str) -> Optional[CandidateProfile]:
        try:
            async with self.session_factory() as db:
                profile = await self.profile_repo.get(db, user_id)
                return profile.to_candidate() if profile else None
        except SQLAlchemyError as e:
            raise translate_error(e, "load profile") from e

    async def fetch_excluded_ids(self, user_id: str) -> List[str]:
        try:
            async with self.session_factory() as db:
                return await self.swipe_repo.get_target_ids(db, user_id)
        except SQLAlchemyError as e:
            raise translate_error(e, "load previous decisions") from e

    async def fetch_candidates(
        self,
        for_user: CandidateProfile,
        limit: int,
        excluding: Collection[str],
    ) -> List[CandidateProfile]:
        try:
            async with self.session_factory() as db:
                rows = await self.profile_repo.get_candidates(db, for_user.id, limit, excluding)
                return [row.to_candidate() for row in rows]
        except SQLAlchemyError as e:
            raise translate_error(e, "load profiles") from e

    async def record_decision(self, decision: SwipeDecision) -> None:
        """
        Persist a decision and create the match when interest is mutual.

        The swipe and the match are written in one transaction.
        """
        try:
            async with self.session_factory() as db:
                await self.swipe_repo.upsert_decision(
                    db,
                    decision.user_id,
                    decision.target_id,
                    decision.action.value,
                    decision.decided_at,
                )

                if decision.action.expresses_interest:
                    await self._create_match_if_mutual(db, decision)

                await db.commit()
        except SQLAlchemyError as e:
            raise translate_error(e, "save swipe") from e

        logger.info(
            f"Swipe recorded: {decision.user_id} -> {decision.target_id} ({decision.action.value})"
        )

    async def _create_match_if_mutual(self, db, decision: SwipeDecision) -> None:
        reciprocal = await self.swipe_repo.has_interest(db, decision.target_id, decision.user_id)
        if not reciprocal:
            return

        existing = await self.match_repo.get_between(db, decision.user_id, decision.target_id)
        if existing:
            if not existing.is_active:
                existing.is_active = True
                existing.matched_at = datetime.now(timezone.utc)
                await db.flush()
            return

        await self.match_repo.create(db, {
            "user_id_1": decision.user_id,
            "user_id_2": decision.target_id,
            "matched_at": datetime.now(timezone.utc),
        })
        logger.info(f"New match created between {decision.user_id} and {decision.target_id}")

    async def delete_decision(self, user_id: str, target_id: str) -> None:
        try:
            async with self.session_factory() as db:
                deleted = await self.swipe_repo.delete_decision(db, user_id, target_id)
                await db.commit()
        except SQLAlchemyError as e:
            raise translate_error(e, "undo swipe") from e

        if not deleted:
            logger.warning(f"No persisted swipe of {user_id} on {target_id} to delete")

    async def fetch_matches(self, for_user: str) -> List[Match]:
        try:
            async with self.session_factory() as db:
                rows = await self.match_repo.get_for_user(db, for_user)
        except SQLAlchemyError as e:
            raise translate_error(e, "load matches") from e

        return [
            Match(
                user_id_1=row.user_id_1,
                user_id_2=row.user_id_2,
                matched_at=as_utc(row.matched_at),
                has_messaged=bool(row.has_messaged),
                is_active=bool(row.is_active),
            )
            for row in rows
        ]

    async def search_profiles(self, query: str, filter_tags: List[str]) -> List[CandidateProfile]:
        try:
            async with self.session_factory() as db:
                rows = await self.profile_repo.search(db, query, filter_tags or ())
                return [row.to_candidate() for row in rows]
        except SQLAlchemyError as e:
            raise translate_error(e, "search profiles") from e
