"""
Match repository. A match row stores its two participants in arbitrary
order, so every lookup checks both columns.
"""

from __future__ import annotations
from typing import List, Optional
from sqlalchemy import select, and_, or_, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from discovery.models.match import Match
from .base import BaseRepository

logger = logging.getLogger(__name__)


class MatchRepository(BaseRepository[Match]):
    """Repository for Match model."""

    def __init__(self):
        """Initialize with Match model."""
        super().__init__(Match)

    async def get_for_user(
        self,
        db: AsyncSession,
        user_id: str
    ) -> List[Match]:
        """
        Get the user's active matches, most recent first.

        Args:
            db: Active database session
            user_id: Participant on either side

        Returns:
            List of Match instances
        """
        try:
            stmt = (
                select(Match)
                .where(
                    and_(
                        or_(Match.user_id_1 == user_id, Match.user_id_2 == user_id),
                        Match.is_active == True
                    )
                )
                .order_by(desc(Match.matched_at))
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching matches for user {user_id}: {e}")
            raise

    async def get_between(
        self,
        db: AsyncSession,
        user_id: str,
        other_id: str
    ) -> Optional[Match]:
        """Get the match between two users regardless of column order."""
        try:
            stmt = select(Match).where(
                or_(
                    and_(Match.user_id_1 == user_id, Match.user_id_2 == other_id),
                    and_(Match.user_id_1 == other_id, Match.user_id_2 == user_id),
                )
            ).limit(1)
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error fetching match between {user_id} and {other_id}: {e}")
            raise
