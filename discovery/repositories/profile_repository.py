"""
Profile repository: candidate selection and free-text search.
"""

from __future__ import annotations
from typing import Collection, List
from sqlalchemy import select, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from discovery.models.profile import Profile
from .base import BaseRepository

logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository[Profile]):
    """Repository for Profile model."""

    # Rows scanned for a free-text search before matching in Python
    SEARCH_SCAN_LIMIT = 500
    SEARCH_RESULT_LIMIT = 100

    def __init__(self):
        """Initialize with Profile model."""
        super().__init__(Profile)

    async def get_candidates(
        self,
        db: AsyncSession,
        for_user_id: str,
        limit: int,
        excluding: Collection[str] = ()
    ) -> List[Profile]:
        """
        Get discoverable profiles for a user, newest first.

        Args:
            db: Active database session
            for_user_id: The viewing user (never returned)
            limit: Maximum number of profiles
            excluding: Profile ids to leave out

        Returns:
            List of Profile instances
        """
        try:
            conditions = [Profile.id != for_user_id, Profile.is_discoverable == True]
            if excluding:
                conditions.append(Profile.id.notin_(list(excluding)))

            stmt = (
                select(Profile)
                .where(and_(*conditions))
                .order_by(desc(Profile.created_at), Profile.id)
                .limit(limit)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching candidates for user {for_user_id}: {e}")
            raise

    async def search(
        self,
        db: AsyncSession,
        query: str,
        tags: Collection[str] = ()
    ) -> List[Profile]:
        """
        Search discoverable profiles by name, bio and interests.

        Tag restriction keeps profiles having any of ``tags`` among their
        content styles.

        Args:
            db: Active database session
            query: Case-insensitive text to look for
            tags: Content style values; empty means no restriction

        Returns:
            Up to SEARCH_RESULT_LIMIT matching profiles
        """
        try:
            stmt = (
                select(Profile)
                .where(Profile.is_discoverable == True)
                .order_by(desc(Profile.created_at), Profile.id)
                .limit(self.SEARCH_SCAN_LIMIT)
            )
            result = await db.execute(stmt)
            rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error searching profiles for '{query}': {e}")
            raise

        needle = query.casefold()
        wanted = set(tags)
        matches = []
        for row in rows:
            if wanted and wanted.isdisjoint(row.content_styles or []):
                continue
            if needle and not _mentions(row, needle):
                continue
            matches.append(row)
            if len(matches) >= self.SEARCH_RESULT_LIMIT:
                break
        return matches


def _mentions(profile: Profile, needle: str) -> bool:
    if needle in (profile.display_name or "").casefold():
        return True
    if needle in (profile.bio or "").casefold():
        return True
    return any(needle in interest.casefold() for interest in profile.interests or [])
