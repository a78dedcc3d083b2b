"""
Swipe repository for persisted decisions.

Provides upsert/delete of a user's decision on a target and the reciprocity
query used for match creation.
"""

from __future__ import annotations
from typing import List, Optional
from datetime import datetime
from sqlalchemy import select, and_, delete as sql_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from discovery.models.swipe import Swipe
from discovery.schemas.swipe import SwipeAction
from .base import BaseRepository

logger = logging.getLogger(__name__)

INTEREST_ACTIONS = (SwipeAction.LIKE.value, SwipeAction.SUPER_LIKE.value)


class SwipeRepository(BaseRepository[Swipe]):
    """Repository for Swipe model."""

    def __init__(self):
        """Initialize with Swipe model."""
        super().__init__(Swipe)

    async def get_decision(
        self,
        db: AsyncSession,
        user_id: str,
        target_id: str
    ) -> Optional[Swipe]:
        """
        Get the user's decision on a target.

        Args:
            db: Active database session
            user_id: Deciding user
            target_id: Profile decided on

        Returns:
            Swipe if one exists, None otherwise
        """
        try:
            stmt = select(Swipe).where(
                and_(Swipe.user_id == user_id, Swipe.target_id == target_id)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error fetching swipe of {user_id} on {target_id}: {e}")
            raise

    async def upsert_decision(
        self,
        db: AsyncSession,
        user_id: str,
        target_id: str,
        action: str,
        decided_at: datetime
    ) -> Swipe:
        """
        Record a decision, replacing an earlier one on the same target.

        Returns:
            The created or updated Swipe (flushed, not committed)
        """
        existing = await self.get_decision(db, user_id, target_id)
        if existing:
            try:
                existing.action = action
                existing.created_at = decided_at
                await db.flush()
                return existing
            except SQLAlchemyError as e:
                logger.error(f"Error updating swipe of {user_id} on {target_id}: {e}")
                await db.rollback()
                raise

        return await self.create(db, {
            "user_id": user_id,
            "target_id": target_id,
            "action": action,
            "created_at": decided_at,
        })

    async def delete_decision(
        self,
        db: AsyncSession,
        user_id: str,
        target_id: str
    ) -> bool:
        """
        Delete the user's decision on a target.

        Returns:
            True if a row was deleted, False if none existed
        """
        try:
            stmt = sql_delete(Swipe).where(
                and_(Swipe.user_id == user_id, Swipe.target_id == target_id)
            )
            result = await db.execute(stmt)
            await db.flush()
            return result.rowcount > 0

        except SQLAlchemyError as e:
            logger.error(f"Error deleting swipe of {user_id} on {target_id}: {e}")
            await db.rollback()
            raise

    async def get_target_ids(
        self,
        db: AsyncSession,
        user_id: str
    ) -> List[str]:
        """Ids of every profile the user has decided on."""
        try:
            stmt = select(Swipe.target_id).where(Swipe.user_id == user_id)
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching swiped ids for user {user_id}: {e}")
            raise

    async def has_interest(
        self,
        db: AsyncSession,
        user_id: str,
        target_id: str
    ) -> bool:
        """True when ``user_id`` liked or super-liked ``target_id``."""
        try:
            stmt = (
                select(Swipe.id)
                .where(
                    and_(
                        Swipe.user_id == user_id,
                        Swipe.target_id == target_id,
                        Swipe.action.in_(INTEREST_ACTIONS)
                    )
                )
                .limit(1)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none() is not None

        except SQLAlchemyError as e:
            logger.error(f"Error checking interest of {user_id} in {target_id}: {e}")
            raise
