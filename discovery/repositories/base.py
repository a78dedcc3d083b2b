"""
Generic SQLAlchemy 2.0 repository.

Repositories take the session as an argument and never commit; the caller
owns the transaction. SQLAlchemy errors are logged and re-raised for the
caller to translate.
"""

from __future__ import annotations
from typing import Any, Generic, TypeVar, Type, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Lookup by primary key and flushed inserts for one mapped model.

    Example:
        class SwipeRepository(BaseRepository[Swipe]):
            def __init__(self):
                super().__init__(Swipe)
    """

    def __init__(self, model: Type[T]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[T]:
        """Row with primary key ``id``, or None."""
        try:
            result = await db.execute(select(self.model).where(self.model.id == id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {self.model.__name__} {id}: {e}")
            raise

    async def create(self, db: AsyncSession, obj_in: dict) -> T:
        """
        Add a row and flush so generated columns are populated.

        Raises:
            IntegrityError: a unique constraint was violated (session rolled back)
        """
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning(f"Duplicate {self.model.__name__} rejected: {e.orig}")
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            await db.rollback()
            raise
        return db_obj
