"""
Presence collaborators answering "is this user online right now".

The feed asks ``is_online`` on every online-only filter pass and calls
``prefetch_online_status`` after each successful queue load.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, Sequence, Set
import logging

from redis.asyncio import Redis

from discovery.core.config import settings

logger = logging.getLogger(__name__)


class PresenceClient(ABC):

    @abstractmethod
    async def prefetch_online_status(self, ids: Sequence[str]) -> None:
        """Refresh the online flag of every id in ``ids``."""

    @abstractmethod
    def is_online(self, user_id: str) -> bool:
        """Last known online flag of ``user_id``."""


class InMemoryPresenceClient(PresenceClient):
    """Presence kept in process; used when no Redis is configured."""

    def __init__(self, online: Iterable[str] = ()):
        self._online: Set[str] = set(online)
        self.prefetched: list = []

    def set_online(self, user_id: str, online: bool = True) -> None:
        if online:
            self._online.add(user_id)
        else:
            self._online.discard(user_id)

    async def prefetch_online_status(self, ids: Sequence[str]) -> None:
        self.prefetched.append(list(ids))

    def is_online(self, user_id: str) -> bool:
        return user_id in self._online


class RedisPresenceClient(PresenceClient):
    """
    Presence read from Redis keys ``<prefix><user_id>``.

    A present key with a truthy value means online; the presence writer
    expires keys on its own.
    """

    def __init__(self, redis: Redis, key_prefix: str = None):
        self.redis = redis
        self.key_prefix = key_prefix or settings.presence_key_prefix
        self._online: Set[str] = set()

    async def prefetch_online_status(self, ids: Sequence[str]) -> None:
        if not ids:
            return
        try:
            values = await self.redis.mget([f"{self.key_prefix}{user_id}" for user_id in ids])
        except Exception:
            logger.warning("Presence prefetch failed for %d ids", len(ids), exc_info=True)
            return

        for user_id, value in zip(ids, values):
            if value and value not in ("0", "false"):
                self._online.add(user_id)
            else:
                self._online.discard(user_id)

    def is_online(self, user_id: str) -> bool:
        return user_id in self._online
