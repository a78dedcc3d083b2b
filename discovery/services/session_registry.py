"""
Per-user feed sessions for the HTTP layer.

Keeps one ``DiscoveryFeed`` per user id and buffers the most recent of its
one-shot signals until the client drains them.
"""

from collections import deque
from typing import Deque, Dict, List, Optional, Callable
import logging

from discovery.core.config import Settings, settings
from discovery.repositories.discovery_repository import DiscoveryRepository
from discovery.schemas.feed import FeedEvent
from discovery.services.discovery_feed import DiscoveryFeed
from discovery.services.presence import PresenceClient

logger = logging.getLogger(__name__)


class FeedSessionRegistry:

    def __init__(
        self,
        repository: DiscoveryRepository,
        presence: Optional[PresenceClient] = None,
        config: Settings = settings
    ):
        self.repository = repository
        self.presence = presence
        self.config = config

        # user_id → feed
        self.feeds: Dict[str, DiscoveryFeed] = {}

        # user_id → events not yet drained, oldest dropped once full
        self.inboxes: Dict[str, Deque[FeedEvent]] = {}

        self._unsubscribers: Dict[str, Callable[[], None]] = {}

    def get(self, user_id: str) -> DiscoveryFeed:
        """Return the user's feed, creating it on first use."""
        feed = self.feeds.get(user_id)
        if feed is None:
            feed = DiscoveryFeed(self.repository, self.presence, user_id=user_id, config=self.config)
            inbox: Deque[FeedEvent] = deque(maxlen=self.config.event_inbox_limit)
            self.inboxes[user_id] = inbox
            self._unsubscribers[user_id] = feed.on_event(inbox.append)
            self.feeds[user_id] = feed
            logger.info(f"Created feed session for user {user_id} - total sessions: {len(self.feeds)}")
        return feed

    def drain(self, user_id: str) -> List[FeedEvent]:
        """Hand out pending events; each is returned exactly once."""
        inbox = self.inboxes.get(user_id)
        if not inbox:
            return []
        events = list(inbox)
        inbox.clear()
        return events

    def close(self, user_id: str) -> None:
        feed = self.feeds.pop(user_id, None)
        if feed is None:
            logger.debug(f"Close called for unknown session {user_id}")
            return
        unsubscribe = self._unsubscribers.pop(user_id, None)
        if unsubscribe is not None:
            unsubscribe()
        self.inboxes.pop(user_id, None)
        feed.close()
        logger.info(f"Closed feed session for user {user_id} - total sessions: {len(self.feeds)}")

    def close_all(self) -> None:
        for user_id in list(self.feeds):
            self.close(user_id)

    def __len__(self) -> int:
        return len(self.feeds)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self.feeds
