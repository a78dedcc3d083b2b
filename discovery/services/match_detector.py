from typing import Optional
import logging

from discovery.repositories.discovery_repository import DiscoveryRepository
from discovery.schemas.match import Match

logger = logging.getLogger(__name__)


class MatchDetector:
    """Checks whether a persisted like produced a match.

    Matches are created by the repository; this only looks for one that
    pairs the two users, in either participant order.
    """

    def __init__(self, repository: DiscoveryRepository):
        self.repository = repository

    async def detect(self, user_id: str, target_id: str) -> Optional[Match]:
        matches = await self.repository.fetch_matches(user_id)
        for match in matches:
            if match.pairs(user_id, target_id):
                logger.info(f"Match detected between {user_id} and {target_id}")
                return match
        return None
