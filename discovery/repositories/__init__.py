# Repositories package
from .base import BaseRepository
from .discovery_repository import DiscoveryRepository
from .profile_repository import ProfileRepository
from .swipe_repository import SwipeRepository
from .match_repository import MatchRepository
from .sql_repository import SqlDiscoveryRepository

__all__ = [
    "BaseRepository",
    "DiscoveryRepository",
    "ProfileRepository",
    "SwipeRepository",
    "MatchRepository",
    "SqlDiscoveryRepository",
]
