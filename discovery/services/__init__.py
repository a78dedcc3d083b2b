from .discovery_feed import DiscoveryFeed
from .error_banner import ErrorBanner
from .filter_pipeline import FilterPipeline
from .match_detector import MatchDetector
from .presence import InMemoryPresenceClient, PresenceClient, RedisPresenceClient
from .queue_manager import CandidateQueueManager
from .search_service import SearchCache, SearchService
from .session_registry import FeedSessionRegistry
from .swipe_service import SwipeActionProcessor
from .undo_stack import UndoStack

__all__ = [
    "CandidateQueueManager",
    "DiscoveryFeed",
    "ErrorBanner",
    "FeedSessionRegistry",
    "FilterPipeline",
    "InMemoryPresenceClient",
    "MatchDetector",
    "PresenceClient",
    "RedisPresenceClient",
    "SearchCache",
    "SearchService",
    "SwipeActionProcessor",
    "UndoStack",
]
