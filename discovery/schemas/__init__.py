from .profile import CandidateProfile, ContentStyle, CollabType, Coordinates, ProfileLocation
from .match import Match
from .swipe import (
    SwipeAction,
    SwipeDecision,
    SwipeHistoryEntry,
    SwipeOutcome,
    SwipeRequest,
    SwipeState,
)
from .filters import FilterCriteria, FilterUpdate, SearchRequest, SortOrder, SortRequest
from .feed import FeedEvent, FeedEventType, FeedSnapshot, LoadRequest

__all__ = [
    "CandidateProfile", "ContentStyle", "CollabType", "Coordinates", "ProfileLocation",
    "Match",
    "SwipeAction", "SwipeDecision", "SwipeHistoryEntry", "SwipeOutcome", "SwipeRequest", "SwipeState",
    "FilterCriteria", "FilterUpdate", "SearchRequest", "SortOrder", "SortRequest",
    "FeedEvent", "FeedEventType", "FeedSnapshot", "LoadRequest",
]
