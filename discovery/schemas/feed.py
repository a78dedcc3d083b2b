from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum

from discovery.schemas.filters import FilterCriteria, SortOrder
from discovery.schemas.match import Match
from discovery.schemas.profile import CandidateProfile


class FeedSnapshot(BaseModel):
    """Read-only view of the feed handed to subscribers and the HTTP layer."""
    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    candidates: List[CandidateProfile] = Field(default_factory=list)
    is_loading: bool = False
    is_loading_more: bool = False
    error_message: Optional[str] = None
    matches_today: int = 0
    last_match: Optional[CandidateProfile] = None
    has_new_matches: bool = False
    search_query: str = ""
    sort_order: SortOrder = SortOrder.RELEVANCE
    filters: FilterCriteria = Field(default_factory=FilterCriteria)
    history_size: int = 0
    # Latest history entry has a persisted decision
    can_undo: bool = False

    @property
    def current_profile(self) -> Optional[CandidateProfile]:
        return self.candidates[0] if self.candidates else None


class FeedEventType(str, Enum):
    MATCH_FOUND = "match_found"
    TRANSIENT_ERROR = "transient_error"


class FeedEvent(BaseModel):
    """One-shot signal delivered to subscribers exactly once."""
    model_config = ConfigDict(frozen=True)

    type: FeedEventType
    message: Optional[str] = None
    profile: Optional[CandidateProfile] = None
    match: Optional[Match] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LoadRequest(BaseModel):
    exclude_previously_decided: bool = True
