from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime, timezone
from enum import Enum
import uuid

from discovery.schemas.match import Match
from discovery.schemas.profile import CandidateProfile


class SwipeAction(str, Enum):
    PASS = "pass"
    LIKE = "like"
    SUPER_LIKE = "superLike"

    @property
    def expresses_interest(self) -> bool:
        return self in (SwipeAction.LIKE, SwipeAction.SUPER_LIKE)


class SwipeDecision(BaseModel):
    """One accept/reject decision. Deletion is the only update path."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    target_id: str
    action: SwipeAction
    decided_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SwipeHistoryEntry(BaseModel):
    """A decision plus the profile it was made against, kept for undo."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    profile: CandidateProfile
    decision: Optional[SwipeDecision] = None
    persisted: bool = False

    @property
    def target_id(self) -> str:
        return self.profile.id


class SwipeState(str, Enum):
    IDLE = "idle"
    OPTIMISTICALLY_APPLIED = "optimistically_applied"
    PERSISTED = "persisted"
    ROLLED_BACK = "rolled_back"


class SwipeOutcome(BaseModel):
    """Result of one handle_swipe/undo_swipe call."""

    state: SwipeState
    entry: Optional[SwipeHistoryEntry] = None
    match: Optional[Match] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == SwipeState.PERSISTED


class SwipeRequest(BaseModel):
    profile_id: str
    action: SwipeAction
