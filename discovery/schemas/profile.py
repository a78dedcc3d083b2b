from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Set
from datetime import datetime
from enum import Enum


class ContentStyle(str, Enum):
    COMEDY = "Comedy"
    EDITING = "Editing"
    BEAUTY = "Beauty"
    FASHION = "Fashion"
    FITNESS = "Fitness"
    MUKBANG = "Mukbang"
    COOKING = "Cooking"
    DANCE = "Dance"
    MUSIC = "Music"
    GAMING = "Video Games"
    PET = "Pet"
    TECH = "Tech"
    ART = "Art"
    SPORTS = "Sports"


class CollabType(str, Enum):
    TWITCH_STREAM = "Twitch Streamers"
    MUSIC_COLLAB = "Music Collabs"
    PODCAST_GUEST = "Podcast Guests"
    TIKTOK_LIVE = "Tiktok Lives"
    BRAND_DEAL = "Brand Deals"
    CONTENT_SERIES = "Content Series"


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ProfileLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @property
    def is_nearby(self) -> bool:
        # Distance is precomputed upstream; having coordinates is the hint.
        return self.coordinates is not None


class CandidateProfile(BaseModel):
    """A profile in the discovery feed. Never mutated once fetched."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    display_name: str
    age: Optional[int] = Field(None, ge=0)
    bio: Optional[str] = None
    location: Optional[ProfileLocation] = None
    content_styles: List[ContentStyle] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    collaboration_types: List[CollabType] = Field(default_factory=list)
    is_verified: bool = False
    follower_count: int = Field(0, ge=0)
    media_urls: List[str] = Field(default_factory=list)
    created_at: datetime

    @property
    def is_nearby(self) -> bool:
        return self.location is not None and self.location.is_nearby

    @property
    def content_tags(self) -> Set[ContentStyle]:
        return set(self.content_styles)

    @property
    def collaboration_tags(self) -> Set[CollabType]:
        return set(self.collaboration_types)
