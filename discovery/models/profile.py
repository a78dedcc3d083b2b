from datetime import timezone
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.sql import func

from discovery.core.database import Base
from discovery.schemas.profile import CandidateProfile, Coordinates, ProfileLocation


def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(128), primary_key=True, index=True)
    display_name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)

    # Location
    city = Column(String(255), nullable=True)
    state = Column(String(255), nullable=True)
    country = Column(String(255), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    content_styles = Column(JSON, nullable=False, default=list)
    interests = Column(JSON, nullable=False, default=list)
    collaboration_types = Column(JSON, nullable=False, default=list)
    media_urls = Column(JSON, nullable=False, default=list)

    is_verified = Column(Boolean, default=False, nullable=False)
    is_discoverable = Column(Boolean, default=True, nullable=False, index=True)
    follower_count = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def to_candidate(self) -> CandidateProfile:
        location = None
        if any(v is not None for v in (self.city, self.state, self.country, self.latitude)):
            coordinates = None
            if self.latitude is not None and self.longitude is not None:
                coordinates = Coordinates(latitude=self.latitude, longitude=self.longitude)
            location = ProfileLocation(
                city=self.city,
                state=self.state,
                country=self.country,
                coordinates=coordinates,
            )
        return CandidateProfile(
            id=self.id,
            display_name=self.display_name,
            age=self.age,
            bio=self.bio,
            location=location,
            content_styles=self.content_styles or [],
            interests=self.interests or [],
            collaboration_types=self.collaboration_types or [],
            is_verified=bool(self.is_verified),
            follower_count=self.follower_count or 0,
            media_urls=self.media_urls or [],
            created_at=as_utc(self.created_at),
        )

    def __repr__(self):
        return f"<Profile(id={self.id}, display_name={self.display_name})>"
