from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from discovery.core.database import Base


class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id_1 = Column(String(128), ForeignKey("profiles.id"), nullable=False, index=True)
    user_id_2 = Column(String(128), ForeignKey("profiles.id"), nullable=False, index=True)
    has_messaged = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Timestamps
    matched_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<Match(user_id_1={self.user_id_1}, user_id_2={self.user_id_2})>"
