from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from discovery.core.database import Base


class Swipe(Base):
    __tablename__ = "swipes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), ForeignKey("profiles.id"), nullable=False, index=True)
    target_id = Column(String(128), ForeignKey("profiles.id"), nullable=False, index=True)
    action = Column(String(16), nullable=False)  # pass, like or superLike

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Ensure one decision per user-target pair
    __table_args__ = (UniqueConstraint('user_id', 'target_id', name='unique_user_target_swipe'),)

    def __repr__(self):
        return f"<Swipe(user_id={self.user_id}, target_id={self.target_id}, action={self.action})>"
