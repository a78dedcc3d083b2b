from pydantic import BaseModel, ConfigDict
from typing import FrozenSet
from datetime import datetime


class Match(BaseModel):
    """Mutual interest between two users. Participant order carries no meaning."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id_1: str
    user_id_2: str
    matched_at: datetime
    has_messaged: bool = False
    is_active: bool = True

    @property
    def participants(self) -> FrozenSet[str]:
        return frozenset((self.user_id_1, self.user_id_2))

    def pairs(self, user_id: str, other_id: str) -> bool:
        return self.participants == frozenset((user_id, other_id))
