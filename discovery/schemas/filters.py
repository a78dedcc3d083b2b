from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Set, List
from enum import Enum

from discovery.core.config import settings
from discovery.schemas.profile import ContentStyle, CollabType


class SortOrder(str, Enum):
    RELEVANCE = "relevance"
    NEWEST = "newest"
    FOLLOWERS = "followers"
    DISTANCE = "distance"


class FilterCriteria(BaseModel):
    """
    User-controlled feed filters.

    The age bounds keep ``min_age < max_age``: moving one bound onto or past
    the other drags the other along with a one-year gap.
    """
    model_config = ConfigDict(validate_assignment=True)

    min_age: int = Field(default_factory=lambda: settings.default_min_age)
    max_age: int = Field(default_factory=lambda: settings.default_max_age)
    verified_only: bool = False
    online_only: bool = False
    max_distance: float = Field(default_factory=lambda: settings.max_distance_ceiling, gt=0)
    content_styles: Set[ContentStyle] = Field(default_factory=set)
    collaboration_types: Set[CollabType] = Field(default_factory=set)
    category: Optional[ContentStyle] = None

    def model_post_init(self, __context) -> None:
        if self.min_age >= self.max_age:
            super().__setattr__("max_age", self.min_age + 1)

    def __setattr__(self, name, value):
        super().__setattr__(name, value)
        if name == "min_age" and self.min_age >= self.max_age:
            super().__setattr__("max_age", self.min_age + 1)
        elif name == "max_age" and self.max_age <= self.min_age:
            super().__setattr__("min_age", self.max_age - 1)

    @property
    def age_filter_active(self) -> bool:
        return self.min_age > settings.default_min_age or self.max_age < settings.default_max_age

    @property
    def distance_filter_active(self) -> bool:
        return self.max_distance < settings.max_distance_ceiling

    @property
    def is_empty(self) -> bool:
        return not (
            self.age_filter_active
            or self.verified_only
            or self.online_only
            or self.distance_filter_active
            or self.content_styles
            or self.collaboration_types
            or self.category is not None
        )

    def search_tags(self) -> List[str]:
        """Content-style tags forwarded to the remote search."""
        tags = [self.category.value] if self.category else []
        tags.extend(sorted(s.value for s in self.content_styles if s != self.category))
        return tags

    def signature(self) -> str:
        """Stable string identifying this filter combination (search cache key part)."""
        return "|".join([
            f"age:{self.min_age}-{self.max_age}",
            f"verified:{int(self.verified_only)}",
            f"online:{int(self.online_only)}",
            f"distance:{self.max_distance:g}",
            "styles:" + ",".join(sorted(s.value for s in self.content_styles)),
            "collab:" + ",".join(sorted(c.value for c in self.collaboration_types)),
            f"category:{self.category.value if self.category else ''}",
        ])


class FilterUpdate(BaseModel):
    """Partial update of the active filters; unset fields are left alone."""
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    verified_only: Optional[bool] = None
    online_only: Optional[bool] = None
    max_distance: Optional[float] = Field(None, gt=0)
    content_styles: Optional[Set[ContentStyle]] = None
    collaboration_types: Optional[Set[CollabType]] = None
    category: Optional[ContentStyle] = None
    clear_category: bool = False


class SortRequest(BaseModel):
    order: SortOrder


class SearchRequest(BaseModel):
    query: str = Field("", max_length=255)
