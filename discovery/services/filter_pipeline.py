"""
Filter pipeline deriving the displayed feed from the fetched candidates.

Predicates run in a fixed order and stop at the first failure for a
profile: age range, content tags, collaboration types, verified-only,
online-only and distance. The input list is never modified.
"""

from __future__ import annotations
from typing import Callable, Iterable, List, Optional, Tuple

from discovery.schemas.filters import FilterCriteria, SortOrder
from discovery.schemas.profile import CandidateProfile
from discovery.services.presence import PresenceClient

Predicate = Callable[[CandidateProfile], bool]


class FilterPipeline:

    def __init__(self, presence: Optional[PresenceClient] = None):
        self.presence = presence

    def predicates(self, criteria: FilterCriteria) -> List[Tuple[str, Predicate]]:
        """Active predicates for ``criteria``, in evaluation order."""
        checks: List[Tuple[str, Predicate]] = []

        if criteria.age_filter_active:
            low, high = criteria.min_age, criteria.max_age
            # Profiles without an age fail once an age range is set
            checks.append(("age", lambda p: p.age is not None and low <= p.age <= high))

        if criteria.category is not None:
            category = criteria.category
            checks.append(("category", lambda p: category in p.content_tags))

        if criteria.content_styles:
            styles = set(criteria.content_styles)
            checks.append(("content_styles", lambda p: not styles.isdisjoint(p.content_tags)))

        if criteria.collaboration_types:
            collabs = set(criteria.collaboration_types)
            checks.append(("collaboration_types", lambda p: not collabs.isdisjoint(p.collaboration_tags)))

        if criteria.verified_only:
            checks.append(("verified", lambda p: p.is_verified))

        if criteria.online_only:
            checks.append(("online", self._is_online))

        if criteria.distance_filter_active:
            checks.append(("distance", lambda p: p.is_nearby))

        return checks

    def matches(self, profile: CandidateProfile, criteria: FilterCriteria) -> bool:
        return all(check(profile) for _, check in self.predicates(criteria))

    def apply(
        self,
        profiles: Iterable[CandidateProfile],
        criteria: FilterCriteria
    ) -> List[CandidateProfile]:
        checks = self.predicates(criteria)
        if not checks:
            return list(profiles)
        return [p for p in profiles if all(check(p) for _, check in checks)]

    @staticmethod
    def sort(profiles: Iterable[CandidateProfile], order: SortOrder) -> List[CandidateProfile]:
        """Return a new list ordered by ``order``; every sort is stable."""
        profiles = list(profiles)
        if order == SortOrder.NEWEST:
            return sorted(profiles, key=lambda p: p.created_at, reverse=True)
        if order == SortOrder.FOLLOWERS:
            return sorted(profiles, key=lambda p: p.follower_count, reverse=True)
        if order == SortOrder.DISTANCE:
            return sorted(profiles, key=lambda p: not p.is_nearby)
        return profiles

    def derive(
        self,
        profiles: Iterable[CandidateProfile],
        criteria: FilterCriteria,
        order: SortOrder
    ) -> List[CandidateProfile]:
        return self.sort(self.apply(profiles, criteria), order)

    def _is_online(self, profile: CandidateProfile) -> bool:
        # Asked every pass, the presence collaborator owns freshness
        return self.presence is not None and self.presence.is_online(profile.id)
