"""
Unit tests for DiscoveryFeed: search flow, filter and sort changes, filter
tags and feed statistics.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from discovery.core.exceptions import RepositoryError
from discovery.schemas.filters import FilterUpdate, SortOrder
from discovery.schemas.profile import CollabType, ContentStyle
from discovery.schemas.swipe import SwipeAction
from discovery.services.discovery_feed import DiscoveryFeed
from discovery.services.presence import InMemoryPresenceClient
from tests.factories import BASE_TIME, CURRENT_USER_ID, make_profile, make_repository


def _ids(profiles) -> list[str]:
    return [p.id for p in profiles]


@pytest.fixture
def candidates():
    return [
        make_profile("a", verified=True, styles=[ContentStyle.MUSIC], followers=10, minutes_old=0),
        make_profile("b", styles=[ContentStyle.COOKING], followers=500, minutes_old=60 * 30),
        make_profile("c", verified=True, styles=[ContentStyle.MUSIC, ContentStyle.DANCE],
                     collabs=[CollabType.MUSIC_COLLAB], followers=50, minutes_old=5),
        make_profile("d", age=None, nearby=True, minutes_old=10),
    ]


@pytest.fixture
def presence():
    return InMemoryPresenceClient(online={"b", "d"})


@pytest.fixture
async def feed(candidates, presence, fast_settings):
    repo = make_repository(candidates)
    feed = DiscoveryFeed(
        repo,
        presence,
        user_id=CURRENT_USER_ID,
        config=fast_settings,
        clock=lambda: BASE_TIME,
    )
    await feed.load()
    return feed


# ---------------------------------------------------------------------------
# Observation
# ---------------------------------------------------------------------------
class TestObservation:
    async def test_subscribers_see_loaded_queue(self, candidates, fast_settings):
        feed = DiscoveryFeed(make_repository(candidates), user_id=CURRENT_USER_ID, config=fast_settings)
        snapshots = []
        feed.subscribe(snapshots.append)

        await feed.load()

        assert snapshots[0].is_loading is True
        assert snapshots[-1].is_loading is False
        assert _ids(snapshots[-1].candidates) == ["a", "b", "c", "d"]

    async def test_events_reach_handlers(self, feed):
        feed.repository.record_decision.side_effect = RepositoryError()
        received = []
        feed.on_event(received.append)

        await feed.handle_swipe(feed.queue.find("a"), SwipeAction.PASS)

        assert [e.message for e in received] == ["Failed to save swipe"]

    async def test_can_undo_after_persisted_swipe(self, feed):
        assert feed.can_undo is False

        await feed.handle_swipe(feed.queue.find("a"), SwipeAction.PASS)

        assert feed.can_undo is True
        assert feed.snapshot().can_undo is True

    async def test_acknowledge_matches(self, feed):
        feed.state.update(has_new_matches=True)

        feed.acknowledge_matches()

        assert feed.snapshot().has_new_matches is False

    async def test_refresh_without_prior_load(self, candidates, fast_settings):
        feed = DiscoveryFeed(make_repository(candidates), user_id=CURRENT_USER_ID, config=fast_settings)

        assert await feed.refresh() is True
        assert len(feed.snapshot().candidates) == 4


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
class TestSearch:
    async def test_one_character_clears_results_without_repository(self, feed):
        assert feed.search("m") is None

        assert feed.snapshot().candidates == []
        assert feed.snapshot().search_query == "m"
        feed.repository.search_profiles.assert_not_awaited()

    async def test_results_skip_local_filters_but_keep_sort(self, feed):
        feed.update_filters(verified_only=True)
        feed.sort_by(SortOrder.FOLLOWERS)
        feed.repository.search_profiles.return_value = [
            make_profile("x", followers=1),
            make_profile("y", followers=99),
        ]

        await feed.search("creator")

        assert _ids(feed.snapshot().candidates) == ["y", "x"]
        feed.repository.search_profiles.assert_awaited_once_with("creator", [])

    async def test_search_sends_category_and_style_tags(self, feed):
        feed.update_filters(category=ContentStyle.MUSIC, content_styles={ContentStyle.ART})

        await feed.search("creator")

        feed.repository.search_profiles.assert_awaited_once_with("creator", ["Music", "Art"])

    async def test_only_last_keystroke_is_searched(self, feed):
        feed.search("mu")
        feed.search("mus")
        task = feed.search("music")
        await task

        feed.repository.search_profiles.assert_awaited_once_with("music", [])

    async def test_stale_results_are_dropped(self, feed):
        feed.repository.search_profiles.return_value = [make_profile("x")]
        task = feed.search("music")
        feed.state.update(search_query="other")

        await task

        assert feed.queue.showing_results is False

    async def test_empty_query_returns_to_feed(self, feed):
        feed.repository.search_profiles.return_value = [make_profile("x")]
        await feed.search("music")

        feed.search("")

        assert _ids(feed.snapshot().candidates) == ["a", "b", "c", "d"]

    async def test_repeated_search_hits_cache(self, feed):
        await feed.search("music")
        feed.search("")
        await feed.search("music")

        assert feed.repository.search_profiles.await_count == 1

        feed.clear_search_cache()
        await feed.search("music")
        assert feed.repository.search_profiles.await_count == 2

    async def test_search_failure_is_reported(self, feed):
        feed.repository.search_profiles.side_effect = RepositoryError()

        await feed.search("music")

        assert feed.snapshot().error_message == "Search failed"

    async def test_filter_change_during_search_searches_again(self, feed):
        await feed.search("music")

        task = feed.update_filters(verified_only=True)
        assert task is not None
        await task

        assert feed.repository.search_profiles.await_count == 2


# ---------------------------------------------------------------------------
# Filters and sorting
# ---------------------------------------------------------------------------
class TestFilters:
    async def test_update_filters_recomputes_queue(self, feed):
        feed.update_filters(verified_only=True)

        assert _ids(feed.snapshot().candidates) == ["a", "c"]
        assert feed.snapshot().filters.verified_only is True

    async def test_online_filter_uses_presence(self, feed):
        feed.update_filters(online_only=True)

        assert _ids(feed.snapshot().candidates) == ["b", "d"]

    async def test_age_filter_excludes_ageless_profiles(self, feed):
        feed.apply_filter_update(FilterUpdate(min_age=25, max_age=30))

        assert "d" not in _ids(feed.snapshot().candidates)

    async def test_unknown_filter_rejected(self, feed):
        with pytest.raises(AttributeError):
            feed.update_filters(colour="blue")

    async def test_category_filter(self, feed):
        feed.filter_by_category(ContentStyle.COOKING)
        assert _ids(feed.snapshot().candidates) == ["b"]

        feed.apply_filter_update(FilterUpdate(clear_category=True))
        assert len(feed.snapshot().candidates) == 4

    async def test_active_filter_tags_and_removal(self, feed):
        feed.update_filters(
            verified_only=True,
            online_only=True,
            max_distance=50,
            min_age=21,
            max_age=35,
            content_styles={ContentStyle.MUSIC},
            collaboration_types={CollabType.MUSIC_COLLAB},
        )

        assert feed.active_filter_tags == [
            "Verified", "Online", "Within 50mi", "Ages 21-35", "Music", "Music Collabs",
        ]
        assert feed.has_active_filters

        for tag in list(feed.active_filter_tags):
            feed.remove_filter(tag)

        assert feed.active_filter_tags == []
        assert not feed.has_active_filters
        assert len(feed.snapshot().candidates) == 4

    async def test_remove_unknown_tag_is_noop(self, feed):
        assert feed.remove_filter("Nope") is None

    async def test_clear_all_filters(self, feed):
        feed.update_filters(verified_only=True, category=ContentStyle.MUSIC)

        feed.clear_all_filters()

        assert feed.filters.is_empty
        assert len(feed.snapshot().candidates) == 4

    @pytest.mark.parametrize(
        "order, expected",
        [
            (SortOrder.RELEVANCE, ["a", "b", "c", "d"]),
            (SortOrder.NEWEST, ["a", "c", "d", "b"]),
            (SortOrder.FOLLOWERS, ["b", "c", "a", "d"]),
            (SortOrder.DISTANCE, ["d", "a", "b", "c"]),
        ],
    )
    async def test_sort_orders(self, feed, order, expected):
        feed.sort_by(order)

        assert _ids(feed.snapshot().candidates) == expected
        assert feed.snapshot().sort_order == order


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------
class TestStatistics:
    async def test_counts(self, feed):
        assert feed.total_profiles == 4
        assert feed.online_count == 2
        assert feed.new_today_count == 3
        assert feed.category_count(ContentStyle.MUSIC) == 2
        assert feed.collaboration_count(CollabType.MUSIC_COLLAB) == 1

    async def test_category_count_ignores_active_filters(self, feed):
        feed.update_filters(verified_only=True)

        assert feed.category_count(ContentStyle.COOKING) == 1

    async def test_can_load_more(self, feed):
        assert feed.can_load_more is True

        feed.search("m")
        assert feed.can_load_more is False

    async def test_can_load_more_before_load(self, fast_settings):
        feed = DiscoveryFeed(make_repository(), user_id=CURRENT_USER_ID, config=fast_settings)

        assert feed.can_load_more is False
