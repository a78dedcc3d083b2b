"""
Unit tests for CandidateQueueManager.

The repository is an AsyncMock whose ``fetch_candidates`` honors the
exclusion list, so reload behavior matches the real store.
"""

from __future__ import annotations

import asyncio

import pytest

from discovery.core.events import FeedEventBus
from discovery.core.exceptions import NetworkUnavailable, NotAuthenticated, ProfileNotFound, RepositoryError
from discovery.core.state import FeedStateStore
from discovery.services.error_banner import ErrorBanner
from discovery.services.filter_pipeline import FilterPipeline
from discovery.services.presence import InMemoryPresenceClient
from discovery.services.queue_manager import CandidateQueueManager
from discovery.services.undo_stack import UndoStack
from tests.factories import CURRENT_USER_ID, make_profile, make_profiles, make_repository


def _manager(repo, **kwargs) -> CandidateQueueManager:
    state = FeedStateStore()
    errors = ErrorBanner(state, FeedEventBus())
    presence = InMemoryPresenceClient()
    return CandidateQueueManager(
        repo,
        state,
        errors,
        FilterPipeline(presence),
        presence,
        UndoStack(),
        error_dismiss_seconds=0.05,
        **kwargs,
    )


def _ids(profiles) -> list[str]:
    return [p.id for p in profiles]


# ---------------------------------------------------------------------------
# load
# ---------------------------------------------------------------------------
class TestLoad:
    async def test_load_fills_queue_and_prefetches_presence(self):
        repo = make_repository(make_profiles("a", "b", "c"))
        manager = _manager(repo)

        assert await manager.load(CURRENT_USER_ID) is True

        assert _ids(manager.queue) == ["a", "b", "c"]
        assert _ids(manager.state.candidates) == ["a", "b", "c"]
        assert manager.state.is_loading is False
        assert manager.presence.prefetched == [["a", "b", "c"]]

    async def test_load_merges_previous_decisions_into_exclusion_set(self):
        repo = make_repository(make_profiles("a", "b", "c"), excluded_ids=["b"])
        manager = _manager(repo)

        await manager.load(CURRENT_USER_ID)

        assert _ids(manager.queue) == ["a", "c"]
        assert manager.excluded_ids == {"b"}
        _, _, excluding = repo.fetch_candidates.await_args.args
        assert excluding == ["b"]

    async def test_load_truncates_to_page_size(self):
        repo = make_repository(make_profiles("a", "b", "c", "d"))
        manager = _manager(repo, fetch_limit=3, page_size=2)

        await manager.load(CURRENT_USER_ID)

        assert _ids(manager.queue) == ["a", "b"]
        assert _ids(manager.fetched) == ["a", "b", "c"]

    async def test_load_applies_active_filters(self):
        repo = make_repository([make_profile("v", verified=True), make_profile("n")])
        manager = _manager(repo)
        manager.state.filters.verified_only = True

        await manager.load(CURRENT_USER_ID)

        assert _ids(manager.queue) == ["v"]

    async def test_missing_user_raises_not_authenticated(self):
        repo = make_repository(make_profiles("a"))
        manager = _manager(repo)

        with pytest.raises(NotAuthenticated):
            await manager.load(None)

        assert manager.state.error_message == "Please sign in to continue"
        assert manager.state.is_loading is False
        repo.fetch_candidates.assert_not_awaited()

    async def test_missing_profile_raises_profile_not_found(self):
        repo = make_repository(make_profiles("a"))
        repo.fetch_profile.return_value = None
        manager = _manager(repo)

        with pytest.raises(ProfileNotFound):
            await manager.load(CURRENT_USER_ID)

        assert manager.queue == []
        assert manager.state.error_message == "User profile not found"

    async def test_repository_error_is_reported_not_raised(self):
        repo = make_repository(make_profiles("a"))
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)
        repo.fetch_candidates.side_effect = RepositoryError()

        assert await manager.load(CURRENT_USER_ID) is False

        assert manager.state.error_message == "Failed to load profiles"
        assert _ids(manager.queue) == ["a"]
        await asyncio.sleep(0.08)
        assert manager.state.error_message is None

    async def test_network_error_stays_until_next_success(self):
        repo = make_repository(make_profiles("a"))
        repo.fetch_excluded_ids.side_effect = [NetworkUnavailable(), []]
        manager = _manager(repo)

        assert await manager.load(CURRENT_USER_ID) is False
        await asyncio.sleep(0.08)
        assert manager.state.error_message == "No internet connection"

        assert await manager.load(CURRENT_USER_ID) is True
        assert manager.state.error_message is None

    async def test_current_user_never_in_queue(self):
        me = make_profile(CURRENT_USER_ID)
        repo = make_repository(make_profiles("a"), me=me)
        repo.fetch_candidates.side_effect = None
        repo.fetch_candidates.return_value = [me, make_profile("a")]
        manager = _manager(repo)

        await manager.load(CURRENT_USER_ID)

        assert _ids(manager.queue) == ["a"]

    async def test_explicit_zero_limits_are_kept(self):
        repo = make_repository(make_profiles("a", "b"))
        manager = _manager(repo, fetch_limit=0, page_size=0)

        await manager.load(CURRENT_USER_ID)

        _, limit, _ = repo.fetch_candidates.await_args.args
        assert limit == 0
        assert manager.queue == []


# ---------------------------------------------------------------------------
# Supersession
# ---------------------------------------------------------------------------
class TestLoadSupersession:
    async def test_newer_load_cancels_older_and_wins(self):
        repo = make_repository()
        repo.fetch_excluded_ids.side_effect = [["stale-excluded"], ["fresh-excluded"]]
        gate = asyncio.Event()
        calls = 0

        async def _fetch(for_user, limit, excluding):
            nonlocal calls
            calls += 1
            if calls == 1:
                await gate.wait()
                return [make_profile("stale")]
            return [make_profile("fresh")]

        repo.fetch_candidates.side_effect = _fetch
        manager = _manager(repo)

        first = asyncio.create_task(manager.load(CURRENT_USER_ID))
        await asyncio.sleep(0.01)
        second = await manager.load(CURRENT_USER_ID)
        gate.set()

        assert await first is False
        assert second is True
        assert _ids(manager.queue) == ["fresh"]
        assert "stale-excluded" not in manager.excluded_ids
        assert manager.state.is_loading is False

    async def test_cancelling_the_caller_cancels_the_load(self):
        repo = make_repository()
        gate = asyncio.Event()

        async def _fetch(for_user, limit, excluding):
            await gate.wait()
            return [make_profile("late")]

        repo.fetch_candidates.side_effect = _fetch
        manager = _manager(repo)

        caller = asyncio.create_task(manager.load(CURRENT_USER_ID))
        await asyncio.sleep(0.01)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller
        gate.set()
        await asyncio.sleep(0.01)

        assert manager.queue == []
        assert manager.pending_load is None

    async def test_cancel_pending_stops_load_and_background_reload(self):
        repo = make_repository()
        gate = asyncio.Event()

        async def _fetch(for_user, limit, excluding):
            await gate.wait()
            return [make_profile("late")]

        repo.fetch_candidates.side_effect = _fetch
        manager = _manager(repo)
        manager.current_user_id = CURRENT_USER_ID

        reload = manager.schedule_reload()
        await asyncio.sleep(0.01)
        load = manager.pending_load
        manager.cancel_pending()
        await asyncio.wait({reload, load})
        gate.set()

        assert load.cancelled()
        assert reload.cancelled()
        assert manager.background_reload is None
        assert manager.queue == []
        assert manager.state.is_loading is False


# ---------------------------------------------------------------------------
# Exclusion set and refresh
# ---------------------------------------------------------------------------
class TestExclusionPolicy:
    async def test_load_without_previous_decisions_clears_exclusions(self):
        repo = make_repository(make_profiles("a", "b"), excluded_ids=["a"])
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)

        await manager.load(CURRENT_USER_ID, exclude_previously_decided=False)

        assert manager.excluded_ids == set()
        assert _ids(manager.queue) == ["a", "b"]
        assert repo.fetch_excluded_ids.await_count == 1

    async def test_refresh_shows_everyone_again(self):
        repo = make_repository(make_profiles("a", "b"), excluded_ids=["a"])
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)
        manager.state.update(matches_today=2, history_size=1)

        await manager.refresh()

        assert _ids(manager.queue) == ["a", "b"]
        assert manager.excluded_ids == set()
        assert manager.state.matches_today == 0
        assert manager.state.history_size == 0
        assert len(manager.history) == 0

    async def test_recompute_drops_excluded_profiles(self):
        repo = make_repository(make_profiles("a", "b"))
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)

        manager.exclude("a")
        manager.recompute()

        assert _ids(manager.queue) == ["b"]

    async def test_reinsert_front(self):
        repo = make_repository(make_profiles("a", "b"))
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)
        manager.remove("a")

        manager.reinsert_front(make_profile("a"))

        assert _ids(manager.queue) == ["a", "b"]

    async def test_reload_swallows_engine_errors(self):
        repo = make_repository()
        manager = _manager(repo)

        assert await manager.reload() is False


# ---------------------------------------------------------------------------
# load_more
# ---------------------------------------------------------------------------
class TestLoadMore:
    async def test_appends_only_new_profiles(self):
        repo = make_repository(make_profiles("a", "b", "c", "d", "e"))
        manager = _manager(repo, fetch_limit=3, page_size=2)
        await manager.load(CURRENT_USER_ID)

        assert await manager.load_more() is True

        assert _ids(manager.fetched) == ["a", "b", "c", "d", "e"]
        assert _ids(manager.queue) == ["a", "b", "c", "d"]
        assert manager.presence.prefetched[-1] == ["a", "b", "c", "d", "e"]

    async def test_second_call_while_in_flight_is_ignored(self):
        repo = make_repository(make_profiles("a"))
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)
        gate = asyncio.Event()

        async def _slow(for_user, limit, excluding):
            await gate.wait()
            return []

        repo.fetch_candidates.side_effect = _slow
        first = asyncio.create_task(manager.load_more())
        await asyncio.sleep(0.01)

        assert manager.state.is_loading_more is True
        assert await manager.load_more() is False
        gate.set()
        assert await first is True
        assert manager.state.is_loading_more is False

    async def test_load_more_uses_exclusion_set(self):
        repo = make_repository(make_profiles("a", "b"))
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)
        manager.exclude("a")

        await manager.load_more()

        _, _, excluding = repo.fetch_candidates.await_args.args
        assert excluding == ["a"]

    async def test_load_more_error(self):
        repo = make_repository(make_profiles("a"))
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)
        repo.fetch_candidates.side_effect = RepositoryError()

        assert await manager.load_more() is False
        assert manager.state.error_message == "Failed to load more"

    async def test_load_more_before_load_is_noop(self):
        repo = make_repository(make_profiles("a"))
        manager = _manager(repo)

        assert await manager.load_more() is False
        repo.fetch_candidates.assert_not_awaited()


# ---------------------------------------------------------------------------
# Search results mode
# ---------------------------------------------------------------------------
class TestSearchResults:
    async def test_results_bypass_filters_but_not_exclusions(self):
        repo = make_repository(make_profiles("a"))
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)
        manager.state.filters.verified_only = True
        manager.exclude("x")

        manager.show_results([make_profile("x"), make_profile("y"), make_profile("y")])

        assert manager.showing_results
        assert _ids(manager.queue) == ["y"]

    async def test_clear_results_returns_to_feed(self):
        repo = make_repository(make_profiles("a"))
        manager = _manager(repo)
        await manager.load(CURRENT_USER_ID)
        manager.show_results([make_profile("y")])

        manager.clear_results()

        assert not manager.showing_results
        assert _ids(manager.queue) == ["a"]
