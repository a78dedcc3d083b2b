import asyncio
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional

from discovery.api.deps import get_current_user_id, get_feed, get_registry
from discovery.core.exceptions import DiscoveryError, NotAuthenticated, ProfileNotFound, SwipeNotAllowed
from discovery.schemas.feed import FeedEvent, FeedSnapshot, LoadRequest
from discovery.schemas.filters import FilterUpdate, SearchRequest, SortRequest
from discovery.schemas.swipe import SwipeOutcome, SwipeRequest
from discovery.services.discovery_feed import DiscoveryFeed
from discovery.services.session_registry import FeedSessionRegistry

router = APIRouter()

ERROR_STATUS = {
    NotAuthenticated: status.HTTP_401_UNAUTHORIZED,
    ProfileNotFound: status.HTTP_404_NOT_FOUND,
    SwipeNotAllowed: status.HTTP_409_CONFLICT,
}


def _http_error(error: DiscoveryError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=error.message)


async def _settle(task: Optional[asyncio.Task]) -> None:
    """Wait for a debounced search so the response reflects its results"""
    if task is not None:
        await asyncio.wait({task})


@router.get("", response_model=FeedSnapshot)
async def get_feed_state(feed: DiscoveryFeed = Depends(get_feed)):
    """Current feed state"""
    return feed.snapshot()


@router.post("/load", response_model=FeedSnapshot)
async def load_feed(
    request: LoadRequest = LoadRequest(),
    feed: DiscoveryFeed = Depends(get_feed)
):
    """
    Load a fresh page of candidates.

    Transient repository failures do not fail the request; they show up in
    ``error_message`` of the returned state.
    """
    try:
        await feed.load(exclude_previously_decided=request.exclude_previously_decided)
    except DiscoveryError as e:
        raise _http_error(e)
    return feed.snapshot()


@router.post("/load-more", response_model=FeedSnapshot)
async def load_more(feed: DiscoveryFeed = Depends(get_feed)):
    """Append another page using the current exclusion set"""
    await feed.load_more()
    return feed.snapshot()


@router.post("/refresh", response_model=FeedSnapshot)
async def refresh_feed(feed: DiscoveryFeed = Depends(get_feed)):
    """Forget previous decisions locally and show everyone again"""
    try:
        await feed.refresh()
    except DiscoveryError as e:
        raise _http_error(e)
    return feed.snapshot()


@router.post("/swipes", response_model=SwipeOutcome)
async def swipe(
    swipe_data: SwipeRequest,
    feed: DiscoveryFeed = Depends(get_feed)
):
    """Record a pass, like or super like on a profile in the queue"""
    profile = feed.queue.find(swipe_data.profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not in feed")
    return await feed.handle_swipe(profile, swipe_data.action)


@router.post("/swipes/undo", response_model=SwipeOutcome)
async def undo_swipe(feed: DiscoveryFeed = Depends(get_feed)):
    """Undo the most recent swipe"""
    if not feed.can_undo:
        raise _http_error(SwipeNotAllowed())
    return await feed.undo_swipe()


@router.post("/search", response_model=FeedSnapshot)
async def search(
    request: SearchRequest,
    feed: DiscoveryFeed = Depends(get_feed)
):
    """Search profiles; an empty query returns to the regular feed"""
    await _settle(feed.search(request.query))
    return feed.snapshot()


@router.put("/filters", response_model=FeedSnapshot)
async def update_filters(
    update: FilterUpdate,
    feed: DiscoveryFeed = Depends(get_feed)
):
    """Change filters; fields left out keep their value"""
    await _settle(feed.apply_filter_update(update))
    return feed.snapshot()


@router.delete("/filters", response_model=FeedSnapshot)
async def clear_filters(feed: DiscoveryFeed = Depends(get_feed)):
    await _settle(feed.clear_all_filters())
    return feed.snapshot()


@router.delete("/filters/{tag}", response_model=FeedSnapshot)
async def remove_filter(tag: str, feed: DiscoveryFeed = Depends(get_feed)):
    """Remove one of the active filter tags"""
    if tag not in feed.active_filter_tags:
        raise HTTPException(status_code=404, detail="Filter not active")
    await _settle(feed.remove_filter(tag))
    return feed.snapshot()


@router.put("/sort", response_model=FeedSnapshot)
async def sort_feed(
    request: SortRequest,
    feed: DiscoveryFeed = Depends(get_feed)
):
    feed.sort_by(request.order)
    return feed.snapshot()


@router.get("/events", response_model=List[FeedEvent])
async def drain_events(
    user_id: str = Depends(get_current_user_id),
    registry: FeedSessionRegistry = Depends(get_registry)
):
    """One-shot signals raised since the last call; each is returned once"""
    registry.get(user_id)
    return registry.drain(user_id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    user_id: str = Depends(get_current_user_id),
    registry: FeedSessionRegistry = Depends(get_registry)
):
    """Drop the user's feed session"""
    registry.close(user_id)
