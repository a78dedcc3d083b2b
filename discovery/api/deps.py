from fastapi import Depends, Header, HTTPException, Request, status
from typing import Optional

from discovery.services.discovery_feed import DiscoveryFeed
from discovery.services.session_registry import FeedSessionRegistry


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Acting user from the X-User-Id header set by the auth gateway"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please sign in to continue",
        )
    return x_user_id.strip()


def get_registry(request: Request) -> FeedSessionRegistry:
    registry = getattr(request.app.state, "feed_registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Discovery feed is not ready",
        )
    return registry


async def get_feed(
    user_id: str = Depends(get_current_user_id),
    registry: FeedSessionRegistry = Depends(get_registry)
) -> DiscoveryFeed:
    """Feed session of the current user, created on first request"""
    return registry.get(user_id)
