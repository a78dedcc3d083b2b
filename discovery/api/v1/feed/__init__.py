from discovery.api.v1.feed.endpoints import router

__all__ = ["router"]
