from contextlib import asynccontextmanager
from typing import Optional
import logging
import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from discovery.core.cache import close_redis_pool, get_redis
from discovery.core.config import settings
from discovery.core.database import create_engine, create_session_factory
from discovery.core.logging import configure_logging
from discovery.api.v1 import feed
from discovery.repositories.sql_repository import SqlDiscoveryRepository
from discovery.services.presence import RedisPresenceClient
from discovery.services.session_registry import FeedSessionRegistry

logger = logging.getLogger(__name__)


def create_app(registry: Optional[FeedSessionRegistry] = None) -> FastAPI:
    """
    Build the API. Without ``registry`` the lifespan wires the SQL
    repository and Redis presence from settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.app_env, settings.log_level)
        engine = None
        if registry is not None:
            app.state.feed_registry = registry
        else:
            engine = create_engine()
            repository = SqlDiscoveryRepository(create_session_factory(engine))
            presence = RedisPresenceClient(get_redis())
            app.state.feed_registry = FeedSessionRegistry(repository, presence)
            logger.info("Discovery feed wired to database and Redis presence")

        yield

        app.state.feed_registry.close_all()
        if engine is not None:
            await close_redis_pool()
            await engine.dispose()

    app = FastAPI(
        title="Discovery Feed API",
        description="Swipe-based discovery feed and matching engine",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Registry is usable before startup so tests can skip the lifespan
    if registry is not None:
        app.state.feed_registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request.headers.get("X-Request-Id") or str(uuid.uuid4()),
            user_id=request.headers.get("X-User-Id"),
        )
        return await call_next(request)

    app.include_router(feed.router, prefix="/api/v1/feed", tags=["Discovery Feed"])

    @app.get("/healthz")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok", "version": "1.0.0"}

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {"message": "Discovery Feed API", "docs": "/docs"}

    return app


app = create_app()
