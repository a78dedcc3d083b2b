from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from .config import settings


def create_engine(url: str = None, **kwargs):
    """Create the async engine for ``url`` (defaults to the configured database)."""
    url = url or settings.database_url
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(
        url,
        echo=settings.app_env == "dev",
        **kwargs,
    )


def create_session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


# Base class for SQLAlchemy models
Base = declarative_base()
