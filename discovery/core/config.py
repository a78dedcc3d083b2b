from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # PostgreSQL Configuration
    postgres_user: str = Field(default="admin")
    postgres_password: str = Field(default="admin")
    postgres_db: str = Field(default="discovery")
    postgres_host: str = Field(default="db")
    postgres_port: int = Field(default=5432)
    database_url_override: Optional[str] = Field(default=None)

    # Presence store
    redis_url: str = Field(default="redis://localhost:6379/0")
    presence_key_prefix: str = Field(default="presence:")

    # Application Configuration
    app_env: str = Field(default="dev")
    log_level: str = Field(default="INFO")
    api_port: int = Field(default=8000)

    # Candidate queue
    candidate_fetch_limit: int = Field(default=50)
    load_more_limit: int = Field(default=50)
    page_size: int = Field(default=20)
    low_water_mark: int = Field(default=3)
    history_limit: int = Field(default=10)

    # HTTP sessions
    event_inbox_limit: int = Field(default=100)

    # Search
    search_min_query_length: int = Field(default=2)
    search_debounce_seconds: float = Field(default=0.3)
    search_cache_ttl_seconds: int = Field(default=300)  # 5 minutes
    search_cache_max_entries: int = Field(default=20)
    search_cache_evict_batch: int = Field(default=5)

    # Error banner lifetimes
    swipe_error_dismiss_seconds: float = Field(default=3.0)
    load_error_dismiss_seconds: float = Field(default=5.0)

    # Filters
    max_distance_ceiling: float = Field(default=1000.0)
    default_min_age: int = Field(default=18)
    default_max_age: int = Field(default=100)

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # CORS - allow frontend origins (filter out None values)
    allowed_origins: List[str] = [
        origin for origin in [
            "http://localhost:3000",
            "http://localhost:19006",  # Expo web
            "http://localhost:8081",   # Expo Metro
            os.getenv("FRONTEND_URL")
        ] if origin is not None
    ]


settings = Settings()
