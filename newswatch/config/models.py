"""Configuration models."""

import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_GUARDIAN_FIELDS = ["trailText", "body", "headline", "byline", "shortUrl"]

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("newswatch", description="Database name")
    user: str = Field("newswatch", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(
        "NEWSWATCH_DB_PASSWORD", description="Environment variable for password"
    )
    pool_min_size: int = Field(1, ge=1, description="Minimum pooled connections")
    pool_max_size: int = Field(5, ge=1, description="Maximum pooled connections")

    @property
    def resolved_password(self) -> str:
        """Password from the environment when configured, else the literal value."""
        if self.password_env:
            from_env = os.environ.get(self.password_env)
            if from_env:
                return from_env
        return self.password or ""

    @property
    def connection_string(self) -> str:
        """Get psycopg connection string."""
        return (
            f"postgresql://{self.user}:{self.resolved_password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class HttpConfig(BaseModel):
    """Outbound HTTP settings shared by adapters and the hydrator."""

    feed_timeout: float = Field(20.0, gt=0, description="Feed/API request timeout (s)")
    article_timeout: float = Field(40.0, gt=0, description="Article fetch timeout (s)")
    user_agent: str = Field(BROWSER_USER_AGENT, description="User-Agent for article fetches")
    max_connections: int = Field(10, ge=1, description="Pooled connection limit")
    max_concurrent_fetches: int = Field(
        1, ge=1, le=16, description="Adapters fetched concurrently (1 = sequential)"
    )


class GuardianApiParams(BaseModel):
    """Typed adapter parameters for the Guardian content API.

    Stored as the ``params`` JSON of a feed row; every field is optional there
    and falls back to the values in :class:`GuardianConfig`.
    """

    query: Optional[str] = Field(None, description="Free-text q= filter")
    page_size: Optional[int] = Field(None, ge=1, le=200)
    max_pages: Optional[int] = Field(None, ge=1, le=50)
    fields: Optional[List[str]] = Field(None, description="show-fields values")
    tag: Optional[str] = Field(None, description="Tag filter, e.g. tone/news")
    from_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    to_date: Optional[str] = Field(None, description="YYYY-MM-DD")

    model_config = {"extra": "ignore"}


class GuardianConfig(BaseModel):
    """Guardian content API configuration."""

    base_url: str = Field("https://content.guardianapis.com", description="API base URL")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    api_key_env: Optional[str] = Field("GUARDIAN_API_KEY", description="Env var for API key")
    page_size: int = Field(25, ge=1, le=200)
    max_pages: int = Field(1, ge=1, le=50)
    fields: List[str] = Field(default_factory=lambda: list(DEFAULT_GUARDIAN_FIELDS))

    @property
    def resolved_api_key(self) -> Optional[str]:
        """API key from the environment when configured, else the literal value."""
        if self.api_key_env:
            from_env = os.environ.get(self.api_key_env)
            if from_env:
                return from_env
        return self.api_key


class HydrationConfig(BaseModel):
    """Hydration worker settings."""

    enabled: bool = Field(True, description="Hydrate new sources after each adapter batch")
    fallback_limit: int = Field(
        15, ge=1, le=500, description="Backlog size when no explicit targets are given"
    )


class IngestConfig(BaseModel):
    """Runner settings."""

    use_static_adapters: bool = Field(
        False, description="Ignore the feed catalog and run the built-in adapters"
    )
    persist_batch_size: int = Field(25, ge=1, le=1000)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field("INFO", description="Root log level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Accept standard level names only."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    guardian: GuardianConfig = Field(default_factory=GuardianConfig)
    hydration: HydrationConfig = Field(default_factory=HydrationConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def to_yaml_dict(self) -> Dict[str, Any]:
        """Dump for the config file, never writing resolved secrets."""
        return self.model_dump()
