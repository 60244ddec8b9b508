"""Configuration system for HomeFinder.

Uses pydantic-settings to load configuration from environment variables
and .env files with sensible defaults for scraping UK listing portals.
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:124.0) Gecko/20100101 Firefox/124.0",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with HOMEFINDER_ (e.g., HOMEFINDER_TIMEOUT).
    The proxy key and SMTP settings also accept their unprefixed names
    (SCRAPER_API_KEY, SMTP_HOST, ...).
    """

    model_config = SettingsConfigDict(
        env_prefix="HOMEFINDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Fetching
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-attempt request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Total number of attempts per fetch",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0,
        description="Base delay in seconds for exponential backoff",
    )
    user_agents: list[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS),
        description="User-Agent pool rotated on every attempt",
    )

    # Aggregation
    aggregation_timeout: float = Field(
        default=90.0,
        gt=0,
        description="Deadline in seconds for one aggregation round",
    )
    max_results: int = Field(
        default=100,
        ge=1,
        description="Maximum listings kept per source",
    )

    # Fetch proxy (ScraperAPI compatible)
    scraper_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("homefinder_scraper_api_key", "scraper_api_key"),
        description="API key for the fetch proxy",
    )
    proxy_url: str = Field(
        default="https://api.scraperapi.com/",
        description="Fetch proxy endpoint",
    )
    proxy_sources: list[str] = Field(
        default_factory=list,
        description="Source names fetched through the proxy (e.g. ['spareroom'])",
    )

    # Alerts
    clients_file: Path = Field(
        default=Path.home() / ".homefinder" / "clients.json",
        description="JSON subscriber directory used by the runner",
    )
    snapshot_db: Path | None = Field(
        default=None,
        description="SQLite file for persistent snapshots (memory if unset)",
    )

    # Email notifications
    smtp_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("homefinder_smtp_host", "smtp_host"),
    )
    smtp_port: int = Field(
        default=587,
        validation_alias=AliasChoices("homefinder_smtp_port", "smtp_port"),
    )
    smtp_user: str | None = Field(
        default=None,
        validation_alias=AliasChoices("homefinder_smtp_user", "smtp_user"),
    )
    smtp_password: str | None = Field(
        default=None,
        validation_alias=AliasChoices("homefinder_smtp_password", "smtp_password"),
    )


# Singleton instance for easy import
config = Settings()
