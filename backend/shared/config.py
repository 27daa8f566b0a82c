"""
Central configuration for the Live Relay services.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, RedisDsn, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Root settings shared across the relay and its tools."""

    model_config = SettingsConfigDict(
        env_prefix="LR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    debug: bool = False
    log_level: str = "INFO"
    instance_id: str = Field(default="", description="Identifier bound to every log entry")

    # ── Source document ──────────────────────────────────────
    source_name: str = Field(default="dust2", description="Value of the 'source' field on every wire message")
    source_url: str = "https://www.dust2.us/matches?filter=all"
    source_base_url: str = Field(
        default="",
        description="Base for relative match links; derived from source_url when empty",
    )

    # ── Browser ──────────────────────────────────────────────
    browser_headless: bool = True
    browser_navigation_timeout_s: float = 30.0
    browser_user_agent: str = ""

    # ── Feed hub ─────────────────────────────────────────────
    feed_hub_url: str = "ws://localhost:8080/feed"
    reconnect_delay_s: float = 3.0
    heartbeat_interval_s: float = 15.0

    # ── Scanning / freshness ─────────────────────────────────
    scan_interval_s: float = 2.0
    startup_delay_s: float = 2.0
    auto_reload_s: float = 300.0
    stale_threshold_s: float = 90.0
    match_point_round: int = Field(default=13, description="Round score at which a map is likely about to end")

    # ── Redis (reload hand-off) ──────────────────────────────
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")
    handoff_ttl_s: int = 60

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = True
    metrics_port: int = 9095
    status_port: int = Field(default=0, description="Port for the JSON status endpoint; 0 disables it")

    @model_validator(mode="after")
    def derive_source_base_url(self) -> "Settings":
        """Use scheme://host of source_url when no explicit base URL is configured."""
        if self.source_base_url:
            return self
        parsed = urlparse(self.source_url)
        if parsed.scheme and parsed.netloc:
            self.source_base_url = f"{parsed.scheme}://{parsed.netloc}"
        return self

    @property
    def redis_url_str(self) -> str:
        return str(self.redis_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
