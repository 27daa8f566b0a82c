"""
Probe configuration.
Uses the LR_PROBE_ prefix; independent of the relay's own settings.
"""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STREAM_URLS = [
    "wss://streams.azuro.org/v1/streams/conditions",
    "wss://streams.onchainfeed.org/v1/streams/feed",
    "wss://streams.onchainfeed.org/v1/streams/conditions",
    "wss://streams.azuro.org/v1/streams/feed",
    "wss://preprod-streams.azuro.org/v1/streams/conditions",
    "wss://streams.azuro.org/streams/conditions",
    "wss://streams.azuro.org/v1/conditions",
]


class ProbeSettings(BaseSettings):
    """Endpoints and limits for one probe run."""

    model_config = SettingsConfigDict(
        env_prefix="LR_PROBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    subgraph_url: str = Field(
        default="https://thegraph-1.onchainfeed.org/subgraphs/name/azuro-protocol/azuro-data-feed-polygon",
        description="GraphQL data-index queried for live games",
    )
    stream_urls: list[str] = Field(default_factory=lambda: list(DEFAULT_STREAM_URLS))
    sport_slug: str = Field(default="cs2", description="Sport filter; empty means all sports")
    games_limit: int = Field(default=5, description="Games requested per subgraph query")
    conditions_limit: int = Field(default=10, description="Active conditions requested per game")
    max_subscribe_ids: int = Field(default=20, description="Condition ids sent in one subscribe message")
    lookback_s: int = Field(default=86400, description="Only games started within this window")

    # Timeouts
    http_timeout_s: float = Field(default=15.0, description="Subgraph request timeout")
    open_timeout_s: float = Field(default=10.0, description="WebSocket opening handshake timeout")
    window_s: float = Field(default=10.0, description="Observation window per endpoint")


def get_probe_settings() -> ProbeSettings:
    return ProbeSettings()
