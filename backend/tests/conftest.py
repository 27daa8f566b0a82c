"""
Shared fixtures: relay settings tuned for tests and an in-process fake feed hub.
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from shared.config import Settings

LIVE_HTML = """
<html><body>
<div class="ticker">
  <a href="/matches/44/mouz-vs-faze"><span>MOUZ</span> <span>12 (0)</span> <span>FaZe</span> <span>9 (0)</span></a>
</div>
<main>
  <section id="live">
    <div class="title"><h2>Live</h2></div>
    <div class="cards">
      <a href="/matches/42/red-canids-vs-sharks"><span>RED Canids</span> <span>6 (1)</span> <span>Sharks</span> <span>10 (1)</span></a>
      <a href="/matches/43/team-liquid-vs-furia"><span>Team Liquid</span><span>3</span><span>FURIA</span><span>5</span></a>
      <a href="/matches/42/red-canids-vs-sharks?tab=stats"><span>RED Canids</span> <span>7 (1)</span> <span>Sharks</span> <span>10 (1)</span></a>
    </div>
  </section>
  <section id="upcoming">
    <h2>Upcoming</h2>
    <a href="/matches/50/navi-vs-vitality"><span>NAVI</span><span>18:00</span><span>Vitality</span></a>
  </section>
</main>
</body></html>
"""


class FakeSocket:
    """Stands in for a websockets client connection."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: list[str] = []
        self.inbox: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self.close_code: Optional[int] = None
        self.closed = False

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.close_code = 1000
            self.inbox.put_nowait(None)

    def push(self, data: str) -> None:
        self.inbox.put_nowait(data)

    def drop(self, code: int = 1006) -> None:
        """Simulate the hub closing the connection."""
        self.closed = True
        self.close_code = code
        self.inbox.put_nowait(None)

    def __aiter__(self) -> "FakeSocket":
        return self

    async def __anext__(self) -> str:
        item = await self.inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeHub:
    """Connect factory recording every socket it hands out; can refuse connections."""

    def __init__(self) -> None:
        self.sockets: list[FakeSocket] = []
        self.refuse = 0

    async def connect(self, url: str, *args: Any) -> FakeSocket:
        if self.refuse > 0:
            self.refuse -= 1
            raise OSError("connection refused")
        sock = FakeSocket(url)
        self.sockets.append(sock)
        return sock


@pytest.fixture
def hub() -> FakeHub:
    return FakeHub()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        source_name="dust2",
        source_url="https://www.dust2.us/matches?filter=all",
        feed_hub_url="ws://hub.test/feed",
        reconnect_delay_s=0.01,
        scan_interval_s=60.0,
        heartbeat_interval_s=60.0,
        auto_reload_s=3600.0,
        stale_threshold_s=90.0,
        startup_delay_s=0.0,
        metrics_enabled=False,
    )


@pytest.fixture
def live_html() -> str:
    return LIVE_HTML
