"""
Scan scheduler for the Live Relay.

Owns the scan and heartbeat tickers, the auto-reload timer and the current
transport. Every timer firing and transport notification is posted to one
queue and handled by a single consuming loop, so scans never overlap and a
reload can swap the connection context without racing a tick.

Each page load starts a new connection epoch. Events carry the epoch they
were produced in; anything from an older epoch is discarded.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Optional

from shared.config import Settings, get_settings
from shared.models.domain import MatchSnapshot, ReloadHandoff, WireMessage
from shared.models.enums import ReloadReason, RelayEventType
from shared.utils.logging import get_logger
from shared.utils.metrics import (
    EXTRACTION_MISSES,
    LIVE_MATCHES,
    PAGE_RELOADS,
    SCAN_DURATION,
    SCANS,
    track_latency,
)

from relay.events import RelayEvent
from relay.freshness import FreshnessMonitor, ReloadHandoffStore
from relay.messages import build_heartbeat, build_live_match
from relay.transport import ConnectFactory, TransportClient
from scraper.matches import scrape_with_misses
from scraper.text import slugify
from scraper.view import DocumentView, DocumentViewError

logger = get_logger(__name__)


class ScanScheduler:
    """
    Drives scan -> freshness check -> send, and the reload cycle.

    Args:
        view: Document view to scan and reload.
        monitor: Freshness monitor deciding when to reload.
        handoff: Store carrying the sent counter across a reload.
        settings: Relay settings.
        connect_factory: Passed to every TransportClient (tests inject fake sockets).
        clock: Monotonic clock used for freshness timing.
    """

    def __init__(
        self,
        view: DocumentView,
        monitor: FreshnessMonitor,
        handoff: ReloadHandoffStore,
        settings: Settings | None = None,
        connect_factory: Optional[ConnectFactory] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._view = view
        self._monitor = monitor
        self._handoff = handoff
        self._settings = settings or get_settings()
        self._connect_factory = connect_factory
        self._clock = clock
        self.events: asyncio.Queue[RelayEvent] = asyncio.Queue()
        self.epoch = 0
        self.transport: Optional[TransportClient] = None
        self.last_matches_found = 0
        self.last_match_keys: list[str] = []
        self._tickers: list[asyncio.Task[None]] = []
        self._reload_timer: Optional[asyncio.Task[None]] = None

    @property
    def sent_count(self) -> int:
        return self.transport.sent_count if self.transport is not None else 0

    @property
    def _connected(self) -> bool:
        return self.transport is not None and self.transport.is_open

    @property
    def scanning(self) -> bool:
        return any(not t.done() for t in self._tickers)

    # ── Connection context ──────────────────────────────────────────────

    async def start(self, handoff: Optional[ReloadHandoff] = None) -> None:
        """Begin the first epoch, restoring the sent counter when a hand-off is given."""
        self._begin_epoch(handoff.sent_count if handoff else 0)

    async def stop(self) -> None:
        """Tear down timers and close the transport for good."""
        self._stop_tickers()
        self._cancel_reload_timer()
        if self.transport is not None:
            await self.transport.close()

    def _begin_epoch(self, sent_count: int) -> None:
        self.epoch += 1
        self._monitor.reset(self._clock())
        self._arm_reload_timer()
        self.transport = TransportClient(
            url=self._settings.feed_hub_url,
            events=self.events,
            heartbeat_factory=self._heartbeat,
            epoch=self.epoch,
            reconnect_delay_s=self._settings.reconnect_delay_s,
            sent_count=sent_count,
            connect_factory=self._connect_factory,
        )
        logger.info("relay_epoch_started", epoch=self.epoch, sent_count=sent_count)
        self.transport.connect()

    # ── Timers ──────────────────────────────────────────────────────────

    def _start_tickers(self) -> None:
        self._stop_tickers()
        epoch = self.epoch
        self._tickers = [
            asyncio.create_task(
                self._tick_every(self._settings.scan_interval_s, RelayEventType.SCAN_TICK, epoch)
            ),
            asyncio.create_task(
                self._tick_every(self._settings.heartbeat_interval_s, RelayEventType.HEARTBEAT_TICK, epoch)
            ),
        ]

    def _stop_tickers(self) -> None:
        for task in self._tickers:
            task.cancel()
        self._tickers = []

    def _arm_reload_timer(self) -> None:
        self._cancel_reload_timer()
        delay = self._monitor.auto_reload_in(self._clock())
        self._reload_timer = asyncio.create_task(self._fire_after(delay, RelayEventType.AUTO_RELOAD, self.epoch))

    def _cancel_reload_timer(self) -> None:
        if self._reload_timer is not None:
            self._reload_timer.cancel()
            self._reload_timer = None

    async def _tick_every(self, period_s: float, event_type: RelayEventType, epoch: int) -> None:
        while True:
            await asyncio.sleep(period_s)
            self.events.put_nowait(RelayEvent(type=event_type, epoch=epoch))

    async def _fire_after(self, delay_s: float, event_type: RelayEventType, epoch: int) -> None:
        await asyncio.sleep(delay_s)
        self.events.put_nowait(RelayEvent(type=event_type, epoch=epoch))

    # ── Event loop ──────────────────────────────────────────────────────

    async def run(self) -> None:
        """Consume events until SHUTDOWN."""
        while True:
            event = await self.events.get()
            if event.type == RelayEventType.SHUTDOWN:
                logger.info("relay_shutdown_requested")
                return
            try:
                await self.handle(event)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("relay_event_error", event_type=event.type.value, error=str(exc), exc_info=True)

    def request_shutdown(self) -> None:
        self.events.put_nowait(RelayEvent(type=RelayEventType.SHUTDOWN, epoch=self.epoch))

    async def handle(self, event: RelayEvent) -> None:
        if event.epoch != self.epoch:
            logger.debug("stale_event_discarded", event_type=event.type.value, epoch=event.epoch, current=self.epoch)
            return

        # Ticks queued before a CLOSED was handled must not scan a dead connection.
        if event.type in (RelayEventType.SCAN_TICK, RelayEventType.HEARTBEAT_TICK) and not self._connected:
            logger.debug("tick_skipped_disconnected", event_type=event.type.value)
            return

        if event.type == RelayEventType.OPENED:
            self._start_tickers()
            await self.scan_tick()
        elif event.type == RelayEventType.CLOSED:
            self._stop_tickers()
        elif event.type == RelayEventType.SCAN_TICK:
            await self.scan_tick()
        elif event.type == RelayEventType.HEARTBEAT_TICK:
            await self.heartbeat_tick()
        elif event.type == RelayEventType.AUTO_RELOAD:
            await self.reload(ReloadReason.AUTO_TIMER)

    # ── Handlers ────────────────────────────────────────────────────────

    async def scan(self) -> list[MatchSnapshot]:
        """Read the document once and extract the current live matches."""
        with track_latency(SCAN_DURATION):
            document = await self._view.read()
            matches, misses = scrape_with_misses(document, self._settings.source_base_url)
        if misses:
            EXTRACTION_MISSES.inc(misses)
        self.last_matches_found = len(matches)
        self.last_match_keys = [f"{slugify(m.team1)}-vs-{slugify(m.team2)}" for m in matches]
        LIVE_MATCHES.set(len(matches))
        return matches

    async def scan_tick(self) -> None:
        try:
            matches = await self.scan()
        except DocumentViewError as exc:
            SCANS.labels(outcome="read_error").inc()
            logger.error("document_read_failed", error=str(exc))
            return

        decision = self._monitor.observe(matches, self._clock())
        if decision.should_reload and decision.reason is not None:
            SCANS.labels(outcome="stale").inc()
            await self.reload(decision.reason)
            return

        SCANS.labels(outcome="ok" if matches else "empty").inc()
        if not matches:
            return

        logger.info(
            "live_matches_found",
            count=len(matches),
            matches=[f"{m.team1} {m.detailed_score} {m.team2}" for m in matches],
        )
        transport = self.transport
        if transport is None:
            return
        for snapshot in matches:
            await transport.send(build_live_match(self._settings.source_name, snapshot))

    async def heartbeat_tick(self) -> None:
        if self.transport is not None:
            await self.transport.send(self._heartbeat())

    async def reload(self, reason: ReloadReason) -> None:
        """Save the counter, reload the page, restore the counter into a new epoch."""
        sent_count = self.sent_count
        PAGE_RELOADS.labels(reason=reason.value).inc()
        logger.info("page_reload_started", reason=reason.value, sent_count=sent_count, epoch=self.epoch)

        await self._handoff.save(
            ReloadHandoff(reason=reason, timestamp=int(time.time() * 1000), sent_count=sent_count)
        )
        await self.stop()

        try:
            await self._view.reload()
        except DocumentViewError as exc:
            logger.error("page_reload_failed", reason=reason.value, error=str(exc))

        restored = await self._handoff.consume()
        self._begin_epoch(restored.sent_count if restored else 0)

    def _heartbeat(self) -> WireMessage:
        return build_heartbeat(self._settings.source_name, self._view.path, self.last_matches_found)

    def status(self) -> dict[str, Any]:
        """Snapshot for the status endpoint."""
        transport = self.transport
        return {
            "source": self._settings.source_name,
            "page": self._view.path,
            "epoch": self.epoch,
            "connection": transport.status.value if transport is not None else "disconnected",
            "sent_count": self.sent_count,
            "matches_found": self.last_matches_found,
            "live": list(self.last_match_keys),
            "next_reload_in_s": round(self._monitor.auto_reload_in(self._clock()), 1),
        }
