"""
Feed hub transport client.

State machine:
  DISCONNECTED -[connect]-> CONNECTING -[open]-> CONNECTED -[close/error]-> DISCONNECTED
On every close or failed open exactly one reconnect is scheduled after a fixed
delay. Retries are unbounded and never back off; the relay is meant to run
unattended for days.

Messages are never buffered: send() while not connected returns False and the
next scan tick regenerates current state.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import WebSocketException

from shared.models.domain import WireMessage
from shared.models.enums import ConnectionStatus, RelayEventType
from shared.utils.logging import get_logger
from shared.utils.metrics import (
    HUB_ACKS,
    MESSAGES_DROPPED,
    MESSAGES_SENT,
    TRANSPORT_CONNECTED,
    TRANSPORT_RECONNECTS,
)

from relay.events import RelayEvent

logger = get_logger(__name__)

ConnectFactory = Callable[[str], Awaitable[Any]]

OPEN_TIMEOUT_S = 10.0


async def _default_connect(url: str) -> Any:
    return await ws_connect(url, open_timeout=OPEN_TIMEOUT_S)


@dataclass
class ConnectionState:
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    sent_count: int = 0
    epoch: int = 0

    @property
    def is_open(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED


class TransportClient:
    """
    WebSocket client for one connection epoch.

    Args:
        url: Feed hub endpoint.
        events: Queue of the consuming loop; receives OPENED and CLOSED.
        heartbeat_factory: Builds the heartbeat sent as soon as the socket opens.
        epoch: Connection-context epoch stamped on every posted event.
        reconnect_delay_s: Fixed delay before a reconnect attempt.
        sent_count: Counter value carried over from a previous epoch.
        connect_factory: Coroutine function opening the socket (tests inject fakes).
    """

    def __init__(
        self,
        url: str,
        events: asyncio.Queue[RelayEvent],
        heartbeat_factory: Callable[[], WireMessage],
        epoch: int = 0,
        reconnect_delay_s: float = 3.0,
        sent_count: int = 0,
        connect_factory: Optional[ConnectFactory] = None,
    ) -> None:
        self._url = url
        self._events = events
        self._heartbeat_factory = heartbeat_factory
        self._reconnect_delay_s = reconnect_delay_s
        self._connect = connect_factory or _default_connect
        self.state = ConnectionState(sent_count=sent_count, epoch=epoch)
        self._ws: Any = None
        self._conn_task: Optional[asyncio.Task[None]] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None
        self._closing = False

    @property
    def status(self) -> ConnectionStatus:
        return self.state.status

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    @property
    def sent_count(self) -> int:
        return self.state.sent_count

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # ── Lifecycle ───────────────────────────────────────────────────────

    def connect(self) -> None:
        """Start connecting. No-op while connecting, connected or closed for good."""
        if self._closing or self.state.status.is_active:
            return
        self.state.status = ConnectionStatus.CONNECTING
        logger.info("transport_connecting", url=self._url, epoch=self.state.epoch)
        self._conn_task = asyncio.create_task(self._run_connection())

    async def close(self) -> None:
        """Close for good: no reconnect is scheduled afterwards."""
        self._closing = True
        self.state.status = ConnectionStatus.CLOSING
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

        ws = self._ws
        if ws is not None:
            try:
                await ws.close()
            except (WebSocketException, OSError) as exc:
                logger.debug("transport_close_error", error=str(exc))

        if self._conn_task is not None and not self._conn_task.done():
            self._conn_task.cancel()
            try:
                await self._conn_task
            except asyncio.CancelledError:
                pass

        self._ws = None
        self.state.status = ConnectionStatus.DISCONNECTED
        TRANSPORT_CONNECTED.set(0)
        logger.info("transport_shutdown", epoch=self.state.epoch, sent=self.sent_count)

    async def _run_connection(self) -> None:
        try:
            ws = await self._connect(self._url)
        except (WebSocketException, OSError, asyncio.TimeoutError) as exc:
            logger.warning("transport_connect_failed", url=self._url, error=str(exc))
            self._on_closed(code=None)
            return

        self._ws = ws
        self.state.status = ConnectionStatus.CONNECTED
        TRANSPORT_CONNECTED.set(1)
        logger.info("transport_connected", url=self._url, epoch=self.state.epoch)

        await self.send(self._heartbeat_factory())
        self._post(RelayEventType.OPENED)

        try:
            async for raw in ws:
                self._on_message(raw)
        except WebSocketException as exc:
            logger.warning("transport_receive_error", error=str(exc))
        except OSError as exc:
            logger.warning("transport_socket_error", error=str(exc))

        self._on_closed(code=getattr(ws, "close_code", None))

    def _on_closed(self, code: Optional[int]) -> None:
        self._ws = None
        TRANSPORT_CONNECTED.set(0)
        if self._closing:
            return
        self.state.status = ConnectionStatus.DISCONNECTED
        logger.warning("transport_disconnected", code=code, epoch=self.state.epoch)
        self._post(RelayEventType.CLOSED, code=code)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.reconnect_pending:
            return
        TRANSPORT_RECONNECTS.inc()
        logger.info("transport_reconnect_scheduled", delay_s=self._reconnect_delay_s)
        self._reconnect_task = asyncio.create_task(self._reconnect_after(self._reconnect_delay_s))

    async def _reconnect_after(self, delay_s: float) -> None:
        await asyncio.sleep(delay_s)
        self._reconnect_task = None
        self.connect()

    # ── Messaging ───────────────────────────────────────────────────────

    async def send(self, message: WireMessage) -> bool:
        """Send one message. False (and nothing counted) when not connected."""
        ws = self._ws
        if ws is None or not self.state.is_open:
            MESSAGES_DROPPED.labels(msg_type=message.type.value).inc()
            return False
        try:
            await ws.send(message.to_json())
        except (WebSocketException, OSError) as exc:
            MESSAGES_DROPPED.labels(msg_type=message.type.value).inc()
            logger.debug("transport_send_failed", error=str(exc))
            return False
        self.state.sent_count += 1
        MESSAGES_SENT.labels(msg_type=message.type.value).inc()
        return True

    def _on_message(self, raw: Any) -> None:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("hub_message", data=str(raw)[:200])
            return
        if isinstance(data, dict) and "ok" in data:
            ok = bool(data.get("ok"))
            HUB_ACKS.labels(ok=str(ok).lower()).inc()
            if not ok:
                logger.warning("hub_rejected_message", note=data.get("note"))
                return
        logger.debug("hub_message", data=data)

    def _post(self, event_type: RelayEventType, **detail: Any) -> None:
        self._events.put_nowait(RelayEvent(type=event_type, epoch=self.state.epoch, detail=detail))
