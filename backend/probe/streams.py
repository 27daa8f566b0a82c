"""
Stream endpoint probing.
Connects to one candidate WebSocket URL, subscribes to condition ids and
counts what arrives during a fixed observation window.
"""
from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import WebSocketException

from shared.utils.logging import get_logger

from probe.config import ProbeSettings

logger = get_logger(__name__)

ConnectFactory = Callable[[str, float], Awaitable[Any]]

MAX_LOGGED_CHARS = 1500


async def _default_connect(url: str, open_timeout: float) -> Any:
    return await ws_connect(url, open_timeout=open_timeout)


@dataclass
class EndpointResult:
    url: str
    connected: bool = False
    messages: int = 0
    first_message_ms: Optional[int] = None
    close_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def verdict(self) -> str:
        if not self.connected:
            return "FAILED"
        return "WORKS" if self.messages > 0 else "CONNECTED, 0 msgs"


def subscribe_message(ids: list[str], limit: int = 20) -> Optional[str]:
    """Subscribe frame for at most `limit` ids; None when there is nothing to subscribe to."""
    if not ids:
        return None
    return json.dumps({"action": "subscribe", "conditionIds": ids[:limit]})


async def _collect(ws: Any, result: EndpointResult, started: float) -> None:
    async for raw in ws:
        result.messages += 1
        if result.first_message_ms is None:
            result.first_message_ms = int((time.monotonic() - started) * 1000)
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        logger.info("stream_message", url=result.url, n=result.messages, data=raw[:MAX_LOGGED_CHARS])


async def probe_endpoint(
    url: str,
    ids: list[str],
    settings: ProbeSettings,
    connect_factory: Optional[ConnectFactory] = None,
) -> EndpointResult:
    """Never raises for network failures; they end up in the result's error."""
    connect = connect_factory or _default_connect
    result = EndpointResult(url=url)
    started = time.monotonic()

    try:
        ws = await connect(url, settings.open_timeout_s)
    except (WebSocketException, OSError, asyncio.TimeoutError) as exc:
        result.error = str(exc) or type(exc).__name__
        logger.warning("stream_connect_failed", url=url, error=result.error)
        return result

    result.connected = True
    logger.info("stream_connected", url=url)
    try:
        frame = subscribe_message(ids, settings.max_subscribe_ids)
        if frame is None:
            logger.warning("stream_no_conditions", url=url)
        else:
            await ws.send(frame)
            logger.info("stream_subscribed", url=url, ids=min(len(ids), settings.max_subscribe_ids))
        await asyncio.wait_for(_collect(ws, result, started), timeout=settings.window_s)
    except asyncio.TimeoutError:
        logger.info("stream_window_elapsed", url=url, window_s=settings.window_s)
    except WebSocketException as exc:
        result.error = str(exc)
        logger.warning("stream_receive_error", url=url, error=result.error)
    finally:
        try:
            await ws.close()
        except (WebSocketException, OSError) as exc:
            logger.debug("stream_close_error", url=url, error=str(exc))
    result.close_code = getattr(ws, "close_code", None)
    return result
