"""Domain enumerations for the Live Relay."""
from __future__ import annotations

from enum import Enum


class Sport(str, Enum):
    CS2 = "cs2"


class MatchStatus(str, Enum):
    LIVE = "LIVE"


class WireMessageType(str, Enum):
    HEARTBEAT = "heartbeat"
    LIVE_MATCH = "live_match"


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"

    @property
    def is_active(self) -> bool:
        """True while connect() must be a no-op."""
        return self in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED)


class ReloadReason(str, Enum):
    STALE_DATA = "stale-data"
    AUTO_TIMER = "auto-timer"


class RelayEventType(str, Enum):
    SCAN_TICK = "scan_tick"
    HEARTBEAT_TICK = "heartbeat_tick"
    AUTO_RELOAD = "auto_reload"
    OPENED = "opened"
    CLOSED = "closed"
    SHUTDOWN = "shutdown"
