"""Wire message builders for the feed hub."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from shared.models.domain import HeartbeatPayload, LiveMatchPayload, MatchSnapshot, WireMessage
from shared.models.enums import Sport, WireMessageType


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_heartbeat(
    source: str,
    page: str,
    matches_found: int,
    now: Optional[datetime] = None,
) -> WireMessage:
    return WireMessage(
        type=WireMessageType.HEARTBEAT,
        source=source,
        ts=utc_timestamp(now),
        payload=HeartbeatPayload(page=page, matches_found=matches_found),
    )


def build_live_match(
    source: str,
    snapshot: MatchSnapshot,
    now: Optional[datetime] = None,
) -> WireMessage:
    """The map (series) score is the primary score; round detail travels in detailed_score."""
    return WireMessage(
        type=WireMessageType.LIVE_MATCH,
        source=source,
        ts=utc_timestamp(now),
        payload=LiveMatchPayload(
            sport=Sport.CS2,
            team1=snapshot.team1,
            team2=snapshot.team2,
            score1=snapshot.map_score1,
            score2=snapshot.map_score2,
            detailed_score=snapshot.detailed_score,
            status=snapshot.status,
            url=snapshot.source_url,
        ),
    )
