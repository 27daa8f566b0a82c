"""
Unit tests for wire message envelopes and settings derivation.

Run: pytest backend/tests/test_messages.py -v
"""
from __future__ import annotations

import json
import re
from datetime import datetime, timezone

from shared.config import Settings
from shared.models.domain import MatchSnapshot

from relay.messages import build_heartbeat, build_live_match, utc_timestamp

NOW = datetime(2026, 3, 1, 12, 30, 5, 123456, tzinfo=timezone.utc)


def test_utc_timestamp_format() -> None:
    assert utc_timestamp(NOW) == "2026-03-01T12:30:05.123Z"
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())


def test_heartbeat_envelope() -> None:
    body = json.loads(build_heartbeat("dust2", "/matches", 3, now=NOW).to_json())
    assert body == {
        "v": 1,
        "type": "heartbeat",
        "source": "dust2",
        "ts": "2026-03-01T12:30:05.123Z",
        "payload": {"page": "/matches", "matches_found": 3},
    }


def test_live_match_envelope_reports_map_score() -> None:
    snap = MatchSnapshot(
        match_id="42",
        team1="Red Canids",
        team2="Sharks",
        round_score1=6,
        round_score2=10,
        map_score1=1,
        map_score2=0,
        source_url="https://www.dust2.us/matches/42/red-canids-vs-sharks",
    )
    body = json.loads(build_live_match("dust2", snap, now=NOW).to_json())
    assert body["type"] == "live_match"
    assert body["payload"] == {
        "sport": "cs2",
        "team1": "Red Canids",
        "team2": "Sharks",
        "score1": 1,
        "score2": 0,
        "detailed_score": "R:6-10 M:1-0",
        "status": "LIVE",
        "url": "https://www.dust2.us/matches/42/red-canids-vs-sharks",
    }


def test_source_base_url_derived_from_source_url() -> None:
    s = Settings(source_url="https://www.dust2.us/matches?filter=all", source_base_url="")
    assert s.source_base_url == "https://www.dust2.us"


def test_explicit_source_base_url_wins() -> None:
    s = Settings(source_url="https://www.dust2.us/matches", source_base_url="https://mirror.test")
    assert s.source_base_url == "https://mirror.test"
