"""
Pydantic v2 domain models shared across the Live Relay.
These are the canonical wire/internal representations.
"""
from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shared.models.enums import MatchStatus, ReloadReason, Sport, WireMessageType


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ── Scan output ─────────────────────────────────────────────────────────
class MatchSnapshot(DomainModel):
    """One live match observed in a single scan. Recreated every tick."""
    match_id: str
    team1: str
    team2: str
    round_score1: int = Field(default=0, ge=0)
    round_score2: int = Field(default=0, ge=0)
    map_score1: int = Field(default=0, ge=0)
    map_score2: int = Field(default=0, ge=0)
    status: MatchStatus = MatchStatus.LIVE
    source_url: str = ""

    @property
    def fingerprint(self) -> str:
        return (
            f"{self.team1}|{self.team2}"
            f"|{self.round_score1}-{self.round_score2}"
            f"|{self.map_score1}-{self.map_score2}"
        )

    @property
    def detailed_score(self) -> str:
        return (
            f"R:{self.round_score1}-{self.round_score2} "
            f"M:{self.map_score1}-{self.map_score2}"
        )


# ── Wire messages ───────────────────────────────────────────────────────
class HeartbeatPayload(DomainModel):
    page: str
    matches_found: int = 0


class LiveMatchPayload(DomainModel):
    sport: Sport = Sport.CS2
    team1: str
    team2: str
    score1: int
    score2: int
    detailed_score: str
    status: MatchStatus = MatchStatus.LIVE
    url: str


class WireMessage(DomainModel):
    """Envelope emitted to the feed hub."""
    v: int = 1
    type: WireMessageType
    source: str
    ts: str
    payload: Union[HeartbeatPayload, LiveMatchPayload]

    def to_json(self) -> str:
        return self.model_dump_json()


# ── Freshness decisions ─────────────────────────────────────────────────
class ReloadDecision(DomainModel):
    should_reload: bool = False
    reason: Optional[ReloadReason] = None
    match_point: list[MatchSnapshot] = Field(default_factory=list)


class ReloadHandoff(DomainModel):
    """Counter hand-off written before a reload and consumed once after it."""
    reason: ReloadReason
    timestamp: int = Field(description="Epoch milliseconds of the reload decision")
    sent_count: int = Field(default=0, ge=0)

    def to_fields(self) -> dict[str, str]:
        return {
            "reason": self.reason.value,
            "timestamp": str(self.timestamp),
            "sent_count": str(self.sent_count),
        }
