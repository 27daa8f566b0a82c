"""
Stale/freshness monitor and the reload counter hand-off.

The source page stops updating silently from time to time. Successive scan
fingerprints are compared; a fingerprint held unchanged past the stale
threshold requests a reload, and a fixed auto-reload deadline bounds the
staleness window even while scores keep moving.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from shared.config import Settings, get_settings
from shared.models.domain import MatchSnapshot, ReloadDecision, ReloadHandoff
from shared.models.enums import ReloadReason
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

logger = get_logger(__name__)


def fingerprint(snapshots: Iterable[MatchSnapshot]) -> str:
    """Order-independent digest of a scan: sorted team|team|rounds|maps entries joined by ';'."""
    return ";".join(sorted(s.fingerprint for s in snapshots))


@dataclass
class FreshnessState:
    last_fingerprint: str = ""
    stale_since: Optional[float] = None
    next_scheduled_reload_at: float = 0.0


class FreshnessMonitor:
    """
    Decides when the document view must be reloaded.

    Args:
        stale_threshold_s: How long an identical non-empty fingerprint may persist.
        match_point_round: Round score at which a map is about to end; starts the stale clock.
        auto_reload_s: Fixed reload period, independent of data changes.
    """

    def __init__(
        self,
        stale_threshold_s: float,
        match_point_round: int,
        auto_reload_s: float,
    ) -> None:
        self._stale_threshold_s = stale_threshold_s
        self._match_point_round = match_point_round
        self._auto_reload_s = auto_reload_s
        self.state = FreshnessState()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "FreshnessMonitor":
        settings = settings or get_settings()
        return cls(
            stale_threshold_s=settings.stale_threshold_s,
            match_point_round=settings.match_point_round,
            auto_reload_s=settings.auto_reload_s,
        )

    def reset(self, now: float) -> None:
        """Fresh state for a newly (re)loaded page."""
        self.state = FreshnessState()
        self.schedule_auto_reload(now)

    def schedule_auto_reload(self, now: float) -> float:
        self.state.next_scheduled_reload_at = now + self._auto_reload_s
        return self.state.next_scheduled_reload_at

    def auto_reload_in(self, now: float) -> float:
        """Seconds until the auto-reload deadline (0 when already due)."""
        return max(0.0, self.state.next_scheduled_reload_at - now)

    def observe(self, snapshots: list[MatchSnapshot], now: float) -> ReloadDecision:
        state = self.state
        current = fingerprint(snapshots)

        if current and current == state.last_fingerprint:
            if state.stale_since is None:
                state.stale_since = now
            elif now - state.stale_since > self._stale_threshold_s:
                logger.warning(
                    "scan_data_stale",
                    stale_for_s=round(now - state.stale_since, 1),
                    matches=len(snapshots),
                )
                self.state = FreshnessState(next_scheduled_reload_at=state.next_scheduled_reload_at)
                return ReloadDecision(should_reload=True, reason=ReloadReason.STALE_DATA)
        else:
            state.stale_since = None
            state.last_fingerprint = current

        # A map at match point usually ends with its card vanishing; start the
        # stale clock so a frozen final score does not linger.
        match_point = [
            s for s in snapshots
            if s.round_score1 >= self._match_point_round or s.round_score2 >= self._match_point_round
        ]
        for snap in match_point:
            if state.stale_since is None:
                state.stale_since = now
            logger.debug(
                "match_point_reached",
                match_id=snap.match_id,
                team1=snap.team1,
                team2=snap.team2,
                rounds=f"{snap.round_score1}-{snap.round_score2}",
            )

        return ReloadDecision(match_point=match_point)


class ReloadHandoffStore:
    """
    One-shot hand-off of the sent counter across a reload.

    Written right before the reload, consumed (read and deleted) right after.
    The store is best effort: when Redis is unavailable the counter restarts at 0.
    """

    def __init__(self, redis: RedisManager, source: str, ttl_s: int = 60) -> None:
        self._redis = redis
        self._key = RedisManager.handoff_key(source)
        self._ttl_s = ttl_s

    async def save(self, handoff: ReloadHandoff) -> bool:
        try:
            await self._redis.set_record(self._key, handoff.to_fields(), self._ttl_s)
        except (RedisError, RuntimeError, OSError) as exc:
            logger.warning("reload_handoff_save_failed", key=self._key, error=str(exc))
            return False
        logger.info(
            "reload_handoff_saved",
            reason=handoff.reason.value,
            sent_count=handoff.sent_count,
        )
        return True

    async def consume(self) -> Optional[ReloadHandoff]:
        try:
            fields = await self._redis.pop_record(self._key)
        except (RedisError, RuntimeError, OSError) as exc:
            logger.warning("reload_handoff_consume_failed", key=self._key, error=str(exc))
            return None
        if not fields.get("reason"):
            return None
        try:
            handoff = ReloadHandoff.model_validate(fields)
        except ValidationError as exc:
            logger.warning("reload_handoff_invalid", fields=fields, error=str(exc))
            return None
        logger.info(
            "reload_handoff_restored",
            reason=handoff.reason.value,
            sent_count=handoff.sent_count,
        )
        return handoff
