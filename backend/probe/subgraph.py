"""
Subgraph client: finds live games and their active betting conditions.
Queries the data-index over GraphQL with httpx.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from shared.utils.logging import get_logger

from probe.config import ProbeSettings

logger = get_logger(__name__)


class SubgraphError(Exception):
    """The data-index could not be queried or answered with errors."""


@dataclass(frozen=True)
class LiveGame:
    id: str
    title: str
    state: str
    teams: list[str] = field(default_factory=list)
    condition_ids: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return " vs ".join(self.teams) or self.title or self.id


def build_games_query(
    now_s: int,
    sport_slug: str = "",
    games_limit: int = 5,
    conditions_limit: int = 10,
    lookback_s: int = 86400,
) -> str:
    """GraphQL query for live games started within the lookback window, optionally for one sport."""
    filters = ['state_in: ["Live"]']
    if sport_slug:
        filters.append(f'sport_: {{ slug: "{sport_slug}" }}')
    filters.append(f'startsAt_gte: "{now_s - lookback_s}"')
    return (
        "{\n"
        f"  games(first: {games_limit}, where: {{ {', '.join(filters)} }}) {{\n"
        "    id title state\n"
        "    participants(orderBy: sortOrder) { name }\n"
        f'    conditions(first: {conditions_limit}, where: {{ state_in: ["Active"] }}) {{\n'
        "      id state\n"
        "      outcomes(orderBy: sortOrder) { id currentOdds }\n"
        "    }\n"
        "  }\n"
        "}"
    )


def games_from_response(data: Any) -> list[LiveGame]:
    """Parse a GraphQL response body; missing or malformed parts yield no games."""
    if not isinstance(data, dict):
        return []
    raw_games = (data.get("data") or {}).get("games") or []
    games: list[LiveGame] = []
    for g in raw_games:
        if not isinstance(g, dict) or not g.get("id"):
            continue
        teams = [p.get("name", "") for p in g.get("participants") or [] if isinstance(p, dict)]
        conditions = [str(c["id"]) for c in g.get("conditions") or [] if isinstance(c, dict) and c.get("id")]
        games.append(
            LiveGame(
                id=str(g["id"]),
                title=g.get("title") or "",
                state=g.get("state") or "",
                teams=[t for t in teams if t],
                condition_ids=conditions,
            )
        )
    return games


def condition_ids(games: list[LiveGame]) -> list[str]:
    return [cid for g in games for cid in g.condition_ids]


class SubgraphClient:
    """
    Fetches live condition ids.

    Args:
        settings: Probe settings (subgraph URL, limits).
        client: Shared httpx client; tests inject one with a MockTransport.
    """

    def __init__(self, settings: ProbeSettings, client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._client = client

    async def fetch_games(self, sport_slug: str = "", now_s: Optional[int] = None) -> list[LiveGame]:
        query = build_games_query(
            now_s if now_s is not None else int(time.time()),
            sport_slug=sport_slug,
            games_limit=self._settings.games_limit,
            conditions_limit=self._settings.conditions_limit,
            lookback_s=self._settings.lookback_s,
        )
        try:
            resp = await self._client.post(self._settings.subgraph_url, json={"query": query})
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise SubgraphError(f"subgraph request failed: {exc}") from exc
        except ValueError as exc:
            raise SubgraphError(f"subgraph returned invalid JSON: {exc}") from exc

        if isinstance(data, dict) and data.get("errors"):
            raise SubgraphError(f"subgraph errors: {data['errors']}")

        games = games_from_response(data)
        logger.info("subgraph_games_found", sport=sport_slug or "all", count=len(games))
        for g in games:
            logger.info("subgraph_game", game=g.label, id=g.id, state=g.state, conditions=len(g.condition_ids))
        return games

    async def fetch_live_condition_ids(self, now_s: Optional[int] = None) -> list[str]:
        """Condition ids for the configured sport; all sports when that sport has none."""
        games = await self.fetch_games(self._settings.sport_slug, now_s)
        ids = condition_ids(games)
        if not ids and self._settings.sport_slug:
            logger.info("subgraph_sport_empty_fallback", sport=self._settings.sport_slug)
            ids = condition_ids(await self.fetch_games("", now_s))
        return ids
