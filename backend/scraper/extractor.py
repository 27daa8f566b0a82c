"""
Score extraction for a single match card.

Team names come from the link slug (/matches/{id}/{team1}-vs-{team2}); scores
come from the card text, where a live score reads "N (M)": N rounds on the
current map, M maps won in the series.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

MATCH_HREF_PATTERN = re.compile(r"/matches/(\d+)/([\w-]+)", re.ASCII)
TEAM_SEPARATOR = "-vs-"
# [0-9] keeps digits ASCII while \s still matches non-breaking spaces.
SCORE_PAIR_PATTERN = re.compile(r"([0-9]{1,2})\s*\(([0-9]{1,2})\)")
STANDALONE_NUMERAL_PATTERN = re.compile(r"[0-9]{1,2}")
MAX_PLAIN_SCORE = 50
MIN_TEAM_NAME_LENGTH = 2


@dataclass(frozen=True)
class CardScores:
    round1: int = 0
    round2: int = 0
    map1: int = 0
    map2: int = 0


@dataclass(frozen=True)
class CardExtraction:
    match_id: str
    team1: str
    team2: str
    scores: CardScores = field(default_factory=CardScores)


def parse_match_href(href: str) -> Optional[tuple[str, str]]:
    """(match_id, slug) from a match link, or None when the link is not a match page."""
    m = MATCH_HREF_PATTERN.search(href or "")
    if not m:
        return None
    return m.group(1), m.group(2)


def _title_slug(fragment: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in fragment.split("-") if w)


def teams_from_slug(slug: str) -> Optional[tuple[str, str]]:
    """("Red Canids", "Sharks") from "red-canids-vs-sharks"; None when the slug is not a pairing."""
    parts = slug.split(TEAM_SEPARATOR)
    if len(parts) != 2:
        return None
    team1, team2 = _title_slug(parts[0]), _title_slug(parts[1])
    if len(team1) < MIN_TEAM_NAME_LENGTH or len(team2) < MIN_TEAM_NAME_LENGTH:
        return None
    return team1, team2


def _plain_numerals(text_runs: Iterable[str]) -> list[int]:
    found: list[int] = []
    for run in text_runs:
        run = run.strip()
        if not STANDALONE_NUMERAL_PATTERN.fullmatch(run):
            continue
        value = int(run)
        if 0 <= value <= MAX_PLAIN_SCORE:
            found.append(value)
    return found


def extract_scores(text: str, text_runs: Iterable[str] = ()) -> CardScores:
    """
    Round and map scores from card text.

    Two or more "N (M)" pairs give both sides; a single pair gives team 1
    only. With no pair at all, the first two isolated numerals (0..50) become
    the round scores and the map scores stay 0.
    """
    pairs = [(int(r), int(m)) for r, m in SCORE_PAIR_PATTERN.findall(text or "")]
    if len(pairs) >= 2:
        (round1, map1), (round2, map2) = pairs[0], pairs[1]
        return CardScores(round1=round1, round2=round2, map1=map1, map2=map2)
    if len(pairs) == 1:
        round1, map1 = pairs[0]
        return CardScores(round1=round1, map1=map1)

    numerals = _plain_numerals(text_runs)
    if len(numerals) >= 2:
        return CardScores(round1=numerals[0], round2=numerals[1])
    return CardScores()


def extract_card(href: str, text: str, text_runs: Iterable[str] = ()) -> Optional[CardExtraction]:
    """Teams and scores for one card, or None when the link does not describe a match pairing."""
    parsed = parse_match_href(href)
    if parsed is None:
        return None
    match_id, slug = parsed
    teams = teams_from_slug(slug)
    if teams is None:
        return None
    return CardExtraction(
        match_id=match_id,
        team1=teams[0],
        team2=teams[1],
        scores=extract_scores(text, text_runs),
    )
