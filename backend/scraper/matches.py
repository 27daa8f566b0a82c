"""
Match scraper: locator -> per-card extraction -> normalization.
A pure function of the current document; all temporal reasoning lives in the
freshness monitor.
"""
from __future__ import annotations

from urllib.parse import urljoin

from shared.models.domain import MatchSnapshot
from shared.models.enums import MatchStatus

from scraper.document import DocumentQuery
from scraper.extractor import extract_card
from scraper.locator import locate_live_cards
from scraper.text import normalize_team_name


def absolute_url(href: str, base_url: str) -> str:
    if href.startswith(("http://", "https://")) or not base_url:
        return href
    return urljoin(base_url, href)


def scrape_with_misses(document: DocumentQuery, base_url: str = "") -> tuple[list[MatchSnapshot], int]:
    """Snapshots plus the number of located cards that did not parse."""
    snapshots: list[MatchSnapshot] = []
    seen_ids: set[str] = set()
    misses = 0

    for card in locate_live_cards(document):
        extraction = extract_card(card.href, card.text, card.text_runs)
        if extraction is None:
            misses += 1
            continue
        if extraction.match_id in seen_ids:
            continue
        seen_ids.add(extraction.match_id)

        scores = extraction.scores
        snapshots.append(
            MatchSnapshot(
                match_id=extraction.match_id,
                team1=normalize_team_name(extraction.team1),
                team2=normalize_team_name(extraction.team2),
                round_score1=scores.round1,
                round_score2=scores.round2,
                map_score1=scores.map1,
                map_score2=scores.map2,
                status=MatchStatus.LIVE,
                source_url=absolute_url(card.href, base_url),
            )
        )

    return snapshots, misses


def scrape_matches(document: DocumentQuery, base_url: str = "") -> list[MatchSnapshot]:
    """
    Live match snapshots from the current document, in card order.
    Deduplicated by match id (first occurrence wins); cards that do not parse are skipped.
    """
    snapshots, _ = scrape_with_misses(document, base_url)
    return snapshots
