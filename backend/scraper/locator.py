"""
Live-section locator.

Two strategies, unioned by first occurrence:
  1. Structural: a heading reading "Live" marks the live section; its parent
     (or, when the parent holds no match links, the grandparent) is scanned
     for match links. The probe never climbs further so unrelated sections
     are not swept in.
  2. Content pattern: any match link in the document whose text carries a
     "N (M)" live score (e.g. ticker-bar cards outside the section).
"""
from __future__ import annotations

import re
from typing import Any, Optional

from shared.utils.logging import get_logger

from scraper.document import DocumentQuery, MatchCard

logger = get_logger(__name__)

LIVE_HEADING_PATTERN = re.compile(r"\bLive\b", re.IGNORECASE)
LIVE_SCORE_PATTERN = re.compile(r"[0-9]+\s*\([0-9]+\)")


def _live_section(document: DocumentQuery, heading: Any) -> Optional[Any]:
    container = document.parent_of(heading)
    if container is not None and not document.match_cards(container):
        container = document.parent_of(container)
    return container


def locate_live_cards(document: DocumentQuery) -> list[MatchCard]:
    """Ordered, href-deduplicated cards that look like live matches. Empty when nothing matches."""
    result: list[MatchCard] = []
    seen_hrefs: set[str] = set()

    def _collect(card: MatchCard) -> None:
        seen_hrefs.add(card.href)
        result.append(card)

    for heading in document.headings():
        title = document.text_of(heading).strip()
        if not LIVE_HEADING_PATTERN.search(title):
            continue
        container = _live_section(document, heading)
        if container is None:
            continue
        cards = document.match_cards(container)
        for card in cards:
            if card.href not in seen_hrefs:
                _collect(card)
        logger.debug("live_section_found", heading=title[:80], links=len(cards))

    for card in document.match_cards():
        if card.href in seen_hrefs:
            continue
        if LIVE_SCORE_PATTERN.search(card.text):
            _collect(card)

    return result
