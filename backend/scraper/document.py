"""
Document query capability used by the live-section locator.

The locator only needs headings, parent navigation and match-link cards, so
the production HTML layer (BeautifulSoup over the page's current markup) can
be swapped for any fixture exposing the same operations.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
MATCH_LINK_SELECTOR = 'a[href*="/matches/"]'


@dataclass(frozen=True)
class MatchCard:
    """A match-link element reduced to what extraction needs."""

    href: str
    text: str
    text_runs: tuple[str, ...] = ()


class DocumentQuery(ABC):
    """Read-only view over the current state of the source document."""

    @abstractmethod
    def headings(self) -> list[Any]:
        """All heading elements in document order."""

    @abstractmethod
    def text_of(self, node: Any) -> str:
        """Concatenated text content of a node."""

    @abstractmethod
    def parent_of(self, node: Any) -> Optional[Any]:
        """Parent element, or None at the document root."""

    @abstractmethod
    def match_cards(self, scope: Any = None) -> list[MatchCard]:
        """Match-link cards under scope (whole document when None), in document order."""


class HtmlDocument(DocumentQuery):
    """DocumentQuery over an HTML string parsed with BeautifulSoup."""

    def __init__(self, html: str, parser: str = "html.parser") -> None:
        self._soup = BeautifulSoup(html or "", parser)

    def headings(self) -> list[Tag]:
        return self._soup.find_all(HEADING_TAGS)

    def text_of(self, node: Tag) -> str:
        return node.get_text()

    def parent_of(self, node: Tag) -> Optional[Tag]:
        parent = node.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return parent

    def match_cards(self, scope: Optional[Tag] = None) -> list[MatchCard]:
        root = scope if scope is not None else self._soup
        cards: list[MatchCard] = []
        for link in root.select(MATCH_LINK_SELECTOR):
            runs = tuple(s.strip() for s in link.strings if s.strip())
            cards.append(MatchCard(href=link.get("href") or "", text=link.get_text(), text_runs=runs))
        return cards
