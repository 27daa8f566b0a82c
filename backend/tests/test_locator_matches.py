"""
Tests for the live-section locator and the match scraper over HTML fixtures.

Run: pytest backend/tests/test_locator_matches.py -v
"""
from __future__ import annotations

from shared.models.enums import MatchStatus

from scraper.document import HtmlDocument
from scraper.locator import locate_live_cards
from scraper.matches import absolute_url, scrape_matches, scrape_with_misses

BASE_URL = "https://www.dust2.us"


# ── Locator ─────────────────────────────────────────────────────────────

def test_structural_cards_come_before_content_pattern_cards(live_html: str) -> None:
    cards = locate_live_cards(HtmlDocument(live_html))
    hrefs = [c.href for c in cards]
    assert hrefs == [
        "/matches/42/red-canids-vs-sharks",
        "/matches/43/team-liquid-vs-furia",
        "/matches/42/red-canids-vs-sharks?tab=stats",
        "/matches/44/mouz-vs-faze",
    ]


def test_upcoming_section_is_ignored(live_html: str) -> None:
    hrefs = [c.href for c in locate_live_cards(HtmlDocument(live_html))]
    assert "/matches/50/navi-vs-vitality" not in hrefs


def test_probe_stops_at_grandparent() -> None:
    html = """
    <div id="outer">
      <a href="/matches/60/ence-vs-big">ENCE 18:00 BIG</a>
      <div id="mid"><div id="inner"><h3>Live</h3></div></div>
    </div>
    """
    assert locate_live_cards(HtmlDocument(html)) == []


def test_heading_parent_with_links_is_used_directly() -> None:
    html = """
    <div id="outer">
      <a href="/matches/61/ence-vs-big">ENCE BIG</a>
      <div id="section"><h3>Live now</h3><a href="/matches/62/nip-vs-heroic">NIP 3 HEROIC 4</a></div>
    </div>
    """
    hrefs = [c.href for c in locate_live_cards(HtmlDocument(html))]
    assert hrefs == ["/matches/62/nip-vs-heroic"]


def test_heading_match_is_whole_word() -> None:
    html = """
    <section><h2>Delivered</h2><a href="/matches/70/nip-vs-heroic">NIP 3 HEROIC 4</a></section>
    """
    assert locate_live_cards(HtmlDocument(html)) == []


def test_empty_document() -> None:
    assert locate_live_cards(HtmlDocument("")) == []


# ── Scraper ─────────────────────────────────────────────────────────────

def test_scrape_matches(live_html: str) -> None:
    matches = scrape_matches(HtmlDocument(live_html), BASE_URL)
    assert [m.match_id for m in matches] == ["42", "43", "44"]

    first = matches[0]
    assert (first.team1, first.team2) == ("Red Canids", "Sharks")
    assert (first.round_score1, first.round_score2) == (6, 10)
    assert (first.map_score1, first.map_score2) == (1, 1)
    assert first.status == MatchStatus.LIVE
    assert first.source_url == "https://www.dust2.us/matches/42/red-canids-vs-sharks"

    second = matches[1]
    assert (second.team1, second.team2) == ("Liquid", "Furia")
    assert (second.round_score1, second.round_score2) == (3, 5)
    assert (second.map_score1, second.map_score2) == (0, 0)


def test_duplicate_match_ids_keep_first_occurrence(live_html: str) -> None:
    matches = scrape_matches(HtmlDocument(live_html), BASE_URL)
    ids = [m.match_id for m in matches]
    assert len(ids) == len(set(ids))
    red_canids = next(m for m in matches if m.match_id == "42")
    assert red_canids.round_score1 == 6


def test_unparseable_cards_are_counted_as_misses() -> None:
    html = """
    <section><h2>Live</h2>
      <a href="/matches/80/showmatch">Showmatch 3 (0) 4 (0)</a>
      <a href="/matches/81/nip-vs-heroic">NIP 3 (0) HEROIC 4 (0)</a>
    </section>
    """
    matches, misses = scrape_with_misses(HtmlDocument(html), BASE_URL)
    assert [m.match_id for m in matches] == ["81"]
    assert misses == 1


def test_non_breaking_space_scores_survive_locate_and_extract() -> None:
    html = (
        "<div class=\"ticker\">"
        "<a href=\"/matches/90/red-canids-vs-sharks\">RED Canids 6&nbsp;(1) Sharks 10&nbsp;(1)</a>"
        "</div>"
    )
    matches = scrape_matches(HtmlDocument(html), BASE_URL)
    assert len(matches) == 1
    snap = matches[0]
    assert (snap.round_score1, snap.map_score1, snap.round_score2, snap.map_score2) == (6, 1, 10, 1)


def test_absolute_url() -> None:
    assert absolute_url("/matches/1/a-vs-b", BASE_URL) == "https://www.dust2.us/matches/1/a-vs-b"
    assert absolute_url("https://other.test/matches/1", BASE_URL) == "https://other.test/matches/1"
    assert absolute_url("/matches/1/a-vs-b", "") == "/matches/1/a-vs-b"
