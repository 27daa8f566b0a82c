"""
Unit tests for team-name normalization.

Run: pytest backend/tests/test_text.py -v
"""
from __future__ import annotations

import pytest

from scraper.text import normalize_team_name, slugify


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("natus vincere", "Natus Vincere"),
        ("  FURIA   Esports ", "Furia Esports"),
        ("Team Liquid", "Liquid"),
        ("TEAM spirit", "Spirit"),
        ("Team Team Vitality", "Vitality"),
        ("Team", "Team"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_team_name(raw: str | None, expected: str) -> None:
    assert normalize_team_name(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["Team Liquid", "team team x", "  red   CANIDS ", "Team", "9INE", "g2 esports", "Teamspirit", "\u0149a", "\u01c6emal", "\ufb01nal"],
)
def test_normalize_team_name_is_idempotent(raw: str) -> None:
    once = normalize_team_name(raw)
    assert normalize_team_name(once) == once


def test_qualifier_only_stripped_as_whole_word() -> None:
    assert normalize_team_name("Teamspirit") == "Teamspirit"


def test_slugify_keeps_alphanumerics() -> None:
    assert slugify("Natus Vincere!") == "natusvincere"
    assert slugify("G2 Esports") == "g2esports"
    assert slugify(None) == ""


def test_case_mapping_that_expands_characters_settles() -> None:
    # U+0149 capitalizes to two characters ("ʼN"); NFKC decomposes it first.
    assert normalize_team_name("\u0149a") == "\u02bcna"
    assert normalize_team_name("\u01c6emal") == "D\u017eemal"
