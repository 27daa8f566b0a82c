"""Canonical team names and identifiers from raw label or slug text."""
from __future__ import annotations

import re
import unicodedata
from typing import Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_QUALIFIER = "team"
# Case mapping can expand or compose characters (U+0149 -> "ʼN"); a few
# passes always settle on a stable form.
_MAX_PASSES = 4


def _normalize_once(text: str) -> str:
    words = unicodedata.normalize("NFKC", text).split()
    while len(words) > 1 and words[0].lower() == _QUALIFIER:
        words.pop(0)
    return " ".join(word.capitalize() for word in words)


def normalize_team_name(raw: Optional[str]) -> str:
    """
    Canonical display name: NFKC-normalized, trimmed, whitespace collapsed,
    leading "Team " qualifier removed, every word capitalized. Never raises.

    Repeated qualifiers ("Team Team X") are all removed and the result is
    re-normalized until stable, so it is a fixed point:
    normalize_team_name(normalize_team_name(x)) == normalize_team_name(x).
    """
    if not raw:
        return ""
    name = _normalize_once(raw)
    for _ in range(_MAX_PASSES):
        again = _normalize_once(name)
        if again == name:
            break
        name = again
    return name


def slugify(name: Optional[str]) -> str:
    """Lower-case identifier keeping only [a-z0-9]."""
    if not name:
        return ""
    return _NON_ALNUM.sub("", name.lower())
