"""
Household helpers – grouping accounts by registered address.

Two accounts belong to the same household at a facility when their
registered addresses normalize to the same string.
"""

from __future__ import annotations

import re

# Whole-word replacements applied before comparison
_ABBREVIATIONS = {
    "street": "st",
    "avenue": "ave",
    "boulevard": "blvd",
    "drive": "dr",
    "road": "rd",
    "lane": "ln",
    "court": "ct",
    "circle": "cir",
    "place": "pl",
    "terrace": "ter",
    "highway": "hwy",
    "apartment": "apt",
    "suite": "ste",
    "building": "bldg",
    "floor": "fl",
    "north": "n",
    "south": "s",
    "east": "e",
    "west": "w",
    "northeast": "ne",
    "northwest": "nw",
    "southeast": "se",
    "southwest": "sw",
}

_WORD_RE = re.compile(r"\b(" + "|".join(_ABBREVIATIONS) + r")\b")
_PUNCT_RE = re.compile(r"[.,#]")
_SPACE_RE = re.compile(r"\s+")


def normalize_address(address: str | None) -> str:
    """
    Canonical form of a postal address.

    >>> normalize_address("  12 North Main Street, Apt. #4 ")
    '12 n main st apt 4'
    """
    if not address:
        return ""
    normalized = address.lower().strip()
    normalized = _WORD_RE.sub(lambda m: _ABBREVIATIONS[m.group(1)], normalized)
    normalized = _PUNCT_RE.sub("", normalized)
    return _SPACE_RE.sub(" ", normalized).strip()


def addresses_match(first: str | None, second: str | None) -> bool:
    return normalize_address(first) == normalize_address(second)
