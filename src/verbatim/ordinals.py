"""Number words used in retrieval requests: cardinals, ordinals, digit forms."""
from __future__ import annotations

import re
from types import MappingProxyType

CARDINAL_WORDS: MappingProxyType[str, int] = MappingProxyType({
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19, "twenty": 20, "thirty": 30, "forty": 40,
    "fifty": 50, "hundred": 100,
})

ORDINAL_WORDS: MappingProxyType[str, int] = MappingProxyType({
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5,
    "sixth": 6, "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10,
    "eleventh": 11, "twelfth": 12, "thirteenth": 13, "fourteenth": 14,
    "fifteenth": 15, "sixteenth": 16, "seventeenth": 17, "eighteenth": 18,
    "nineteenth": 19, "twentieth": 20, "thirtieth": 30,
})

# Regex fragments (no groups); longest words first so "fourteen" beats "four".
CARDINAL_PATTERN = r"\d+|" + "|".join(sorted(CARDINAL_WORDS, key=len, reverse=True))
ORDINAL_PATTERN = r"\d+(?:st|nd|rd|th)|" + "|".join(
    sorted(ORDINAL_WORDS, key=len, reverse=True)
)
NUMBER_PATTERN = rf"{ORDINAL_PATTERN}|{CARDINAL_PATTERN}"

_SUFFIXED_RE = re.compile(r"^(\d+)(?:st|nd|rd|th)$")


def parse_number(token: str) -> int | None:
    """Parse a cardinal word, ordinal word, ``3rd``-style ordinal or digit string.

    Returns None for anything else; callers decide what an unparseable number
    means rather than silently defaulting to 1.
    """
    lowered = token.strip().lower()
    if lowered in CARDINAL_WORDS:
        return CARDINAL_WORDS[lowered]
    if lowered in ORDINAL_WORDS:
        return ORDINAL_WORDS[lowered]
    m = _SUFFIXED_RE.match(lowered)
    if m:
        return int(m.group(1))
    if lowered.isdecimal():
        return int(lowered)
    return None
