"""
Title normalization and keyword extraction shared by clustering and correlation.
"""

import hashlib
import re
from typing import Iterable

# Words to ignore when comparing titles
STOP_WORDS: frozenset[str] = frozenset(
    """
    the a an is are was were be been being have has had do does did will would
    could should may might must shall can to of in for on with at by from as
    into through during before after above below between under again further
    then once and but or nor so yet both either neither not only own same than
    too very just also now here there when where why how all each every few
    more most other some such no any new says said say report reports reported
    according news update updates live latest breaking its it this that these
    those what who whom which over amid after against about out off up down
    """.split()
)

_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_text(text: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    text = _PUNCTUATION.sub(" ", text.lower())
    return " ".join(text.split())


def extract_keywords(text: str) -> frozenset[str]:
    """Meaningful words of a title: no stop words, nothing shorter than 3 chars."""
    return frozenset(
        w for w in normalize_text(text).split() if w not in STOP_WORDS and len(w) > 2
    )


def jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    """Jaccard similarity of two keyword sets (0.0 when either is empty)."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def keyword_hash(text: str) -> str:
    """Order-insensitive hash of a title's keywords."""
    key_str = " ".join(sorted(extract_keywords(text)))
    return hashlib.md5(key_str.encode()).hexdigest()[:12]


def contained_keywords(keywords: Iterable[str], text: str) -> list[str]:
    """Distinct keywords (lowercased, in given order) that occur in `text`."""
    text_lower = text.lower()
    matches = []
    for kw in dict.fromkeys(k.strip().lower() for k in keywords):
        if kw and kw in text_lower:
            matches.append(kw)
    return matches
