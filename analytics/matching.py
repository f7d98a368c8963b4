"""
Cross-venue question matching. Decides whether two market questions from
different venues describe the same event.

Two strategies implement the QuestionMatcher protocol:
1. SlugMatcher: bag-of-words slug equality (default, coarse, word-order and
   synonym blind)
2. FuzzyMatcher: rapidfuzz token-set similarity with year and settlement
   keyword guards

The discrepancy engine only sees the protocol, so a stronger matcher can be
swapped in without touching grouping or confidence logic.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Protocol, runtime_checkable

from rapidfuzz import fuzz

logger = logging.getLogger(__name__)

# Slug words must be at least this long ("will", "2024" stay; "the", "win" go)
SLUG_MIN_WORD_LEN = 4
SLUG_MAX_LEN = 100

# Fuzzy matching threshold (0-1): below this score, no match
FUZZY_THRESHOLD = 0.90

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

# Year pattern for detecting year mismatches (e.g., 2024 vs 2028)
_YEAR_PATTERN = re.compile(r"\b(20\d{2})\b")

# Keywords that indicate different settlement criteria
_SETTLEMENT_KEYWORDS = frozenset({
    "popular vote",
    "electoral",
    "inauguration",
    "sworn in",
    "resign",
    "impeach",
    "before",
    "by end of",
    "first term",
    "second term",
})


@lru_cache(maxsize=4096)
def generate_slug(
    question: str,
    min_word_len: int = SLUG_MIN_WORD_LEN,
    max_len: int = SLUG_MAX_LEN,
) -> str:
    """
    Order-insensitive key for a question: lowercase, strip non-alphanumerics,
    keep words of at least *min_word_len* characters, sort, join with '-',
    truncate to *max_len*.
    """
    words = _NON_ALNUM.sub("", question.lower()).split()
    kept = sorted(w for w in words if len(w) >= min_word_len)
    return "-".join(kept)[:max_len]


@runtime_checkable
class QuestionMatcher(Protocol):
    """Scores how likely two questions describe the same event."""

    @property
    def threshold(self) -> float:
        """Minimum score() at which two questions are considered a match."""
        ...

    def score(self, question_a: str, question_b: str) -> float:
        """Similarity in [0, 1]."""
        ...


class SlugMatcher:
    """Exact slug equality: score is 1.0 when slugs match, else 0.0."""

    def __init__(
        self,
        min_word_len: int = SLUG_MIN_WORD_LEN,
        max_len: int = SLUG_MAX_LEN,
    ) -> None:
        self._min_word_len = min_word_len
        self._max_len = max_len

    @property
    def threshold(self) -> float:
        return 1.0

    def slug(self, question: str) -> str:
        return generate_slug(question, self._min_word_len, self._max_len)

    def score(self, question_a: str, question_b: str) -> float:
        return 1.0 if self.slug(question_a) == self.slug(question_b) else 0.0


def _year_mismatch(title_a: str, title_b: str) -> bool:
    """Reject matches where the year differs (e.g., 2024 vs 2028)."""
    years_a = set(_YEAR_PATTERN.findall(title_a))
    years_b = set(_YEAR_PATTERN.findall(title_b))
    return bool(years_a and years_b and years_a != years_b)


def _settlement_mismatch_risk(title_a: str, title_b: str) -> bool:
    """Check if titles differ on settlement-relevant keywords."""
    lower_a = title_a.lower()
    lower_b = title_b.lower()
    for kw in _SETTLEMENT_KEYWORDS:
        if (kw in lower_a) != (kw in lower_b):
            return True
    return False


class FuzzyMatcher:
    """
    rapidfuzz token_set_ratio scaled to [0, 1]. Pairs whose years or
    settlement keywords disagree score 0 regardless of text overlap.
    """

    def __init__(self, threshold: float = FUZZY_THRESHOLD) -> None:
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    def score(self, question_a: str, question_b: str) -> float:
        if _year_mismatch(question_a, question_b):
            logger.debug("Fuzzy match rejected (year): '%s' vs '%s'", question_a[:50], question_b[:50])
            return 0.0
        if _settlement_mismatch_risk(question_a, question_b):
            logger.debug("Fuzzy match rejected (settlement): '%s' vs '%s'", question_a[:50], question_b[:50])
            return 0.0
        return fuzz.token_set_ratio(question_a.lower(), question_b.lower()) / 100.0
