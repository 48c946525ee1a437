"""
Rating classifier.

Four contiguous bands over the 0-100 total score, ordered ascending:

  high-risk  [0, 54]
  cautious   [55, 69]
  stable     [70, 84]
  system     [85, 100]

A boundary value belongs to the higher band (55 is "cautious"). The band
table comes from EngineConfig so it can be re-tuned; classify() and
shift_rating() are the only places that know the band order.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence, Tuple

from decision_checkpoint.config import DEFAULT_CONFIG


class Rating(str, Enum):
    HIGH_RISK = "high-risk"
    CAUTIOUS = "cautious"
    STABLE = "stable"
    SYSTEM = "system"

    @property
    def rank(self) -> int:
        return RATING_ORDER.index(self)


RATING_ORDER: Tuple[Rating, ...] = (Rating.HIGH_RISK, Rating.CAUTIOUS, Rating.STABLE, Rating.SYSTEM)


def classify(total_score: int, bands: Optional[Sequence[Tuple[str, int, int]]] = None) -> Rating:
    """
    Map a total score to its rating band.

    Raises:
        ValueError: score outside [0, 100] or not covered by the band table
    """
    if not 0 <= total_score <= 100:
        raise ValueError(f"Total score out of range: {total_score!r}")
    for name, low, high in bands or DEFAULT_CONFIG.rating_bands:
        if low <= total_score <= high:
            return Rating(name)
    raise ValueError(f"No rating band covers score {total_score!r}")


def shift_rating(rating: Rating, steps: int) -> Rating:
    """Move `steps` bands up (positive) or down (negative), saturating at the ends."""
    index = max(0, min(len(RATING_ORDER) - 1, rating.rank + steps))
    return RATING_ORDER[index]
