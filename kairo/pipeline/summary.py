"""Highlight summary statistics used for template matching."""
import math
from dataclasses import dataclass
from typing import List

import numpy as np

from .detection import Highlight

MOMENTUM_SWING_DELTA = 30  # Adjacent score change that counts as a swing
CLUTCH_SCORE = 90
RAGE_SCORE = 70
RAGE_MARKER = "spike"  # Placeholder until chat/audio sentiment exists


@dataclass(frozen=True)
class HighlightSummary:
    """Aggregate view of a highlight list."""
    avg_score: int = 0
    max_score: int = 0
    count: int = 0
    momentum_swings: int = 0
    clutch_count: int = 0
    rage_indicators: int = 0

    def to_dict(self) -> dict:
        return {
            "avg_score": self.avg_score,
            "max_score": self.max_score,
            "count": self.count,
            "momentum_swings": self.momentum_swings,
            "clutch_count": self.clutch_count,
            "rage_indicators": self.rage_indicators,
        }


def summarize_highlights(highlights: List[Highlight]) -> HighlightSummary:
    """
    Reduce highlights to the stats the template matcher scores against.

    Momentum swings are counted over chronological order, whatever order
    the input arrives in. Rage indicators are a crude text match on the
    description and nothing more.
    """
    if not highlights:
        return HighlightSummary()

    ordered = sorted(highlights, key=lambda h: h.timestamp)
    scores = np.array([h.score for h in ordered], dtype=float)

    swings = int(np.sum(np.abs(np.diff(scores)) > MOMENTUM_SWING_DELTA))
    rage = sum(
        1 for h in ordered
        if h.score > RAGE_SCORE and RAGE_MARKER in h.description
    )

    return HighlightSummary(
        avg_score=int(math.floor(float(np.mean(scores)) + 0.5)),
        max_score=int(np.max(scores)),
        count=len(ordered),
        momentum_swings=swings,
        clutch_count=int(np.sum(scores >= CLUTCH_SCORE)),
        rage_indicators=rage,
    )
