"""Highlight detection.

Turns extracted frames into scored, timestamped gameplay highlights.
Scoring is mocked until a vision model is wired in; the selection
filters (threshold, minimum gap, cap) are the real contract every
detector shares.
"""
import enum
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np

from .config import PipelineConfig

logger = logging.getLogger(__name__)


class HighlightType(str, enum.Enum):
    """Kind of gameplay event behind a highlight."""
    KILL = "kill"
    DEATH = "death"
    CLUTCH = "clutch"
    OBJECTIVE = "objective"
    EMOTION = "emotion"
    COMBO = "combo"
    FAIL = "fail"
    REACTION = "reaction"
    AMBIENT = "ambient"


@dataclass(frozen=True)
class FrameRef:
    """An extracted frame on disk."""
    path: Path
    timestamp: float  # Seconds into the source video
    index: int  # 0-based extraction order


@dataclass(frozen=True)
class Highlight:
    """A scored moment in the source video."""
    timestamp: float
    score: int  # 0-100
    type: HighlightType = HighlightType.AMBIENT
    description: str = ""
    frame_index: Optional[int] = None
    kill_count: int = 0
    is_clutch: bool = False
    is_multi_kill: bool = False
    emotion_type: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "score": self.score,
            "type": self.type.value,
            "description": self.description,
            "frame_index": self.frame_index,
            "kill_count": self.kill_count,
            "is_clutch": self.is_clutch,
            "is_multi_kill": self.is_multi_kill,
            "emotion_type": self.emotion_type,
        }


# =============================================================================
# Selection filters
# =============================================================================

def deduplicate_highlights(
    highlights: List[Highlight],
    min_gap_sec: float,
) -> List[Highlight]:
    """
    Collapse highlights closer than min_gap_sec, keeping the higher score.

    Walks chronologically and compares each candidate against the last
    kept highlight; on an exact score tie the earlier one stays.
    """
    if not highlights:
        return []

    ordered = sorted(highlights, key=lambda h: h.timestamp)
    kept = [ordered[0]]

    for candidate in ordered[1:]:
        last = kept[-1]
        if candidate.timestamp - last.timestamp < min_gap_sec:
            if candidate.score > last.score:
                kept[-1] = candidate
        else:
            kept.append(candidate)

    return kept


def cap_highlights(
    highlights: List[Highlight],
    max_count: int,
) -> List[Highlight]:
    """Keep the max_count best highlights, returned in chronological order."""
    best = sorted(highlights, key=lambda h: h.score, reverse=True)[:max_count]
    return sorted(best, key=lambda h: h.timestamp)


def select_highlights(
    candidates: List[Highlight],
    min_score: int,
    min_gap_sec: float,
    max_count: int,
) -> List[Highlight]:
    """
    Apply threshold, minimum-gap dedupe and count cap to raw candidates.

    Returns highlights in chronological order.
    """
    above = [h for h in candidates if h.score >= min_score]
    spaced = deduplicate_highlights(above, min_gap_sec)
    selected = cap_highlights(spaced, max_count)

    logger.info(
        f"Highlight selection: {len(candidates)} candidates -> "
        f"{len(above)} above threshold -> {len(spaced)} spaced -> {len(selected)} kept"
    )
    return selected


# =============================================================================
# Mock detector
# =============================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class _MockEvent:
    frame_index: int
    type: HighlightType
    score: float
    reason: str
    kill_count: int = 0
    is_clutch: bool = False
    is_multi_kill: bool = False
    emotion_type: Optional[str] = None


# Relative positions (0-1) of scripted events across the session
KILL_TIMINGS = (0.08, 0.15, 0.22, 0.35, 0.42, 0.55, 0.63, 0.72, 0.78, 0.85, 0.92)
CLUTCH_TIMINGS = (0.45, 0.75, 0.88)
EMOTION_EVENTS = (
    (0.12, "celebration"),
    (0.48, "surprise"),
    (0.65, "frustration"),
    (0.90, "celebration"),
)
OBJECTIVE_EVENTS = (
    (0.30, "bomb plant"),
    (0.60, "objective captured"),
    (0.82, "round-winning defuse"),
)


class MockHighlightDetector:
    """
    Stand-in for a vision model scoring frames for excitement.

    Generates a believable session: a noisy baseline that ramps with
    late-game tension, plus scripted kills, clutches, emotion peaks and
    objective plays. Pass a seeded numpy Generator for reproducible output.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def detect(
        self,
        frames: List[FrameRef],
        config: PipelineConfig,
    ) -> List[Highlight]:
        """Score every frame and return the selected highlights."""
        candidates = self.score_frames(frames)
        return select_highlights(
            candidates,
            min_score=config.min_highlight_score,
            min_gap_sec=config.min_gap_sec,
            max_count=config.max_highlights,
        )

    def score_frames(self, frames: List[FrameRef]) -> List[Highlight]:
        """Produce one candidate highlight per frame."""
        total = len(frames)
        if total == 0:
            return []

        events = self._generate_events(total)
        candidates = []

        for i, frame in enumerate(frames):
            noise = abs(math.sin(i * 0.7) * 15 + math.cos(i * 1.3) * 15)
            tension = (i / total) * 20
            jitter = float(self.rng.random()) * 8

            event = next((e for e in events if abs(e.frame_index - i) < 3), None)
            bonus = event.score if event else 0.0
            score = min(100, _round_half_up(noise + tension + jitter + bonus))

            reasons = []
            if event:
                reasons.append(event.reason)
            if tension > 15:
                reasons.append("late-game tension")
            if score > 85:
                reasons.append("high excitement composite")

            candidates.append(Highlight(
                timestamp=frame.timestamp,
                score=score,
                type=event.type if event else HighlightType.AMBIENT,
                description=", ".join(reasons) if reasons else "baseline activity",
                frame_index=frame.index,
                kill_count=event.kill_count if event else 0,
                is_clutch=event.is_clutch if event else False,
                is_multi_kill=event.is_multi_kill if event else False,
                emotion_type=event.emotion_type if event else None,
            ))

        return candidates

    def _generate_events(self, total_frames: int) -> List[_MockEvent]:
        rng = self.rng
        events = []

        for t in KILL_TIMINGS:
            is_multi = float(rng.random()) > 0.7
            kill_count = int(rng.integers(2, 5)) if is_multi else 1
            events.append(_MockEvent(
                frame_index=int(t * total_frames),
                type=HighlightType.KILL,
                score=55 + kill_count * 10 if is_multi else 35 + float(rng.random()) * 20,
                reason=f"multi-kill ({kill_count}K)" if is_multi else "kill confirmed",
                kill_count=kill_count,
                is_multi_kill=is_multi,
            ))

        for t in CLUTCH_TIMINGS:
            vs_count = int(rng.integers(2, 5))
            events.append(_MockEvent(
                frame_index=int(t * total_frames),
                type=HighlightType.CLUTCH,
                score=75 + float(rng.random()) * 25,
                reason=f"1v{vs_count} clutch situation",
                kill_count=vs_count,
                is_clutch=True,
            ))

        for t, emotion in EMOTION_EVENTS:
            events.append(_MockEvent(
                frame_index=int(t * total_frames),
                type=HighlightType.EMOTION,
                score=40 + float(rng.random()) * 35,
                reason=f"emotion peak: {emotion}",
                emotion_type=emotion,
            ))

        for t, label in OBJECTIVE_EVENTS:
            events.append(_MockEvent(
                frame_index=int(t * total_frames),
                type=HighlightType.OBJECTIVE,
                score=45 + float(rng.random()) * 30,
                reason=label,
            ))

        return events
