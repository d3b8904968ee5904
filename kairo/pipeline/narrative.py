"""Narrative clip planning.

Distributes highlights across a template's intro/build/climax/outro arc
and turns them into padded, merged, duration-bounded clip segments.
The best-scoring moments always anchor the climax, whatever their
position in the VOD.
"""
import enum
import logging
import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from .detection import Highlight
from .templates import EnhancementLevels, Mood, StoryTemplate, StructureTiming

if TYPE_CHECKING:
    from .enhancer import Enhancements

logger = logging.getLogger(__name__)


class SegmentPhase(str, enum.Enum):
    INTRO = "intro"
    BUILD = "build"
    CLIMAX = "climax"
    OUTRO = "outro"


@dataclass(frozen=True)
class ClipSegment:
    """A padded slice of the source video."""
    start: float
    end: float
    score: int
    phase: SegmentPhase

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {
            "start": self.start,
            "end": self.end,
            "duration": self.duration,
            "score": self.score,
            "phase": self.phase.value,
        }


@dataclass(frozen=True)
class ClipPlan:
    """Ordered, non-overlapping segments ready for enhancement and render."""
    id: str
    video_path: str
    template_id: str
    mood: Mood
    transition_style: str
    segments: Tuple[ClipSegment, ...] = ()
    total_duration: float = 0.0
    levels: Optional[EnhancementLevels] = None
    enhancements: Optional["Enhancements"] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "video_path": self.video_path,
            "template_id": self.template_id,
            "mood": self.mood.value,
            "transition_style": self.transition_style,
            "segments": [s.to_dict() for s in self.segments],
            "total_duration": self.total_duration,
            "levels": self.levels.model_dump() if self.levels else None,
            "enhancements": self.enhancements.to_dict() if self.enhancements else None,
        }


# =============================================================================
# Phase allocation
# =============================================================================

def allocate_phase_counts(
    total: int,
    structure: StructureTiming,
) -> Dict[SegmentPhase, int]:
    """
    How many ranked highlights each phase receives.

    Climax, build and intro each ask for ceil(total * fraction), at
    least one, granted in that order from what is left; outro takes the
    remainder. The counts always sum to total.
    """
    counts = {}
    remaining = total

    for phase, fraction in (
        (SegmentPhase.CLIMAX, structure.climax),
        (SegmentPhase.BUILD, structure.build),
        (SegmentPhase.INTRO, structure.intro),
    ):
        wanted = max(1, math.ceil(total * fraction))
        counts[phase] = min(remaining, wanted)
        remaining -= counts[phase]

    counts[SegmentPhase.OUTRO] = remaining
    return counts


def assign_phases(
    highlights: List[Highlight],
    structure: StructureTiming,
) -> List[Tuple[Highlight, SegmentPhase]]:
    """
    Tag every highlight with a phase by score rank.

    Top-ranked go to climax, then build, then intro, the rest to outro.
    Equal scores rank chronologically. Output keeps the input order.
    """
    ranked = sorted(
        range(len(highlights)),
        key=lambda idx: (-highlights[idx].score, highlights[idx].timestamp),
    )
    counts = allocate_phase_counts(len(highlights), structure)

    phase_by_index: Dict[int, SegmentPhase] = {}
    position = 0
    for phase in (SegmentPhase.CLIMAX, SegmentPhase.BUILD, SegmentPhase.INTRO, SegmentPhase.OUTRO):
        for idx in ranked[position:position + counts[phase]]:
            phase_by_index[idx] = phase
        position += counts[phase]

    return [(h, phase_by_index[i]) for i, h in enumerate(highlights)]


# =============================================================================
# Segment construction
# =============================================================================

def build_segments(
    phased: List[Tuple[Highlight, SegmentPhase]],
    padding_sec: float,
) -> List[ClipSegment]:
    """Pad each highlight symmetrically, clamping the start at 0."""
    return [
        ClipSegment(
            start=max(0.0, h.timestamp - padding_sec),
            end=h.timestamp + padding_sec,
            score=h.score,
            phase=phase,
        )
        for h, phase in phased
    ]


def merge_overlapping_segments(segments: List[ClipSegment]) -> List[ClipSegment]:
    """
    Merge segments that overlap or touch.

    The merged segment spans both; its score and phase come from the
    higher-scoring source (the earlier one on a tie).
    """
    if not segments:
        return []

    ordered = sorted(segments, key=lambda s: s.start)
    merged = [ordered[0]]

    for seg in ordered[1:]:
        last = merged[-1]
        if seg.start <= last.end:
            combined = replace(last, end=max(last.end, seg.end))
            if seg.score > last.score:
                combined = replace(combined, score=seg.score, phase=seg.phase)
            merged[-1] = combined
        else:
            merged.append(seg)

    return merged


def trim_to_duration(
    segments: List[ClipSegment],
    max_duration: float,
) -> List[ClipSegment]:
    """
    Keep segments in order until the duration budget runs out.

    The segment that would overflow is cut to end exactly on the budget
    and everything after it is dropped. A segment left with no time at
    all is dropped rather than kept at zero length.
    """
    kept = []
    accumulated = 0.0

    for seg in segments:
        if accumulated + seg.duration > max_duration:
            remaining = max_duration - accumulated
            if remaining > 0:
                kept.append(replace(seg, end=seg.start + remaining))
                logger.debug(f"Trimmed segment at {seg.start:.1f}s to {remaining:.2f}s")
            break
        kept.append(seg)
        accumulated += seg.duration

    return kept


def build_narrative(
    highlights: List[Highlight],
    template: StoryTemplate,
    max_duration_sec: float,
    padding_sec: float,
    plan_id: str = "",
    video_path: str = "",
) -> ClipPlan:
    """
    Build a clip plan by distributing highlights across a narrative arc.

    A non-positive padding_sec cannot give segments any length, so the
    plan comes back empty.

    Args:
        highlights: Detected highlights, any order
        template: Story template supplying structure, mood and transition style
        max_duration_sec: Budget for the summed segment durations
        padding_sec: Context added before and after each highlight
        plan_id: Id to stamp on the plan
        video_path: Source video the segments refer to

    Returns:
        ClipPlan with ordered, non-overlapping segments
    """
    plan = ClipPlan(
        id=plan_id,
        video_path=video_path,
        template_id=template.id,
        mood=template.mood,
        transition_style=template.transition_style,
    )

    if not highlights:
        logger.info("No highlights - returning empty clip plan")
        return plan

    if padding_sec <= 0:
        logger.warning(f"Padding must be positive, got {padding_sec} - returning empty clip plan")
        return plan

    phased = assign_phases(highlights, template.structure)
    segments = build_segments(phased, padding_sec)
    merged = merge_overlapping_segments(segments)
    trimmed = trim_to_duration(merged, max_duration_sec)

    total_duration = sum(s.duration for s in trimmed)

    logger.info(
        f"Narrative: {len(highlights)} highlights -> {len(merged)} merged -> "
        f"{len(trimmed)} segments ({total_duration:.1f}s)"
    )

    return replace(plan, segments=tuple(trimmed), total_duration=total_duration)
