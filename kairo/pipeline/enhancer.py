"""Enhancement modules.

Five independent passes that annotate a clip plan with rendering
directives before the final render. Each is dialled 0-100 by the
template defaults, optionally tuned for a persona:

1. BGM: background music selection and mix
2. Subtitles: caption slots and styling
3. Effects: slow-mo, zoom and shake on strong segments
4. Hook: the opening attention grabber
5. Transitions: cuts and blends between segments
"""
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List

from .narrative import ClipPlan, ClipSegment, SegmentPhase
from .templates import EnhancementLevels, Mood

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BGMDirective:
    category: str
    bpm: int
    energy: int  # 0-100
    mood: str
    fade_in: bool
    fade_out: bool
    mix_level: int  # Volume relative to game audio, 0-100

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "bpm": self.bpm,
            "energy": self.energy,
            "mood": self.mood,
            "fade_in": self.fade_in,
            "fade_out": self.fade_out,
            "mix_level": self.mix_level,
        }


@dataclass(frozen=True)
class SubtitleEntry:
    start: float
    end: float
    text: str
    style: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "text": self.text, "style": dict(self.style)}


@dataclass(frozen=True)
class EffectDirective:
    type: str  # slowmo | zoom | shake
    start: float
    duration: float
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, "start": self.start, "duration": self.duration, "params": dict(self.params)}


@dataclass(frozen=True)
class HookDirective:
    text: str
    duration: float
    zoom: Dict[str, float]
    text_style: Dict[str, Any]
    preview_timestamp: float

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "duration": self.duration,
            "zoom": dict(self.zoom),
            "text_style": dict(self.text_style),
            "preview_timestamp": self.preview_timestamp,
        }


@dataclass(frozen=True)
class TransitionDirective:
    type: str  # cut | crossfade | glitch | whip | zoom-through
    at: float
    duration: float
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, "at": self.at, "duration": self.duration, "params": dict(self.params)}


@dataclass(frozen=True)
class Enhancements:
    """All five module outputs for one clip plan."""
    bgm: BGMDirective
    subtitles: List[SubtitleEntry]
    effects: List[EffectDirective]
    hook: HookDirective
    transitions: List[TransitionDirective]

    def to_dict(self) -> dict:
        return {
            "bgm": self.bgm.to_dict(),
            "subtitles": [s.to_dict() for s in self.subtitles],
            "effects": [e.to_dict() for e in self.effects],
            "hook": self.hook.to_dict(),
            "transitions": [t.to_dict() for t in self.transitions],
        }


# =============================================================================
# 1. BGM
# =============================================================================

BGM_BY_MOOD: Dict[Mood, Dict[str, Any]] = {
    Mood.TRIUMPHANT: {"category": "orchestral-epic", "bpm": 140, "energy": 85},
    Mood.INTENSE: {"category": "electronic-hype", "bpm": 150, "energy": 90},
    Mood.CHAOTIC: {"category": "meme-edm", "bpm": 160, "energy": 95},
    Mood.CHILL: {"category": "lofi-ambient", "bpm": 85, "energy": 30},
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def enhance_bgm(plan: ClipPlan, level: int) -> BGMDirective:
    """Pick a music category for the plan's mood and scale it by level."""
    base = BGM_BY_MOOD.get(plan.mood, BGM_BY_MOOD[Mood.CHILL])

    return BGMDirective(
        category=base["category"],
        bpm=base["bpm"],
        energy=_round_half_up(base["energy"] * level / 100),
        mood=plan.mood.value,
        fade_in=level > 30,
        fade_out=True,
        mix_level=_round_half_up(level * 0.7),  # Music stays under the game audio
    )


# =============================================================================
# 2. Subtitles
# =============================================================================

def _subtitle_size(level: int) -> str:
    if level > 75:
        return "large"
    if level > 40:
        return "medium"
    return "small"


def enhance_subtitles(plan: ClipPlan, level: int) -> List[SubtitleEntry]:
    """
    One styled caption slot per segment.

    Text is a placeholder until speech-to-text is aligned to the timeline.
    """
    if level == 0:
        return []

    style = {
        "position": "bottom",
        "size": _subtitle_size(level),
        "color": "#FF4444" if plan.mood == Mood.CHAOTIC else "#FFFFFF",
        "bold": level > 60,
        "font": "Inter" if plan.mood == Mood.CHILL else "Montserrat",
        "outline": 3 if level > 50 else 1,
    }

    return [
        SubtitleEntry(
            start=seg.start,
            end=seg.end,
            text=f"[Segment {i + 1}: awaiting transcription]",
            style=dict(style),
        )
        for i, seg in enumerate(plan.segments)
    ]


# =============================================================================
# 3. Effects
# =============================================================================

def _segment_effects(seg: ClipSegment, mood: Mood, level: int) -> List[EffectDirective]:
    effects = []

    if seg.phase == SegmentPhase.CLIMAX and seg.score >= 80:
        effects.append(EffectDirective(
            type="slowmo",
            start=seg.start,
            duration=min(seg.duration, 3.0),
            params={"factor": 0.25 if level > 70 else 0.5, "ramp_in": True, "ramp_out": True},
        ))

    if seg.score >= 90:
        effects.append(EffectDirective(
            type="zoom",
            start=seg.start + 0.5,
            duration=1.5,
            params={
                "factor": 1.2 + level / 200,  # 1.2x to 1.7x
                "center_x": 0.5,
                "center_y": 0.4,  # Crosshair sits slightly above center
                "easing": "easeInOutCubic",
            },
        ))

    if mood == Mood.CHAOTIC and level > 50:
        effects.append(EffectDirective(
            type="shake",
            start=seg.start,
            duration=0.5,
            params={"intensity": level / 100, "frequency": 15},
        ))

    return effects


def enhance_effects(plan: ClipPlan, level: int) -> List[EffectDirective]:
    """
    Effect directives for segments scoring at least 100 - level.

    Higher levels let more segments through; one segment can get
    several effects.
    """
    if level == 0:
        return []

    threshold = 100 - level
    effects = []
    for seg in plan.segments:
        if seg.score >= threshold:
            effects.extend(_segment_effects(seg, plan.mood, level))
    return effects


# =============================================================================
# 4. Hook
# =============================================================================

HOOK_TEXT_BY_MOOD: Dict[Mood, str] = {
    Mood.TRIUMPHANT: "THE COMEBACK NOBODY EXPECTED 🔥",
    Mood.INTENSE: "WATCH THIS CLUTCH 😤",
    Mood.CHAOTIC: "HE ACTUALLY RAGE QUIT 💀",
    Mood.CHILL: "vibes were immaculate ✨",
}
FALLBACK_HOOK_TEXT = "WAIT FOR IT..."


def enhance_hook(plan: ClipPlan, level: int) -> HookDirective:
    """Opening overlay plus a zoomed preview of the best segment."""
    preview = 0.0
    best_score = 0
    for seg in plan.segments:
        if seg.score > best_score:
            best_score = seg.score
            preview = seg.start

    if level > 70:
        duration = 3.0
    elif level > 40:
        duration = 2.5
    else:
        duration = 2.0

    return HookDirective(
        text=HOOK_TEXT_BY_MOOD.get(plan.mood, FALLBACK_HOOK_TEXT),
        duration=duration,
        zoom={"factor": 1 + level / 200, "x": 0.5, "y": 0.5},  # 1.0x to 1.5x
        text_style={
            "font": "Inter" if plan.mood == Mood.CHILL else "Bebas Neue",
            "size": 72 if level > 60 else 48,
            "color": "#FFFFFF",
            "stroke": "#000000",
            "stroke_width": 4 if level > 50 else 2,
            "position": "center",
            "animation": "slam" if level > 70 else "fadeIn",
        },
        preview_timestamp=preview,
    )


# =============================================================================
# 5. Transitions
# =============================================================================

TRANSITION_BY_STYLE: Dict[str, str] = {
    "dramatic-cut": "cut",
    "hard-cut": "cut",
    "glitch-whip": "glitch",
    "crossfade": "crossfade",
}
DEFAULT_TRANSITION = "crossfade"


def enhance_transitions(plan: ClipPlan, level: int) -> List[TransitionDirective]:
    """
    A transition between every adjacent segment pair.

    The base type follows the template's transition style. Above level 50
    a phase change upgrades it: crossfades become zoom-throughs, anything
    else a whip.
    """
    segments = plan.segments
    if level == 0 or len(segments) < 2:
        return []

    base_type = TRANSITION_BY_STYLE.get(plan.transition_style, DEFAULT_TRANSITION)
    transitions = []

    for current, following in zip(segments, segments[1:]):
        phase_change = current.phase != following.phase
        kind = base_type
        if phase_change and level > 50:
            kind = "zoom-through" if base_type == "crossfade" else "whip"

        duration = 0.0 if kind == "cut" else round(0.3 + level / 400, 2)

        params: Dict[str, Any] = {
            "phase_change": phase_change,
            "from_phase": current.phase.value,
            "to_phase": following.phase.value,
        }
        if kind == "glitch":
            params["slices"] = level // 10
            params["rgb_shift"] = level > 60
        elif kind == "crossfade":
            params["curve"] = "easeInOut"

        transitions.append(TransitionDirective(
            type=kind,
            at=current.end,
            duration=duration,
            params=params,
        ))

    return transitions


# =============================================================================
# Orchestrator
# =============================================================================

def apply_enhancements(plan: ClipPlan, levels: EnhancementLevels) -> ClipPlan:
    """
    Run all five modules against the plan.

    Returns a new plan carrying the levels and directives; the segments
    are untouched.
    """
    enhancements = Enhancements(
        bgm=enhance_bgm(plan, levels.bgm),
        subtitles=enhance_subtitles(plan, levels.subtitles),
        effects=enhance_effects(plan, levels.effects),
        hook=enhance_hook(plan, levels.hook),
        transitions=enhance_transitions(plan, levels.transitions),
    )

    logger.info(
        f"Enhancements: {len(enhancements.subtitles)} captions, "
        f"{len(enhancements.effects)} effects, {len(enhancements.transitions)} transitions"
    )
    return replace(plan, levels=levels, enhancements=enhancements)
