"""Story engine.

Turns gameplay moments into a narrative arc:

    Hook -> Rising action -> Climax -> Outro

The climax is located as the highest-scoring cluster of moments, the
rest of the session is laid out around it, and every moment becomes a
beat carrying overlay, effect, music and pacing hints for the editor.
"""
import enum
import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .detection import Highlight, HighlightType
from .persona import StreamerPersona
from .templates import Mood, StoryTemplate, StructureTiming, TemplateId, find_template

logger = logging.getLogger(__name__)


class BeatPhase(str, enum.Enum):
    HOOK = "hook"
    RISING = "rising"
    CLIMAX = "climax"
    FALLING = "falling"
    OUTRO = "outro"


class BeatType(str, enum.Enum):
    MOMENT = "moment"
    TRANSITION = "transition"
    CONTEXT = "context"
    REACTION = "reaction"


class MusicCue(str, enum.Enum):
    BUILD = "build"
    DROP = "drop"
    QUIET = "quiet"
    SUSTAIN = "sustain"


@dataclass(frozen=True)
class BeatMetadata:
    """Rendering hints attached to a beat."""
    overlay_text: Optional[str] = None
    effect_hint: Optional[str] = None
    music_cue: Optional[MusicCue] = None
    pacing: float = 1.0  # Playback speed; 0.5 = half-speed slow motion

    def to_dict(self) -> dict:
        return {
            "overlay_text": self.overlay_text,
            "effect_hint": self.effect_hint,
            "music_cue": self.music_cue.value if self.music_cue else None,
            "pacing": self.pacing,
        }


@dataclass(frozen=True)
class StoryBeat:
    phase: BeatPhase
    type: BeatType
    start: float
    end: float
    intensity: int  # 0-100
    description: str
    metadata: BeatMetadata = field(default_factory=BeatMetadata)

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "type": self.type.value,
            "start": self.start,
            "end": self.end,
            "intensity": self.intensity,
            "description": self.description,
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class StoryStructure:
    hook_end: float = 0.0
    rising_end: float = 0.0
    climax_end: float = 0.0
    total_duration: float = 0.0

    def to_dict(self) -> dict:
        return {
            "hook_end": self.hook_end,
            "rising_end": self.rising_end,
            "climax_end": self.climax_end,
            "total_duration": self.total_duration,
        }


@dataclass(frozen=True)
class EmotionCurve:
    opening: int = 0
    midpoint: int = 0
    peak: int = 0
    closing: int = 0

    def to_dict(self) -> dict:
        return {
            "opening": self.opening,
            "midpoint": self.midpoint,
            "peak": self.peak,
            "closing": self.closing,
        }


@dataclass(frozen=True)
class StoryArc:
    id: str
    title: str
    logline: str
    beats: Tuple[StoryBeat, ...] = ()
    structure: StoryStructure = field(default_factory=StoryStructure)
    emotion_curve: EmotionCurve = field(default_factory=EmotionCurve)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "logline": self.logline,
            "beats": [b.to_dict() for b in self.beats],
            "structure": self.structure.to_dict(),
            "emotion_curve": self.emotion_curve.to_dict(),
        }


# =============================================================================
# Text pools
# =============================================================================

TITLE_POOLS: Dict[Mood, List[str]] = {
    Mood.TRIUMPHANT: [
        "The Impossible Comeback",
        "Against All Odds",
        "When Everything Clicked",
        "The Redemption Arc",
        "Never Count Them Out",
    ],
    Mood.INTENSE: [
        "Built Different",
        "One Player Army",
        "The Carry Job",
        "Mechanical Perfection",
        "Absolutely Unreal",
    ],
    Mood.CHAOTIC: [
        "How Did We Get Here",
        "The Tilt Saga",
        "Actual Madness",
        "From Bad to Worse to LOL",
        "The Ragequit Chronicles",
    ],
    Mood.CHILL: [
        "Good Vibes Only",
        "A Cozy Session",
        "The Highlights, Unfiltered",
        "Best Bits, No Stress",
        "Peak Comfort Gaming",
    ],
}

# {kills}, {clutches} and {deficit} are substituted per arc
LOGLINE_POOLS: Dict[Mood, List[str]] = {
    Mood.TRIUMPHANT: [
        "Down {deficit}, one player refuses to lose, and what happens next is legendary.",
        "It looked like an easy loss until the clutch gene activated.",
        "Sometimes the best stories start from the worst positions.",
        "{clutches} clutch rounds turned a blowout into a comeback.",
    ],
    Mood.INTENSE: [
        "When the aim is on and the reads are perfect, this is what happens.",
        "{kills} kills. {clutches} clutch rounds. Zero mercy.",
        "A mechanical masterclass that left everyone speechless.",
        "No warm-up, no mercy, {kills} kills on the board.",
    ],
    Mood.CHAOTIC: [
        "It started as a normal game. It did not stay that way.",
        "The tilt was real, the rage was real, and somehow it was all content.",
        "Warning: desk safety not guaranteed.",
        "{kills} kills and not a single calm moment.",
    ],
    Mood.CHILL: [
        "Just a good session, captured in the best way possible.",
        "No drama, no rage, just pure gaming moments worth remembering.",
        "The kind of session you want to bottle up and keep forever.",
        "A relaxed run with {kills} kills and zero stress.",
    ],
}

HOOK_TEXTS: Dict[Mood, List[str]] = {
    Mood.TRIUMPHANT: ["It wasn't looking good...", "Down bad, but watch this:", "The comeback starts HERE"],
    Mood.INTENSE: ["Ready?", "Lock in.", "This is the round."],
    Mood.CHAOTIC: ["Things are about to go wrong.", "The tilt begins.", "Oh no."],
    Mood.CHILL: ["Let me show you something cool.", "This one's special.", "Watch this."],
}

CLIMAX_TEXTS: Dict[Mood, str] = {
    Mood.TRIUMPHANT: "THE MOMENT.",
    Mood.INTENSE: "INSANE.",
    Mood.CHAOTIC: "WHAT.",
    Mood.CHILL: "✨",
}
FALLBACK_CLIMAX_TEXT = "THE PLAY."

DEFICIT_TEXT = "0-5"
CLIMAX_MIN_SCORE = 70
EMPTY_TITLE = "No Story Yet"
EMPTY_LOGLINE = "Upload a VOD to generate your story."

# Emotion curve values used when a phase has no beats
OPENING_FALLBACK = 60
MIDPOINT_FALLBACK = 50
PEAK_FALLBACK = 95
CLOSING_FALLBACK = 40


# A comeback session used for previews and demos
MOCK_SESSION_MOMENTS: List[Highlight] = [
    Highlight(12, 30, HighlightType.DEATH, "Caught off-guard in pistol round"),
    Highlight(45, 25, HighlightType.DEATH, "Team down 0-3, morale crumbling"),
    Highlight(78, 55, HighlightType.KILL, "First blood, a spark of hope", kill_count=1),
    Highlight(120, 72, HighlightType.CLUTCH, "1v2 clutch to save the round", kill_count=2, is_clutch=True),
    Highlight(180, 65, HighlightType.COMBO, "Eco round ace, the crowd goes wild", kill_count=5, is_multi_kill=True),
    Highlight(240, 60, HighlightType.OBJECTIVE, "Score tied up 5-5, momentum shift"),
    Highlight(310, 78, HighlightType.KILL, "Opening pick on their best player", kill_count=1),
    Highlight(355, 92, HighlightType.CLUTCH, "1v3 clutch with 5 HP, the crowd erupts", kill_count=3, is_clutch=True),
    Highlight(400, 88, HighlightType.COMBO, "Triple kill to close out the half", kill_count=3, is_multi_kill=True),
    Highlight(450, 96, HighlightType.CLUTCH, "Match point 1v4, the impossible ace", kill_count=4, is_clutch=True),
    Highlight(478, 85, HighlightType.REACTION, "Pure celebration, the comeback is complete"),
]


# =============================================================================
# Arc analysis
# =============================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _peak_index(moments: List[Highlight]) -> int:
    """Index of the highest-scoring moment; the latest wins a tie."""
    return max(reversed(range(len(moments))), key=lambda i: moments[i].score)


def find_climax_center(sorted_moments: List[Highlight]) -> float:
    """
    Timestamp at the center of the highest-scoring cluster.

    Slides a window of max(3, floor(n * 0.3)) moments across the session
    and returns the midpoint moment of the window with the largest score
    sum (the first such window on a tie). With two or fewer moments the
    last one is the climax.
    """
    n = len(sorted_moments)
    if n <= 2:
        return sorted_moments[-1].timestamp

    window = max(3, math.floor(n * 0.3))
    scores = np.array([m.score for m in sorted_moments], dtype=float)
    window_sums = np.convolve(scores, np.ones(window), mode="valid")

    best_start = int(np.argmax(window_sums))
    return sorted_moments[best_start + window // 2].timestamp


def partition_into_phases(
    sorted_moments: List[Highlight],
    climax_center: float,
    structure: StructureTiming,
) -> Dict[BeatPhase, List[Highlight]]:
    """
    Split chronologically sorted moments into hook, rising, climax and outro.

    A moment is climax when it sits within half the climax budget of the
    center and scores at least 70. Earlier moments are hook while inside
    the hook budget and rising after it; everything else is outro. If
    nothing qualifies as climax, the best moment is moved there.
    """
    first = sorted_moments[0].timestamp
    total_span = sorted_moments[-1].timestamp - first
    hook_budget = total_span * structure.intro
    climax_half = total_span * structure.climax / 2

    phases: Dict[BeatPhase, List[Highlight]] = {phase: [] for phase in BeatPhase}

    for moment in sorted_moments:
        if abs(moment.timestamp - climax_center) < climax_half and moment.score >= CLIMAX_MIN_SCORE:
            phases[BeatPhase.CLIMAX].append(moment)
        elif moment.timestamp < climax_center - climax_half:
            if moment.timestamp - first < hook_budget:
                phases[BeatPhase.HOOK].append(moment)
            else:
                phases[BeatPhase.RISING].append(moment)
        else:
            phases[BeatPhase.OUTRO].append(moment)

    if not phases[BeatPhase.CLIMAX]:
        peak_idx = _peak_index(sorted_moments)
        peak = sorted_moments[peak_idx]
        for phase in (BeatPhase.HOOK, BeatPhase.RISING, BeatPhase.OUTRO):
            phases[phase] = [m for m in phases[phase] if m is not peak]
        phases[BeatPhase.CLIMAX] = [peak]

    return phases


def calculate_emotion_curve(beats: List[StoryBeat]) -> EmotionCurve:
    """Average beat intensity per phase, with fixed values for empty phases."""
    if not beats:
        return EmotionCurve()

    def intensities(phase: BeatPhase) -> List[int]:
        return [b.intensity for b in beats if b.phase == phase]

    def average(values: List[int], fallback: int) -> int:
        return _round_half_up(sum(values) / len(values)) if values else fallback

    climax = intensities(BeatPhase.CLIMAX)
    return EmotionCurve(
        opening=average(intensities(BeatPhase.HOOK), OPENING_FALLBACK),
        midpoint=average(intensities(BeatPhase.RISING), MIDPOINT_FALLBACK),
        peak=max(climax) if climax else PEAK_FALLBACK,
        closing=average(intensities(BeatPhase.OUTRO), CLOSING_FALLBACK),
    )


def climax_text(moment: Highlight, mood: Mood) -> str:
    """Overlay for the peak: clutch and multi-kill callouts beat mood text."""
    if moment.is_clutch:
        return "THE CLUTCH."
    if moment.is_multi_kill:
        return f"{moment.kill_count}K."
    return CLIMAX_TEXTS.get(mood, FALLBACK_CLIMAX_TEXT)


# =============================================================================
# Story engine
# =============================================================================

class StoryEngine:
    """
    Builds narrative arcs from gameplay moments.

    Title, logline and hook overlay choices come from mood-keyed pools
    using the injected numpy Generator; seed it to pin the output.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        context_padding_sec: float = 2.0,
        peak_padding_sec: float = 3.0,
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.context_padding_sec = context_padding_sec
        self.peak_padding_sec = peak_padding_sec

    def build_story_arc(
        self,
        moments: List[Highlight],
        template: StoryTemplate,
        persona: Optional[StreamerPersona] = None,
    ) -> StoryArc:
        """
        Build a complete narrative arc.

        Args:
            moments: Gameplay moments, any order
            template: Template supplying mood and phase structure
            persona: Optional persona; its first catchphrase captions the
                reaction to the peak

        Returns:
            StoryArc with beats ordered by start time
        """
        if not moments:
            return self._empty_arc()

        ordered = sorted(moments, key=lambda m: m.timestamp)
        center = find_climax_center(ordered)
        phases = partition_into_phases(ordered, center, template.structure)
        beats = self.build_beats(phases, template.mood, persona)

        def phase_end(phase: BeatPhase, floor: float) -> float:
            return max([b.end for b in beats if b.phase == phase], default=floor)

        hook_end = phase_end(BeatPhase.HOOK, 0.0)
        rising_end = phase_end(BeatPhase.RISING, hook_end)
        climax_end = phase_end(BeatPhase.CLIMAX, rising_end)

        arc = StoryArc(
            id=f"story_{uuid.uuid4().hex[:8]}",
            title=self._generate_title(template.mood),
            logline=self._generate_logline(template.mood, ordered),
            beats=tuple(beats),
            structure=StoryStructure(
                hook_end=hook_end,
                rising_end=rising_end,
                climax_end=climax_end,
                total_duration=sum(b.duration for b in beats),
            ),
            emotion_curve=calculate_emotion_curve(beats),
        )

        logger.info(
            f"Story arc '{arc.title}': {len(beats)} beats, climax at {center:.1f}s "
            f"({len(phases[BeatPhase.CLIMAX])} climax moments)"
        )
        return arc

    def generate_mock_arc(self, template_id: str = TemplateId.COMEBACK_KING.value) -> StoryArc:
        """Arc for the built-in comeback session; unknown ids use comeback-king."""
        template = find_template(template_id) or find_template(TemplateId.COMEBACK_KING.value)
        return self.build_story_arc(MOCK_SESSION_MOMENTS, template)

    def build_beats(
        self,
        phases: Dict[BeatPhase, List[Highlight]],
        mood: Mood,
        persona: Optional[StreamerPersona] = None,
    ) -> List[StoryBeat]:
        """Turn phased moments into beats sorted by start time."""
        beats = (
            self._hook_beats(phases[BeatPhase.HOOK], phases[BeatPhase.CLIMAX], mood)
            + self._rising_beats(phases[BeatPhase.RISING])
            + self._climax_beats(phases[BeatPhase.CLIMAX], mood, persona)
            + self._outro_beats(phases[BeatPhase.OUTRO])
        )
        return sorted(beats, key=lambda b: b.start)

    # -- phase builders -------------------------------------------------------

    def _padded(self, moment: Highlight, padding: float) -> Tuple[float, float]:
        return max(0.0, moment.timestamp - padding), moment.timestamp + padding

    def _hook_beats(
        self,
        hook: List[Highlight],
        climax: List[Highlight],
        mood: Mood,
    ) -> List[StoryBeat]:
        if hook:
            return [
                StoryBeat(
                    BeatPhase.HOOK,
                    BeatType.MOMENT,
                    *self._padded(moment, self.context_padding_sec),
                    intensity=min(80, moment.score + 20),
                    description=moment.description,
                    metadata=BeatMetadata(
                        overlay_text=self._pick(HOOK_TEXTS.get(mood, HOOK_TEXTS[Mood.CHILL])),
                        effect_hint="zoom-pulse",
                        music_cue=MusicCue.BUILD,
                    ),
                )
                for moment in hook
            ]

        if not climax:
            return []

        # Nothing to open with: tease the peak instead
        peak = climax[_peak_index(climax)]
        return [StoryBeat(
            BeatPhase.HOOK,
            BeatType.CONTEXT,
            *self._padded(peak, 1.0),
            intensity=90,
            description="Flash-forward: preview of the climax",
            metadata=BeatMetadata(
                overlay_text="What you're about to see...",
                effect_hint="flash-white",
                music_cue=MusicCue.DROP,
                pacing=0.5,
            ),
        )]

    def _rising_beats(self, rising: List[Highlight]) -> List[StoryBeat]:
        pad = self.context_padding_sec
        beats = []

        for i, moment in enumerate(rising):
            beats.append(StoryBeat(
                BeatPhase.RISING,
                BeatType.MOMENT,
                *self._padded(moment, pad),
                intensity=moment.score,
                description=moment.description,
                metadata=BeatMetadata(
                    effect_hint="slight-zoom" if moment.score > 70 else "none",
                    music_cue=MusicCue.BUILD,
                ),
            ))

            if i < len(rising) - 1:
                beats.append(StoryBeat(
                    BeatPhase.RISING,
                    BeatType.TRANSITION,
                    start=moment.timestamp + pad,
                    end=moment.timestamp + pad + 0.5,
                    intensity=math.floor(moment.score * 0.6),
                    description="Tension transition",
                    metadata=BeatMetadata(
                        effect_hint="whip-pan",
                        music_cue=MusicCue.SUSTAIN,
                        pacing=1.5,
                    ),
                ))

        return beats

    def _climax_beats(
        self,
        climax: List[Highlight],
        mood: Mood,
        persona: Optional[StreamerPersona],
    ) -> List[StoryBeat]:
        if not climax:
            return []

        peak_idx = _peak_index(climax)
        beats = []

        for i, moment in enumerate(climax):
            is_peak = i == peak_idx
            padding = self.peak_padding_sec if is_peak else self.context_padding_sec
            beats.append(StoryBeat(
                BeatPhase.CLIMAX,
                BeatType.MOMENT,
                *self._padded(moment, padding),
                intensity=moment.score,
                description=moment.description,
                metadata=BeatMetadata(
                    overlay_text=climax_text(moment, mood) if is_peak else None,
                    effect_hint="slowmo-zoom" if is_peak else "zoom",
                    music_cue=MusicCue.DROP if is_peak else MusicCue.SUSTAIN,
                    pacing=0.5 if is_peak else 0.75,
                ),
            ))

            if is_peak:
                reaction_start = moment.timestamp + self.peak_padding_sec
                beats.append(StoryBeat(
                    BeatPhase.CLIMAX,
                    BeatType.REACTION,
                    start=reaction_start,
                    end=reaction_start + 2.0,
                    intensity=85,
                    description="Player/streamer reaction to the peak moment",
                    metadata=BeatMetadata(
                        overlay_text=persona.catchphrases[0] if persona and persona.catchphrases else None,
                        effect_hint="facecam-zoom",
                        music_cue=MusicCue.SUSTAIN,
                    ),
                ))

        return beats

    def _outro_beats(self, outro: List[Highlight]) -> List[StoryBeat]:
        return [
            StoryBeat(
                BeatPhase.OUTRO,
                BeatType.REACTION if moment.type == HighlightType.REACTION else BeatType.MOMENT,
                *self._padded(moment, self.context_padding_sec),
                intensity=max(30, moment.score - 20),
                description=moment.description,
                metadata=BeatMetadata(effect_hint="none", music_cue=MusicCue.QUIET),
            )
            for moment in outro
        ]

    # -- text -----------------------------------------------------------------

    def _pick(self, pool: List[str]) -> str:
        return pool[int(self.rng.integers(len(pool)))]

    def _generate_title(self, mood: Mood) -> str:
        return self._pick(TITLE_POOLS.get(mood, TITLE_POOLS[Mood.CHILL]))

    def _generate_logline(self, mood: Mood, moments: List[Highlight]) -> str:
        logline = self._pick(LOGLINE_POOLS.get(mood, LOGLINE_POOLS[Mood.CHILL]))

        kills = sum(
            m.kill_count or 1 for m in moments
            if m.type in (HighlightType.KILL, HighlightType.COMBO)
        )
        clutches = sum(1 for m in moments if m.is_clutch)

        return (
            logline
            .replace("{kills}", str(kills))
            .replace("{clutches}", str(clutches))
            .replace("{deficit}", DEFICIT_TEXT)
        )

    def _empty_arc(self) -> StoryArc:
        return StoryArc(
            id=f"story_empty_{uuid.uuid4().hex[:8]}",
            title=EMPTY_TITLE,
            logline=EMPTY_LOGLINE,
        )
