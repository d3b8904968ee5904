"""Streamer personas and persona-driven template matching.

Maps a streamer's personality profile to the best-fitting template and
tunes the template's enhancement levels to match, so a chill lo-fi
streamer doesn't get an MLG-edit treatment and vice versa.
"""
import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .summary import HighlightSummary
from .templates import (
    EnhancementLevels,
    StoryTemplate,
    TemplateId,
    get_all_templates,
)

logger = logging.getLogger(__name__)


class HumorStyle(str, enum.Enum):
    DRY = "dry"
    SARCASTIC = "sarcastic"
    LOUD = "loud"
    WHOLESOME = "wholesome"
    CHAOTIC = "chaotic"


class StreamerPersona(BaseModel):
    """A streamer's personality and editing preferences."""

    model_config = ConfigDict(frozen=True)

    name: str
    energy_level: int = 5  # 1 = zen, 10 = caffeine IV
    humor_style: HumorStyle = HumorStyle.WHOLESOME
    preferred_template: str = ""  # Template id, or empty for no preference
    edit_intensity: int = 5  # 1-10
    catchphrases: List[str] = []

    @field_validator("energy_level", "edit_intensity")
    @classmethod
    def _clamp_one_to_ten(cls, v: int) -> int:
        return max(1, min(10, v))

    @field_validator("preferred_template", mode="before")
    @classmethod
    def _empty_preference(cls, v):
        return v or ""


PRESET_PERSONAS: Dict[str, StreamerPersona] = {
    "hype_streamer": StreamerPersona(
        name="HypeAndy",
        energy_level=9,
        humor_style=HumorStyle.LOUD,
        catchphrases=["LET'S GOOO", "NO WAY", "ABSOLUTELY INSANE"],
        preferred_template=TemplateId.CLUTCH_MASTER.value,
        edit_intensity=8,
    ),
    "chill_streamer": StreamerPersona(
        name="ZenVibes",
        energy_level=3,
        humor_style=HumorStyle.DRY,
        catchphrases=["that was neat", "oh well", "nice"],
        preferred_template=TemplateId.CHILL_HIGHLIGHTS.value,
        edit_intensity=3,
    ),
    "chaos_gremlin": StreamerPersona(
        name="TiltLord",
        energy_level=10,
        humor_style=HumorStyle.CHAOTIC,
        catchphrases=["WHAT", "I'M DONE", "THIS GAME IS BROKEN"],
        preferred_template=TemplateId.RAGE_QUIT_MONTAGE.value,
        edit_intensity=10,
    ),
    "consistent_pro": StreamerPersona(
        name="SteadyAim",
        energy_level=6,
        humor_style=HumorStyle.SARCASTIC,
        catchphrases=["calculated", "ez", "all skill no luck"],
        preferred_template=TemplateId.COMEBACK_KING.value,
        edit_intensity=6,
    ),
}


def get_preset_persona(key: str) -> StreamerPersona:
    """Look up a preset persona; raises KeyError listing valid keys."""
    try:
        return PRESET_PERSONAS[key]
    except KeyError:
        raise KeyError(
            f'Unknown persona preset "{key}". Available: {", ".join(PRESET_PERSONAS)}'
        ) from None


# =============================================================================
# Template matching
# =============================================================================

BASELINE_SCORE = 50
PREFERENCE_BONUS = 20
ENERGY_PENALTY_PER_STEP = 3

# Energy level each template suits; anything not listed sits mid-scale
DEFAULT_TEMPLATE_ENERGY = 5
TEMPLATE_ENERGY: Dict[TemplateId, int] = {
    TemplateId.COMEBACK_KING: 7,
    TemplateId.CLUTCH_MASTER: 8,
    TemplateId.RAGE_QUIT_MONTAGE: 9,
    TemplateId.CHILL_HIGHLIGHTS: 3,
}

# Humor style x template compatibility; missing pairs score 0
HUMOR_BONUS: Dict[HumorStyle, Dict[TemplateId, int]] = {
    HumorStyle.CHAOTIC: {TemplateId.RAGE_QUIT_MONTAGE: 10, TemplateId.CLUTCH_MASTER: 5},
    HumorStyle.LOUD: {TemplateId.CLUTCH_MASTER: 10, TemplateId.COMEBACK_KING: 8},
    HumorStyle.SARCASTIC: {TemplateId.RAGE_QUIT_MONTAGE: 8, TemplateId.CHILL_HIGHLIGHTS: 5},
    HumorStyle.DRY: {TemplateId.CHILL_HIGHLIGHTS: 10, TemplateId.COMEBACK_KING: 5},
    HumorStyle.WHOLESOME: {TemplateId.CHILL_HIGHLIGHTS: 10, TemplateId.COMEBACK_KING: 8},
}


@dataclass
class TemplateMatch:
    """Outcome of scoring the catalog against a persona."""
    template: StoryTemplate
    score: int
    all_scores: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "template_id": self.template.id,
            "score": self.score,
            "all_scores": dict(self.all_scores),
        }


def _highlight_bonus(template_id: str, summary: HighlightSummary) -> int:
    """One bonus rule per template family; other templates get nothing."""
    if template_id == TemplateId.COMEBACK_KING:
        return 15 if summary.momentum_swings > 3 else 0
    if template_id == TemplateId.CLUTCH_MASTER:
        return 15 if summary.clutch_count > 2 else 0
    if template_id == TemplateId.RAGE_QUIT_MONTAGE:
        return 15 if summary.rage_indicators > 2 else 0
    if template_id == TemplateId.CHILL_HIGHLIGHTS:
        return 10 if summary.avg_score < 50 else 0
    return 0


def score_template_match(
    persona: StreamerPersona,
    summary: HighlightSummary,
    template: StoryTemplate,
) -> int:
    """
    Score how well a template fits a persona and highlight summary (0-100).

    Factors: explicit preference, energy alignment, highlight
    characteristics (comebacks, clutches, rage) and humor compatibility.
    """
    score = BASELINE_SCORE

    if persona.preferred_template == template.id:
        score += PREFERENCE_BONUS

    template_energy = TEMPLATE_ENERGY.get(template.id, DEFAULT_TEMPLATE_ENERGY)
    score -= abs(persona.energy_level - template_energy) * ENERGY_PENALTY_PER_STEP

    score += _highlight_bonus(template.id, summary)
    score += HUMOR_BONUS.get(persona.humor_style, {}).get(template.id, 0)

    return max(0, min(100, score))


def match_template(
    persona: StreamerPersona,
    summary: HighlightSummary,
    templates: Optional[List[StoryTemplate]] = None,
) -> TemplateMatch:
    """
    Pick the best template for a persona and highlight set.

    The highest score wins, first-seen in catalog order. The only
    tie-break: if the persona's preferred template ties the best score,
    it wins.
    """
    templates = templates if templates is not None else get_all_templates()
    if not templates:
        raise ValueError("Cannot match against an empty template catalog")

    all_scores: Dict[str, int] = {}
    best: Optional[StoryTemplate] = None
    best_score = -1

    for template in templates:
        s = score_template_match(persona, summary, template)
        all_scores[template.id] = s
        if s > best_score:
            best_score = s
            best = template

    preferred = persona.preferred_template
    if preferred and all_scores.get(preferred) == best_score:
        best = next(t for t in templates if t.id == preferred)

    logger.info(f"Template match for {persona.name}: {best.id} (score {best_score})")
    return TemplateMatch(template=best, score=best_score, all_scores=all_scores)


# =============================================================================
# Enhancement customization
# =============================================================================

# Humor styles that lean on captions for comedy
CAPTION_HEAVY_STYLES = frozenset({HumorStyle.CHAOTIC, HumorStyle.LOUD, HumorStyle.SARCASTIC})


def _clamp_level(value: float) -> int:
    """Round half up and clamp to 0-100."""
    return max(0, min(100, int(math.floor(value + 0.5))))


def customize_enhancements(
    persona: StreamerPersona,
    defaults: EnhancementLevels,
) -> EnhancementLevels:
    """
    Adjust a template's five enhancement levels for a persona.

    High-energy personas get stronger effects and hooks and slightly
    quieter music; chill personas get more music and softer effects.
    """
    e = persona.energy_level / 10
    i = persona.edit_intensity / 10

    bgm = defaults.bgm + (1 - e) * 15 - e * 10
    subtitle_bonus = 20 if persona.humor_style in CAPTION_HEAVY_STYLES else 0
    subtitles = defaults.subtitles + subtitle_bonus * i
    effects = defaults.effects * (0.5 + i * 0.5) + e * 10
    hook = defaults.hook * (0.6 + e * 0.4) + i * 5
    transitions = defaults.transitions * (0.5 + i * 0.5) + e * 5

    return EnhancementLevels(
        bgm=_clamp_level(bgm),
        subtitles=_clamp_level(subtitles),
        effects=_clamp_level(effects),
        hook=_clamp_level(hook),
        transitions=_clamp_level(transitions),
    )
