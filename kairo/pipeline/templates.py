"""Story template catalog.

Each template describes a narrative arc: how a clip splits into intro,
build, climax and outro, its mood, music and transition style, and the
default levels for the five enhancement modules.
"""
import enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Mood(str, enum.Enum):
    TRIUMPHANT = "triumphant"
    INTENSE = "intense"
    CHAOTIC = "chaotic"
    CHILL = "chill"


class TemplateId(str, enum.Enum):
    """Ids of the built-in templates, in catalog order."""
    COMEBACK_KING = "comeback-king"
    CLUTCH_MASTER = "clutch-master"
    RAGE_QUIT_MONTAGE = "rage-quit-montage"
    CHILL_HIGHLIGHTS = "chill-highlights"
    KILL_MONTAGE = "kill-montage"
    SESSION_STORY = "session-story"
    TIKTOK_VERTICAL = "tiktok-vertical"
    EDU_BREAKDOWN = "edu-breakdown"
    HYPE_MONTAGE = "hype-montage"
    SQUAD_MOMENTS = "squad-moments"


class StructureTiming(BaseModel):
    """Advisory share of the arc given to each phase."""

    model_config = ConfigDict(frozen=True)

    intro: float = Field(ge=0, le=1)
    build: float = Field(ge=0, le=1)
    climax: float = Field(ge=0, le=1)
    outro: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def _fractions_sum_to_one(self):
        total = self.intro + self.build + self.climax + self.outro
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"structure fractions must sum to 1.0, got {total:.4f}")
        return self


class EnhancementLevels(BaseModel):
    """Levels (0-100) for the five enhancement modules."""

    model_config = ConfigDict(frozen=True)

    bgm: int = Field(ge=0, le=100)
    subtitles: int = Field(ge=0, le=100)
    effects: int = Field(ge=0, le=100)
    hook: int = Field(ge=0, le=100)
    transitions: int = Field(ge=0, le=100)


class ScoringWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    momentum_weight: float = Field(ge=0, le=1)
    intensity_weight: float = Field(ge=0, le=1)
    surprise_weight: float = Field(ge=0, le=1)


class StoryTemplate(BaseModel):
    """A read-only narrative preset."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    category: str
    duration_range: Tuple[float, float]  # Suggested clip length (min, max) seconds
    structure: StructureTiming
    mood: Mood
    music_mood: str
    bgm_style: str
    transition_style: str
    enhancement_defaults: EnhancementLevels
    scoring: ScoringWeights


class TemplateNotFoundError(KeyError):
    """Raised when a template id is not in the catalog."""

    def __init__(self, template_id: str, available: List[str]):
        self.template_id = template_id
        self.available = available
        super().__init__(
            f'Unknown template "{template_id}". Available: {", ".join(available)}'
        )

    def __str__(self) -> str:
        return self.args[0]


def _template(**fields) -> StoryTemplate:
    return StoryTemplate.model_validate(fields)


# =============================================================================
# Catalog
# =============================================================================

_CATALOG: Tuple[StoryTemplate, ...] = (
    _template(
        id=TemplateId.COMEBACK_KING.value,
        name="Comeback King",
        description="Dramatic reversals: getting destroyed, then clawing back to win.",
        category="Narrative",
        duration_range=(45, 120),
        structure=dict(intro=0.10, build=0.35, climax=0.40, outro=0.15),
        mood=Mood.TRIUMPHANT,
        music_mood="epic-orchestral",
        bgm_style="orchestral-epic",
        transition_style="dramatic-cut",
        enhancement_defaults=dict(bgm=80, subtitles=60, effects=75, hook=90, transitions=70),
        scoring=dict(momentum_weight=0.6, intensity_weight=0.25, surprise_weight=0.15),
    ),
    _template(
        id=TemplateId.CLUTCH_MASTER.value,
        name="Clutch Master",
        description="Insane plays when everything is on the line.",
        category="FPS",
        duration_range=(30, 90),
        structure=dict(intro=0.08, build=0.25, climax=0.55, outro=0.12),
        mood=Mood.INTENSE,
        music_mood="electronic-hype",
        bgm_style="electronic-hype",
        transition_style="hard-cut",
        enhancement_defaults=dict(bgm=85, subtitles=50, effects=90, hook=95, transitions=60),
        scoring=dict(momentum_weight=0.2, intensity_weight=0.5, surprise_weight=0.3),
    ),
    _template(
        id=TemplateId.RAGE_QUIT_MONTAGE.value,
        name="Rage Quit Montage",
        description="Tilts, fails and rage moments. Funny, chaotic, shareable.",
        category="Comedy",
        duration_range=(30, 90),
        structure=dict(intro=0.05, build=0.40, climax=0.35, outro=0.20),
        mood=Mood.CHAOTIC,
        music_mood="meme-chaos",
        bgm_style="meme-edm",
        transition_style="glitch-whip",
        enhancement_defaults=dict(bgm=70, subtitles=85, effects=95, hook=80, transitions=90),
        scoring=dict(momentum_weight=0.15, intensity_weight=0.35, surprise_weight=0.5),
    ),
    _template(
        id=TemplateId.CHILL_HIGHLIGHTS.value,
        name="Chill Highlights",
        description="Smooth, relaxed highlight reel. Aesthetic vibes over hype.",
        category="Universal",
        duration_range=(60, 180),
        structure=dict(intro=0.15, build=0.30, climax=0.30, outro=0.25),
        mood=Mood.CHILL,
        music_mood="lofi-chill",
        bgm_style="lofi-ambient",
        transition_style="crossfade",
        enhancement_defaults=dict(bgm=90, subtitles=40, effects=30, hook=45, transitions=85),
        scoring=dict(momentum_weight=0.3, intensity_weight=0.3, surprise_weight=0.4),
    ),
    _template(
        id=TemplateId.KILL_MONTAGE.value,
        name="Kill Montage",
        description="Rapid-fire kill compilation: headshots, multi-kills, aces.",
        category="FPS",
        duration_range=(20, 60),
        structure=dict(intro=0.05, build=0.15, climax=0.70, outro=0.10),
        mood=Mood.INTENSE,
        music_mood="bass-heavy-electronic",
        bgm_style="dubstep-trap",
        transition_style="hard-cut",
        enhancement_defaults=dict(bgm=90, subtitles=20, effects=95, hook=85, transitions=50),
        scoring=dict(momentum_weight=0.1, intensity_weight=0.7, surprise_weight=0.2),
    ),
    _template(
        id=TemplateId.SESSION_STORY.value,
        name="Session Story",
        description="A full session condensed into a narrative with chapters and an emotional arc.",
        category="Narrative",
        duration_range=(120, 300),
        structure=dict(intro=0.12, build=0.38, climax=0.30, outro=0.20),
        mood=Mood.TRIUMPHANT,
        music_mood="cinematic-journey",
        bgm_style="cinematic-ambient",
        transition_style="crossfade",
        enhancement_defaults=dict(bgm=75, subtitles=70, effects=50, hook=60, transitions=80),
        scoring=dict(momentum_weight=0.45, intensity_weight=0.25, surprise_weight=0.30),
    ),
    _template(
        id=TemplateId.TIKTOK_VERTICAL.value,
        name="TikTok Vertical",
        description="Fast hook, peak moment, reaction. Built for 9:16 under a minute.",
        category="Short-Form",
        duration_range=(15, 60),
        structure=dict(intro=0.08, build=0.20, climax=0.55, outro=0.17),
        mood=Mood.INTENSE,
        music_mood="trending-viral",
        bgm_style="trending-pop",
        transition_style="glitch-whip",
        enhancement_defaults=dict(bgm=85, subtitles=95, effects=80, hook=100, transitions=75),
        scoring=dict(momentum_weight=0.15, intensity_weight=0.45, surprise_weight=0.40),
    ),
    _template(
        id=TemplateId.EDU_BREAKDOWN.value,
        name="Educational Breakdown",
        description="Annotated replay analysis with freeze frames and zoom callouts.",
        category="Educational",
        duration_range=(60, 240),
        structure=dict(intro=0.10, build=0.45, climax=0.30, outro=0.15),
        mood=Mood.CHILL,
        music_mood="focused-ambient",
        bgm_style="study-ambient",
        transition_style="crossfade",
        enhancement_defaults=dict(bgm=40, subtitles=90, effects=60, hook=50, transitions=70),
        scoring=dict(momentum_weight=0.40, intensity_weight=0.30, surprise_weight=0.30),
    ),
    _template(
        id=TemplateId.HYPE_MONTAGE.value,
        name="Hype Montage",
        description="Music-synced reel where beat drops land on kills.",
        category="Universal",
        duration_range=(30, 90),
        structure=dict(intro=0.07, build=0.30, climax=0.48, outro=0.15),
        mood=Mood.INTENSE,
        music_mood="high-energy-edm",
        bgm_style="edm-festival",
        transition_style="hard-cut",
        enhancement_defaults=dict(bgm=95, subtitles=30, effects=85, hook=90, transitions=80),
        scoring=dict(momentum_weight=0.20, intensity_weight=0.50, surprise_weight=0.30),
    ),
    _template(
        id=TemplateId.SQUAD_MOMENTS.value,
        name="Squad Moments",
        description="Best group plays, comms highlights and team chemistry.",
        category="Social",
        duration_range=(45, 150),
        structure=dict(intro=0.12, build=0.33, climax=0.35, outro=0.20),
        mood=Mood.TRIUMPHANT,
        music_mood="feel-good-upbeat",
        bgm_style="indie-pop",
        transition_style="crossfade",
        enhancement_defaults=dict(bgm=65, subtitles=85, effects=55, hook=70, transitions=75),
        scoring=dict(momentum_weight=0.35, intensity_weight=0.30, surprise_weight=0.35),
    ),
)

TEMPLATES: Dict[str, StoryTemplate] = {t.id: t for t in _CATALOG}


def find_template(template_id: str) -> Optional[StoryTemplate]:
    """Get a template by id, or None if it doesn't exist."""
    return TEMPLATES.get(template_id)


def get_template(template_id: str) -> StoryTemplate:
    """
    Get a template by id.

    Raises:
        TemplateNotFoundError: If the id is not in the catalog
    """
    template = TEMPLATES.get(template_id)
    if template is None:
        raise TemplateNotFoundError(template_id, list_template_ids())
    return template


def list_template_ids() -> List[str]:
    return list(TEMPLATES)


def get_all_templates() -> List[StoryTemplate]:
    return list(TEMPLATES.values())


def get_templates_by_category(category: str) -> List[StoryTemplate]:
    return [t for t in TEMPLATES.values() if t.category == category]
