"""Tests for personas, template matching and enhancement customization."""
import json

import pytest
from pydantic import ValidationError

from kairo.pipeline.detection import Highlight
from kairo.pipeline.persona import (
    PRESET_PERSONAS,
    HumorStyle,
    StreamerPersona,
    customize_enhancements,
    get_preset_persona,
    match_template,
    score_template_match,
)
from kairo.pipeline.summary import HighlightSummary, summarize_highlights
from kairo.pipeline.templates import EnhancementLevels, get_all_templates, get_template


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def comeback_defaults():
    return get_template("comeback-king").enhancement_defaults


@pytest.fixture
def steady_summary():
    """Mid-scoring session with no swings, clutches or rage."""
    return HighlightSummary(avg_score=60, max_score=70, count=5)


# =============================================================================
# Persona Model Tests
# =============================================================================

class TestStreamerPersona:
    """Tests for persona validation."""

    def test_energy_and_intensity_clamped(self):
        persona = StreamerPersona(name="x", energy_level=15, edit_intensity=0)
        assert persona.energy_level == 10
        assert persona.edit_intensity == 1

    def test_defaults(self):
        persona = StreamerPersona(name="x")
        assert persona.energy_level == 5
        assert persona.humor_style == HumorStyle.WHOLESOME
        assert persona.preferred_template == ""
        assert persona.catchphrases == []

    def test_null_preference_is_empty(self):
        assert StreamerPersona(name="x", preferred_template=None).preferred_template == ""

    def test_unknown_humor_rejected(self):
        with pytest.raises(ValidationError):
            StreamerPersona(name="x", humor_style="deadpan")

    def test_load_from_json(self):
        raw = json.dumps({
            "name": "Nightowl",
            "energy_level": 4,
            "humor_style": "dry",
            "preferred_template": "edu-breakdown",
            "catchphrases": ["hmm"],
        })
        persona = StreamerPersona.model_validate_json(raw)
        assert persona.humor_style == HumorStyle.DRY
        assert persona.model_dump()["preferred_template"] == "edu-breakdown"

    def test_presets(self):
        assert set(PRESET_PERSONAS) == {"hype_streamer", "chill_streamer", "chaos_gremlin", "consistent_pro"}
        assert get_preset_persona("chaos_gremlin").name == "TiltLord"

    def test_unknown_preset(self):
        with pytest.raises(KeyError, match="hype_streamer"):
            get_preset_persona("nobody")


# =============================================================================
# Highlight Summary Tests
# =============================================================================

class TestSummary:
    """Tests for summarize_highlights."""

    def test_empty(self):
        assert summarize_highlights([]) == HighlightSummary()

    def test_stats(self):
        highlights = [
            Highlight(40.0, 45),
            Highlight(10.0, 40),
            Highlight(20.0, 80, description="chat spike"),
            Highlight(50.0, 95, description="audio spike"),
        ]
        summary = summarize_highlights(highlights)
        # Chronological scores 40, 80, 45, 95 -> three deltas over 30
        assert summary.momentum_swings == 3
        assert summary.avg_score == 65
        assert summary.max_score == 95
        assert summary.count == 4
        assert summary.clutch_count == 1
        assert summary.rage_indicators == 2

    def test_rage_needs_high_score(self):
        summary = summarize_highlights([Highlight(0.0, 70, description="spike")])
        assert summary.rage_indicators == 0


# =============================================================================
# Template Matcher Tests
# =============================================================================

class TestTemplateMatcher:
    """Tests for score_template_match and match_template."""

    def test_score_components(self):
        persona = get_preset_persona("hype_streamer")
        empty = HighlightSummary()
        # Preference +20, energy |9-8|*3, loud humor +10
        assert score_template_match(persona, empty, get_template("clutch-master")) == 77
        # Energy |9-5|*3, no bonuses
        assert score_template_match(persona, empty, get_template("kill-montage")) == 38

    def test_highlight_bonuses(self):
        persona = StreamerPersona(name="x", energy_level=5, humor_style=HumorStyle.WHOLESOME)
        summary = HighlightSummary(avg_score=40, momentum_swings=4, clutch_count=3, rage_indicators=3)
        assert score_template_match(persona, summary, get_template("comeback-king")) == 50 - 6 + 15 + 8
        assert score_template_match(persona, summary, get_template("clutch-master")) == 50 - 9 + 15
        assert score_template_match(persona, summary, get_template("rage-quit-montage")) == 50 - 12 + 15
        assert score_template_match(persona, summary, get_template("chill-highlights")) == 50 - 6 + 10 + 10

    def test_score_stays_in_range(self):
        summary = HighlightSummary(avg_score=10, momentum_swings=9, clutch_count=9, rage_indicators=9)
        for persona in PRESET_PERSONAS.values():
            for template in get_all_templates():
                assert 0 <= score_template_match(persona, summary, template) <= 100

    def test_match_hype_streamer(self, steady_summary):
        match = match_template(get_preset_persona("hype_streamer"), steady_summary)
        assert match.template.id == "clutch-master"
        assert match.score == 77
        assert len(match.all_scores) == 10

    def test_match_is_deterministic(self, steady_summary):
        persona = get_preset_persona("consistent_pro")
        picks = {match_template(persona, steady_summary).template.id for _ in range(5)}
        assert len(picks) == 1

    def test_preferred_template_wins_tie(self, steady_summary):
        # rage-quit-montage: 50 + 8 (sarcastic) = 58
        # kill-montage:      50 + 20 (preferred) - 12 (energy) = 58
        persona = StreamerPersona(
            name="x",
            energy_level=9,
            humor_style=HumorStyle.SARCASTIC,
            preferred_template="kill-montage",
        )
        match = match_template(persona, steady_summary)
        assert match.all_scores["rage-quit-montage"] == 58
        assert match.all_scores["kill-montage"] == 58
        assert match.template.id == "kill-montage"

    def test_first_seen_wins_without_preference(self, steady_summary):
        persona = StreamerPersona(name="x", energy_level=5, humor_style=HumorStyle.WHOLESOME)
        templates = [get_template("kill-montage"), get_template("hype-montage")]
        match = match_template(persona, steady_summary, templates)
        assert match.template.id == "kill-montage"

    def test_empty_catalog(self, steady_summary):
        with pytest.raises(ValueError):
            match_template(StreamerPersona(name="x"), steady_summary, [])

    def test_to_dict(self, steady_summary):
        data = match_template(get_preset_persona("chill_streamer"), steady_summary).to_dict()
        assert data["template_id"] == "chill-highlights"
        assert "comeback-king" in data["all_scores"]


# =============================================================================
# Enhancement Customizer Tests
# =============================================================================

class TestCustomizeEnhancements:
    """Tests for persona-driven level tuning."""

    def test_low_energy_low_intensity(self, comeback_defaults):
        persona = StreamerPersona(name="zen", energy_level=1, edit_intensity=1)
        levels = customize_enhancements(persona, comeback_defaults)

        assert levels.bgm > comeback_defaults.bgm
        assert levels.effects < comeback_defaults.effects
        assert levels.hook < comeback_defaults.hook
        assert levels.transitions < comeback_defaults.transitions
        assert levels.subtitles == comeback_defaults.subtitles

    def test_max_energy_exact(self, comeback_defaults):
        persona = StreamerPersona(
            name="loud", energy_level=10, edit_intensity=10, humor_style=HumorStyle.CHAOTIC
        )
        levels = customize_enhancements(persona, comeback_defaults)
        assert levels == EnhancementLevels(bgm=70, subtitles=80, effects=85, hook=95, transitions=75)

    def test_clamped_to_100(self):
        persona = StreamerPersona(name="x", energy_level=10, edit_intensity=10, humor_style=HumorStyle.LOUD)
        defaults = EnhancementLevels(bgm=100, subtitles=100, effects=100, hook=100, transitions=100)
        levels = customize_enhancements(persona, defaults)
        assert levels.effects == 100
        assert levels.hook == 100
        assert levels.subtitles == 100

    @pytest.mark.parametrize("energy", [1, 4, 7, 10])
    @pytest.mark.parametrize("intensity", [1, 5, 10])
    def test_always_valid_levels(self, energy, intensity):
        persona = StreamerPersona(
            name="x", energy_level=energy, edit_intensity=intensity, humor_style=HumorStyle.SARCASTIC
        )
        for template in get_all_templates():
            levels = customize_enhancements(persona, template.enhancement_defaults)
            for value in levels.model_dump().values():
                assert isinstance(value, int)
                assert 0 <= value <= 100
