"""Tests for the enhancement modules."""
import pytest

from kairo.pipeline.enhancer import (
    FALLBACK_HOOK_TEXT,
    Enhancements,
    apply_enhancements,
    enhance_bgm,
    enhance_effects,
    enhance_hook,
    enhance_subtitles,
    enhance_transitions,
)
from kairo.pipeline.narrative import ClipPlan, ClipSegment, SegmentPhase
from kairo.pipeline.templates import EnhancementLevels, Mood


# =============================================================================
# Test Fixtures
# =============================================================================

def make_plan(mood=Mood.TRIUMPHANT, transition_style="dramatic-cut", segments=None):
    if segments is None:
        segments = (
            ClipSegment(8.0, 14.0, 60, SegmentPhase.INTRO),
            ClipSegment(28.0, 32.0, 75, SegmentPhase.BUILD),
            ClipSegment(48.0, 54.0, 95, SegmentPhase.CLIMAX),
            ClipSegment(70.0, 74.0, 85, SegmentPhase.CLIMAX),
        )
    return ClipPlan(
        id="run1",
        video_path="/vods/session.mp4",
        template_id="comeback-king",
        mood=mood,
        transition_style=transition_style,
        segments=tuple(segments),
        total_duration=sum(s.duration for s in segments),
    )


@pytest.fixture
def plan():
    return make_plan()


# =============================================================================
# BGM Tests
# =============================================================================

class TestBGM:

    def test_mood_mapping_and_scaling(self, plan):
        bgm = enhance_bgm(plan, 80)
        assert bgm.category == "orchestral-epic"
        assert bgm.bpm == 140
        assert bgm.energy == 68
        assert bgm.mix_level == 56
        assert bgm.fade_in is True
        assert bgm.fade_out is True

    def test_low_level(self):
        bgm = enhance_bgm(make_plan(mood=Mood.CHILL), 30)
        assert bgm.category == "lofi-ambient"
        assert bgm.fade_in is False
        assert bgm.fade_out is True
        assert bgm.mix_level == 21

    def test_mix_never_above_seventy(self, plan):
        assert enhance_bgm(plan, 100).mix_level == 70


# =============================================================================
# Subtitle Tests
# =============================================================================

class TestSubtitles:

    def test_level_zero_is_empty(self, plan):
        assert enhance_subtitles(plan, 0) == []

    def test_one_slot_per_segment(self, plan):
        subs = enhance_subtitles(plan, 80)
        assert len(subs) == len(plan.segments)
        assert (subs[2].start, subs[2].end) == (48.0, 54.0)
        assert "Segment 3" in subs[2].text

    @pytest.mark.parametrize("level,size", [(76, "large"), (75, "medium"), (41, "medium"), (40, "small")])
    def test_size_tiers(self, plan, level, size):
        assert enhance_subtitles(plan, level)[0].style["size"] == size

    def test_style_flags(self, plan):
        style = enhance_subtitles(plan, 61)[0].style
        assert style["bold"] is True
        assert style["outline"] == 3
        style = enhance_subtitles(plan, 50)[0].style
        assert style["bold"] is False
        assert style["outline"] == 1

    def test_mood_styling(self):
        chaotic = enhance_subtitles(make_plan(mood=Mood.CHAOTIC), 50)[0].style
        chill = enhance_subtitles(make_plan(mood=Mood.CHILL), 50)[0].style
        assert chaotic["color"] == "#FF4444"
        assert chaotic["font"] == "Montserrat"
        assert chill["color"] == "#FFFFFF"
        assert chill["font"] == "Inter"


# =============================================================================
# Effects Tests
# =============================================================================

class TestEffects:

    def test_level_zero_is_empty(self, plan):
        assert enhance_effects(plan, 0) == []

    def test_threshold_filters_segments(self, plan):
        # threshold 90: only the 95 climax segment qualifies
        effects = enhance_effects(plan, 10)
        assert {e.start for e in effects} <= {48.0, 48.5}
        assert [e.type for e in effects] == ["slowmo", "zoom"]

    def test_slowmo_and_zoom_params(self, plan):
        effects = enhance_effects(plan, 80)
        slowmo = [e for e in effects if e.type == "slowmo"]
        zoom = [e for e in effects if e.type == "zoom"]

        # Both climax segments score >= 80
        assert [e.start for e in slowmo] == [48.0, 70.0]
        assert slowmo[0].params["factor"] == 0.25
        assert slowmo[0].duration == 3.0
        assert slowmo[1].duration == 3.0

        assert len(zoom) == 1
        assert zoom[0].start == 48.5
        assert zoom[0].duration == 1.5
        assert zoom[0].params["factor"] == pytest.approx(1.6)
        assert zoom[0].params["easing"] == "easeInOutCubic"

    def test_slowmo_gentler_at_mid_level(self, plan):
        slowmo = [e for e in enhance_effects(plan, 70) if e.type == "slowmo"]
        assert all(e.params["factor"] == 0.5 for e in slowmo)

    def test_shake_only_when_chaotic(self):
        chaotic = enhance_effects(make_plan(mood=Mood.CHAOTIC), 60)
        shakes = [e for e in chaotic if e.type == "shake"]
        assert shakes
        assert shakes[0].params == {"intensity": 0.6, "frequency": 15}

        calm = enhance_effects(make_plan(mood=Mood.INTENSE), 60)
        assert not any(e.type == "shake" for e in calm)

    def test_one_segment_can_emit_several(self):
        plan = make_plan(mood=Mood.CHAOTIC, segments=[ClipSegment(0.0, 6.0, 95, SegmentPhase.CLIMAX)])
        types = [e.type for e in enhance_effects(plan, 60)]
        assert types == ["slowmo", "zoom", "shake"]


# =============================================================================
# Hook Tests
# =============================================================================

class TestHook:

    def test_preview_is_best_segment(self, plan):
        hook = enhance_hook(plan, 80)
        assert hook.preview_timestamp == 48.0
        assert hook.text == "THE COMEBACK NOBODY EXPECTED 🔥"
        assert hook.duration == 3.0
        assert hook.zoom["factor"] == pytest.approx(1.4)
        assert hook.text_style["animation"] == "slam"
        assert hook.text_style["size"] == 72
        assert hook.text_style["font"] == "Bebas Neue"

    @pytest.mark.parametrize("level,duration", [(71, 3.0), (70, 2.5), (41, 2.5), (40, 2.0), (0, 2.0)])
    def test_duration_tiers(self, plan, level, duration):
        assert enhance_hook(plan, level).duration == duration

    def test_empty_plan_still_emits(self):
        hook = enhance_hook(make_plan(segments=[]), 50)
        assert hook.preview_timestamp == 0.0
        assert hook.text_style["animation"] == "fadeIn"
        assert hook.text_style["stroke_width"] == 2

    def test_chill_styling(self):
        hook = enhance_hook(make_plan(mood=Mood.CHILL), 30)
        assert hook.text_style["font"] == "Inter"
        assert hook.text_style["size"] == 48
        assert hook.text != FALLBACK_HOOK_TEXT


# =============================================================================
# Transition Tests
# =============================================================================

class TestTransitions:

    def test_empty_cases(self, plan):
        assert enhance_transitions(plan, 0) == []
        single = make_plan(segments=[ClipSegment(0.0, 4.0, 80, SegmentPhase.CLIMAX)])
        assert enhance_transitions(single, 90) == []

    def test_one_per_adjacent_pair(self, plan):
        transitions = enhance_transitions(plan, 40)
        assert len(transitions) == 3
        assert [t.at for t in transitions] == [14.0, 32.0, 54.0]

    def test_hard_cut_has_no_duration(self, plan):
        transitions = enhance_transitions(plan, 40)
        assert all(t.type == "cut" for t in transitions)
        assert all(t.duration == 0.0 for t in transitions)

    def test_phase_change_upgrades_cut_to_whip(self, plan):
        transitions = enhance_transitions(plan, 60)
        # intro->build, build->climax change phase; climax->climax does not
        assert [t.type for t in transitions] == ["whip", "whip", "cut"]
        assert transitions[0].duration == 0.45
        assert transitions[0].params["phase_change"] is True
        assert transitions[2].params["phase_change"] is False

    def test_crossfade_upgrades_to_zoom_through(self):
        plan = make_plan(mood=Mood.CHILL, transition_style="crossfade")
        transitions = enhance_transitions(plan, 60)
        assert [t.type for t in transitions] == ["zoom-through", "zoom-through", "crossfade"]
        assert transitions[2].params["curve"] == "easeInOut"

    def test_glitch_params(self):
        plan = make_plan(mood=Mood.CHAOTIC, transition_style="glitch-whip")
        glitch = enhance_transitions(plan, 45)[0]
        assert glitch.type == "glitch"
        assert glitch.params["slices"] == 4
        assert glitch.params["rgb_shift"] is False
        assert glitch.duration == 0.41

    def test_unknown_style_defaults_to_crossfade(self):
        plan = make_plan(transition_style="star-wipe")
        assert enhance_transitions(plan, 30)[0].type == "crossfade"


# =============================================================================
# Orchestrator Tests
# =============================================================================

class TestApplyEnhancements:

    def test_attaches_without_touching_segments(self, plan):
        levels = EnhancementLevels(bgm=80, subtitles=60, effects=75, hook=90, transitions=70)
        enhanced = apply_enhancements(plan, levels)

        assert enhanced.segments == plan.segments
        assert enhanced.total_duration == plan.total_duration
        assert enhanced.levels == levels
        assert isinstance(enhanced.enhancements, Enhancements)
        assert plan.enhancements is None

    def test_to_dict_round_trips_to_json_types(self, plan):
        levels = EnhancementLevels(bgm=0, subtitles=0, effects=0, hook=50, transitions=0)
        data = apply_enhancements(plan, levels).to_dict()
        assert data["levels"]["hook"] == 50
        assert data["enhancements"]["subtitles"] == []
        assert data["enhancements"]["effects"] == []
        assert data["enhancements"]["transitions"] == []
        assert data["enhancements"]["bgm"]["mix_level"] == 0
