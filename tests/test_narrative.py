"""Tests for narrative clip planning."""
import pytest

from kairo.pipeline.detection import Highlight
from kairo.pipeline.narrative import (
    ClipSegment,
    SegmentPhase,
    allocate_phase_counts,
    assign_phases,
    build_narrative,
    build_segments,
    merge_overlapping_segments,
    trim_to_duration,
)
from kairo.pipeline.templates import Mood, StructureTiming, get_template


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def chill_template():
    return get_template("chill-highlights")


@pytest.fixture
def kill_montage():
    return get_template("kill-montage")


@pytest.fixture
def spread_highlights():
    """Ten highlights 30s apart with descending scores."""
    return [Highlight(timestamp=30.0 * (i + 1), score=95 - i * 5) for i in range(10)]


def _assert_well_formed(segments):
    for seg in segments:
        assert seg.start < seg.end
    for a, b in zip(segments, segments[1:]):
        assert a.end < b.start


# =============================================================================
# Phase Allocation Tests
# =============================================================================

class TestPhaseAllocation:
    """Tests for ranking highlights into phases."""

    @pytest.mark.parametrize("total", [1, 2, 3, 4, 7, 10, 25])
    @pytest.mark.parametrize("template_id", ["chill-highlights", "kill-montage", "session-story"])
    def test_counts_sum_to_total(self, total, template_id):
        counts = allocate_phase_counts(total, get_template(template_id).structure)
        assert sum(counts.values()) == total
        assert all(c >= 0 for c in counts.values())

    def test_climax_granted_first(self):
        structure = StructureTiming(intro=0.15, build=0.30, climax=0.30, outro=0.25)
        counts = allocate_phase_counts(1, structure)
        assert counts[SegmentPhase.CLIMAX] == 1
        assert counts[SegmentPhase.BUILD] == 0
        assert counts[SegmentPhase.INTRO] == 0
        assert counts[SegmentPhase.OUTRO] == 0

    def test_ceil_with_remainder_to_outro(self, chill_template):
        counts = allocate_phase_counts(10, chill_template.structure)
        assert counts[SegmentPhase.CLIMAX] == 3
        assert counts[SegmentPhase.BUILD] == 3
        assert counts[SegmentPhase.INTRO] == 2
        assert counts[SegmentPhase.OUTRO] == 2

    def test_top_scores_are_climax(self, spread_highlights, chill_template):
        phased = assign_phases(spread_highlights, chill_template.structure)
        climax_scores = sorted(h.score for h, p in phased if p == SegmentPhase.CLIMAX)
        assert climax_scores == [85, 90, 95]

    def test_output_keeps_input_order(self, spread_highlights, chill_template):
        shuffled = spread_highlights[::-1]
        phased = assign_phases(shuffled, chill_template.structure)
        assert [h for h, _ in phased] == shuffled

    def test_equal_scores_rank_chronologically(self, chill_template):
        highlights = [Highlight(50.0, 80), Highlight(10.0, 80), Highlight(90.0, 80)]
        phased = dict((h.timestamp, p) for h, p in assign_phases(highlights, chill_template.structure))
        assert phased[10.0] == SegmentPhase.CLIMAX
        assert phased[50.0] == SegmentPhase.BUILD
        assert phased[90.0] == SegmentPhase.INTRO


# =============================================================================
# Segment Tests
# =============================================================================

class TestSegments:
    """Tests for padding, merging and trimming."""

    def test_padding_clamps_at_zero(self):
        segments = build_segments([(Highlight(1.0, 70), SegmentPhase.INTRO)], padding_sec=2.0)
        assert segments[0].start == 0.0
        assert segments[0].end == 3.0

    def test_merge_takes_higher_score_phase(self):
        segments = [
            ClipSegment(8.0, 12.0, 40, SegmentPhase.INTRO),
            ClipSegment(10.0, 14.0, 95, SegmentPhase.CLIMAX),
        ]
        merged = merge_overlapping_segments(segments)
        assert merged == [ClipSegment(8.0, 14.0, 95, SegmentPhase.CLIMAX)]

    def test_merge_tie_keeps_earlier(self):
        segments = [
            ClipSegment(8.0, 12.0, 70, SegmentPhase.BUILD),
            ClipSegment(11.0, 15.0, 70, SegmentPhase.CLIMAX),
        ]
        merged = merge_overlapping_segments(segments)
        assert merged[0].phase == SegmentPhase.BUILD

    def test_touching_segments_merge(self):
        segments = [
            ClipSegment(0.0, 4.0, 50, SegmentPhase.INTRO),
            ClipSegment(4.0, 8.0, 60, SegmentPhase.BUILD),
        ]
        assert len(merge_overlapping_segments(segments)) == 1

    def test_merge_contained_segment(self):
        segments = [
            ClipSegment(0.0, 10.0, 50, SegmentPhase.INTRO),
            ClipSegment(2.0, 4.0, 30, SegmentPhase.OUTRO),
        ]
        merged = merge_overlapping_segments(segments)
        assert merged == [ClipSegment(0.0, 10.0, 50, SegmentPhase.INTRO)]

    def test_trim_cuts_overflowing_segment_exactly(self):
        segments = [
            ClipSegment(8.0, 12.0, 80, SegmentPhase.CLIMAX),
            ClipSegment(28.0, 32.0, 70, SegmentPhase.BUILD),
            ClipSegment(48.0, 52.0, 60, SegmentPhase.INTRO),
        ]
        trimmed = trim_to_duration(segments, 6.0)
        assert len(trimmed) == 2
        assert trimmed[1].start == 28.0
        assert trimmed[1].end == 30.0
        assert sum(s.duration for s in trimmed) == 6.0

    def test_trim_drops_segment_with_no_budget_left(self):
        segments = [
            ClipSegment(0.0, 4.0, 80, SegmentPhase.CLIMAX),
            ClipSegment(10.0, 14.0, 70, SegmentPhase.BUILD),
        ]
        trimmed = trim_to_duration(segments, 4.0)
        assert trimmed == segments[:1]

    def test_trim_zero_budget(self):
        segments = [ClipSegment(0.0, 4.0, 80, SegmentPhase.CLIMAX)]
        assert trim_to_duration(segments, 0.0) == []


# =============================================================================
# Narrative Builder Tests
# =============================================================================

class TestBuildNarrative:
    """End-to-end clip planning."""

    def test_overlapping_highlights_merge(self, chill_template):
        highlights = [
            Highlight(timestamp=10.0, score=95),
            Highlight(timestamp=12.0, score=40),
            Highlight(timestamp=60.0, score=70),
        ]
        plan = build_narrative(highlights, chill_template, max_duration_sec=1000, padding_sec=2.0)

        assert len(plan.segments) == 2
        first, second = plan.segments
        assert (first.start, first.end, first.score) == (8.0, 14.0, 95)
        assert first.phase == SegmentPhase.CLIMAX
        assert (second.start, second.end, second.score) == (58.0, 62.0, 70)
        assert plan.total_duration == 10.0

    def test_no_highlights(self, chill_template):
        plan = build_narrative([], chill_template, max_duration_sec=600, padding_sec=2.0)
        assert plan.segments == ()
        assert plan.total_duration == 0
        assert plan.template_id == "chill-highlights"

    def test_plan_carries_template_fields(self, kill_montage, spread_highlights):
        plan = build_narrative(
            spread_highlights, kill_montage, 600, 2.0, plan_id="abc123", video_path="/vods/a.mp4"
        )
        assert plan.id == "abc123"
        assert plan.video_path == "/vods/a.mp4"
        assert plan.mood == Mood.INTENSE
        assert plan.transition_style == "hard-cut"
        assert plan.enhancements is None

    def test_budget_respected(self, chill_template, spread_highlights):
        plan = build_narrative(spread_highlights, chill_template, max_duration_sec=10, padding_sec=2.0)
        assert plan.total_duration == pytest.approx(10.0)
        assert len(plan.segments) == 3
        assert plan.segments[-1].duration == pytest.approx(2.0)

    def test_dense_highlights_never_overlap(self, chill_template):
        highlights = [Highlight(timestamp=t * 1.5, score=(t * 37) % 100) for t in range(40)]
        plan = build_narrative(highlights, chill_template, max_duration_sec=1000, padding_sec=2.0)
        _assert_well_formed(plan.segments)
        assert plan.total_duration == pytest.approx(sum(s.duration for s in plan.segments))

    def test_segments_are_chronological(self, chill_template, spread_highlights):
        plan = build_narrative(spread_highlights[::-1], chill_template, 600, 2.0)
        starts = [s.start for s in plan.segments]
        assert starts == sorted(starts)
        _assert_well_formed(plan.segments)

    @pytest.mark.parametrize("padding", [0.0, -1.5])
    def test_non_positive_padding_gives_empty_plan(self, chill_template, spread_highlights, padding):
        plan = build_narrative(spread_highlights, chill_template, 600, padding)
        assert plan.segments == ()
        assert plan.total_duration == 0

    def test_to_dict(self, chill_template):
        plan = build_narrative([Highlight(20.0, 80)], chill_template, 600, 2.0)
        data = plan.to_dict()
        assert data["mood"] == "chill"
        assert data["segments"][0]["phase"] == "climax"
        assert data["segments"][0]["duration"] == 4.0
        assert data["levels"] is None
