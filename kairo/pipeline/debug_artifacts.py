"""Debug artifact generation.

Writes a JSON file explaining every pipeline decision for one run.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .config import PipelineConfig
from .detection import Highlight
from .narrative import ClipPlan
from .persona import TemplateMatch
from .story import StoryArc
from .summary import HighlightSummary

logger = logging.getLogger(__name__)


def write_debug_json(
    output_path: Path,
    config: PipelineConfig,
    video_path: str,
    frame_count: int,
    highlights: List[Highlight],
    summary: HighlightSummary,
    template_match: Optional[TemplateMatch],
    clip_plan: ClipPlan,
    story_arc: Optional[StoryArc],
    timing: dict,
):
    """
    Write comprehensive debug JSON file.
    """
    segments = clip_plan.segments
    debug_data = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "run_id": clip_plan.id,
        "video_path": video_path,

        "config": config.to_dict(),

        "frames_extracted": frame_count,
        "highlights": [h.to_dict() for h in highlights],
        "highlight_summary": summary.to_dict(),

        # Only present when a persona drove template selection
        "template_match": template_match.to_dict() if template_match else None,
        "template_id": clip_plan.template_id,

        "clip_plan": clip_plan.to_dict(),
        "story_arc": story_arc.to_dict() if story_arc else None,

        "timing": dict(timing),

        "statistics": {
            "highlights": len(highlights),
            "segments": len(segments),
            "total_duration": clip_plan.total_duration,
            "avg_segment_duration": clip_plan.total_duration / len(segments) if segments else 0,
            "story_beats": len(story_arc.beats) if story_arc else 0,
        },
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(debug_data, f, indent=2)

    logger.info(f"Wrote debug JSON to {output_path}")
