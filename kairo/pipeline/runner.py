"""Pipeline Runner.

Orchestrates VOD analysis end to end:
extract -> detect -> select template -> build narrative -> enhance -> render.
"""
import logging
import shutil
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

import numpy as np

from kairo.config import settings
from kairo.utils.ffmpeg import FFmpegError, extract_frames, get_video_info, render_clip

from .config import DEFAULT_PIPELINE_CONFIG, PipelineConfig
from .debug_artifacts import write_debug_json
from .detection import FrameRef, Highlight, MockHighlightDetector
from .enhancer import apply_enhancements
from .narrative import ClipPlan, build_narrative
from .persona import StreamerPersona, TemplateMatch, customize_enhancements, match_template
from .story import StoryArc, StoryEngine
from .summary import HighlightSummary, summarize_highlights
from .templates import StoryTemplate, get_template

logger = logging.getLogger(__name__)


class PipelineStageError(Exception):
    """An external stage (extract or render) failed and aborted the run."""

    def __init__(self, stage: str, message: str, cause: Optional[BaseException] = None):
        self.stage = stage
        self.cause = cause
        super().__init__(f"[{stage}] {message}")


@dataclass
class PipelineResult:
    """Result from pipeline execution."""
    id: str
    clip_plan: ClipPlan
    highlights: List[Highlight]
    summary: HighlightSummary
    story_arc: Optional[StoryArc] = None
    template_match: Optional[TemplateMatch] = None
    output_path: Optional[Path] = None  # None on a dry run
    timing: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clip_plan": self.clip_plan.to_dict(),
            "highlights": [h.to_dict() for h in self.highlights],
            "summary": self.summary.to_dict(),
            "story_arc": self.story_arc.to_dict() if self.story_arc else None,
            "template_match": self.template_match.to_dict() if self.template_match else None,
            "output_path": str(self.output_path) if self.output_path else None,
            "timing": dict(self.timing),
        }


def _elapsed_ms(since: float) -> int:
    return int((time.perf_counter() - since) * 1000)


def select_template(
    summary: HighlightSummary,
    template_id: Optional[str],
    persona: Optional[StreamerPersona],
    default_template_id: str,
) -> Tuple[StoryTemplate, Optional[TemplateMatch]]:
    """
    Resolve the run's template.

    An explicit id wins (unknown ids raise TemplateNotFoundError), then
    the persona matcher, then the default.
    """
    if template_id:
        return get_template(template_id), None
    if persona is not None:
        match = match_template(persona, summary)
        return match.template, match
    return get_template(default_template_id), None


def default_output_path(run_id: str) -> Path:
    """<output_dir>/kairo_<run id>_<epoch ms>.<format>"""
    return settings.output_dir / f"kairo_{run_id}_{int(time.time() * 1000)}.{settings.output_format}"


def _cleanup_frames(frames_dir: Path) -> None:
    if not frames_dir.exists():
        return
    try:
        shutil.rmtree(frames_dir)
    except OSError as e:
        logger.warning(f"Failed to clean up frames in {frames_dir}: {e}")


async def run_pipeline(
    video_path: str | Path,
    template_id: Optional[str] = None,
    persona: Optional[StreamerPersona] = None,
    max_duration: Optional[float] = None,
    output_path: Optional[str | Path] = None,
    dry_run: bool = False,
    build_story: bool = True,
    config: Optional[PipelineConfig] = None,
    detector: Optional[MockHighlightDetector] = None,
    rng: Optional[np.random.Generator] = None,
    debug_dir: Optional[Path] = None,
    progress_callback: Optional[Callable[[float, str], Awaitable[None]]] = None,
) -> PipelineResult:
    """
    Run the full analysis pipeline on a VOD.

    Args:
        video_path: Path to the source video
        template_id: Explicit template; overrides persona matching
        persona: Streamer persona for template matching and level tuning
        max_duration: Output duration budget in seconds (config default if None)
        output_path: Render destination (auto-named under settings.output_dir if None)
        dry_run: Plan only, skip the render
        build_story: Also build a story arc from the highlights
        config: Pipeline configuration (uses defaults if not provided)
        detector: Highlight detector (mock detector if not provided)
        rng: Random source shared by the mock detector and story engine
        debug_dir: Where to write the debug JSON when enabled in config
        progress_callback: Optional async callback for progress updates

    Returns:
        PipelineResult with the enhanced clip plan and metadata

    Raises:
        TemplateNotFoundError: If template_id is not in the catalog
        PipelineStageError: If probing, extraction or rendering fails
    """
    video_path = Path(video_path)
    config = config or DEFAULT_PIPELINE_CONFIG
    rng = rng if rng is not None else np.random.default_rng()
    detector = detector or MockHighlightDetector(rng)
    max_duration = max_duration if max_duration is not None else config.max_output_duration_sec

    run_id = uuid.uuid4().hex[:8]
    frames_dir = settings.temp_dir / uuid.uuid4().hex[:8]
    timing = {}

    async def report_progress(pct: float, msg: str):
        if progress_callback:
            await progress_callback(pct, msg)
        logger.info(f"[{run_id}] [{pct:.0f}%] {msg}")

    await report_progress(0, f"Starting analysis of {video_path}")
    t_start = time.perf_counter()

    try:
        # Stage 1: Frame extraction
        t = time.perf_counter()
        try:
            info = await get_video_info(video_path)
        except FFmpegError as e:
            raise PipelineStageError("extract", f"Could not probe {video_path}: {e}", e) from e

        if info.duration > config.max_input_duration_sec:
            raise PipelineStageError(
                "extract",
                f"Video is {info.duration:.0f}s long; the limit is "
                f"{config.max_input_duration_sec:.0f}s",
            )

        fps = config.extraction_fps
        try:
            frame_paths = await extract_frames(video_path, fps, frames_dir)
        except FFmpegError as e:
            raise PipelineStageError("extract", f"Frame extraction failed: {e}", e) from e

        frames = [FrameRef(path=p, timestamp=i / fps, index=i) for i, p in enumerate(frame_paths)]
        timing["extract_ms"] = _elapsed_ms(t)
        await report_progress(20, f"Extracted {len(frames)} frames")

        # Stage 2: Highlight detection
        t = time.perf_counter()
        highlights = detector.detect(frames, config)
        summary = summarize_highlights(highlights)
        timing["detect_ms"] = _elapsed_ms(t)
        await report_progress(40, f"Detected {len(highlights)} highlights")

        # Stage 3: Template selection
        template, template_match = select_template(
            summary, template_id, persona, config.default_template_id
        )
        await report_progress(50, f"Using template {template.id}")

        # Stage 4: Narrative, enhancements and story
        t = time.perf_counter()
        clip_plan = build_narrative(
            highlights,
            template,
            max_duration_sec=max_duration,
            padding_sec=config.context_padding_sec,
            plan_id=run_id,
            video_path=str(video_path),
        )

        levels = template.enhancement_defaults
        if persona is not None:
            levels = customize_enhancements(persona, levels)
        clip_plan = apply_enhancements(clip_plan, levels)

        story_arc = None
        if build_story:
            engine = StoryEngine(
                rng=rng,
                context_padding_sec=config.story_context_padding_sec,
                peak_padding_sec=config.story_peak_padding_sec,
            )
            story_arc = engine.build_story_arc(highlights, template, persona)
        timing["build_ms"] = _elapsed_ms(t)
        await report_progress(70, f"Built narrative with {len(clip_plan.segments)} segments")

        # Stage 5: Render
        rendered = None
        timing["render_ms"] = 0
        if dry_run:
            await report_progress(90, "Dry run, skipping render")
        else:
            t = time.perf_counter()
            destination = Path(output_path) if output_path else default_output_path(run_id)
            segments = [(s.start, s.end) for s in clip_plan.segments]
            try:
                rendered = await render_clip(video_path, segments, destination)
            except FFmpegError as e:
                raise PipelineStageError("render", f"Render failed: {e}", e) from e
            timing["render_ms"] = _elapsed_ms(t)
            await report_progress(90, f"Rendered clip to {rendered}")
    finally:
        _cleanup_frames(frames_dir)

    timing["total_ms"] = _elapsed_ms(t_start)

    if config.write_debug_json and debug_dir is not None:
        write_debug_json(
            Path(debug_dir) / f"kairo_{run_id}_debug.json",
            config,
            str(video_path),
            len(frames),
            highlights,
            summary,
            template_match,
            clip_plan,
            story_arc,
            timing,
        )

    await report_progress(100, f"Pipeline complete in {timing['total_ms']}ms")

    return PipelineResult(
        id=run_id,
        clip_plan=clip_plan,
        highlights=highlights,
        summary=summary,
        story_arc=story_arc,
        template_match=template_match,
        output_path=rendered,
        timing=timing,
    )
