#!/usr/bin/env python3
"""
CLI tool to turn a gameplay VOD into a narrative highlight clip.

Usage:
    python scripts/analyze_vod_cli.py <video_path> [--template <id>] [--persona <preset>] [--dry-run]

Example:
    python scripts/analyze_vod_cli.py ~/Videos/ranked_session.mp4 --persona hype_streamer
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import numpy as np
from pydantic import ValidationError

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from kairo.config import settings
from kairo.pipeline.config import PipelineConfig
from kairo.pipeline.persona import PRESET_PERSONAS, StreamerPersona, get_preset_persona
from kairo.pipeline.runner import PipelineStageError, run_pipeline
from kairo.pipeline.templates import TemplateNotFoundError, list_template_ids
from kairo.utils.ffmpeg import check_ffmpeg_available, check_ffprobe_available


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)


def load_persona(preset: str = None, persona_file: Path = None) -> StreamerPersona:
    """Persona from a JSON file, a preset key, or None."""
    if persona_file is not None:
        return StreamerPersona.model_validate_json(persona_file.read_text(encoding="utf-8"))
    if preset is not None:
        return get_preset_persona(preset)
    return None


async def analyze_video(
    video_path: Path,
    output_dir: Path,
    template_id: str = None,
    persona: StreamerPersona = None,
    max_duration: float = None,
    output_path: Path = None,
    dry_run: bool = False,
    build_story: bool = True,
    config: PipelineConfig = None,
    seed: int = None,
):
    """
    Analyze a video file and write the clip plan.

    Args:
        video_path: Path to video file
        output_dir: Directory for the plan and debug files
        template_id: Explicit template id
        persona: Persona for template matching and level tuning
        max_duration: Output duration budget in seconds
        output_path: Rendered clip destination
        dry_run: Plan only, skip the render
        build_story: Also build a story arc
        config: Optional pipeline config override
        seed: Seed for reproducible mock detection and story text
    """
    if not video_path.exists():
        raise FileNotFoundError(f"Video not found: {video_path}")

    output_dir.mkdir(parents=True, exist_ok=True)

    config = config or PipelineConfig(write_debug_json=True)

    async def progress_callback(pct, msg):
        logger.debug(f"progress {pct:.0f}%: {msg}")

    result = await run_pipeline(
        video_path,
        template_id=template_id,
        persona=persona,
        max_duration=max_duration,
        output_path=output_path,
        dry_run=dry_run,
        build_story=build_story,
        config=config,
        rng=np.random.default_rng(seed),
        debug_dir=output_dir / "debug",
        progress_callback=progress_callback,
    )

    output_file = output_dir / "kairo_plan.json"
    with open(output_file, 'w') as f:
        json.dump(result.to_dict(), f, indent=2)

    plan = result.clip_plan
    logger.info(f"Plan written to: {output_file}")
    logger.info(
        f"Template {plan.template_id}: {len(result.highlights)} highlights -> "
        f"{len(plan.segments)} segments ({plan.total_duration:.1f}s)"
    )

    for i, seg in enumerate(plan.segments):
        logger.info(
            f"  {i+1}. {seg.start:.1f}s - {seg.end:.1f}s "
            f"(score: {seg.score}, phase: {seg.phase.value})"
        )

    if result.story_arc is not None:
        logger.info(f"Story: \"{result.story_arc.title}\" - {result.story_arc.logline}")

    if result.output_path:
        logger.info(f"Clip rendered to: {result.output_path}")

    return result


def main():
    parser = argparse.ArgumentParser(
        description="Turn a gameplay VOD into a narrative highlight clip with KAIRO",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Templates:
    {", ".join(list_template_ids())}

Examples:
    # Plan only, default template
    python scripts/analyze_vod_cli.py vod.mp4 --dry-run

    # Let a persona pick the template
    python scripts/analyze_vod_cli.py vod.mp4 --persona chaos_gremlin

    # Explicit template, 60 second budget, reproducible
    python scripts/analyze_vod_cli.py vod.mp4 --template clutch-master --max-duration 60 --seed 7
        """
    )

    parser.add_argument(
        "video_path",
        type=Path,
        help="Path to video file to analyze"
    )

    parser.add_argument(
        "--template", "-t",
        default=None,
        help="Template id (overrides persona matching)"
    )

    persona_group = parser.add_mutually_exclusive_group()
    persona_group.add_argument(
        "--persona", "-p",
        choices=sorted(PRESET_PERSONAS),
        default=None,
        help="Preset persona"
    )
    persona_group.add_argument(
        "--persona-file",
        type=Path,
        default=None,
        help="Persona JSON file"
    )

    parser.add_argument(
        "--max-duration",
        type=float,
        default=None,
        help="Maximum clip duration in seconds (default: 600)"
    )

    parser.add_argument(
        "--fps",
        type=float,
        default=None,
        help="Frames sampled per second (default: 1)"
    )

    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Rendered clip path (default: auto-named in the configured output dir)"
    )

    parser.add_argument(
        "--output-dir", "-o",
        type=Path,
        default=None,
        help="Directory for the plan and debug JSON (default: ./kairo_output)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build the plan without rendering"
    )

    parser.add_argument(
        "--no-story",
        action="store_true",
        help="Skip the story arc"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible output"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )

    args = parser.parse_args()

    if args.verbose or settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if not (check_ffmpeg_available() and check_ffprobe_available()):
        logger.error(f"ffmpeg/ffprobe not found (looked for {settings.ffmpeg_path}, {settings.ffprobe_path})")
        sys.exit(1)

    # Default output directory
    if args.output_dir is None:
        args.output_dir = Path("./kairo_output")

    config = PipelineConfig(write_debug_json=True)
    if args.fps is not None:
        config.extraction_fps = args.fps

    # Run
    try:
        persona = load_persona(args.persona, args.persona_file)
        asyncio.run(analyze_video(
            video_path=args.video_path,
            output_dir=args.output_dir,
            template_id=args.template,
            persona=persona,
            max_duration=args.max_duration,
            output_path=args.output,
            dry_run=args.dry_run,
            build_story=not args.no_story,
            config=config,
            seed=args.seed,
        ))
    except (FileNotFoundError, TemplateNotFoundError, ValidationError) as e:
        logger.error(str(e))
        sys.exit(1)
    except PipelineStageError as e:
        logger.error(f"Pipeline failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
