# KAIRO pipeline - narrative highlight clips
"""
KAIRO Pipeline: VOD to Narrative Highlight Clip

Turns a long gameplay recording into a short clip with a story shape
instead of a flat list of best moments.

Pipeline stages:
1. Frame Extraction: Sample frames from the VOD with ffmpeg
2. Highlight Detection: Score frames and select distinct, strong moments
3. Template Selection: Explicit id, persona match, or the default
4. Narrative Building: Rank highlights into intro/build/climax/outro segments
5. Enhancement: Music, subtitle, effect, hook and transition directives
6. Render: Cut each segment and concatenate losslessly

A story arc (hook, rising action, climax, outro beats with an emotion
curve) is built alongside the clip plan.
"""

from .runner import PipelineResult, PipelineStageError, run_pipeline

__all__ = ["run_pipeline", "PipelineResult", "PipelineStageError"]
