"""FFmpeg and ffprobe utilities."""
import asyncio
import json
import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from kairo.config import settings

logger = logging.getLogger(__name__)


@dataclass
class VideoInfo:
    """Video metadata container."""
    duration: float
    width: int
    height: int
    fps: float
    video_codec: str
    audio_codec: Optional[str]
    format_name: str
    bit_rate: Optional[int]


class FFmpegError(Exception):
    """FFmpeg related error."""
    pass


class FFmpegTimeoutError(FFmpegError):
    """An ffmpeg step ran past its time limit and was killed."""

    def __init__(self, step: str, timeout: float):
        self.step = step
        self.timeout = timeout
        super().__init__(f"{step} timed out after {timeout:.0f}s")


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg is available."""
    return shutil.which(settings.ffmpeg_path) is not None


def check_ffprobe_available() -> bool:
    """Check if ffprobe is available."""
    return shutil.which(settings.ffprobe_path) is not None


async def _run_ffmpeg(args: List[str], timeout: float, step: str) -> None:
    """
    Run ffmpeg to completion.

    Raises:
        FFmpegTimeoutError: If the process outlives timeout (it is killed)
        FFmpegError: If ffmpeg exits non-zero
    """
    cmd = [settings.ffmpeg_path, *args]
    logger.debug(f"{step}: {' '.join(cmd)}")

    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise FFmpegTimeoutError(step, timeout) from None

    if proc.returncode != 0:
        raise FFmpegError(f"{step} failed: {stderr.decode(errors='ignore').strip()}")


async def get_video_info(video_path: str | Path) -> VideoInfo:
    """
    Get video metadata using ffprobe.

    Args:
        video_path: Path to video file

    Returns:
        VideoInfo with video metadata

    Raises:
        FFmpegError: If ffprobe fails
    """
    video_path = Path(video_path)
    if not video_path.exists():
        raise FFmpegError(f"Video file not found: {video_path}")

    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(video_path)
    ]

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            raise FFmpegError(f"ffprobe failed: {stderr.decode()}")

        data = json.loads(stdout.decode())

        video_stream = None
        audio_stream = None
        for stream in data.get("streams", []):
            if stream.get("codec_type") == "video" and video_stream is None:
                video_stream = stream
            elif stream.get("codec_type") == "audio" and audio_stream is None:
                audio_stream = stream

        if not video_stream:
            raise FFmpegError("No video stream found")

        fps_str = video_stream.get("r_frame_rate", "30/1")
        if "/" in fps_str:
            num, den = fps_str.split("/")
            fps = float(num) / float(den) if float(den) > 0 else 30.0
        else:
            fps = float(fps_str)

        # Container duration first, stream duration as fallback
        duration = float(data.get("format", {}).get("duration", 0))
        if duration == 0:
            duration = float(video_stream.get("duration", 0))

        return VideoInfo(
            duration=duration,
            width=int(video_stream.get("width", 0)),
            height=int(video_stream.get("height", 0)),
            fps=fps,
            video_codec=video_stream.get("codec_name", "unknown"),
            audio_codec=audio_stream.get("codec_name") if audio_stream else None,
            format_name=data.get("format", {}).get("format_name", "unknown"),
            bit_rate=int(data.get("format", {}).get("bit_rate", 0)) or None
        )
    except json.JSONDecodeError as e:
        raise FFmpegError(f"Failed to parse ffprobe output: {e}")
    except Exception as e:
        if isinstance(e, FFmpegError):
            raise
        raise FFmpegError(f"ffprobe error: {e}")


async def extract_frames(
    video_path: str | Path,
    fps: float,
    output_dir: str | Path,
) -> List[Path]:
    """
    Sample frames from a video at a fixed rate.

    Frames are written to output_dir as frame_000001.jpg, frame_000002.jpg
    and so on. Frame i (0-based) sits at i / fps seconds.

    Args:
        video_path: Path to source video
        fps: Frames per second to sample
        output_dir: Directory for the frames (created if missing)

    Returns:
        Frame paths in extraction order

    Raises:
        FFmpegTimeoutError: If extraction exceeds settings.extract_timeout_sec
        FFmpegError: If ffmpeg fails
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    ext = settings.frame_format
    args = []
    if settings.ffmpeg_hwaccel != "none":
        args += ["-hwaccel", settings.ffmpeg_hwaccel]
    args += [
        "-i", str(video_path),
        "-vf", f"fps={fps}",
        "-q:v", str(settings.frame_quality),
        "-threads", str(settings.ffmpeg_threads),
        "-y",
        "-loglevel", "warning",
        str(output_dir / f"frame_%06d.{ext}"),
    ]

    await _run_ffmpeg(args, settings.extract_timeout_sec, "Frame extraction")

    frames = sorted(output_dir.glob(f"frame_*.{ext}"))
    logger.info(f"Extracted {len(frames)} frames at {fps} fps into {output_dir}")
    return frames


def _concat_line(path: Path) -> str:
    # concat demuxer quoting: close the quote, escape, reopen
    escaped = str(path).replace("'", "'\\''")
    return f"file '{escaped}'"


async def render_clip(
    video_path: str | Path,
    segments: Sequence[Tuple[float, float]],
    output_path: str | Path,
) -> Path:
    """
    Render a clip by cutting each segment and concatenating them in order.

    Each segment is re-encoded to its own file, then the pieces are
    joined losslessly with the concat demuxer.

    Args:
        video_path: Path to source video
        segments: Ordered, non-overlapping (start, end) pairs in seconds
        output_path: Path for the final file

    Returns:
        Path to the rendered clip

    Raises:
        FFmpegError: If there are no segments or any ffmpeg step fails
        FFmpegTimeoutError: If a step exceeds settings.render_step_timeout_sec
    """
    if not segments:
        raise FFmpegError("Cannot render clip: no segments")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    work_dir = settings.temp_dir / f"render_{uuid.uuid4().hex[:8]}"
    work_dir.mkdir(parents=True, exist_ok=True)
    timeout = settings.render_step_timeout_sec

    try:
        pieces = []
        for i, (start, end) in enumerate(segments):
            piece = work_dir / f"seg_{i:04d}{output_path.suffix}"
            await _run_ffmpeg(
                [
                    "-ss", str(start),
                    "-i", str(video_path),
                    "-t", str(end - start),
                    "-c:v", settings.export_video_codec,
                    "-c:a", settings.export_audio_codec,
                    "-crf", str(settings.export_video_crf),
                    "-y",
                    "-loglevel", "warning",
                    str(piece),
                ],
                timeout,
                f"Segment {i} cut",
            )
            pieces.append(piece)

        concat_list = work_dir / "concat.txt"
        concat_list.write_text("\n".join(_concat_line(p) for p in pieces), encoding="utf-8")

        await _run_ffmpeg(
            [
                "-f", "concat",
                "-safe", "0",
                "-i", str(concat_list),
                "-c", "copy",
                "-y",
                "-loglevel", "warning",
                str(output_path),
            ],
            timeout,
            "Concat",
        )
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)

    logger.info(f"Rendered {len(segments)} segments -> {output_path}")
    return output_path
