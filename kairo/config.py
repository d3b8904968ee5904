"""Application configuration."""
from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )
    
    # App settings
    app_name: str = "KAIRO"
    debug: bool = False
    
    # FFmpeg settings
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    ffmpeg_threads: int = 0  # 0 = let ffmpeg decide
    ffmpeg_hwaccel: Literal["none", "videotoolbox", "cuda", "vaapi"] = "none"
    
    # Frame extraction
    frame_format: str = "jpg"
    frame_quality: int = 2  # ffmpeg -q:v, 2-31, lower = better
    temp_dir: Path = Path("/tmp/kairo-frames")
    
    # Export settings
    output_dir: Path = Path("./output")
    output_format: str = "mp4"
    export_video_codec: str = "libx264"
    export_audio_codec: str = "aac"
    export_video_crf: int = 18
    
    # External process timeouts
    extract_timeout_sec: float = 300.0
    render_step_timeout_sec: float = 120.0


settings = Settings()
