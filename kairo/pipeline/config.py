"""Pipeline configuration."""
from dataclasses import dataclass


@dataclass
class PipelineConfig:
    """Tunable thresholds for the highlight-to-story pipeline."""
    
    # Frame extraction
    extraction_fps: float = 1.0  # Frames sampled per second of video
    
    # Highlight selection
    min_highlight_score: int = 60  # Minimum score (0-100) to qualify
    min_gap_sec: float = 5.0  # Highlights closer than this are deduplicated
    max_highlights: int = 20  # Cap on highlights kept per run
    
    # Clip planning
    context_padding_sec: float = 2.0  # Symmetric padding around each highlight
    max_output_duration_sec: float = 600.0
    max_input_duration_sec: float = 7200.0  # Reject VODs longer than 2 hours
    
    # Story arc
    story_context_padding_sec: float = 2.0
    story_peak_padding_sec: float = 3.0  # Extra room around the peak moment
    
    # Template used when neither a template id nor a persona is given
    default_template_id: str = "chill-highlights"
    
    # Debug
    write_debug_json: bool = False
    
    def __post_init__(self):
        if self.context_padding_sec <= 0:
            raise ValueError(f"context_padding_sec must be positive, got {self.context_padding_sec}")
    
    def to_dict(self) -> dict:
        """Convert config to dictionary for serialization."""
        return {
            "extraction_fps": self.extraction_fps,
            "min_highlight_score": self.min_highlight_score,
            "min_gap_sec": self.min_gap_sec,
            "max_highlights": self.max_highlights,
            "context_padding_sec": self.context_padding_sec,
            "max_output_duration_sec": self.max_output_duration_sec,
            "max_input_duration_sec": self.max_input_duration_sec,
            "story_context_padding_sec": self.story_context_padding_sec,
            "story_peak_padding_sec": self.story_peak_padding_sec,
            "default_template_id": self.default_template_id,
            "write_debug_json": self.write_debug_json,
        }


# Default configuration instance
DEFAULT_PIPELINE_CONFIG = PipelineConfig()
