"""
Pipeline configuration loaded from environment variables.
"""

import os
from dataclasses import dataclass, field


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PipelineConfig:
    """Tuning knobs for segmentation and question generation."""

    min_duration: float = field(default_factory=lambda: _env_float("SEG_MIN_DURATION", 30.0))
    max_duration: float = field(default_factory=lambda: _env_float("SEG_MAX_DURATION", 60.0))
    preferred_duration: float = field(default_factory=lambda: _env_float("SEG_PREFERRED_DURATION", 45.0))
    uniform_segment_duration: float = field(default_factory=lambda: _env_float("UNIFORM_SEGMENT_SECONDS", 45.0))
    seg_min_chars: int = field(default_factory=lambda: _env_int("SEG_MIN_CHARS", 40))
    screen_segments: bool = field(default_factory=lambda: _env_bool("SEG_SCREEN", True))
    check_off_topic: bool = field(default_factory=lambda: _env_bool("CHECK_OFF_TOPIC", False))
    mcq_max_per_segment: int = field(default_factory=lambda: _env_int("MCQ_MAX_PER_SEGMENT", 1))
    dedup_threshold: float = field(default_factory=lambda: _env_float("MCQ_DEDUP_THRESHOLD", 0.9))
    language: str = field(default_factory=lambda: os.getenv("MCQ_LANGUAGE", "en"))
    openai_model: str = field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini"))

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        return cls()

    def validate(self) -> None:
        """Raise ValueError for settings the segmenter and generator cannot work with."""
        if self.mcq_max_per_segment < 1:
            msg = f"MCQ_MAX_PER_SEGMENT must be >= 1, got {self.mcq_max_per_segment}"
            raise ValueError(msg)
        if not 0.0 < self.dedup_threshold <= 1.0:
            msg = f"MCQ_DEDUP_THRESHOLD must be in (0, 1], got {self.dedup_threshold}"
            raise ValueError(msg)
        if self.min_duration <= 0 or self.min_duration > self.max_duration or self.preferred_duration <= 0:
            msg = (
                "Invalid segment durations "
                f"(min={self.min_duration}, max={self.max_duration}, preferred={self.preferred_duration})"
            )
            raise ValueError(msg)
