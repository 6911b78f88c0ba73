"""
End-to-end run: cues (or fallbacks) -> segments -> questions -> manifest.
"""

import logging
import random
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from .config import PipelineConfig
from .distractors import DistractorStrategy, template_distractors
from .errors import NoCuesError, NoSegmentsError
from .manifest import build_manifest
from .mcq import build_mcq_telemetry, generate_mcqs
from .models import Chapter, Cue, MCQOutcome, Segment, SkippedSpan
from .segmentation import (
    create_uniform_segments,
    screen_segments,
    segment_by_chapters,
    segment_transcript,
    segmentation_summary,
)

logger = logging.getLogger("ilearn")

SOURCE_TRANSCRIPT = "transcript"
SOURCE_CHAPTERS = "chapters"
SOURCE_UNIFORM = "uniform"


@dataclass
class PipelineResult:
    source: str
    segments: list[Segment]
    skipped: list[SkippedSpan]
    outcomes: list[MCQOutcome]
    manifest: dict
    summary: dict = field(default_factory=dict)


def build_segments(
    cues: list[Cue] | None,
    config: PipelineConfig,
    *,
    title: str = "",
    chapters: list[Chapter] | None = None,
    video_duration: float | None = None,
) -> tuple[str, list[Segment], list[SkippedSpan]]:
    """Pick the segmentation source from what is available: transcript, chapters, then duration."""
    if cues:
        segments = segment_transcript(
            cues,
            min_duration=config.min_duration,
            max_duration=config.max_duration,
            preferred_duration=config.preferred_duration,
            language=config.language,
        )
        skipped: list[SkippedSpan] = []
        if config.screen_segments:
            segments, skipped = screen_segments(
                segments,
                min_chars=config.seg_min_chars,
                video_topic=title or None,
                check_off_topic=config.check_off_topic,
            )
        if not segments:
            msg = f"No segments generated from transcript ({len(cues)} cues, {len(skipped)} skipped)"
            raise NoSegmentsError(msg)
        return SOURCE_TRANSCRIPT, segments, skipped

    if chapters and video_duration:
        segments = segment_by_chapters(chapters, video_duration, language=config.language)
        if segments:
            return SOURCE_CHAPTERS, segments, []

    if video_duration and video_duration > 0:
        segments = create_uniform_segments(
            video_duration, config.uniform_segment_duration, language=config.language
        )
        return SOURCE_UNIFORM, segments, []

    msg = "No cues found in captions and no chapters or video duration to fall back on"
    raise NoCuesError(msg)


def run_pipeline(
    cues: list[Cue] | None,
    *,
    video_id: str,
    title: str,
    config: PipelineConfig | None = None,
    chapters: list[Chapter] | None = None,
    video_duration: float | None = None,
    distractors: DistractorStrategy | None = None,
    rng: random.Random | None = None,
    progress: Callable[[Iterable], Iterable] | None = None,
) -> PipelineResult:
    """Segment the video, generate one checkpoint question per segment and build its manifest."""
    config = config or PipelineConfig.from_env()
    config.validate()

    source, segments, skipped = build_segments(
        cues, config, title=title, chapters=chapters, video_duration=video_duration
    )
    logger.info("Segmentation (%s): %s", source, segmentation_summary(segments, skipped))

    outcomes, _ = generate_mcqs(
        segments,
        config.language,
        max_per_segment=config.mcq_max_per_segment,
        distractors=distractors or template_distractors,
        rng=rng,
        dedup_threshold=config.dedup_threshold,
        progress=progress,
    )

    manifest = build_manifest(
        video_id,
        segments,
        outcomes,
        title=title,
        duration=video_duration,
        has_captions=source == SOURCE_TRANSCRIPT,
        chapters_only=source == SOURCE_CHAPTERS,
    )
    summary = {
        "segmentation": segmentation_summary(segments, skipped),
        "mcq": build_mcq_telemetry(outcomes),
    }
    return PipelineResult(
        source=source,
        segments=segments,
        skipped=skipped,
        outcomes=outcomes,
        manifest=manifest,
        summary=summary,
    )
