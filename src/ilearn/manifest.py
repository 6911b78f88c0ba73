"""
Player manifest assembly and JSON artifact writing.
"""

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path

from .models import GeneratedMCQ, MCQOutcome, Segment

logger = logging.getLogger("ilearn")

MANIFEST_VERSION = "1.0"


def support_within_segment(mcq: GeneratedMCQ, segment: Segment) -> bool:
    """Every support line lies inside the segment and has positive length."""
    return all(
        s.t_start_sec >= segment.t_start_sec
        and s.t_end_sec <= segment.t_end_sec
        and s.t_end_sec > s.t_start_sec
        for s in mcq.support
    )


def _valid_bounds(seg: Segment) -> bool:
    return (
        math.isfinite(seg.t_start_sec)
        and math.isfinite(seg.t_end_sec)
        and seg.t_end_sec > seg.t_start_sec
    )


def build_manifest(
    video_id: str,
    segments: list[Segment],
    outcomes: list[MCQOutcome],
    *,
    title: str,
    duration: float | None = None,
    has_captions: bool = True,
    chapters_only: bool = False,
    generated_at: str | None = None,
) -> dict:
    """Build the ordered segment/question description consumed by the video player."""
    by_segment = {o.segment_id: o for o in outcomes}

    entries = []
    total_questions = 0
    latest_end = 0.0
    for seg in sorted(segments, key=lambda s: s.t_start_sec):
        if not _valid_bounds(seg):
            logger.warning("Dropping segment %s with invalid bounds from manifest", seg.segment_id)
            continue
        outcome = by_segment.get(seg.segment_id)
        question_ids = []
        for mcq in outcome.mcqs if outcome else []:
            if not support_within_segment(mcq, seg):
                logger.warning("Question %s has support outside %s; omitted", mcq.question_id, seg.segment_id)
                continue
            question_ids.append(mcq.question_id)
        total_questions += len(question_ids)
        latest_end = max(latest_end, seg.t_end_sec)
        entries.append(
            {
                "segmentId": seg.segment_id,
                "segmentIndex": seg.segment_index,
                "tStartSec": seg.t_start_sec,
                "tEndSec": seg.t_end_sec,
                "durationSec": seg.duration_sec,
                "questionIds": question_ids,
            }
        )

    if duration is None or not math.isfinite(duration) or duration <= 0:
        duration = round(latest_end)

    return {
        "videoId": video_id,
        "title": title,
        "duration": duration,
        "status": "ready" if total_questions > 0 else "not_ready",
        "hasCaptions": has_captions,
        "chaptersOnly": chapters_only,
        "segments": entries,
        "totalSegments": len(entries),
        "totalQuestions": total_questions,
        "generatedAt": generated_at or datetime.now(timezone.utc).isoformat(),
        "version": MANIFEST_VERSION,
    }


def write_json(data, path: str) -> None:
    """Write data to a UTF-8 JSON file."""
    Path(path).write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Saved %s", path)
