"""
Transcript segmentation: grouping caption cues into quiz-sized segments.
"""

import hashlib
import logging
import math
import re
from collections import Counter

from .models import (
    REASON_INTRO,
    REASON_MUSIC,
    REASON_OFF_TOPIC,
    SKIP_PROMO,
    SKIP_SHORT,
    Chapter,
    Cue,
    Segment,
    SkippedSpan,
)

logger = logging.getLogger("ilearn")

# Sentence ending pattern
_SENT_END_RE = re.compile(r"[.!?]\s*$")

_ANNOTATION_RE = re.compile(r"\[(?:music|applause|laughter)[^\]]*\]|\((?:music|applause|laughter)[^)]*\)", re.I)
_TITLE_WORD_RE = re.compile(r"[\w']+")

MUSIC_PATTERNS = [re.compile(p, re.I) for p in (r"\btheme music\b", r"\bbackground music\b", r"\baudio track\b")]
PROMO_PATTERNS = [
    re.compile(p, re.I)
    for p in (r"\bsponsored by\b", r"\bpatreon\b", r"\bdonate\b", r"\bsupport the channel\b")
]
INTRO_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"\bwelcome to\b",
        r"\bhey everyone\b",
        r"\bintroduction\b",
        r"\bmy name is\b",
        r"\bhello and welcome\b",
    )
]


def text_hash(text: str) -> str:
    """Short stable digest used to detect unchanged text chunks."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:12]


def is_at_sentence_boundary(text: str) -> bool:
    return bool(_SENT_END_RE.search(text.strip()))


def normalise_text(text: str) -> str:
    """Drop [music]/(applause)-style annotations and collapse whitespace."""
    return " ".join(_ANNOTATION_RE.sub("", text).split())


def build_title(text: str) -> str:
    """First five words of the text, capitalised."""
    words = _TITLE_WORD_RE.findall(text)[:5]
    if not words:
        return "Segment"
    title = " ".join(words)
    return title[0].upper() + title[1:]


def format_time(seconds: float) -> str:
    """Format seconds as M:SS."""
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def _check_durations(min_duration: float, max_duration: float, preferred_duration: float) -> None:
    if min_duration <= 0 or max_duration <= 0 or preferred_duration <= 0:
        msg = (
            "Segment durations must be positive "
            f"(min={min_duration}, max={max_duration}, preferred={preferred_duration})"
        )
        raise ValueError(msg)
    if min_duration > max_duration:
        msg = f"min_duration ({min_duration}) must not exceed max_duration ({max_duration})"
        raise ValueError(msg)


def _make_segment(index: int, start: float, end: float, text: str, language: str, title: str) -> Segment:
    return Segment(
        segment_id=f"seg_{index + 1}",
        segment_index=index,
        t_start_sec=math.floor(start),
        t_end_sec=math.ceil(end),
        text=text,
        language=language,
        title=title,
        text_hash=text_hash(text),
    )


def segment_transcript(
    cues: list[Cue],
    *,
    min_duration: float = 30.0,
    max_duration: float = 60.0,
    preferred_duration: float = 45.0,
    language: str = "en",
) -> list[Segment]:
    """
    Greedy forward scan over cues. Close the running segment when:
    - its duration reached preferred_duration,
    - OR it reached min_duration and the current cue ends a sentence,
    - OR it reached max_duration (hard cap, even mid-sentence),
    - OR the cue is the last one.
    Never break inside a cue, so a single cue longer than max_duration stays whole.
    Boundaries are stored as floor(start) / ceil(end) whole seconds, so the closing
    cue and the rounding can carry a segment slightly past max_duration.
    """
    _check_durations(min_duration, max_duration, preferred_duration)
    if not cues:
        return []

    segments: list[Segment] = []
    seg_start = cues[0].start_sec
    collected: list[str] = []
    last_end = cues[0].start_sec

    for i, cue in enumerate(cues):
        collected.append(cue.text)
        last_end = cue.end_sec
        duration = cue.end_sec - seg_start
        is_last = i == len(cues) - 1

        by_preferred = duration >= preferred_duration
        by_boundary = duration >= min_duration and is_at_sentence_boundary(cue.text)
        by_max = duration >= max_duration
        if not (by_preferred or by_boundary or by_max or is_last):
            continue

        text = " ".join(t.strip() for t in collected if t.strip())
        seg = _make_segment(len(segments), seg_start, last_end, text, language, build_title(text))
        segments.append(seg)
        logger.debug(
            "SEG:CLOSE id=%s t=%d-%d duration=%.2f preferred=%s boundary=%s max=%s last=%s",
            seg.segment_id,
            seg.t_start_sec,
            seg.t_end_sec,
            duration,
            by_preferred,
            by_boundary,
            by_max,
            is_last,
        )

        if not is_last:
            seg_start = cues[i + 1].start_sec
            collected = []

    logger.info("Segmented %d cues into %d segments", len(cues), len(segments))
    return segments


def segment_by_chapters(
    chapters: list[Chapter], video_duration: float, *, language: str = "en"
) -> list[Segment]:
    """One segment per chapter; each ends where the next chapter starts (or at video end)."""
    ordered = sorted(chapters, key=lambda c: c.start_sec)
    segments: list[Segment] = []
    for i, chapter in enumerate(ordered):
        end = ordered[i + 1].start_sec if i + 1 < len(ordered) else video_duration
        if math.ceil(end) <= math.floor(chapter.start_sec):
            logger.warning("Skipping empty chapter %r at %.1fs", chapter.title, chapter.start_sec)
            continue
        seg = _make_segment(
            len(segments), chapter.start_sec, end, f"Chapter: {chapter.title}", language, chapter.title
        )
        seg.text_hash = text_hash(chapter.title)
        segments.append(seg)
    return segments


def create_uniform_segments(
    video_duration: float, segment_duration: float = 45.0, *, language: str = "en"
) -> list[Segment]:
    """Evenly spaced segments over [0, video_duration) when no transcript or chapters exist."""
    if segment_duration <= 0:
        msg = f"segment_duration must be positive, got {segment_duration}"
        raise ValueError(msg)

    segments: list[Segment] = []
    current = 0.0
    while current < video_duration:
        end = min(current + segment_duration, video_duration)
        text = f"Segment at {format_time(current)} - {format_time(end)}"
        seg = _make_segment(len(segments), current, end, text, language, f"Segment {len(segments) + 1}")
        seg.text_hash = text_hash(f"{current}-{end}")
        segments.append(seg)
        current = end
    return segments


def is_off_topic(text: str, video_topic: str | None) -> bool:
    """True when none of the topic's words occur in the text."""
    if not video_topic:
        return False
    topic = video_topic.lower()
    lowered = text.lower()
    if topic in lowered:
        return False
    topic_tokens = {t for t in re.split(r"[^\w]+", topic) if t}
    text_tokens = {t for t in re.split(r"[^\w]+", lowered) if t}
    return bool(text_tokens) and not (topic_tokens & text_tokens)


def classify_segment(
    text: str,
    *,
    min_chars: int = 40,
    video_topic: str | None = None,
    check_off_topic: bool = False,
) -> str | None:
    """Return the screening reason for a segment's text, or None to keep it."""
    cleaned = normalise_text(text)
    if len(cleaned) < min_chars:
        return SKIP_SHORT
    if any(p.search(cleaned) for p in MUSIC_PATTERNS):
        return REASON_MUSIC
    if any(p.search(cleaned) for p in PROMO_PATTERNS):
        return SKIP_PROMO
    if any(p.search(cleaned) for p in INTRO_PATTERNS):
        return REASON_INTRO
    if check_off_topic and is_off_topic(cleaned, video_topic):
        return REASON_OFF_TOPIC
    return None


def screen_segments(
    segments: list[Segment],
    *,
    min_chars: int = 40,
    video_topic: str | None = None,
    check_off_topic: bool = False,
) -> tuple[list[Segment], list[SkippedSpan]]:
    """Split segments into kept (renumbered seg_1..n) and skipped spans."""
    kept: list[Segment] = []
    skipped: list[SkippedSpan] = []
    for seg in segments:
        cleaned = normalise_text(seg.text)
        reason = classify_segment(
            seg.text, min_chars=min_chars, video_topic=video_topic, check_off_topic=check_off_topic
        )
        if reason:
            skipped.append(SkippedSpan(seg.t_start_sec, seg.t_end_sec, reason, cleaned))
            logger.debug("SEG:SKIP reason=%s t=%d-%d text=%r", reason, seg.t_start_sec, seg.t_end_sec, cleaned[:50])
            continue
        kept.append(
            _make_segment(len(kept), seg.t_start_sec, seg.t_end_sec, cleaned, seg.language, build_title(cleaned))
        )
    logger.info("Screening kept %d segments, skipped %d", len(kept), len(skipped))
    return kept, skipped


def segmentation_summary(kept: list[Segment], skipped: list[SkippedSpan]) -> dict:
    return {
        "kept": len(kept),
        "skipped": len(skipped),
        "reasons": dict(Counter(s.reason for s in skipped)),
    }
