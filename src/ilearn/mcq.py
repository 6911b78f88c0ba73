"""
Checkpoint question generation: one grounded, de-duplicated MCQ per segment.
"""

import logging
import math
import random
import re
from collections import Counter
from collections.abc import Callable, Iterable

from .distractors import DistractorStrategy, template_distractors
from .models import (
    REASON_DUPLICATE,
    REASON_INSUFFICIENT_CONTEXT,
    REASON_OK,
    GeneratedMCQ,
    MCQOutcome,
    Segment,
    SupportLine,
)

logger = logging.getLogger("ilearn")

MIN_CONTEXT_CHARS = 40
MIN_SENTENCE_CHARS = 40
DEDUP_THRESHOLD = 0.9
MIN_SUPPORT_SECS = 2.0
SUPPORT_FRACTION = 0.1

_TOKEN_SPLIT_RE = re.compile(r"[\W_]+")
_SENT_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_ASSESSABLE_RE = re.compile(
    r"\b(is|are|was|were|means|refers|includes|consists|because|therefore|results)\b", re.I
)


def tokenize(text: str) -> list[str]:
    """Lowercase Unicode letter/digit runs."""
    return [t for t in _TOKEN_SPLIT_RE.split(text.lower()) if t]


def cosine_similarity(a: str, b: str) -> float:
    """Cosine similarity of term-frequency vectors; 0 when either side has no tokens."""
    counts_a = Counter(tokenize(a))
    counts_b = Counter(tokenize(b))
    dot = sum(counts_a[t] * counts_b[t] for t in counts_a.keys() & counts_b.keys())
    norm_a = math.sqrt(sum(v * v for v in counts_a.values()))
    norm_b = math.sqrt(sum(v * v for v in counts_b.values()))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def split_sentences(text: str) -> list[str]:
    """Split on . ! ? followed by whitespace, after collapsing whitespace."""
    collapsed = " ".join(text.split())
    return [s.strip() for s in _SENT_SPLIT_RE.split(collapsed) if s.strip()]


def is_assessable(sentence: str) -> bool:
    if len(sentence) < MIN_SENTENCE_CHARS:
        return False
    return bool(_ASSESSABLE_RE.search(sentence))


def _usable_distractors(wrong) -> bool:
    return (
        isinstance(wrong, (list, tuple))
        and len(wrong) == 3
        and all(isinstance(w, str) and w.strip() for w in wrong)
    )


def build_question(
    sentence: str, title: str, distractors: DistractorStrategy = template_distractors
) -> dict | None:
    """Turn '<subject> is <answer>.' into a stem, options and rationale; None if it doesn't split."""
    text = sentence.strip()
    if " is " not in text:
        return None
    subject, explanation = text.split(" is ", 1)
    subject = subject.strip()
    explanation = " ".join(explanation.split())
    if not explanation:
        return None

    correct = re.sub(r"\.$", "", explanation)
    wrong = distractors(subject, correct, title)
    if not _usable_distractors(wrong):
        logger.warning("Distractor strategy returned %r, expected 3 non-empty strings. Using templates.", wrong)
        wrong = template_distractors(subject, correct, title)
    return {
        "stem": f'According to the video segment "{title}", what is {subject}?',
        "options": [correct, *wrong],
        "correct_index": 0,
        "rationale": f"The segment states that {subject} is {correct}.",
    }


def derive_support(segment: Segment, sentence: str) -> list[SupportLine]:
    """
    Anchor a sentence on the segment timeline by its position among the
    segment's sentences. The span lasts max(2s, 10% of the segment) and is
    clamped to the segment bounds.
    """
    start_bound, end_bound = segment.t_start_sec, segment.t_end_sec
    duration = max(0.0, end_bound - start_bound)
    sentences = split_sentences(segment.text)
    target = sentence.strip()
    index = next((i for i, s in enumerate(sentences) if target in s), 0)
    ratio = index / len(sentences) if sentences else 0.0

    start = min(max(start_bound + duration * ratio, start_bound), end_bound)
    end = min(max(start + max(MIN_SUPPORT_SECS, duration * SUPPORT_FRACTION), start_bound), end_bound)
    if end <= start:
        return []
    return [SupportLine(t_start_sec=start, t_end_sec=end, text=target)]


def shuffle_options(options: list[str], correct_index: int, rng: random.Random) -> tuple[list[str], int]:
    """Shuffle options and return the new position of the correct one."""
    correct_text = options[correct_index]
    shuffled = options[:]
    rng.shuffle(shuffled)
    return shuffled, shuffled.index(correct_text)


def _empty(segment: Segment, reason: str, log: str) -> MCQOutcome:
    logger.debug("%s %s", segment.segment_id, log)
    return MCQOutcome(segment_id=segment.segment_id, title=segment.title, reason=reason, mcqs=[], log=log)


def generate_mcq_for_segment(
    segment: Segment,
    existing_stems: Iterable[str],
    target_language: str,
    *,
    max_per_segment: int = 1,
    distractors: DistractorStrategy = template_distractors,
    rng: random.Random | None = None,
    dedup_threshold: float = DEDUP_THRESHOLD,
    min_chars: int = MIN_CONTEXT_CHARS,
) -> MCQOutcome:
    """
    Decide whether a segment supports one assessable question and build it.

    existing_stems are the stems accepted earlier in the same run; they are
    only read. The caller appends accepted stems before the next segment.
    """
    text = segment.text.strip()
    if len(text) < min_chars:
        return _empty(segment, REASON_INSUFFICIENT_CONTEXT, f"MCQ:EMPTY reason=INSUFFICIENT_CONTEXT chars={len(text)}")

    sentences = split_sentences(text)
    chosen = next((s for s in sentences if is_assessable(s)), None)
    if chosen is None:
        return _empty(
            segment, REASON_INSUFFICIENT_CONTEXT, f"MCQ:EMPTY reason=INSUFFICIENT_CONTEXT sentences={len(sentences)}"
        )

    base = build_question(chosen, segment.title, distractors)
    if base is None:
        return _empty(segment, REASON_INSUFFICIENT_CONTEXT, "MCQ:EMPTY reason=INSUFFICIENT_CONTEXT no_question_from_sentence")

    score = max((cosine_similarity(stem, base["stem"]) for stem in existing_stems), default=0.0)
    if score >= dedup_threshold:
        return _empty(segment, REASON_DUPLICATE, f"MCQ:DROP_DUP cosine={score:.2f}")

    support = derive_support(segment, chosen)
    if not support:
        return _empty(segment, REASON_INSUFFICIENT_CONTEXT, "MCQ:EMPTY reason=INSUFFICIENT_CONTEXT no_support")

    options, correct_index = base["options"], base["correct_index"]
    if rng is not None:
        options, correct_index = shuffle_options(options, correct_index, rng)

    mcq = GeneratedMCQ(
        question_id=f"{segment.segment_id}_q1",
        language=target_language,
        stem=base["stem"],
        options=tuple(options),
        correct_index=correct_index,
        rationale=base["rationale"],
        support=tuple(support),
    )
    log = f"MCQ:OK supportLines={len(support)}"
    logger.debug("%s %s", segment.segment_id, log)
    return MCQOutcome(
        segment_id=segment.segment_id,
        title=segment.title,
        reason=REASON_OK,
        mcqs=[mcq][:max_per_segment],
        log=log,
    )


def generate_mcqs(
    segments: list[Segment],
    target_language: str,
    *,
    existing_stems: Iterable[str] = (),
    max_per_segment: int = 1,
    distractors: DistractorStrategy = template_distractors,
    rng: random.Random | None = None,
    dedup_threshold: float = DEDUP_THRESHOLD,
    progress: Callable[[Iterable], Iterable] | None = None,
) -> tuple[list[MCQOutcome], tuple[str, ...]]:
    """
    Generate questions segment by segment, in order.

    This is a left fold: each accepted stem is visible to dedup for every later
    segment, never for earlier ones. Returns the outcomes and the final stems.
    """
    stems = tuple(existing_stems)
    outcomes: list[MCQOutcome] = []
    iterable = progress(segments) if progress else segments
    for seg in iterable:
        if not seg.text.strip():
            outcome = _empty(seg, REASON_INSUFFICIENT_CONTEXT, "MCQ:EMPTY reason=NO_TEXT")
        else:
            outcome = generate_mcq_for_segment(
                seg,
                stems,
                target_language,
                max_per_segment=max_per_segment,
                distractors=distractors,
                rng=rng,
                dedup_threshold=dedup_threshold,
            )
        stems = stems + tuple(m.stem for m in outcome.mcqs)
        outcomes.append(outcome)

    logger.info("MCQ generation: %s", build_mcq_telemetry(outcomes))
    return outcomes, stems


def build_mcq_telemetry(outcomes: list[MCQOutcome]) -> dict[str, int]:
    summary = {"generated": 0, "empty": 0, "duplicate": 0}
    for outcome in outcomes:
        if outcome.mcqs:
            summary["generated"] += 1
        if outcome.reason == REASON_INSUFFICIENT_CONTEXT:
            summary["empty"] += 1
        if outcome.reason == REASON_DUPLICATE:
            summary["duplicate"] += 1
    return summary
