"""
Data models for the segmentation and quiz pipeline.
"""

from dataclasses import dataclass, field

# Outcome reasons for MCQ generation
REASON_OK = "OK"
REASON_INSUFFICIENT_CONTEXT = "INSUFFICIENT_CONTEXT"
REASON_INTRO = "INTRO"
REASON_OFF_TOPIC = "OFF_TOPIC"
REASON_MUSIC = "MUSIC"
REASON_DUPLICATE = "DUPLICATE"

# Screening reasons for segments removed before question generation
SKIP_SHORT = "SHORT"
SKIP_PROMO = "PROMO"


@dataclass(frozen=True)
class Cue:
    """A single timed caption line."""

    start_sec: float
    end_sec: float
    text: str


@dataclass
class Segment:
    """A contiguous time range of a video with its text chunk."""

    segment_id: str
    segment_index: int
    t_start_sec: float
    t_end_sec: float
    text: str
    language: str = "en"
    title: str = ""
    text_hash: str = ""

    @property
    def duration_sec(self) -> float:
        return max(0.0, self.t_end_sec - self.t_start_sec)

    def to_dict(self) -> dict:
        return {
            "segmentId": self.segment_id,
            "segmentIndex": self.segment_index,
            "tStartSec": self.t_start_sec,
            "tEndSec": self.t_end_sec,
            "durationSec": self.duration_sec,
            "textChunk": self.text,
            "textChunkHash": self.text_hash,
            "title": self.title,
            "language": self.language,
        }


@dataclass(frozen=True)
class SupportLine:
    """Time-anchored excerpt grounding a question's correct answer."""

    t_start_sec: float
    t_end_sec: float
    text: str

    def to_dict(self) -> dict:
        return {"tStartSec": self.t_start_sec, "tEndSec": self.t_end_sec, "text": self.text}


@dataclass(frozen=True)
class GeneratedMCQ:
    """Multiple-choice question with four options and one correct index."""

    question_id: str
    language: str
    stem: str
    options: tuple[str, str, str, str]
    correct_index: int
    rationale: str
    support: tuple[SupportLine, ...]

    def __post_init__(self):
        if len(self.options) != 4:
            msg = f"MCQ {self.question_id} needs exactly 4 options, got {len(self.options)}"
            raise ValueError(msg)
        if not 0 <= self.correct_index < 4:
            msg = f"MCQ {self.question_id} correct_index {self.correct_index} is out of range"
            raise ValueError(msg)

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_index]

    def to_dict(self) -> dict:
        return {
            "questionId": self.question_id,
            "language": self.language,
            "stem": self.stem,
            "options": list(self.options),
            "correctIndex": self.correct_index,
            "rationale": self.rationale,
            "support": [s.to_dict() for s in self.support],
        }


@dataclass
class MCQOutcome:
    """Result of question generation for one segment."""

    segment_id: str
    title: str
    reason: str
    mcqs: list[GeneratedMCQ] = field(default_factory=list)
    log: str = ""

    def to_dict(self) -> dict:
        return {
            "segmentId": self.segment_id,
            "title": self.title,
            "reason": self.reason,
            "mcqs": [m.to_dict() for m in self.mcqs],
            "log": self.log,
        }


@dataclass
class SkippedSpan:
    """A span removed during segment screening."""

    t_start_sec: float
    t_end_sec: float
    reason: str
    text: str = ""

    def to_dict(self) -> dict:
        return {
            "tStartSec": self.t_start_sec,
            "tEndSec": self.t_end_sec,
            "reason": self.reason,
            "text": self.text,
        }


@dataclass
class Chapter:
    """A video chapter marker with title and start offset."""

    title: str
    start_sec: float
