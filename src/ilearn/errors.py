"""
Caller-level errors raised by the pipeline orchestrator.
"""


class PipelineError(RuntimeError):
    """Base class for pipeline failures surfaced to the caller."""


class NoCuesError(PipelineError):
    """No caption cues, chapters or duration to segment."""


class NoSegmentsError(PipelineError):
    """Segmentation produced nothing to generate questions for."""
