"""
iLearn content pipeline - caption segmentation and checkpoint quizzes.

A pipeline for:
- Parsing SRT and WebVTT caption files into timed cues
- Grouping cues into bounded, sentence-aligned segments
- Screening out intro, music and promo segments
- Generating grounded, de-duplicated multiple-choice questions per segment
- Building the manifest that drives the anti-skip video player
"""

__version__ = "0.1.0"
