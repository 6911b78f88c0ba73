"""
SRT and WebVTT caption parsing and format detection.
"""

import html
import logging
import re
from pathlib import Path

from .models import Cue

logger = logging.getLogger("ilearn")

_SRT_TIMING_RE = re.compile(
    r"(\d{2}):(\d{2}):(\d{2}),(\d{3})\s*-->\s*(\d{2}):(\d{2}):(\d{2}),(\d{3})"
)
# WebVTT allows the hour field to be omitted
_VTT_TIMING_RE = re.compile(
    r"(?:(\d{2,}):)?(\d{2}):(\d{2})\.(\d{3})\s*-->\s*(?:(\d{2,}):)?(\d{2}):(\d{2})\.(\d{3})"
)
_VTT_TAG_RE = re.compile(r"<[^>]+>")

FORMAT_SRT = "srt"
FORMAT_VTT = "vtt"


def _to_sec(h: str | None, m: str, s: str, ms: str) -> float:
    return int(h or 0) * 3600 + int(m) * 60 + int(s) + int(ms) / 1000.0


def _normalize_newlines(content: str) -> str:
    return content.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")


def parse_srt(content: str) -> list[Cue]:
    """Parse SubRip text into cues, dropping malformed blocks."""
    raw = _normalize_newlines(content).strip()
    if not raw:
        return []

    out: list[Cue] = []
    for block in re.split(r"\n\s*\n", raw):
        lines = block.split("\n")
        if len(lines) < 3:
            continue
        m = _SRT_TIMING_RE.search(lines[1])
        if not m:
            continue
        g = m.groups()
        start = _to_sec(*g[0:4])
        end = _to_sec(*g[4:8])
        text = " ".join(ln.strip() for ln in lines[2:] if ln.strip())
        if end <= start:
            logger.debug("Dropping SRT cue with non-positive duration at %.3f", start)
            continue
        out.append(Cue(start_sec=start, end_sec=end, text=text))
    return out


def parse_vtt(content: str) -> list[Cue]:
    """Parse WebVTT text into cues; the header and NOTE blocks before the first cue are skipped."""
    lines = _normalize_newlines(content).split("\n")
    out: list[Cue] = []

    i = 0
    while i < len(lines) and "-->" not in lines[i]:
        i += 1

    while i < len(lines):
        line = lines[i].strip()
        if "-->" not in line:
            i += 1
            continue
        m = _VTT_TIMING_RE.search(line)
        i += 1
        if not m:
            continue
        g = m.groups()
        start = _to_sec(*g[0:4])
        end = _to_sec(*g[4:8])

        text_lines: list[str] = []
        while i < len(lines) and lines[i].strip() and "-->" not in lines[i]:
            cleaned = html.unescape(_VTT_TAG_RE.sub("", lines[i])).strip()
            if cleaned:
                text_lines.append(cleaned)
            i += 1

        if not text_lines or end <= start:
            continue
        out.append(Cue(start_sec=start, end_sec=end, text=" ".join(text_lines)))
    return out


class SrtParser:
    """SubRip caption parser."""

    format = FORMAT_SRT

    def parse(self, content: str) -> list[Cue]:
        return parse_srt(content)


class VttParser:
    """WebVTT caption parser."""

    format = FORMAT_VTT

    def parse(self, content: str) -> list[Cue]:
        return parse_vtt(content)


PARSERS = {FORMAT_SRT: SrtParser(), FORMAT_VTT: VttParser()}


def detect_format(filename: str | None = None, content: str = "") -> str:
    """Guess caption format from the file extension, then from the content."""
    if filename:
        suffix = Path(filename).suffix.lower().lstrip(".")
        if suffix in PARSERS:
            return suffix

    head = _normalize_newlines(content).lstrip()
    if head.startswith("WEBVTT"):
        return FORMAT_VTT
    if re.search(r"\d{2}:\d{2}\.\d{3}\s*-->", head[:2000]):
        return FORMAT_VTT
    return FORMAT_SRT


def parse_captions(content: str, fmt: str) -> list[Cue]:
    """Parse caption text with the parser registered for ``fmt``."""
    parser = PARSERS.get(fmt.lower())
    if parser is None:
        msg = f"Unsupported caption format: {fmt!r} (expected one of {sorted(PARSERS)})"
        raise ValueError(msg)
    cues = parser.parse(content)
    logger.debug("Parsed %d %s cues", len(cues), parser.format)
    return cues


def read_captions(path: str, fmt: str | None = None) -> list[Cue]:
    """Read a caption file and parse it, detecting the format when not given."""
    content = Path(path).read_text(encoding="utf-8-sig")
    fmt = fmt or detect_format(path, content)
    cues = parse_captions(content, fmt)
    logger.info("Loaded %d cues from %s (%s)", len(cues), path, fmt)
    return cues
