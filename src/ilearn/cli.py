"""
Command-line interface for the segmentation and quiz pipeline.
"""

import argparse
import dataclasses
import json
import logging
import os
import random
from pathlib import Path

from dotenv import load_dotenv
from tqdm import tqdm

from .captions import read_captions
from .config import PipelineConfig
from .distractors import make_openai_distractors
from .manifest import write_json
from .models import Chapter
from .pipeline import run_pipeline

logger = logging.getLogger("ilearn")

# Optional OpenAI SDK
try:
    from openai import OpenAI
except ImportError:
    OpenAI = None


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Segment captions and generate checkpoint quizzes")

    # IO
    ap.add_argument("--captions", default=None, help="Caption file (.srt or .vtt)")
    ap.add_argument("--format", choices=["srt", "vtt"], default=None, help="Override caption format detection")
    ap.add_argument(
        "--chapters-json",
        default=None,
        help="Chapter markers used when no captions exist. Fields: title, startSec (or start_time HH:MM:SS)",
    )
    ap.add_argument("--duration", type=float, default=None, help="Video duration in seconds")
    ap.add_argument("--workdir", default=".work")
    ap.add_argument("--video-id", default=None, help="Defaults to the caption file name")
    ap.add_argument("--title", default="", help="Video title (used as topic for off-topic screening)")
    ap.add_argument("--language", default=None, help="Target language for questions")

    # Segmentation
    ap.add_argument("--min-duration", type=float, default=None)
    ap.add_argument("--max-duration", type=float, default=None)
    ap.add_argument("--preferred-duration", type=float, default=None)
    ap.add_argument("--no-screen", action="store_true", help="Keep intro/music/promo segments")
    ap.add_argument("--check-off-topic", action="store_true", help="Skip segments sharing no words with --title")

    # Questions
    ap.add_argument("--max-mcqs", type=int, default=None, help="Max questions per segment")
    ap.add_argument("--shuffle-options", action="store_true", help="Randomize the correct option position")
    ap.add_argument("--seed", type=int, default=None, help="Seed for --shuffle-options")
    ap.add_argument("--ai-distractors", action="store_true", help="Write wrong options with OpenAI")
    ap.add_argument("--gpt-model", default=None)

    # Logging
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return ap.parse_args(argv)


def _parse_clock(value: str) -> float:
    parts = [float(p) for p in value.strip().split(":")]
    while len(parts) < 3:
        parts.insert(0, 0.0)
    h, m, s = parts[-3:]
    return h * 3600 + m * 60 + s


def load_chapters(path: str) -> list[Chapter]:
    """Load chapter markers from a JSON array."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    chapters = []
    for item in data:
        if "startSec" in item:
            start = float(item["startSec"])
        elif "start_time" in item:
            start = _parse_clock(str(item["start_time"]))
        else:
            logger.warning("Chapter without start offset ignored: %s", item)
            continue
        chapters.append(Chapter(title=str(item.get("title", "")).strip() or "Chapter", start_sec=start))
    return chapters


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Environment defaults overridden by explicit flags."""
    config = PipelineConfig.from_env()
    overrides = {
        "min_duration": args.min_duration,
        "max_duration": args.max_duration,
        "preferred_duration": args.preferred_duration,
        "mcq_max_per_segment": args.max_mcqs,
        "language": args.language,
        "openai_model": args.gpt_model,
    }
    config = dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})
    if args.no_screen:
        config = dataclasses.replace(config, screen_segments=False)
    if args.check_off_topic:
        config = dataclasses.replace(config, check_off_topic=True)
    return config


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    load_dotenv()

    args = parse_args(argv)
    setup_logging(args.verbose)

    if not args.captions and not args.chapters_json and not args.duration:
        raise RuntimeError("Provide --captions, or --chapters-json/--duration for fallback segmentation")

    config = build_config(args)

    cues = read_captions(args.captions, args.format) if args.captions else None
    chapters = load_chapters(args.chapters_json) if args.chapters_json else None
    if chapters is not None and not args.duration:
        raise RuntimeError("--duration is required with --chapters-json")

    distractors = None
    if args.ai_distractors:
        if not OpenAI:
            raise RuntimeError("openai package not installed. Install with: pip install openai")
        openai_key = os.getenv("OPENAI_API_KEY")
        if not openai_key:
            raise RuntimeError("OPENAI_API_KEY is not set. Put it in .env or environment.")
        distractors = make_openai_distractors(OpenAI(api_key=openai_key), config.openai_model)

    rng = random.Random(args.seed) if args.shuffle_options else None
    video_id = args.video_id or (Path(args.captions).stem if args.captions else "video")

    result = run_pipeline(
        cues,
        video_id=video_id,
        title=args.title,
        config=config,
        chapters=chapters,
        video_duration=args.duration,
        distractors=distractors,
        rng=rng,
        progress=lambda segs: tqdm(segs, desc="MCQ generation", unit="segment"),
    )

    Path(args.workdir).mkdir(parents=True, exist_ok=True)
    write_json([s.to_dict() for s in result.segments], os.path.join(args.workdir, "segments.json"))
    write_json([s.to_dict() for s in result.skipped], os.path.join(args.workdir, "skipped.json"))
    write_json([o.to_dict() for o in result.outcomes], os.path.join(args.workdir, "mcqs.json"))
    write_json(result.manifest, os.path.join(args.workdir, "manifest.json"))

    logger.info(f"Source: {result.source}, summary: {result.summary}")
    logger.info(
        f"Done -> {args.workdir} ({result.manifest['totalSegments']} segments, "
        f"{result.manifest['totalQuestions']} questions)"
    )


if __name__ == "__main__":
    main()
