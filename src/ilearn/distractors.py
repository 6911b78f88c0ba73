"""
Distractor strategies for multiple-choice questions.

A strategy takes ``(subject, correct_answer, segment_title)`` and returns three
wrong options. The template strategy is deterministic and offline; the OpenAI
strategy asks a chat model for content-aware distractors and falls back to the
templates whenever the reply is unusable.
"""

import json
import logging
from collections.abc import Callable

logger = logging.getLogger("ilearn")

# Optional OpenAI SDK
try:
    from openai import OpenAI
except ImportError:
    OpenAI = None

DistractorStrategy = Callable[[str, str, str], list[str]]


def template_distractors(subject: str, correct: str, title: str) -> list[str]:
    """Structurally plausible distractors referencing the segment title."""
    subject = subject.strip()
    return [
        f"{subject} is unrelated to {title.lower()}.",
        f"{subject} describes a different concept mentioned later.",
        f"{subject} focuses on entertainment rather than learning.",
    ]


def _extract_json_array(content: str) -> list:
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        start = content.find("[")
        end = content.rfind("]")
        if start == -1 or end == -1:
            msg = "Model did not return a JSON array"
            raise ValueError(msg) from None
        data = json.loads(content[start : end + 1])
    if not isinstance(data, list):
        msg = "Model did not return a JSON array"
        raise ValueError(msg)
    return data


def make_openai_distractors(
    client: OpenAI, model: str, *, temperature: float = 0.4
) -> DistractorStrategy:
    """Create a distractor strategy backed by OpenAI chat completions."""
    if client is None:
        msg = "OpenAI client is not initialized (missing OPENAI_API_KEY)"
        raise RuntimeError(msg)

    system = (
        "You write wrong answer options for quiz questions about lecture videos. "
        "Each option must be plausible, on-topic, clearly incorrect, and similar in "
        "length and style to the correct answer. "
        "Return ONLY a JSON array of exactly three strings."
    )

    def _distractors(subject: str, correct: str, title: str) -> list[str]:
        user = json.dumps(
            {"segment_title": title, "question": f"What is {subject.strip()}?", "correct_answer": correct},
            ensure_ascii=False,
        )
        try:
            chat = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
            )
            options = _extract_json_array(chat.choices[0].message.content or "")
        except Exception as e:
            logger.warning("AI distractor generation failed: %s. Using templates.", e)
            return template_distractors(subject, correct, title)

        cleaned = [str(o).strip() for o in options if str(o).strip()]
        cleaned = [o for o in cleaned if o.lower().rstrip(".") != correct.lower().rstrip(".")]
        if len(cleaned) < 3:
            logger.warning("AI returned %d usable distractors, expected 3. Using templates.", len(cleaned))
            return template_distractors(subject, correct, title)
        return cleaned[:3]

    return _distractors
