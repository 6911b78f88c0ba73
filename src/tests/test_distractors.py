"""
Tests for distractor strategies.
"""

from types import SimpleNamespace

import pytest

from src.ilearn.distractors import make_openai_distractors, template_distractors


class FakeCompletions:
    """Stands in for client.chat.completions; returns canned content or raises."""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content=None, error=None):
    completions = FakeCompletions(content, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_template_distractors():
    options = template_distractors(" Photosynthesis ", "light to energy", "Plant Biology")

    assert options == [
        "Photosynthesis is unrelated to plant biology.",
        "Photosynthesis describes a different concept mentioned later.",
        "Photosynthesis focuses on entertainment rather than learning.",
    ]


def test_openai_distractors_parses_json_array():
    client, completions = fake_client('["sugar to light", "water to soil", "heat to wind"]')
    strategy = make_openai_distractors(client, "gpt-4o-mini")

    options = strategy("Photosynthesis", "light to energy", "Plants")

    assert options == ["sugar to light", "water to soil", "heat to wind"]
    assert completions.calls[0]["model"] == "gpt-4o-mini"
    assert "light to energy" in completions.calls[0]["messages"][1]["content"]


def test_openai_distractors_tolerates_prose_around_json():
    client, _ = fake_client('Sure! Here you go:\n["a", "b", "c", "d"]\nGood luck.')

    options = make_openai_distractors(client, "m")("X", "correct", "T")

    assert options == ["a", "b", "c"]


def test_openai_distractors_drop_correct_answer_and_fall_back():
    """Replies repeating the correct answer leave fewer than three options -> templates."""
    client, _ = fake_client('["Light to energy.", "b", "c"]')

    options = make_openai_distractors(client, "m")("X", "light to energy", "Topic")

    assert options == template_distractors("X", "light to energy", "Topic")


@pytest.mark.parametrize(
    "content,error",
    [
        ("not json at all", None),
        ('{"options": ["a", "b", "c"]}', None),
        (None, RuntimeError("rate limited")),
    ],
)
def test_openai_distractors_fall_back_to_templates(content, error):
    client, _ = fake_client(content, error)

    options = make_openai_distractors(client, "m")("X", "right", "Topic")

    assert options == template_distractors("X", "right", "Topic")


def test_openai_distractors_require_client():
    with pytest.raises(RuntimeError, match="OpenAI client is not initialized"):
        make_openai_distractors(None, "m")
