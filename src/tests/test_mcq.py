"""
Tests for MCQ generation, dedup and support spans.
"""

import random

import pytest

from src.ilearn.distractors import template_distractors
from src.ilearn.mcq import (
    build_mcq_telemetry,
    cosine_similarity,
    derive_support,
    generate_mcq_for_segment,
    generate_mcqs,
    is_assessable,
    split_sentences,
    tokenize,
)
from src.ilearn.models import GeneratedMCQ, Segment

PHOTO = "Photosynthesis is the process plants use to convert light into energy."
STEM = 'According to the video segment "Plants", what is Photosynthesis?'


def make_segment(text, start=0, end=60, title="Plants", segment_id="seg_1", index=0):
    return Segment(segment_id, index, start, end, text, language="en", title=title)


def test_question_from_copula_sentence():
    """'<subject> is <answer>.' becomes a stem with the answer at index 0."""
    outcome = generate_mcq_for_segment(make_segment(PHOTO), [], "en")

    assert outcome.reason == "OK"
    assert outcome.segment_id == "seg_1"
    assert outcome.title == "Plants"
    assert len(outcome.mcqs) == 1
    mcq = outcome.mcqs[0]
    assert mcq.question_id == "seg_1_q1"
    assert mcq.language == "en"
    assert mcq.stem == 'According to the video segment "Plants", what is Photosynthesis?'
    assert mcq.correct_index == 0
    assert mcq.options[0] == "the process plants use to convert light into energy"
    assert mcq.options[1] == "Photosynthesis is unrelated to plants."
    assert len(mcq.options) == 4
    assert mcq.rationale == (
        "The segment states that Photosynthesis is the process plants use to convert light into energy."
    )
    assert outcome.log == "MCQ:OK supportLines=1"


def test_short_text_is_insufficient():
    outcome = generate_mcq_for_segment(make_segment("Too short to ask about."), [], "en")

    assert outcome.reason == "INSUFFICIENT_CONTEXT"
    assert outcome.mcqs == []
    assert "chars=" in outcome.log


def test_no_assessable_sentence():
    outcome = generate_mcq_for_segment(make_segment("Let us look at the next slide together now, shall we"), [], "en")

    assert outcome.reason == "INSUFFICIENT_CONTEXT"
    assert outcome.mcqs == []
    assert "sentences=1" in outcome.log


def test_assessable_without_is_cannot_be_synthesized():
    """An assessable sentence with no ' is ' still collapses into INSUFFICIENT_CONTEXT."""
    outcome = generate_mcq_for_segment(
        make_segment("Mitochondria are the powerhouse of the cell in every animal."), [], "en"
    )

    assert outcome.reason == "INSUFFICIENT_CONTEXT"
    assert outcome.mcqs == []
    assert "no_question_from_sentence" in outcome.log


def test_first_assessable_sentence_wins():
    text = (
        "Short one. Water is a molecule made of two hydrogen atoms and one oxygen. "
        "Salt is a compound of sodium and chlorine atoms bonded."
    )

    outcome = generate_mcq_for_segment(make_segment(text, start=30, end=90, title="Chemistry"), [], "en")

    mcq = outcome.mcqs[0]
    assert mcq.stem.endswith("what is Water?")
    assert mcq.options[0] == "a molecule made of two hydrogen atoms and one oxygen"
    # second of three sentences -> one third into the 60s segment, 6s long
    assert len(mcq.support) == 1
    assert mcq.support[0].t_start_sec == pytest.approx(50.0)
    assert mcq.support[0].t_end_sec == pytest.approx(56.0)
    assert mcq.support[0].text == "Water is a molecule made of two hydrogen atoms and one oxygen."


def test_duplicate_stem_rejected():
    """The same stem seen earlier in the run is a duplicate."""
    first = generate_mcq_for_segment(make_segment(PHOTO), [], "en")
    stems = [first.mcqs[0].stem]

    second = generate_mcq_for_segment(make_segment(PHOTO, segment_id="seg_2", index=1), stems, "en")

    assert second.reason == "DUPLICATE"
    assert second.mcqs == []
    assert second.log == "MCQ:DROP_DUP cosine=1.00"
    assert stems == [first.mcqs[0].stem]


def test_generate_mcqs_folds_stems_in_order():
    """Two segments producing identical stems: OK first, DUPLICATE second."""
    segments = [
        make_segment(PHOTO, start=0, end=40),
        make_segment(PHOTO, start=40, end=80, segment_id="seg_2", index=1),
        make_segment("", start=80, end=90, segment_id="seg_3", index=2),
    ]

    outcomes, stems = generate_mcqs(segments, "en")

    assert [o.reason for o in outcomes] == ["OK", "DUPLICATE", "INSUFFICIENT_CONTEXT"]
    assert outcomes[2].log == "MCQ:EMPTY reason=NO_TEXT"
    assert len(stems) == 1
    assert build_mcq_telemetry(outcomes) == {"generated": 1, "empty": 1, "duplicate": 1}


def test_generate_mcqs_seeds_existing_stems():
    seed = 'According to the video segment "Plants", what is Photosynthesis?'

    outcomes, stems = generate_mcqs([make_segment(PHOTO)], "en", existing_stems=[seed])

    assert outcomes[0].reason == "DUPLICATE"
    assert stems == (seed,)


def test_custom_distractor_strategy():
    calls = []

    def fake(subject, correct, title):
        calls.append((subject, correct, title))
        return ["x", "y", "z"]

    outcome = generate_mcq_for_segment(make_segment(PHOTO), [], "de", distractors=fake)

    assert outcome.mcqs[0].options == ("the process plants use to convert light into energy", "x", "y", "z")
    assert outcome.mcqs[0].language == "de"
    assert calls == [("Photosynthesis", "the process plants use to convert light into energy", "Plants")]


def test_shuffled_options_keep_correct_answer():
    outcome = generate_mcq_for_segment(make_segment(PHOTO), [], "en", rng=random.Random(7))

    mcq = outcome.mcqs[0]
    assert mcq.correct_answer == "the process plants use to convert light into energy"
    assert mcq.options[mcq.correct_index] == mcq.correct_answer
    assert len(set(mcq.options)) == 4


def test_support_clamped_to_segment():
    """Support never leaves the segment, even for very short segments."""
    support = derive_support(make_segment(PHOTO, start=10, end=11), PHOTO)
    assert [(s.t_start_sec, s.t_end_sec) for s in support] == [(10, 11)]

    text = "One. Two. Three. Gravity is the force pulling masses toward each other."
    support = derive_support(make_segment(text, start=0, end=40), "Gravity is the force pulling masses toward each other.")
    assert (support[0].t_start_sec, support[0].t_end_sec) == (30.0, 34.0)


def test_zero_length_segment_has_no_support():
    outcome = generate_mcq_for_segment(make_segment(PHOTO, start=10, end=10), [], "en")

    assert outcome.reason == "INSUFFICIENT_CONTEXT"
    assert outcome.log.endswith("no_support")


def test_tokenize_and_cosine():
    assert tokenize("Hello, world_42! Ça va?") == ["hello", "world", "42", "ça", "va"]
    assert cosine_similarity("Hello World", "hello world") == pytest.approx(1.0)
    assert cosine_similarity("Café résumé", "café RÉSUMÉ") == pytest.approx(1.0)
    assert cosine_similarity("a b", "a c") == pytest.approx(0.5)
    assert cosine_similarity("alpha", "beta") == 0.0
    assert cosine_similarity("", "beta") == 0.0
    assert cosine_similarity("!!!", "???") == 0.0


def test_split_sentences():
    assert split_sentences("One.  Two!\nThree? Four") == ["One.", "Two!", "Three?", "Four"]
    assert split_sentences("   ") == []


def test_is_assessable():
    assert not is_assessable("This means little.")
    assert is_assessable("Rain falls BECAUSE water vapour condenses into heavy droplets.")
    assert not is_assessable("The island nation sits far away across the wide blue ocean.")


def test_short_distractor_list_falls_back_to_templates():
    """A strategy returning too few options still yields four options."""
    outcome = generate_mcq_for_segment(make_segment(PHOTO), [], "en", distractors=lambda s, c, t: ["only one"])

    assert outcome.reason == "OK"
    mcq = outcome.mcqs[0]
    assert len(mcq.options) == 4
    assert mcq.options[0] == "the process plants use to convert light into energy"
    assert mcq.options[1:] == tuple(template_distractors("Photosynthesis", mcq.options[0], "Plants"))


def test_blank_distractors_fall_back_to_templates():
    outcome = generate_mcq_for_segment(make_segment(PHOTO), [], "en", distractors=lambda s, c, t: ["a", " ", "c"])

    assert outcome.mcqs[0].options[1] == "Photosynthesis is unrelated to plants."


def test_generated_mcq_requires_four_options():
    with pytest.raises(ValueError, match="exactly 4 options"):
        GeneratedMCQ("q1", "en", "What is X?", ("a", "b"), 0, "Because.", ())
    with pytest.raises(ValueError, match="out of range"):
        GeneratedMCQ("q1", "en", "What is X?", ("a", "b", "c", "d"), 4, "Because.", ())


def test_near_duplicate_stem_rejected():
    """A reworded stem scoring above the threshold is still a duplicate."""
    earlier = 'According to the video segment "Plants", what is photosynthesis in leaves?'
    # 9 shared tokens out of 9 and 11 -> 3 / sqrt(11)
    assert cosine_similarity(STEM, earlier) == pytest.approx(0.9045, abs=1e-4)

    outcome = generate_mcq_for_segment(make_segment(PHOTO), [earlier], "en")

    assert outcome.reason == "DUPLICATE"
    assert outcome.log == "MCQ:DROP_DUP cosine=0.90"


def test_similar_stem_below_threshold_accepted():
    earlier = 'According to the video segment "Plant", what is Photosynthesis?'
    assert cosine_similarity(STEM, earlier) == pytest.approx(8 / 9)

    outcome = generate_mcq_for_segment(make_segment(PHOTO), [earlier], "en")

    assert outcome.reason == "OK"
    assert outcome.mcqs[0].stem == STEM


def test_dedup_threshold_is_inclusive():
    earlier = 'According to the video segment "Plant", what is Photosynthesis?'
    score = cosine_similarity(STEM, earlier)

    at_threshold = generate_mcq_for_segment(make_segment(PHOTO), [earlier], "en", dedup_threshold=score)
    above_score = generate_mcq_for_segment(make_segment(PHOTO), [earlier], "en", dedup_threshold=score + 1e-9)

    assert at_threshold.reason == "DUPLICATE"
    assert above_score.reason == "OK"
