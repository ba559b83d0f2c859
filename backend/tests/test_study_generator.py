"""Reply parsing and quiz grading."""

import json

import pytest

from nexusai.schemas.notes import Note
from nexusai.schemas.quizzes import QuizQuestion
from nexusai.services.study_generator import (
    StudyGenerator,
    grade_answers,
    json_equal,
    parse_flashcards,
    parse_json_reply,
    parse_quiz,
)
from nexusai.storage.base import utcnow


def _questions(*answers) -> list[QuizQuestion]:
    return [
        QuizQuestion(question=f"Q{i}", options=["a", "b", "c"], correct_answer=answer)
        for i, answer in enumerate(answers)
    ]


# =============================================================================
# PARSING
# =============================================================================


def test_parse_json_reply_strips_fences_and_think_tags():
    text = '<think>let me see</think>\n```json\n{"title": "T"}\n```'
    assert parse_json_reply(text) == {"title": "T"}


@pytest.mark.parametrize("text", [None, "", "not json", "```\n{broken\n```"])
def test_parse_json_reply_returns_none_for_garbage(text):
    assert parse_json_reply(text) is None


def test_parse_flashcards_accepts_wrapped_and_bare_lists():
    cards = [{"front": "2+2", "back": "4"}, {"front": "3+3", "back": "6"}]

    assert [c.front for c in parse_flashcards(json.dumps({"flashcards": cards}))] == ["2+2", "3+3"]
    assert [c.back for c in parse_flashcards(json.dumps(cards))] == ["4", "6"]


def test_parse_flashcards_truncates_to_limit():
    cards = [{"front": str(i), "back": str(i)} for i in range(8)]
    assert len(parse_flashcards(json.dumps({"flashcards": cards}), limit=5)) == 5


def test_parse_flashcards_discards_everything_on_one_bad_item():
    cards = [{"front": "ok", "back": "ok"}, {"front": "missing back"}]
    assert parse_flashcards(json.dumps({"flashcards": cards})) == []


def test_parse_flashcards_malformed_reply_is_empty():
    assert parse_flashcards("I cannot do that") == []
    assert parse_flashcards(json.dumps({"cards": []})) == []


def test_parse_quiz_reads_title_and_questions():
    reply = json.dumps({
        "title": "Photosynthesis",
        "questions": [
            {"type": "multiple-choice", "question": "Makes sugar?", "options": ["yes", "no"], "correctAnswer": 0},
        ],
    })

    title, questions = parse_quiz(reply, "Biology")

    assert title == "Photosynthesis"
    assert questions[0].correct_answer == 0


def test_parse_quiz_defaults_on_malformed_reply():
    assert parse_quiz("oops", "Biology") == ("Biology Quiz", [])
    assert parse_quiz(json.dumps({"questions": [{"question": "no answer"}]}), "Biology") == ("Biology Quiz", [])


# =============================================================================
# GRADING
# =============================================================================


def test_grade_answers_counts_positional_matches():
    assert grade_answers(_questions(0, 1, 2), [0, 1, 1]) == (2, 3)


def test_grade_answers_ignores_extra_and_missing_answers():
    assert grade_answers(_questions(0, 1), [0, 1, 1, 1]) == (2, 2)
    assert grade_answers(_questions(0, 1, 2), [0]) == (1, 3)
    assert grade_answers([], [0]) == (0, 0)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (1, 1, True),
        (1, 1.0, True),
        (True, 1, False),
        (0, False, False),
        ("0", 0, False),
        ([1, "a"], [1, "a"], True),
        ({"x": [1]}, {"x": [1]}, True),
        ({"x": 1}, {"x": 1, "y": 2}, False),
        (None, None, True),
    ],
)
def test_json_equal_is_strict(a, b, expected):
    assert json_equal(a, b) is expected


# =============================================================================
# GENERATOR
# =============================================================================


async def test_generate_flashcards_uses_json_mode(fake_llm):
    fake_llm.script(json.dumps({"flashcards": [{"front": "F", "back": "B"}]}))
    generator = StudyGenerator(fake_llm, "gpt-5")

    cards = await generator.generate_flashcards("Some text", subject="Math", count=3)

    assert [(c.front, c.back) for c in cards] == [("F", "B")]
    assert fake_llm.calls[0]["json_mode"] is True
    assert "Create 3 flashcards" in fake_llm.calls[0]["prompt"]
    assert "Subject: Math" in fake_llm.calls[0]["prompt"]


async def test_generate_quiz_keeps_request_fields(fake_llm):
    fake_llm.script("not json at all")
    generator = StudyGenerator(fake_llm, "gpt-5")

    quiz = await generator.generate_quiz("History", "hard", 4)

    assert quiz.title == "History Quiz"
    assert quiz.subject == "History"
    assert quiz.difficulty == "hard"
    assert quiz.questions == []


async def test_enhance_note_falls_back_to_original_content(fake_llm):
    now = utcnow()
    note = Note(id="n1", user_id="u", title="T", content="original", created_at=now, updated_at=now)
    generator = StudyGenerator(fake_llm, "gpt-5")

    fake_llm.script(json.dumps({"content": "better"}), "garbage", json.dumps({"content": "   "}))

    assert await generator.enhance_note(note) == "better"
    assert await generator.enhance_note(note) == "original"
    assert await generator.enhance_note(note) == "original"
