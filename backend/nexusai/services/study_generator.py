"""Flashcard, quiz and note-enhancement generation plus quiz grading."""

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from nexusai.schemas.flashcards import GeneratedFlashcard
from nexusai.schemas.notes import Note
from nexusai.schemas.quizzes import QuizCreate, QuizDifficulty, QuizQuestion
from nexusai.services.providers import LLMService

logger = logging.getLogger(__name__)

FLASHCARD_PROMPT = """Create {count} flashcards from the following content. Each flashcard should have a clear question on the front and a concise answer on the back. Format as a JSON object with a "flashcards" array of objects containing "front" and "back" properties.
{subject_line}
Content: {content}

Return only the JSON, no additional text."""

QUIZ_PROMPT = """Create a {difficulty} difficulty quiz about "{subject}" with {count} questions.

Question types to include: {question_types}

Format as JSON with this structure:
{{
  "title": "Quiz title",
  "questions": [
    {{
      "type": "multiple-choice",
      "question": "Question text",
      "options": ["A", "B", "C", "D"],
      "correctAnswer": 0,
      "explanation": "Why this is correct"
    }}
  ]
}}

Return only the JSON, no additional text."""

ENHANCE_PROMPT = """Enhance and improve the following note by:
1. Fixing grammar and clarity
2. Adding structure and organization
3. Highlighting key concepts
4. Suggesting related topics to explore

Original note:
Title: {title}
Content: {content}

Return JSON of the form {{"content": "<enhanced note as plain text>"}}, no additional text."""

# Reasoning blocks and markdown fences some models wrap around JSON
_SANITIZE_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<analysis>.*?</analysis>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]
_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


# =============================================================================
# REPLY PARSING
# =============================================================================


def parse_json_reply(text: str | None) -> Any | None:
    """Parse a provider reply as JSON. Returns None when it is empty or malformed."""
    if not text:
        return None
    cleaned = text
    for pattern in _SANITIZE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = cleaned.strip()
    fenced = _FENCE.match(cleaned)
    if fenced:
        cleaned = fenced.group(1)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed JSON reply (%d chars)", len(text))
        return None


def parse_flashcards(text: str | None, limit: int | None = None) -> list[GeneratedFlashcard]:
    """Accept either a bare array or {"flashcards": [...]}; anything malformed yields []."""
    data = parse_json_reply(text)
    if isinstance(data, dict):
        data = data.get("flashcards")
    if not isinstance(data, list):
        return []
    try:
        cards = [GeneratedFlashcard.model_validate(item) for item in data]
    except ValidationError:
        logger.warning("Discarding flashcard reply with malformed items")
        return []
    return cards[:limit] if limit is not None else cards


def parse_quiz(text: str | None, subject: str) -> tuple[str, list[QuizQuestion]]:
    """Return (title, questions). Malformed replies give the default title and no questions."""
    default_title = f"{subject} Quiz"
    data = parse_json_reply(text)
    if not isinstance(data, dict):
        return default_title, []

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        title = default_title

    raw_questions = data.get("questions")
    if not isinstance(raw_questions, list):
        return title, []
    try:
        questions = [QuizQuestion.model_validate(item) for item in raw_questions]
    except ValidationError:
        logger.warning("Discarding quiz reply with malformed questions")
        return title, []
    return title, questions


# =============================================================================
# GRADING
# =============================================================================


def json_equal(a: Any, b: Any) -> bool:
    """Deep equality over JSON values. Booleans never equal numbers, "0" never equals 0."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(json_equal(a[k], b[k]) for k in a)
    return type(a) is type(b) and a == b


def grade_answers(questions: list[QuizQuestion], answers: list[Any]) -> tuple[int, int]:
    """
    Score answers by position against the stored questions.

    Returns (score, total) where total is the current question count.
    """
    score = sum(
        1
        for index, answer in enumerate(answers)
        if index < len(questions) and json_equal(answer, questions[index].correct_answer)
    )
    return score, len(questions)


# =============================================================================
# GENERATOR
# =============================================================================


class StudyGenerator:
    """Builds fixed prompts, calls the provider in JSON mode and parses the reply.

    Provider failures propagate as ProviderError; malformed replies never do.
    """

    def __init__(self, llm: LLMService, model: str):
        self.llm = llm
        self.model = model

    async def generate_flashcards(
        self,
        content: str,
        subject: str | None = None,
        count: int = 5,
    ) -> list[GeneratedFlashcard]:
        prompt = FLASHCARD_PROMPT.format(
            count=count,
            subject_line=f"Subject: {subject}\n" if subject else "",
            content=content,
        )
        reply = await self.llm.complete(self.model, prompt, json_mode=True)
        cards = parse_flashcards(reply, limit=count)
        logger.info("Generated %d flashcard(s) (requested %d)", len(cards), count)
        return cards

    async def generate_quiz(
        self,
        subject: str,
        difficulty: QuizDifficulty = "medium",
        question_count: int = 5,
        question_types: list[str] | None = None,
    ) -> QuizCreate:
        prompt = QUIZ_PROMPT.format(
            difficulty=difficulty,
            subject=subject,
            count=question_count,
            question_types=", ".join(question_types or ["multiple-choice"]),
        )
        reply = await self.llm.complete(self.model, prompt, json_mode=True)
        title, questions = parse_quiz(reply, subject)
        logger.info("Generated quiz %r with %d question(s)", title, len(questions))
        return QuizCreate(title=title, subject=subject, difficulty=difficulty, questions=questions)

    async def enhance_note(self, note: Note) -> str:
        """Return improved note content, or the original content if the reply is unusable."""
        prompt = ENHANCE_PROMPT.format(title=note.title, content=note.content)
        reply = await self.llm.complete(self.model, prompt, json_mode=True)
        data = parse_json_reply(reply)
        enhanced = data.get("content") if isinstance(data, dict) else None
        if not isinstance(enhanced, str) or not enhanced.strip():
            return note.content
        return enhanced
