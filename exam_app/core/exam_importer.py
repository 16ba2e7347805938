"""Utilities for importing exams from a human-friendly text file.

File format (blocks separated by blank lines or '---'):

    TEST: midterm
    TITLE: Midterm Examination
    DESCRIPTION: Covers weeks 1-5     (optional)
    TIMELIMIT: 60                     minutes
    PASSING: 70                       percent (optional, default 0)
    RANDOMIZE: yes                    (optional)
    SHOWRESULTS: yes                  (optional, default yes)
    PROCTORING: yes                   (optional)
    START: 2026-05-01T09:00           (optional, ISO 8601, UTC if naive)
    END: 2026-05-01T12:00             (optional)
    QUESTIONS: q1, q2                 (optional, see below)

    ID: q1
    TYPE: multiple-choice
    Q: What is the capital of France? Additional lines until the next
       marker are treated as part of the question.
    A: London
    B: Paris
    CORRECT: B
    DIFFICULTY: easy                  (optional, default medium)
    POINTS: 1                         (optional, default 1)
    EXPLANATION: Paris is the capital of France.

CORRECT is an option letter for multiple-choice, ``true``/``false`` for
true-false, free text for short-answer and essay, and a comma separated list
of option letters (one per slot) for matching. A test without a QUESTIONS
line owns the question blocks that follow it up to the next TEST block.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path

from exam_app.core.errors import ExamImportError
from exam_app.core.models import Difficulty, Question, QuestionType, Test

logger = logging.getLogger(__name__)

_OPTION_LETTERS = ("A", "B", "C", "D", "E", "F", "G", "H")
_TEST_KEYS = {
    "TEST",
    "TITLE",
    "DESCRIPTION",
    "CREATEDBY",
    "TIMELIMIT",
    "PASSING",
    "RANDOMIZE",
    "SHOWRESULTS",
    "PROCTORING",
    "START",
    "END",
    "QUESTIONS",
}
_QUESTION_KEYS = {"ID", "TYPE", "Q", "CORRECT", "DIFFICULTY", "POINTS", "EXPLANATION", "CATEGORY", "TAGS"}
_MULTILINE_KEYS = {"DESCRIPTION", "Q", "CORRECT", "EXPLANATION"}
_TRUE_WORDS = {"yes", "true", "1", "on"}
_FALSE_WORDS = {"no", "false", "0", "off"}


@dataclass(slots=True)
class ImportedExam:
    """Container for the tests and questions read from one file."""

    source_path: Path
    tests: list[Test]
    questions: list[Question]


def load_exam_from_file(file_path: Path) -> ImportedExam:
    text = file_path.read_text(encoding="utf-8")
    tests, questions = parse_exam_text(text)
    if not tests:
        raise ExamImportError("Exam file did not contain any TEST block.")
    return ImportedExam(source_path=file_path, tests=tests, questions=questions)


def parse_exam_text(text: str) -> tuple[list[Test], list[Question]]:
    tests: list[Test] = []
    questions: list[Question] = []
    pending_header: dict[str, str] | None = None
    owned_ids: list[str] = []

    def flush_header() -> None:
        if pending_header is not None:
            tests.append(_build_test(pending_header, owned_ids))

    for block in _split_blocks(text):
        first_key = _split_key(block.splitlines()[0])[0]
        if first_key == "TEST":
            flush_header()
            pending_header = _parse_fields(block, _TEST_KEYS)
            owned_ids = []
            continue
        question = _build_question(_parse_fields(block, _QUESTION_KEYS | set(_OPTION_LETTERS)))
        questions.append(question)
        owned_ids.append(question.id)
    flush_header()

    seen: set[str] = set()
    for question in questions:
        if question.id in seen:
            raise ExamImportError(f"Duplicate question id '{question.id}'.")
        seen.add(question.id)
    return tests, questions


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped.startswith("#"):
            continue
        if stripped == "---" or not stripped:
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        current_block.append(raw_line)
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _split_key(line: str) -> tuple[str | None, str]:
    stripped = line.strip()
    if ":" not in stripped:
        return None, stripped
    key, value = stripped.split(":", 1)
    key = key.strip().upper()
    if not key.isalpha():
        return None, stripped
    return key, value.strip()


def _parse_fields(block: str, known_keys: set[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    current_key: str | None = None
    for raw_line in block.splitlines():
        key, value = _split_key(raw_line)
        if key in known_keys:
            if key in fields:
                raise ExamImportError(f"{key} appears twice in the same block.")
            fields[key] = value
            current_key = key
            continue
        line = raw_line.strip()
        if current_key in _MULTILINE_KEYS or (current_key in _OPTION_LETTERS):
            fields[current_key] = f"{fields[current_key]}\n{line}".strip()
        else:
            raise ExamImportError(f"Encountered text outside of a known section: '{line}'.")
    return fields


def _build_test(fields: dict[str, str], owned_ids: list[str]) -> Test:
    test_id = fields.get("TEST", "")
    if not test_id:
        raise ExamImportError("TEST must name the test id.")
    title = fields.get("TITLE", "").strip()
    if not title:
        raise ExamImportError(f"Test '{test_id}' is missing a TITLE.")
    if "TIMELIMIT" not in fields:
        raise ExamImportError(f"Test '{test_id}' is missing a TIMELIMIT.")

    if "QUESTIONS" in fields:
        question_ids = tuple(part.strip() for part in fields["QUESTIONS"].split(",") if part.strip())
    else:
        question_ids = tuple(owned_ids)
    if not question_ids:
        raise ExamImportError(f"Test '{test_id}' does not reference any questions.")

    return Test(
        id=test_id,
        title=title,
        description=fields.get("DESCRIPTION", ""),
        created_by=fields.get("CREATEDBY") or None,
        question_ids=question_ids,
        time_limit=_parse_int(fields["TIMELIMIT"], "TIMELIMIT", positive=True),
        passing_score=_parse_int(fields.get("PASSING", "0"), "PASSING"),
        randomize_questions=_parse_bool(fields.get("RANDOMIZE"), "RANDOMIZE", default=False),
        show_results=_parse_bool(fields.get("SHOWRESULTS"), "SHOWRESULTS", default=True),
        require_proctoring=_parse_bool(fields.get("PROCTORING"), "PROCTORING", default=False),
        start_date=_parse_datetime(fields.get("START"), "START"),
        end_date=_parse_datetime(fields.get("END"), "END"),
    )


def _build_question(fields: dict[str, str]) -> Question:
    question_id = fields.get("ID", "")
    if not question_id:
        raise ExamImportError("Question block is missing an ID.")
    raw_type = fields.get("TYPE", "").strip().lower()
    if not raw_type:
        raise ExamImportError(f"Question '{question_id}' is missing a TYPE.")
    content = fields.get("Q", "").strip()
    if not content:
        raise ExamImportError(f"Question text missing for '{question_id}' (Q: ...)")

    options = tuple(fields[letter].strip() for letter in _OPTION_LETTERS if letter in fields)
    raw_correct = fields.get("CORRECT", "").strip()
    kind = QuestionType.parse(raw_type)

    correct_answer: str | tuple[str, ...]
    if kind is QuestionType.MULTIPLE_CHOICE:
        correct_answer = _option_for_letter(raw_correct, options, question_id)
    elif kind is QuestionType.MATCHING:
        letters = [part.strip() for part in raw_correct.split(",") if part.strip()]
        correct_answer = tuple(_option_for_letter(letter, options, question_id) for letter in letters)
    elif kind is QuestionType.TRUE_FALSE:
        correct_answer = raw_correct.lower()
    else:
        if kind is None:
            logger.warning("Question '%s' has unknown type '%s'", question_id, raw_type)
        correct_answer = raw_correct

    difficulty_raw = fields.get("DIFFICULTY", Difficulty.MEDIUM.value).strip().lower()
    try:
        difficulty = Difficulty(difficulty_raw)
    except ValueError as exc:
        raise ExamImportError(f"Unknown DIFFICULTY '{difficulty_raw}' for '{question_id}'.") from exc

    tags = tuple(tag.strip() for tag in fields.get("TAGS", "").split(",") if tag.strip())
    return Question(
        id=question_id,
        type=raw_type,
        content=content,
        options=options,
        correct_answer=correct_answer,
        difficulty=difficulty,
        points=_parse_int(fields.get("POINTS", "1"), "POINTS", positive=True),
        explanation=fields.get("EXPLANATION") or None,
        category=fields.get("CATEGORY") or None,
        tags=tags,
    )


def _option_for_letter(letter: str, options: tuple[str, ...], question_id: str) -> str:
    letter = letter.upper()
    if letter not in _OPTION_LETTERS[: len(options)]:
        raise ExamImportError(
            f"CORRECT for '{question_id}' must name one of the options {', '.join(_OPTION_LETTERS[: len(options)])}."
        )
    return options[_OPTION_LETTERS.index(letter)]


def _parse_int(raw_value: str, key: str, *, positive: bool = False) -> int:
    try:
        parsed_value = int(raw_value.strip())
    except ValueError as exc:
        raise ExamImportError(f"{key} must be an integer.") from exc
    if positive and parsed_value <= 0:
        raise ExamImportError(f"{key} must be a positive integer.")
    return parsed_value


def _parse_bool(raw_value: str | None, key: str, *, default: bool) -> bool:
    if raw_value is None or not raw_value.strip():
        return default
    lowered = raw_value.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ExamImportError(f"{key} must be yes or no.")


def _parse_datetime(raw_value: str | None, key: str) -> datetime | None:
    if raw_value is None or not raw_value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw_value.strip())
    except ValueError as exc:
        raise ExamImportError(f"{key} must be an ISO 8601 date/time.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
