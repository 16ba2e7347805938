"""Question rendering utilities for displaying exam questions.

``render_question`` maps a question and the learner's current answer to a
``RenderedQuestion`` describing which input to show and, in review mode, how
each choice compares to the expected answer. ``to_html`` turns that into
markup for the learner page and the console's QWebEngineView.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import html

from exam_app.constants.exam_constants import MATCHING_PLACEHOLDER, TRUE_FALSE_VALUES, UNSUPPORTED_QUESTION_TEXT
from exam_app.core.markdown_math_renderer import renderer
from exam_app.core.models import AnswerValue, Question, QuestionType


class InputKind(str, Enum):
    SINGLE_CHOICE = "single-choice"
    TEXT_LINE = "text-line"
    TEXT_AREA = "text-area"
    MATCH_DROPDOWNS = "match-dropdowns"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class Choice:
    value: str
    label: str
    selected: bool
    is_correct: bool | None = None  # only set in review mode


@dataclass(frozen=True, slots=True)
class MatchSlot:
    """One dropdown of a matching question, aligned to an option by index."""

    prompt: str
    choices: tuple[str, ...]
    selected: str
    placeholder: str = MATCHING_PLACEHOLDER
    is_correct: bool | None = None


@dataclass(frozen=True, slots=True)
class RenderedQuestion:
    question_id: str
    input_kind: InputKind
    content: str
    difficulty_label: str
    points_label: str
    choices: tuple[Choice, ...] = ()
    slots: tuple[MatchSlot, ...] = ()
    text_value: str = ""
    show_answer: bool = False
    reference_label: str | None = None
    reference_answer: str | None = None
    explanation: str | None = None
    unsupported_message: str | None = None

    def to_html(self) -> str:
        """HTML fragment with badges, content and the read-only answer view."""
        parts = [
            f'<div class="badges"><span class="badge difficulty">{html.escape(self.difficulty_label)}</span>'
            f'<span class="badge points">{html.escape(self.points_label)}</span></div>',
            renderer.render_fragment(self.content),
        ]
        if self.input_kind is InputKind.UNSUPPORTED:
            parts.append(f'<p class="unsupported">{html.escape(self.unsupported_message or UNSUPPORTED_QUESTION_TEXT)}</p>')
        elif self.input_kind is InputKind.SINGLE_CHOICE:
            parts.append('<ul class="choices">')
            for choice in self.choices:
                marker = "&#9679;" if choice.selected else "&#9675;"
                suffix = " &#10003; Correct" if choice.is_correct else ""
                parts.append(
                    f'<li class="choice{_correctness_class(choice.is_correct)}">'
                    f"{marker} {renderer.render_inline(choice.label)}{suffix}</li>"
                )
            parts.append("</ul>")
        elif self.input_kind is InputKind.MATCH_DROPDOWNS:
            parts.append('<table class="matching">')
            for slot in self.slots:
                selected = html.escape(slot.selected) if slot.selected else f"<em>{html.escape(slot.placeholder)}</em>"
                parts.append(
                    f'<tr class="choice{_correctness_class(slot.is_correct)}">'
                    f"<td>{renderer.render_inline(slot.prompt)}</td><td>{selected}</td></tr>"
                )
            parts.append("</table>")
        else:
            text = html.escape(self.text_value) if self.text_value else "<em>(no answer)</em>"
            parts.append(f'<p class="text-answer">{text}</p>')

        if self.show_answer and self.reference_answer is not None:
            parts.append(
                f'<div class="reference"><strong>{html.escape(self.reference_label or "")}:</strong> '
                f"{renderer.render_inline(self.reference_answer)}</div>"
            )
        if self.show_answer and self.explanation:
            parts.append(f'<div class="explanation"><strong>Explanation:</strong> {renderer.render_fragment(self.explanation)}</div>')
        return "\n".join(parts)


def _correctness_class(is_correct: bool | None) -> str:
    if is_correct is None:
        return ""
    return " correct" if is_correct else " incorrect"


def points_label(points: int) -> str:
    return "1 point" if points == 1 else f"{points} points"


def render_question(question: Question, answer: AnswerValue | None = None, *, show_answer: bool = False) -> RenderedQuestion:
    """Describe how ``question`` is displayed with the given answer.

    Args:
        question: The question to display.
        answer: The learner's current answer; defaults to an empty one.
        show_answer: Review mode, marks choices correct/incorrect and
            reveals the reference answer and explanation.

    Returns:
        The view model. Unknown question types produce an
        ``InputKind.UNSUPPORTED`` placeholder instead of raising.
    """
    if answer is None:
        answer = question.empty_answer()
    base = {
        "question_id": question.id,
        "content": question.content,
        "difficulty_label": question.difficulty.value.capitalize(),
        "points_label": points_label(question.points),
        "show_answer": show_answer,
        "explanation": question.explanation if show_answer else None,
    }

    kind = question.kind
    if kind is QuestionType.MULTIPLE_CHOICE:
        return RenderedQuestion(
            input_kind=InputKind.SINGLE_CHOICE,
            choices=_single_choices(question, question.options, answer, show_answer),
            **base,
        )
    if kind is QuestionType.TRUE_FALSE:
        return RenderedQuestion(
            input_kind=InputKind.SINGLE_CHOICE,
            choices=_single_choices(question, TRUE_FALSE_VALUES, answer, show_answer),
            **base,
        )
    if kind is QuestionType.SHORT_ANSWER or kind is QuestionType.ESSAY:
        return RenderedQuestion(
            input_kind=InputKind.TEXT_LINE if kind is QuestionType.SHORT_ANSWER else InputKind.TEXT_AREA,
            text_value=answer if isinstance(answer, str) else "",
            reference_label="Correct answer" if kind is QuestionType.SHORT_ANSWER else "Model answer",
            reference_answer=_as_text(question.correct_answer) if show_answer else None,
            **base,
        )
    if kind is QuestionType.MATCHING:
        return RenderedQuestion(
            input_kind=InputKind.MATCH_DROPDOWNS,
            slots=_match_slots(question, answer, show_answer),
            **base,
        )
    return RenderedQuestion(
        input_kind=InputKind.UNSUPPORTED,
        unsupported_message=UNSUPPORTED_QUESTION_TEXT,
        **base,
    )


def render_question_document(
    question: Question,
    answer: AnswerValue | None = None,
    *,
    show_answer: bool = False,
    font_size: int = 14,
) -> str:
    """Full MathJax-enabled document, ready for display in QWebEngineView."""
    fragment = render_question(question, answer, show_answer=show_answer).to_html()
    return renderer.wrap_with_mathjax(fragment, font_size=font_size)


def _single_choices(
    question: Question,
    values: tuple[str, ...],
    answer: AnswerValue,
    show_answer: bool,
) -> tuple[Choice, ...]:
    return tuple(
        Choice(
            value=value,
            label=value.capitalize() if question.kind is QuestionType.TRUE_FALSE else value,
            selected=answer == value,
            is_correct=(value == question.correct_answer) if show_answer else None,
        )
        for value in values
    )


def _match_slots(question: Question, answer: AnswerValue, show_answer: bool) -> tuple[MatchSlot, ...]:
    selections = answer if isinstance(answer, list) else []
    expected = question.correct_answer if isinstance(question.correct_answer, tuple) else ()
    slots = []
    for index, option in enumerate(question.options):
        selected = selections[index] if index < len(selections) else ""
        is_correct = None
        if show_answer:
            is_correct = index < len(expected) and selected == expected[index]
        slots.append(MatchSlot(prompt=option, choices=question.options, selected=selected, is_correct=is_correct))
    return tuple(slots)


def _as_text(value: str | tuple[str, ...]) -> str:
    return value if isinstance(value, str) else ", ".join(value)
