"""Tests for the question view model and its HTML."""

import pytest

from exam_app.core.models import Question
from exam_app.ui import render_question, render_question_document
from exam_app.ui.question_renderer import InputKind, points_label


@pytest.fixture
def questions(sample_questions):
    return {question.id: question for question in sample_questions}


class TestInputKinds:
    def test_multiple_choice_marks_the_selection(self, questions):
        rendered = render_question(questions["mc"], "Paris")

        assert rendered.input_kind is InputKind.SINGLE_CHOICE
        assert [c.value for c in rendered.choices] == ["London", "Paris", "Berlin"]
        assert [c.selected for c in rendered.choices] == [False, True, False]
        assert all(c.is_correct is None for c in rendered.choices)

    def test_true_false_offers_two_choices(self, questions):
        rendered = render_question(questions["tf"])

        assert [(c.value, c.label) for c in rendered.choices] == [("true", "True"), ("false", "False")]
        assert not any(c.selected for c in rendered.choices)

    def test_short_answer_and_essay_use_text_inputs(self, questions):
        assert render_question(questions["short"], "Oxy").input_kind is InputKind.TEXT_LINE
        assert render_question(questions["short"], "Oxy").text_value == "Oxy"
        assert render_question(questions["essay"]).input_kind is InputKind.TEXT_AREA

    def test_matching_has_one_dropdown_per_option(self, questions):
        rendered = render_question(questions["match"], ["Summer"])

        assert rendered.input_kind is InputKind.MATCH_DROPDOWNS
        assert [slot.prompt for slot in rendered.slots] == ["Spring", "Summer", "Autumn", "Winter"]
        assert [slot.selected for slot in rendered.slots] == ["Summer", "", "", ""]
        assert rendered.slots[1].placeholder == "Select a match"

    def test_unknown_type_renders_placeholder(self):
        question = Question(id="hot", type="hotspot", content="Click the capital.", correct_answer="Paris")

        rendered = render_question(question, "Paris")

        assert rendered.input_kind is InputKind.UNSUPPORTED
        assert "Unsupported question type" in rendered.to_html()


class TestBadges:
    def test_difficulty_and_points(self, questions):
        rendered = render_question(questions["short"])

        assert rendered.difficulty_label == "Medium"
        assert rendered.points_label == "2 points"
        assert points_label(1) == "1 point"


class TestReviewMode:
    def test_answers_hidden_while_taking(self, questions):
        rendered = render_question(questions["short"], "Oxygen")

        assert rendered.reference_answer is None
        assert rendered.explanation is None
        assert "Correct answer" not in rendered.to_html()

    def test_correct_choice_and_explanation_revealed(self, questions):
        rendered = render_question(questions["mc"], "London", show_answer=True)

        assert [c.is_correct for c in rendered.choices] == [False, True, False]
        html = rendered.to_html()
        assert "Paris is the capital of France." in html
        assert "&#10003; Correct" in html

    def test_reference_labels(self, questions):
        assert render_question(questions["short"], show_answer=True).reference_label == "Correct answer"
        assert render_question(questions["essay"], show_answer=True).reference_label == "Model answer"

    def test_matching_slots_compared_by_position(self, questions):
        rendered = render_question(questions["match"], ["Summer", "Winter"], show_answer=True)

        assert [slot.is_correct for slot in rendered.slots] == [True, False, False, False]


class TestHtml:
    def test_markdown_is_rendered_and_text_escaped(self):
        question = Question(
            id="md",
            type="short-answer",
            content="Solve **quickly**: $x^2 = 4$",
            correct_answer="2",
        )

        html = render_question(question, "<b>2</b>").to_html()

        assert "<strong>quickly</strong>" in html
        assert "$x^2 = 4$" in html
        assert "&lt;b&gt;2&lt;/b&gt;" in html

    def test_document_loads_mathjax(self, questions):
        document = render_question_document(questions["mc"], font_size=18)

        assert document.startswith("<!doctype html>")
        assert "mathjax" in document
        assert "font-size: 18pt" in document
