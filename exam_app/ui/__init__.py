"""Qt UI components for the invigilator console.

Only the Qt-free question renderer is re-exported here so the server can use
it without importing the widget toolkit.
"""

from .question_renderer import RenderedQuestion, render_question, render_question_document

__all__ = [
    "RenderedQuestion",
    "render_question",
    "render_question_document",
]
