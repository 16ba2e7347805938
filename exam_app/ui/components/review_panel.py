"""Component showing the scored review of submitted attempts."""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.ui_constants import REVIEW_EMPTY_STATE
from exam_app.core.errors import ExamError
from exam_app.core.exam_service import ExamService
from exam_app.core.markdown_math_renderer import renderer
from exam_app.core.scoring import AttemptReview, performance_band
from exam_app.core.services.exam_session import ExamSession
from exam_app.styling.styles import Styles
from exam_app.ui.question_renderer import render_question


class ReviewPanel(QWidget):
    """UI component listing submitted attempts and their results."""

    def __init__(self, exam_service: ExamService, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.exam_service = exam_service
        self._font_size: int = 14
        self._current_session_id: str | None = None

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QHBoxLayout()
        self.setLayout(layout)

        self.attempt_list = QListWidget(self)
        self.attempt_list.setMinimumWidth(240)
        self.attempt_list.currentItemChanged.connect(self._handle_selection)
        layout.addWidget(self.attempt_list, stretch=1)

        detail_layout = QVBoxLayout()

        self.score_label = QLabel(REVIEW_EMPTY_STATE, self)
        self.score_label.setWordWrap(True)
        detail_layout.addWidget(self.score_label)

        self.summary_label = QLabel("", self)
        self.summary_label.setWordWrap(True)
        detail_layout.addWidget(self.summary_label)

        self.breakdown_group = QGroupBox("By difficulty", self)
        self.breakdown_layout = QVBoxLayout()
        self.breakdown_group.setLayout(self.breakdown_layout)
        detail_layout.addWidget(self.breakdown_group)

        self.flags_group = QGroupBox("Proctoring flags", self)
        self.flags_layout = QVBoxLayout()
        self.flags_group.setLayout(self.flags_layout)
        detail_layout.addWidget(self.flags_group)

        self.questions_view = QWebEngineView(self)
        detail_layout.addWidget(self.questions_view, stretch=1)

        layout.addLayout(detail_layout, stretch=3)
        self._clear_details()

    def refresh(self) -> None:
        """Reload the list of submitted attempts."""
        sessions = self.exam_service.get_submitted_sessions()
        known_ids = [self.attempt_list.item(i).data(Qt.UserRole) for i in range(self.attempt_list.count())]
        if known_ids == [session.session_id for session in sessions]:
            return
        self.attempt_list.blockSignals(True)
        self.attempt_list.clear()
        for session in sessions:
            score = session.attempt.score if session.attempt else None
            item = QListWidgetItem(f"{session.user.name}: {session.test.title if session.test else session.test_id} ({score}%)")
            item.setData(Qt.UserRole, session.session_id)
            self.attempt_list.addItem(item)
            if session.session_id == self._current_session_id:
                self.attempt_list.setCurrentItem(item)
        self.attempt_list.blockSignals(False)

    def show_session(self, session_id: str) -> None:
        self.refresh()
        for index in range(self.attempt_list.count()):
            item = self.attempt_list.item(index)
            if item.data(Qt.UserRole) == session_id:
                self.attempt_list.setCurrentItem(item)
                return

    def _handle_selection(self, current: QListWidgetItem | None, _previous: QListWidgetItem | None) -> None:
        if current is None:
            self._clear_details()
            return
        self._current_session_id = current.data(Qt.UserRole)
        try:
            session = self.exam_service.get_session(self._current_session_id)
            review = self.exam_service.get_review(self._current_session_id, for_learner=False)
        except ExamError as exc:
            self._clear_details(str(exc))
            return
        self._display_review(session, review)

    def _display_review(self, session: ExamSession, review: AttemptReview) -> None:
        band = performance_band(review.percent_score)
        verdict = "Passed" if review.passed else "Not passed"
        self.score_label.setText(f"{review.percent_score}% ({verdict}, passing score {review.passing_score}%)")
        self.score_label.setStyleSheet(Styles.get_band_style(band, self._font_size + 4))

        summary = (
            f"{session.user.name}: {review.correct_count} of {review.question_count} correct, "
            f"{review.earned_points}/{review.total_points} points"
        )
        if review.duration_minutes is not None:
            summary += f", {review.duration_minutes} min"
        if session.submit_reason is not None:
            summary += f" [{session.submit_reason.value}]"
        self.summary_label.setText(summary)

        self._fill_group(
            self.breakdown_layout,
            [f"{b.difficulty.value.capitalize()}: {b.correct}/{b.total} ({b.percentage}%)" for b in review.breakdown],
        )
        self._fill_group(self.flags_layout, list(review.flag_descriptions) or ["None"])

        attempt = session.attempt
        fragments = []
        for question in session.questions:
            record = attempt.answer_for(question.id) if attempt else None
            rendered = render_question(question, record.answer if record else None, show_answer=True)
            fragments.append(rendered.to_html())
        body = "\n<hr />\n".join(fragments)
        self.questions_view.setHtml(renderer.wrap_with_mathjax(body, font_size=self._font_size))

    def _fill_group(self, layout: QVBoxLayout, lines: list[str]) -> None:
        while layout.count():
            item = layout.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.deleteLater()
        for line in lines:
            label = QLabel(line, self)
            label.setStyleSheet(f"font-size: {self._font_size}pt;")
            layout.addWidget(label)

    def _clear_details(self, message: str = REVIEW_EMPTY_STATE) -> None:
        self.score_label.setText(message)
        self.score_label.setStyleSheet(f"font-size: {self._font_size}pt;")
        self.summary_label.setText("")
        self._fill_group(self.breakdown_layout, [])
        self._fill_group(self.flags_layout, [])
        self.questions_view.setHtml("")

    def apply_font_size(self, font_size: int) -> None:
        self._font_size = font_size
        self.summary_label.setStyleSheet(f"font-size: {font_size}pt;")
        self.attempt_list.setStyleSheet(f"font-size: {font_size}pt;")
        current = self.attempt_list.currentItem()
        if current is not None:
            self._handle_selection(current, None)
