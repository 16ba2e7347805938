"""Component listing live exam sessions for the invigilator."""

from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QAbstractItemView,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.ui_constants import (
    CLOSE_SESSION_BUTTON_TEXT,
    FLAG_BUTTON_TEXT,
    LIVE_EMPTY_STATE,
    LIVE_SESSION_COUNT_TEMPLATE,
    NO_SESSION_SELECTED_MESSAGE,
    OPEN_REVIEW_BUTTON_TEXT,
)
from exam_app.core.errors import ExamError
from exam_app.core.exam_service import ExamService
from exam_app.core.models import ProctorFlagType
from exam_app.core.services.exam_session import SessionSnapshot, SessionState
from exam_app.styling.color_palette import ColorPalette
from exam_app.styling.styles import Styles
from exam_app.ui.dialog_helpers import ask_flag_details, confirm_close_session, show_warning

logger = logging.getLogger(__name__)

_COLUMNS = ("Learner", "Exam", "State", "Answered", "Time Left", "Proctoring", "Flags", "Score")


def _proctoring_text(snapshot: SessionSnapshot) -> str:
    if not snapshot.proctoring_required:
        return "not required"
    camera = snapshot.camera_status.value if snapshot.camera_status else "-"
    screen = snapshot.screen_status.value if snapshot.screen_status else "-"
    return f"camera {camera}, screen {screen}"


class SessionPanel(QWidget):
    """UI component following every learner session."""

    def __init__(
        self,
        exam_service: ExamService,
        student_url: str,
        on_show_review: Callable[[str], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.exam_service = exam_service
        self.student_url = student_url
        self.on_show_review = on_show_review
        self._font_size: int = 14
        self._snapshots: list[SessionSnapshot] = []

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.network_label = QLabel(f"Learners connect to: {self.student_url}", self)
        self.network_label.setWordWrap(True)
        self.network_label.setStyleSheet(Styles.get_large_label_style())
        layout.addWidget(self.network_label)

        self.count_label = QLabel(LIVE_EMPTY_STATE, self)
        layout.addWidget(self.count_label)

        self.table = QTableWidget(0, len(_COLUMNS), self)
        self.table.setHorizontalHeaderLabels(list(_COLUMNS))
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.table.verticalHeader().setVisible(False)
        self.table.itemSelectionChanged.connect(self._update_buttons)
        layout.addWidget(self.table, stretch=1)

        button_row = QHBoxLayout()
        button_row.addStretch()

        self.flag_button = QPushButton(FLAG_BUTTON_TEXT, self)
        self.flag_button.clicked.connect(self._handle_record_flag)
        button_row.addWidget(self.flag_button)

        self.review_button = QPushButton(OPEN_REVIEW_BUTTON_TEXT, self)
        self.review_button.clicked.connect(self._handle_show_review)
        button_row.addWidget(self.review_button)

        self.close_button = QPushButton(CLOSE_SESSION_BUTTON_TEXT, self)
        self.close_button.clicked.connect(self._handle_close_session)
        button_row.addWidget(self.close_button)

        self.selected_timer_label = QLabel("", self)
        self.selected_timer_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.selected_timer_label)

        layout.addLayout(button_row)
        self._update_buttons()

    def refresh(self) -> None:
        """Reload the snapshots, keeping the current selection."""
        selected_id = self._selected_session_id()
        self._snapshots = self.exam_service.list_snapshots()
        self.table.setRowCount(len(self._snapshots))
        for row, snapshot in enumerate(self._snapshots):
            values = (
                snapshot.user_name,
                snapshot.title or snapshot.test_id,
                snapshot.state.value,
                f"{snapshot.answered_count}/{snapshot.question_count}",
                snapshot.formatted_remaining or "--:--",
                _proctoring_text(snapshot),
                str(snapshot.flag_count),
                "" if snapshot.score is None else f"{snapshot.score}%",
            )
            for column, value in enumerate(values):
                item = QTableWidgetItem(value)
                item.setData(Qt.UserRole, snapshot.session_id)
                self.table.setItem(row, column, item)
            if snapshot.warning_level and snapshot.state is SessionState.ACTIVE:
                timer_item = self.table.item(row, 4)
                timer_item.setForeground(QColor(ColorPalette.for_warning_level(snapshot.warning_level).light))
            if snapshot.session_id == selected_id:
                self.table.selectRow(row)

        if self._snapshots:
            self.count_label.setText(
                LIVE_SESSION_COUNT_TEMPLATE.format(
                    count=len(self._snapshots),
                    active=self.exam_service.count_active_sessions(),
                )
            )
        else:
            self.count_label.setText(LIVE_EMPTY_STATE)
        self._update_buttons()

    def _selected_snapshot(self) -> SessionSnapshot | None:
        session_id = self._selected_session_id()
        return next((s for s in self._snapshots if s.session_id == session_id), None)

    def _selected_session_id(self) -> str | None:
        items = self.table.selectedItems()
        if not items:
            return None
        return items[0].data(Qt.UserRole)

    def _update_buttons(self) -> None:
        snapshot = self._selected_snapshot()
        state = snapshot.state if snapshot else None
        self.flag_button.setEnabled(state in (SessionState.ACTIVE, SessionState.SUBMITTING))
        self.review_button.setEnabled(snapshot is not None and snapshot.score is not None)
        self.close_button.setEnabled(state in (SessionState.PROCTOR_GATE, SessionState.ACTIVE))
        self._show_selected_timer(snapshot)

    def _show_selected_timer(self, snapshot: SessionSnapshot | None) -> None:
        if snapshot is None or snapshot.formatted_remaining is None:
            self.selected_timer_label.setText("")
            return
        level = snapshot.warning_level if snapshot.state is SessionState.ACTIVE else "normal"
        self.selected_timer_label.setText(f"{snapshot.user_name}: {snapshot.formatted_remaining}")
        self.selected_timer_label.setStyleSheet(Styles.get_timer_style(level, self._font_size + 8))

    def _handle_record_flag(self) -> None:
        snapshot = self._selected_snapshot()
        if snapshot is None:
            show_warning(self, "No session", NO_SESSION_SELECTED_MESSAGE)
            return
        details = ask_flag_details(self)
        if details is None:
            return
        flag_type, evidence = details
        self.exam_service.call_in_loop(self._record_flag, snapshot.session_id, flag_type, evidence)

    def _record_flag(self, session_id: str, flag_type: ProctorFlagType, evidence: str | None) -> None:
        # Runs on the server loop, so no dialogs here.
        try:
            self.exam_service.record_flag(session_id, flag_type, evidence)
        except ExamError as exc:
            logger.warning("Flag for session %s not recorded: %s", session_id, exc)

    def _handle_show_review(self) -> None:
        snapshot = self._selected_snapshot()
        if snapshot is None:
            show_warning(self, "No session", NO_SESSION_SELECTED_MESSAGE)
            return
        self.on_show_review(snapshot.session_id)

    def _handle_close_session(self) -> None:
        snapshot = self._selected_snapshot()
        if snapshot is None:
            show_warning(self, "No session", NO_SESSION_SELECTED_MESSAGE)
            return
        if not confirm_close_session(self, snapshot.user_name):
            return
        self.exam_service.call_in_loop(self.exam_service.close_session, snapshot.session_id)

    def apply_font_size(self, font_size: int) -> None:
        self._font_size = font_size
        label_style = f"font-size: {font_size}pt;"
        self.network_label.setStyleSheet(f"font-size: {font_size}pt; font-weight: bold;")
        self.count_label.setStyleSheet(label_style)
        self.table.setStyleSheet(label_style)
        for button in (self.flag_button, self.review_button, self.close_button):
            button.setStyleSheet(label_style)
