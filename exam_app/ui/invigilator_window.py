"""Qt main window for following live exam sessions and their reviews."""

from __future__ import annotations

from enum import Enum, auto

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.about import (
    APP_ABOUT_TEXT,
    APP_LICENSE,
    APP_NAME,
    APP_VERSION,
    HELP_TEXT,
)
from exam_app.constants.ui_constants import (
    MODE_BUTTON_LIVE,
    MODE_BUTTON_REVIEW,
    SESSION_REFRESH_INTERVAL_MS,
    STUDENT_URL_PLACEHOLDER,
    WINDOW_TITLE,
)
from exam_app.core.exam_service import ExamService
from exam_app.styling.styles import Styles
from exam_app.ui.components.review_panel import ReviewPanel
from exam_app.ui.components.session_panel import SessionPanel
from exam_app.ui.dialog_helpers import show_info
from exam_app.ui.settings_dialog import SettingsDialog


class ConsoleMode(Enum):
    """High-level UI mode for the invigilator console."""

    LIVE = auto()
    REVIEW = auto()


class InvigilatorMainWindow(QMainWindow):
    """Main Qt window switching between live monitoring and reviews."""

    def __init__(self, exam_service: ExamService, student_url: str | None = None) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)

        self.exam_service = exam_service
        self.student_url = student_url or STUDENT_URL_PLACEHOLDER

        self._mode = ConsoleMode.LIVE
        self._ui_font_size: int = 10
        self._display_font_size: int = 14
        self._refresh_interval_ms: int = SESSION_REFRESH_INTERVAL_MS

        self._build_ui()
        self._configure_refresh_timer()
        self._apply_styles()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)

        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        self._build_mode_buttons(root_layout)

        self.mode_stack = QStackedWidget(self)
        self.session_panel = SessionPanel(
            self.exam_service,
            self.student_url,
            on_show_review=self._show_review_for,
            parent=self,
        )
        self.review_panel = ReviewPanel(self.exam_service, parent=self)
        self.mode_stack.addWidget(self.session_panel)
        self.mode_stack.addWidget(self.review_panel)
        root_layout.addWidget(self.mode_stack)

        self.tests_label = QLabel(self._describe_loaded_tests(), self)
        self.tests_label.setWordWrap(True)
        root_layout.addWidget(self.tests_label)

        self._set_mode(ConsoleMode.LIVE)

    def _build_mode_buttons(self, layout: QVBoxLayout) -> None:
        button_row = QHBoxLayout()

        self.live_mode_button = QPushButton(MODE_BUTTON_LIVE, self)
        self.live_mode_button.setCheckable(True)
        self.live_mode_button.clicked.connect(lambda: self._set_mode(ConsoleMode.LIVE))
        button_row.addWidget(self.live_mode_button)

        self.review_mode_button = QPushButton(MODE_BUTTON_REVIEW, self)
        self.review_mode_button.setCheckable(True)
        self.review_mode_button.clicked.connect(lambda: self._set_mode(ConsoleMode.REVIEW))
        button_row.addWidget(self.review_mode_button)

        button_row.addStretch()

        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)

        self.help_button = QPushButton("Help", self)
        self.help_button.clicked.connect(self._handle_help)
        button_row.addWidget(self.help_button)

        self.settings_button = QPushButton("Settings", self)
        self.settings_button.clicked.connect(self._handle_settings)
        button_row.addWidget(self.settings_button)

        layout.addLayout(button_row)

    def _configure_refresh_timer(self) -> None:
        self.refresh_timer = QTimer(self)
        self.refresh_timer.setInterval(self._refresh_interval_ms)
        self.refresh_timer.timeout.connect(self._refresh_state)
        self.refresh_timer.start()

    def _refresh_state(self) -> None:
        if self._mode == ConsoleMode.LIVE:
            self.session_panel.refresh()
        else:
            self.review_panel.refresh()

    def _set_mode(self, mode: ConsoleMode) -> None:
        self._mode = mode
        self.live_mode_button.setChecked(mode == ConsoleMode.LIVE)
        self.review_mode_button.setChecked(mode == ConsoleMode.REVIEW)
        index_map = {
            ConsoleMode.LIVE: 0,
            ConsoleMode.REVIEW: 1,
        }
        self.mode_stack.setCurrentIndex(index_map[mode])
        self._refresh_state()

    def _show_review_for(self, session_id: str) -> None:
        self._set_mode(ConsoleMode.REVIEW)
        self.review_panel.show_session(session_id)

    def _describe_loaded_tests(self) -> str:
        tests = self.exam_service.get_tests()
        if not tests:
            return "No exams loaded."
        titles = ", ".join(f"{test.title} ({test.time_limit} min)" for test in tests)
        return f"Loaded exams: {titles}"

    def _handle_about(self) -> None:
        details = (
            f"{APP_NAME} v{APP_VERSION}\n"
            f"License: {APP_LICENSE}\n\n"
            f"{APP_ABOUT_TEXT}"
        )
        show_info(self, f"About {APP_NAME}", details, font_point_size=self._ui_font_size)

    def _handle_help(self) -> None:
        show_info(self, f"{APP_NAME} Help", HELP_TEXT, font_point_size=self._ui_font_size)

    def _handle_settings(self) -> None:
        dialog = SettingsDialog(
            self,
            self._ui_font_size,
            self._display_font_size,
            self._refresh_interval_ms,
        )
        if dialog.exec():
            self._ui_font_size = dialog.get_ui_font_size()
            self._display_font_size = dialog.get_display_font_size()
            self._refresh_interval_ms = dialog.get_refresh_interval_ms()
            self.refresh_timer.setInterval(self._refresh_interval_ms)
            self._apply_styles()

    def _apply_styles(self) -> None:
        self.setStyleSheet(Styles.get_main_window_style())

        ui_style = f"font-size: {self._ui_font_size}pt;"
        buttons = [
            self.live_mode_button,
            self.review_mode_button,
            self.about_button,
            self.help_button,
            self.settings_button,
        ]
        for button in buttons:
            button.setStyleSheet(ui_style)
        self.tests_label.setStyleSheet(ui_style)

        self.session_panel.apply_font_size(self._display_font_size)
        self.review_panel.apply_font_size(self._display_font_size)

    def closeEvent(self, event) -> None:  # noqa: N802 - Qt override
        self.refresh_timer.stop()
        self.exam_service.call_in_loop(self.exam_service.shutdown)
        super().closeEvent(event)
