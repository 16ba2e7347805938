"""Settings dialog for configuring console preferences."""

from __future__ import annotations

from PySide6.QtWidgets import (
    QDialog,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QSpinBox,
    QPushButton,
    QGroupBox,
)

from exam_app.constants.ui_constants import SESSION_REFRESH_INTERVAL_MS


class SettingsDialog(QDialog):
    """Dialog for configuring application settings."""

    def __init__(
        self,
        parent=None,
        ui_font_size: int = 10,
        display_font_size: int = 14,
        refresh_interval_ms: int = SESSION_REFRESH_INTERVAL_MS,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setModal(True)
        self.setMinimumWidth(400)

        self._ui_font_size = ui_font_size
        self._display_font_size = display_font_size
        self._refresh_interval_ms = max(250, min(10000, refresh_interval_ms))

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        # Font settings group
        font_group = QGroupBox("Font Sizes")
        font_layout = QVBoxLayout()
        font_group.setLayout(font_layout)

        ui_font_row = QHBoxLayout()
        ui_font_label = QLabel("UI Font Size (buttons, tables):")
        self.ui_font_spinbox = QSpinBox()
        self.ui_font_spinbox.setRange(8, 24)
        self.ui_font_spinbox.setValue(self._ui_font_size)
        self.ui_font_spinbox.setSuffix(" pt")
        ui_font_row.addWidget(ui_font_label)
        ui_font_row.addStretch()
        ui_font_row.addWidget(self.ui_font_spinbox)
        font_layout.addLayout(ui_font_row)

        display_font_row = QHBoxLayout()
        display_font_label = QLabel("Display Font Size (timers, reviews):")
        display_font_label.setToolTip("Font size for the session timer and the rendered review questions")
        self.display_font_spinbox = QSpinBox()
        self.display_font_spinbox.setRange(10, 32)
        self.display_font_spinbox.setValue(self._display_font_size)
        self.display_font_spinbox.setSuffix(" pt")
        display_font_row.addWidget(display_font_label)
        display_font_row.addStretch()
        display_font_row.addWidget(self.display_font_spinbox)
        font_layout.addLayout(display_font_row)

        layout.addWidget(font_group)

        monitor_group = QGroupBox("Monitoring")
        monitor_layout = QVBoxLayout()
        monitor_group.setLayout(monitor_layout)

        refresh_row = QHBoxLayout()
        refresh_label = QLabel("Session refresh interval:")
        refresh_label.setToolTip("How often the live session table is refreshed.")
        self.refresh_spinbox = QSpinBox()
        self.refresh_spinbox.setRange(250, 10000)
        self.refresh_spinbox.setSingleStep(250)
        self.refresh_spinbox.setValue(self._refresh_interval_ms)
        self.refresh_spinbox.setSuffix(" ms")
        refresh_row.addWidget(refresh_label)
        refresh_row.addStretch()
        refresh_row.addWidget(self.refresh_spinbox)
        monitor_layout.addLayout(refresh_row)

        layout.addWidget(monitor_group)

        # Buttons
        button_row = QHBoxLayout()
        button_row.addStretch()

        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self.reject)  # type: ignore[arg-type]
        button_row.addWidget(self.cancel_button)

        self.apply_button = QPushButton("Apply")
        self.apply_button.clicked.connect(self.accept)  # type: ignore[arg-type]
        self.apply_button.setDefault(True)
        button_row.addWidget(self.apply_button)

        layout.addLayout(button_row)

    def get_ui_font_size(self) -> int:
        """Get the selected UI font size."""
        return self.ui_font_spinbox.value()

    def get_display_font_size(self) -> int:
        """Get the selected display font size."""
        return self.display_font_spinbox.value()

    def get_refresh_interval_ms(self) -> int:
        return self.refresh_spinbox.value()
