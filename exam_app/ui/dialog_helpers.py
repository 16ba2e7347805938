"""Helper functions for common dialog patterns in the invigilator UI."""

from __future__ import annotations

from PySide6.QtGui import QFont
from PySide6.QtWidgets import QInputDialog, QMessageBox, QWidget

from exam_app.core.models import ProctorFlagType
from exam_app.core.scoring import FLAG_DESCRIPTIONS


def _apply_optional_font(widget: QWidget, font_point_size: int | None) -> None:
    """Apply font size to a widget when requested."""
    if font_point_size is None or font_point_size <= 0:
        return

    font: QFont = widget.font()
    font.setPointSize(font_point_size)
    widget.setFont(font)


def confirm_close_session(parent: QWidget, learner_name: str) -> bool:
    """Ask before closing a learner's session.

    Returns:
        True if the invigilator confirmed, False otherwise
    """
    reply = QMessageBox.question(
        parent,
        "Close Session",
        f"Closing ends {learner_name}'s attempt without submitting it. Continue?",
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No
    )
    return reply == QMessageBox.Yes


def ask_flag_details(parent: QWidget) -> tuple[ProctorFlagType, str | None] | None:
    """Let the invigilator pick a flag type and an optional note.

    Returns:
        The flag type and evidence text, or None if cancelled
    """
    labels = [FLAG_DESCRIPTIONS[flag_type] for flag_type in ProctorFlagType]
    label, accepted = QInputDialog.getItem(parent, "Record Flag", "Observed activity:", labels, 0, False)
    if not accepted:
        return None
    flag_type = list(ProctorFlagType)[labels.index(label)]
    note, accepted = QInputDialog.getText(parent, "Record Flag", "Note (optional):")
    if not accepted:
        return None
    return flag_type, note.strip() or None


def show_info(
    parent: QWidget,
    title: str,
    message: str,
    *,
    font_point_size: int | None = None,
) -> None:
    """Show information dialog.

    Args:
        parent: Parent widget for the dialog
        title: Dialog title
        message: Information message
        font_point_size: Optional font size for the message and button
    """
    msg_box = QMessageBox(parent)
    msg_box.setIcon(QMessageBox.Information)
    msg_box.setWindowTitle(title)
    msg_box.setText(message)
    msg_box.setStandardButtons(QMessageBox.Ok)
    _apply_optional_font(msg_box, font_point_size)
    if font_point_size is not None and font_point_size > 0:
        msg_box.setStyleSheet(
            f"QLabel {{ font-size: {font_point_size}pt; }}\n"
            f"QPushButton {{ font-size: {font_point_size}pt; }}"
        )
    msg_box.exec()


def show_warning(parent: QWidget, title: str, message: str) -> None:
    """Show warning dialog."""
    QMessageBox.warning(parent, title, message)
