"""Application entry point for ExamQt."""

from __future__ import annotations

import os
from pathlib import Path
import socket
import sys

from PySide6.QtWidgets import QApplication

from exam_app.constants.exam_constants import DEFAULT_EXAM_FILE, EXAM_FILE_ENV_VAR
from exam_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from exam_app.core.errors import ExamImportError
from exam_app.core.exam_service import ExamService
from exam_app.core.services.exam_repository import ExamRepository
from exam_app.server.api_server import start_api_server
from exam_app.ui.invigilator_window import InvigilatorMainWindow
from exam_app.utils.logging_config import configure_logging


def _determine_student_url(port: int) -> str:
    """Best-effort determination of the local IP for the learner-facing URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def _resolve_exam_file() -> Path:
    configured = os.environ.get(EXAM_FILE_ENV_VAR)
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / DEFAULT_EXAM_FILE


def main() -> None:
    """Initialize logging, load the exams, start the API server, and launch the Qt UI."""
    logger = configure_logging()
    logger.info("Starting ExamQt...")

    exam_file = _resolve_exam_file()
    try:
        repository = ExamRepository.from_file(exam_file)
    except (OSError, ExamImportError, ValueError) as exc:
        logger.error("Cannot load exams from %s: %s", exam_file, exc)
        sys.exit(1)

    exam_service = ExamService(repository)
    start_api_server(exam_service=exam_service, host=DEFAULT_HOST, port=DEFAULT_PORT)
    student_url = _determine_student_url(DEFAULT_PORT)
    logger.info("Learner page available at %s", student_url)

    app = QApplication(sys.argv)
    window = InvigilatorMainWindow(exam_service=exam_service, student_url=student_url)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
