"""Exam-session constants shared across core, server and UI layers."""

TICK_INTERVAL_SECONDS: float = 1.0
SECONDS_PER_MINUTE: int = 60

# Fractions of the original time limit at which the timer changes colour.
WARNING_THRESHOLD_FRACTION: float = 0.15
DANGER_THRESHOLD_FRACTION: float = 0.05

SUBMIT_TIMEOUT_SECONDS: float = 30.0

MATCHING_PLACEHOLDER: str = "Select a match"
TRUE_FALSE_VALUES: tuple[str, str] = ("true", "false")
UNSUPPORTED_QUESTION_TEXT: str = "Unsupported question type"

DEFAULT_EXAM_FILE: str = "exam_app/data/sample_exam.txt"
EXAM_FILE_ENV_VAR: str = "EXAMQT_EXAM_FILE"
