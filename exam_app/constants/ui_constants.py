"""Qt UI constants used across widgets."""

WINDOW_TITLE: str = "ExamQt Invigilator Console"
STUDENT_URL_PLACEHOLDER: str = "http://<invigilator-ip>:8000/"
SESSION_REFRESH_INTERVAL_MS: int = 1000

MODE_BUTTON_LIVE: str = "Live Sessions"
MODE_BUTTON_REVIEW: str = "Review"

LIVE_EMPTY_STATE: str = "No learner has opened an exam yet."
LIVE_SESSION_COUNT_TEMPLATE: str = "{count} session(s), {active} taking the exam"
FLAG_BUTTON_TEXT: str = "Record Flag"
CLOSE_SESSION_BUTTON_TEXT: str = "Close Session"
OPEN_REVIEW_BUTTON_TEXT: str = "Show Review"

REVIEW_EMPTY_STATE: str = "Select a submitted attempt to see its review."
NO_SESSION_SELECTED_MESSAGE: str = "Please select a session first."
