"""Exceptions raised by the exam core."""

from __future__ import annotations


class ExamError(Exception):
    """Base class for all exam-domain errors."""


class LoadError(ExamError):
    """Raised when a test or its questions cannot be fetched."""


class ExamUnavailableError(LoadError):
    """Raised when a test is requested outside its availability window."""


class ExamImportError(LoadError):
    """Raised when an exam definition file cannot be parsed."""


class CapabilityDeniedError(ExamError):
    """Raised by capability providers when camera or screen access is refused."""

    def __init__(self, capability: str, reason: str = "Permission denied") -> None:
        super().__init__(f"{capability}: {reason}")
        self.capability = capability
        self.reason = reason


class SubmissionError(ExamError):
    """Raised when the grading/storage service fails to accept an attempt."""


class SessionStateError(ExamError):
    """Raised when an operation is not allowed in the current session state."""


class AccessDeniedError(ExamError):
    """Raised when the current user's role may not open the requested session."""


class SessionNotFoundError(ExamError):
    """Raised when a session id does not name an open session."""
