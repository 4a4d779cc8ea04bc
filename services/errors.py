"""Domain errors raised by the practice session services."""
from __future__ import annotations


class PracticeError(Exception):  # Base class for service-level failures
    status_code = 400


class ValidationError(PracticeError):  # Request content rejected before any side effect
    status_code = 400


class NotFoundError(PracticeError):  # Referenced session or job description is absent
    status_code = 404


class InvalidStateError(PracticeError):  # Operation not legal in the session's current stage
    status_code = 400

    def __init__(self, current: str, required: str) -> None:
        super().__init__(f"Session is '{current}' but this operation requires '{required}'")
        self.current = current
        self.required = required


__all__ = ["PracticeError", "ValidationError", "NotFoundError", "InvalidStateError"]
