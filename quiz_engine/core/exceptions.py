"""
Domain errors raised by the quiz services.

Every error carries a stable ``kind`` (rendered as ``type`` in the JSON
body) and the HTTP status the API answers with.
"""

from fastapi import status


class QuizException(Exception):
    kind = "QUIZ_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "type": self.kind}


class NotFound(QuizException):
    kind = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(QuizException):
    kind = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidArgument(QuizException):
    kind = "INVALID_ARGUMENT"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidState(QuizException):
    kind = "INVALID_STATE"
    status_code = status.HTTP_409_CONFLICT


class NotPublished(InvalidState):
    kind = "NOT_PUBLISHED"


class AlreadySubmitted(InvalidState):
    kind = "ALREADY_SUBMITTED"


class OutOfWindow(QuizException):
    kind = "OUT_OF_WINDOW"
    status_code = status.HTTP_400_BAD_REQUEST


class AttemptLimitExceeded(QuizException):
    kind = "ATTEMPT_LIMIT_EXCEEDED"
    status_code = status.HTTP_400_BAD_REQUEST


class TimeExceeded(QuizException):
    kind = "TIME_EXCEEDED"
    status_code = status.HTTP_400_BAD_REQUEST
