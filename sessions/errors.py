"""
Typed errors raised by the session core.
All are recoverable and reported to the caller; routers map status_code onto the HTTP response.
"""


class SessionError(Exception):
    code = "SessionError"
    status_code = 400
    default_message = "Session operation failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_detail(self) -> dict:
        return {"error": self.code, "message": self.message}


class ExamNotFound(SessionError):
    code = "ExamNotFound"
    status_code = 404
    default_message = "Exam not found"


class AttemptNotFound(SessionError):
    code = "AttemptNotFound"
    status_code = 404
    default_message = "Attempt not found"


class NotEligible(SessionError):
    code = "NotEligible"
    status_code = 403
    default_message = "Not eligible for this exam"


class ExamNotActive(SessionError):
    code = "ExamNotActive"
    status_code = 400
    default_message = "Exam is not available"


class AlreadyAttempted(SessionError):
    code = "AlreadyAttempted"
    status_code = 409
    default_message = "You have already attempted this exam"


class SessionNotActive(SessionError):
    code = "SessionNotActive"
    status_code = 409
    default_message = "No active exam session"


class AlreadySubmitted(SessionNotActive):
    code = "AlreadySubmitted"
    status_code = 409
    default_message = "Exam already submitted"


class UnknownQuestion(SessionError):
    code = "UnknownQuestion"
    status_code = 422
    default_message = "Question is not part of this exam"


class InvalidSession(SessionError):
    code = "InvalidSession"
    status_code = 403
    default_message = "This attempt does not belong to you"
