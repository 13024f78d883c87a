from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base for errors the API turns into an error envelope.

    Subclasses set the defaults; ``title`` is the short heading the client shows
    above ``message`` and is omitted from the response when empty.
    """
    status_code: int = 400
    error_code: str = "BUSINESS_ERROR"
    default_title: Optional[str] = None

    def __init__(
        self,
        message: str,
        title: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.title = title or self.default_title
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(AppException):
    status_code = 401
    error_code = "AUTH_FAILED"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class NotFoundError(AppException):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")


class ValidationFailedError(AppException):
    status_code = 422
    error_code = "VALIDATION_FAILED"
    default_title = "Validation Error"


class InsufficientBalanceError(AppException):
    error_code = "INSUFFICIENT_BALANCE"
    default_title = "Insufficient Leave Balance"

    def __init__(self, remaining: float, requested: int):
        super().__init__(
            f"You only have {remaining:g} days remaining. You requested {requested} days.",
            details={"remaining": remaining, "requested": requested},
        )


class AlreadyClockedInError(AppException):
    status_code = 409
    error_code = "ALREADY_CLOCKED_IN"
    default_title = "Clock In Failed"

    def __init__(self):
        super().__init__("Already clocked in for today")


class MutationFailedError(AppException):
    """A storage write failed; the session was rolled back and no cache key was touched."""
    status_code = 500
    error_code = "MUTATION_FAILED"

    def __init__(self, title: str, message: str):
        super().__init__(message, title=title)


class AIKillSwitchError(AppException):
    status_code = 503
    error_code = "AI_KILL_SWITCH_ACTIVE"

    def __init__(self):
        super().__init__("AI services are currently offline for maintenance.")
