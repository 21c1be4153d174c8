"""Error taxonomy for engine operations and classification into user-facing responses."""

from enum import Enum

from pydantic import BaseModel, ValidationError

from src.core.db_client import DatabaseError, RecordNotFoundError


class ErrorCategory(Enum):
    """Categories of errors that can occur while running an engine operation."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    MISMATCH = "mismatch"
    NON_REVERSIBLE = "non_reversible"
    NO_MEMBER = "no_member"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Authorization errors
    ERR_UNAUTHORIZED = "ERR_UNAUTHORIZED"
    ERR_NO_MEMBER = "ERR_NO_MEMBER"

    # Lifecycle errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_UNAVAILABLE = "ERR_UNAVAILABLE"
    ERR_ALREADY_COMPLETED = "ERR_ALREADY_COMPLETED"
    ERR_ALREADY_TAKEN = "ERR_ALREADY_TAKEN"
    ERR_ALREADY_IN_FAMILY = "ERR_ALREADY_IN_FAMILY"

    # Input errors
    ERR_INVALID_INPUT = "ERR_INVALID_INPUT"
    ERR_INVALID_ASSIGNEE = "ERR_INVALID_ASSIGNEE"

    # Reset errors
    ERR_MISMATCH = "ERR_MISMATCH"
    ERR_NON_REVERSIBLE = "ERR_NON_REVERSIBLE"

    # Generic errors
    ERR_STORAGE = "ERR_STORAGE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ActivityError(Exception):
    """Base class for expected engine failures.

    Each subclass pins a category and a default code; the message is what the
    caller ultimately sees.
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN
    code: str = ErrorCode.ERR_UNKNOWN
    severity: ErrorSeverity = ErrorSeverity.LOW

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class UnauthorizedError(ActivityError):
    """Caller lacks the role, or the target lies outside the caller's family."""

    category = ErrorCategory.UNAUTHORIZED
    code = ErrorCode.ERR_UNAUTHORIZED
    severity = ErrorSeverity.MEDIUM

    def __init__(self, message: str = "Unauthorized", *, code: str | None = None) -> None:
        super().__init__(message, code=code)


class NoMemberError(ActivityError):
    """Caller identity has no member record yet (onboarding required)."""

    category = ErrorCategory.NO_MEMBER
    code = ErrorCode.ERR_NO_MEMBER
    severity = ErrorSeverity.MEDIUM

    def __init__(self, message: str = "Unauthorized", *, code: str | None = None) -> None:
        super().__init__(message, code=code)


class UnavailableError(ActivityError):
    """Entity missing, in the wrong state, or already terminal."""

    category = ErrorCategory.NOT_FOUND
    code = ErrorCode.ERR_UNAVAILABLE


class ConflictError(ActivityError):
    """A uniqueness rule rejected the write (e.g. two members taking the same task)."""

    category = ErrorCategory.CONFLICT
    code = ErrorCode.ERR_ALREADY_TAKEN


class InvalidInputError(ActivityError):
    """Input that cannot be clamped or defaulted safely."""

    category = ErrorCategory.VALIDATION
    code = ErrorCode.ERR_INVALID_INPUT


class MismatchError(ActivityError):
    """Supplied source kind/id does not match the stored ledger row."""

    category = ErrorCategory.MISMATCH
    code = ErrorCode.ERR_MISMATCH
    severity = ErrorSeverity.MEDIUM

    def __init__(self, message: str = "Mismatch", *, code: str | None = None) -> None:
        super().__init__(message, code=code)


class NonReversibleError(ActivityError):
    """Ledger entry kind cannot be undone through the reset pipeline."""

    category = ErrorCategory.NON_REVERSIBLE
    code = ErrorCode.ERR_NON_REVERSIBLE

    def __init__(self, message: str = "Cannot reset bonus or fine entries", *, code: str | None = None) -> None:
        super().__init__(message, code=code)


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_SUGGESTIONS: dict[str, str] = {
    ErrorCode.ERR_UNAUTHORIZED: "Ask a family admin if you think you should be able to do this.",
    ErrorCode.ERR_NO_MEMBER: "Create or join a family first.",
    ErrorCode.ERR_NOT_FOUND: "Refresh the page to load the latest state.",
    ErrorCode.ERR_UNAVAILABLE: "Refresh the page; someone may have changed this item.",
    ErrorCode.ERR_ALREADY_COMPLETED: "This item has already been scored.",
    ErrorCode.ERR_ALREADY_TAKEN: "Pick another open task.",
    ErrorCode.ERR_ALREADY_IN_FAMILY: "Open the dashboard instead.",
    ErrorCode.ERR_INVALID_INPUT: "Check the form values and try again.",
    ErrorCode.ERR_INVALID_ASSIGNEE: "Choose a member of your family.",
    ErrorCode.ERR_MISMATCH: "Refresh the activity log and try again.",
    ErrorCode.ERR_NON_REVERSIBLE: "Bonuses, fines and streak bonuses are permanent.",
    ErrorCode.ERR_STORAGE: "Please try again. If the problem persists, contact support.",
    ErrorCode.ERR_UNKNOWN: "Please try again later. If the problem persists, contact support.",
}


def _response(code: str, message: str, severity: ErrorSeverity) -> ErrorResponse:
    return ErrorResponse(
        code=code,
        message=message,
        suggestion=_SUGGESTIONS.get(code, _SUGGESTIONS[ErrorCode.ERR_UNKNOWN]),
        severity=severity,
    )


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Engine errors keep their own message. Store errors, uniqueness violations
    included, are passed through verbatim.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, ActivityError):
        return _response(exception.code, exception.message, exception.severity)

    if isinstance(exception, RecordNotFoundError):
        return _response(ErrorCode.ERR_NOT_FOUND, "Not found", ErrorSeverity.LOW)

    if isinstance(exception, DatabaseError):
        return _response(ErrorCode.ERR_STORAGE, str(exception), ErrorSeverity.HIGH)

    if isinstance(exception, PermissionError):
        return _response(ErrorCode.ERR_UNAUTHORIZED, "Unauthorized", ErrorSeverity.MEDIUM)

    if isinstance(exception, ValidationError):
        errors = exception.errors()
        message = errors[0]["msg"] if errors else "Invalid input"
        return _response(ErrorCode.ERR_INVALID_INPUT, message, ErrorSeverity.LOW)

    if isinstance(exception, ValueError):
        return _response(ErrorCode.ERR_INVALID_INPUT, str(exception), ErrorSeverity.LOW)

    return _response(ErrorCode.ERR_UNKNOWN, "An unexpected error occurred.", ErrorSeverity.MEDIUM)
