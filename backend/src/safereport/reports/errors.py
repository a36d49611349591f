"""Error taxonomy for report submission and status lookup.

Every failure a caller can observe is one of these. The API layer maps
them onto HTTP responses; the CLI prints ``message``.
"""

from dataclasses import dataclass


@dataclass
class ErrorField:
    """A single invalid input field."""

    field: str
    message: str


class ReportError(Exception):
    """Base class for categorized report errors."""

    error_code = "REPORT_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ReportValidationError(ReportError):
    """Missing or malformed input. Raised before any side effect."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: list[ErrorField] | None = None):
        super().__init__(message)
        self.fields = fields or []


class InvalidCaseTokenError(ReportValidationError):
    """Case token does not match the token format."""

    error_code = "INVALID_CASE_TOKEN"

    def __init__(self, message: str = "Invalid case token format"):
        super().__init__(message, [ErrorField("case_token", message)])


class ReporterNotFoundError(ReportError):
    """The contact address has no registered identity."""

    error_code = "REPORTER_NOT_FOUND"

    def __init__(self, message: str = "User not found. Please register first."):
        super().__init__(message)


class ReportNotFoundError(ReportError):
    """No report carries the supplied case token."""

    error_code = "NOT_FOUND"

    def __init__(self, message: str = "Report not found"):
        super().__init__(message)


class NoSubjectError(ReportError):
    """The narrative names nobody that could be resolved."""

    error_code = "NO_SUBJECT"

    def __init__(
        self,
        message: str = "Please @mention the person you are reporting",
    ):
        super().__init__(message)


class StorageFault(ReportError):
    """The identity/report store failed unexpectedly."""

    error_code = "STORAGE_FAULT"


class CaseTokenCollisionError(StorageFault):
    """Insert rejected because the case token is already taken."""

    error_code = "CASE_TOKEN_COLLISION"


class SchedulingFault(ReportError):
    """The alert scheduler rejected or failed a request."""

    error_code = "SCHEDULING_FAULT"
