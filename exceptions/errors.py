"""
Custom exception classes for the application.

Fatal errors only. Non-fatal conditions (unmatched header labels,
per-record batch rejections) are data and live in models.mapping / models.sync.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "CONFIGURATION_ERROR")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None,
        code: Optional[str] = None,
        status_code: int = 503
    ):
        super().__init__(
            code=code or f"{service.upper()}_ERROR",
            message=message,
            status_code=status_code,
            details={"service": service, **(details or {})}
        )


# ===================
# WORKBOOK / PARAMETER ERRORS
# ===================

class ConfigurationError(ValidationError):
    """Parameter sheet, required parameter, or input sheet missing."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="CONFIGURATION_ERROR",
            message=message,
            details=details
        )


class ParseError(ValidationError):
    """A parameter row is not a valid JSON object."""

    def __init__(self, row: int, parser_message: str):
        self.row = row
        self.parser_message = parser_message
        super().__init__(
            code="PARAMETER_PARSE_ERROR",
            message=f"Error parsing JSON at row {row}: {parser_message}",
            details={"row": row, "parser_message": parser_message}
        )


class WorkbookReadError(ValidationError):
    """Workbook file could not be opened."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="WORKBOOK_READ_ERROR",
            message=message,
            details=details
        )


class MissingParentError(ValidationError):
    """No records were built, or the first record carries no parent id."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="MISSING_PARENT",
            message=message,
            details=details
        )


# ===================
# SALESFORCE ERRORS
# ===================

class AuthError(ExternalServiceError):
    """Token exchange failed or was denied."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="salesforce",
            message=message,
            details=details,
            code="SALESFORCE_AUTH_ERROR",
            status_code=502
        )


class SalesforceError(ExternalServiceError):
    """
    Transport failure or non-success HTTP response from Salesforce.

    For a chunked composite write, `partial_result` holds the BatchResult
    of the chunks that were applied before the failure (None otherwise).
    """

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.operation = operation
        self.partial_result = None
        super().__init__(
            service="salesforce",
            message=f"Salesforce {operation} failed: {message}",
            details={"operation": operation, **(details or {})}
        )


class SyncInterruptedError(AppError):
    """
    A remote step failed after the sync started writing.

    Nothing is rolled back. `details["completed_steps"]` lists the steps
    that finished (and their results) so the caller can re-run or reconcile.
    """

    def __init__(
        self,
        step: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.step = step
        super().__init__(
            code="SYNC_INTERRUPTED",
            message=f"Sync interrupted at {step}: {message}",
            status_code=502,
            details={"failed_step": step, **(details or {})}
        )
