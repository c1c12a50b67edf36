"""
Custom exceptions module.

Every fatal error the sync can raise derives from AppError.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    ExternalServiceError,

    # Workbook / parameters
    ConfigurationError,
    ParseError,
    WorkbookReadError,
    MissingParentError,

    # Salesforce
    AuthError,
    SalesforceError,
    SyncInterruptedError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "ExternalServiceError",

    # Workbook / parameters
    "ConfigurationError",
    "ParseError",
    "WorkbookReadError",
    "MissingParentError",

    # Salesforce
    "AuthError",
    "SalesforceError",
    "SyncInterruptedError",
]
