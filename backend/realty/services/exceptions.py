"""
Domain Exceptions

Raised by the domain services and mapped to JSON error responses by the
exception handler registered in main.py.
"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for domain rule violations."""

    status_code = 400
    error_code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(DomainException):
    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(DomainException):
    """Duplicate listing id, already favorited, taken username and the like."""

    status_code = 400
    error_code = "CONFLICT"


class PermissionDeniedError(DomainException):
    status_code = 403
    error_code = "PERMISSION_DENIED"


class AuthenticationError(DomainException):
    status_code = 401
    error_code = "AUTHENTICATION_FAILED"


class ValidationFailedError(DomainException):
    status_code = 400
    error_code = "VALIDATION_FAILED"
