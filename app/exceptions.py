"""
Domain exceptions

Every error the core raises is recoverable by the caller and maps onto a
4xx response. ``details`` carries structured context (offending field, ids,
expected vs. found counts) so clients can build a precise message.
"""
from typing import Any, Dict, Optional


class JobCostingException(Exception):
    """Base class for all domain errors"""

    error_code = "ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(JobCostingException):
    """Referenced variant, job, company or override does not exist"""

    error_code = "NOT_FOUND"
    status_code = 404


class ValidationFailedError(JobCostingException):
    """Malformed input, template mismatch, duplicate job number, bad date range"""

    error_code = "VALIDATION_FAILED"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field is not None:
            details.setdefault("field", field)
        super().__init__(message, details)
        self.field = field


class AccessDeniedError(JobCostingException):
    """Caller's company does not own the resource, or the role is insufficient"""

    error_code = "ACCESS_DENIED"
    status_code = 403


class ConflictError(JobCostingException):
    """Uniqueness violation detected by the store"""

    error_code = "CONFLICT"
    status_code = 409
