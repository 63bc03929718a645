"""
Domain error taxonomy.

Services raise these; the API layer renders them (see api/exceptions.py).
Each error carries the HTTP status it maps to, a stable error_code and
optional extra context for the response body.
"""
from typing import Any, Dict, Optional


class PatientActorError(Exception):
    """Base class for all domain errors"""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, detail: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}


class NotFoundError(PatientActorError):
    """Resource absent (or hidden from an unauthenticated caller)"""

    status_code = 404
    error_code = "NOT_FOUND"


class ForbiddenError(PatientActorError):
    """Resource exists but the caller lacks rights on it"""

    status_code = 403
    error_code = "FORBIDDEN"


class UnauthenticatedError(PatientActorError):
    """No caller identity where one is required"""

    status_code = 401
    error_code = "UNAUTHENTICATED"

    def __init__(self, detail: str = "Authentication required", extra: Optional[Dict[str, Any]] = None):
        super().__init__(detail, extra)


class ConflictError(PatientActorError):
    """State conflict, e.g. resubmitting an already-submitted session"""

    status_code = 409
    error_code = "CONFLICT"


class ValidationFailedError(PatientActorError):
    """Malformed or missing required fields"""

    status_code = 422
    error_code = "VALIDATION_FAILED"


class UpstreamFailureError(PatientActorError):
    """The language model call failed"""

    status_code = 502
    error_code = "UPSTREAM_FAILURE"
