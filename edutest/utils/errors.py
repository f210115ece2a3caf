"""Error taxonomy shared by the domain engines and the HTTP layer.

Every error carries the HTTP status it maps to and a short machine code;
`main.py` renders them as ``{"detail": ..., "error": ...}``.
"""
from __future__ import annotations


class AppError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed input that passed schema parsing but breaks a domain rule."""
    status_code = 400
    code = "validation_error"


class UnauthenticatedError(AppError):
    status_code = 401
    code = "unauthenticated"


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"


class AlreadyAssignedError(ConflictError):
    code = "already_assigned"


class UpstreamGenerationError(AppError):
    """The question-generation service failed or returned malformed data."""
    status_code = 502
    code = "upstream_generation_error"
