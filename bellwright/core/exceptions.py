"""Domain errors raised by the service layer.

Each carries the HTTP status and envelope ``code`` it is rendered with, so the
service layer never imports FastAPI.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    status_code = 400
    code = "bad_request"
    default_message = "Request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 422
    code = "validation_error"
    default_message = "Validation failed"


class AuthError(ServiceError):
    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required"


class PermissionDeniedError(AuthError):
    status_code = 403
    code = "forbidden"
    default_message = "You don't have permission to access this area."


class DataError(ServiceError):
    status_code = 503
    code = "data_error"
    default_message = "The data store could not complete the request"


class NotFoundError(DataError):
    status_code = 404
    code = "not_found"
    default_message = "Record not found"


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"
    default_message = "The record was changed by another request"


class SubmissionError(ServiceError):
    status_code = 502
    code = "submission_failed"
    default_message = "Submission failed. Please try again."


class VerificationError(ServiceError):
    status_code = 400
    code = "verification_failed"
    default_message = "Verification failed"


class CooldownError(ServiceError):
    status_code = 429
    code = "resend_cooldown"
    default_message = "Please wait before requesting a new code"
