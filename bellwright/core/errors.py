"""Exception handlers rendering every failure as ``{code, message, data, details}``."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from bellwright.core.exceptions import CooldownError, ServiceError

logger = logging.getLogger(__name__)

_HTTP_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "unprocessable_entity",
    429: "rate_limited",
}

# Framework location prefixes dropped from validation messages
_LOCATION_ROOTS = {"body", "query", "path", "header"}


def _phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Request failed"


def _as_details(details: Any) -> dict:
    if details is None:
        return {}
    if isinstance(details, dict):
        return details
    if isinstance(details, list):
        return {"errors": details}
    return {"detail": str(details)}


def build_error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    payload = {"code": code, "message": message, "data": None, "details": _as_details(details)}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload), headers=headers)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s",
            exc.code,
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.__cause__ is not None,
        )
    else:
        logger.info(
            "Rejected %s %s (%s): %s", request.method, request.url.path, exc.code, exc.message
        )

    headers = None
    if isinstance(exc, CooldownError) and "retry_after_seconds" in exc.details:
        headers = {"Retry-After": str(exc.details["retry_after_seconds"])}
    return build_error_response(exc.status_code, exc.code, exc.message, exc.details, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "http_error")
    if isinstance(exc.detail, str):
        message, details = exc.detail, {"detail": exc.detail}
    else:
        message, details = _phrase(exc.status_code), exc.detail
    return build_error_response(exc.status_code, code, message, details, exc.headers)


def _first_error_message(errors: list[dict]) -> str:
    if not errors:
        return "Validation failed"
    first = errors[0] or {}
    field = ".".join(str(part) for part in first.get("loc") or [] if part not in _LOCATION_ROOTS)
    msg = first.get("msg") or "Validation failed"
    return f"{field}: {msg}" if field else str(msg)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    return build_error_response(
        422, "validation_error", _first_error_message(errors), {"errors": errors}
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit hit on %s %s: %s", request.method, request.url.path, exc.detail)
    return build_error_response(
        429,
        "rate_limited",
        "Too many requests. Please slow down and try again shortly.",
        {"limit": str(exc.detail)},
        getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return build_error_response(
        500,
        "internal_server_error",
        "Something went wrong on our side. Please try again.",
        {"request_id": getattr(request.state, "request_id", None)},
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
