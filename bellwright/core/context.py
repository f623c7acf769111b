"""Per-request values stamped onto log records."""

import contextvars
from typing import Optional

_UNSET = "-"

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default=_UNSET)
_caller_id: contextvars.ContextVar[str] = contextvars.ContextVar("caller_id", default=_UNSET)
_caller_role: contextvars.ContextVar[str] = contextvars.ContextVar("caller_role", default=_UNSET)


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def bind_caller(caller_id: Optional[object], role: str) -> None:
    _caller_id.set(str(caller_id) if caller_id is not None else _UNSET)
    _caller_role.set(role)


def get_caller_fields() -> dict[str, str]:
    return {"caller_id": _caller_id.get(), "caller_role": _caller_role.get()}


def clear_context() -> None:
    _request_id.set(_UNSET)
    _caller_id.set(_UNSET)
    _caller_role.set(_UNSET)
