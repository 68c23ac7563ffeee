from __future__ import annotations

from typing import Mapping

from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ServerError,
    ValidationError,
)

_ERRORS_BY_STATUS: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: AuthError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}

# admin routes answer {"success": false, "error": "..."}; gateways use "detail"
_MESSAGE_KEYS = ("message", "error", "detail")


def _message(payload: Mapping[str, object]) -> str:
    for key in _MESSAGE_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return "Request failed"


def map_error(status_code: int, payload: Mapping[str, object] | None, trace_id: str | None) -> ApiError:
    payload = payload or {}
    error_type = _ERRORS_BY_STATUS.get(status_code)
    if error_type is None:
        error_type = ServerError if status_code >= 500 else ApiError
    payload_trace_id = payload.get("trace_id")
    return error_type(
        code=str(payload.get("code") or "HTTP_ERROR"),
        message=_message(payload),
        details=payload.get("details"),
        trace_id=str(payload_trace_id) if payload_trace_id is not None else trace_id,
        status_code=status_code,
        raw_payload=dict(payload),
    )
