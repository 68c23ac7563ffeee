from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ConfigurationError(ValueError):
    """Static configuration references something that does not exist."""


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    trace_id: str | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"


class AuthError(ApiError):
    """Missing or rejected admin credentials."""


class PermissionDeniedError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class RateLimitError(ApiError):
    pass


class ServerError(ApiError):
    """5xx server-side failures."""


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""


class FetchErrorKind(str, Enum):
    UNREACHABLE = "unreachable"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class FetchError:
    """Permission fetch failure carried as a value, never raised."""

    kind: FetchErrorKind
    message: str
    http_status: int | None = None
    trace_id: str | None = None

    @property
    def retryable(self) -> bool:
        return self.kind is not FetchErrorKind.NOT_FOUND

    def signature(self) -> tuple[str, int | None]:
        return self.kind.value, self.http_status
