from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class TelemetryCategory(str, Enum):
    PERMISSION_SYNC = "permission_sync"
    NAVIGATION = "navigation"
    API_CALL_RESULT = "api_call_result"
    ERROR = "error"
    PERMISSION_DENIED = "permission_denied"


TELEMETRY_CATEGORIES = frozenset(item.value for item in TelemetryCategory)

# matched as substrings of context keys, case-insensitive, at any nesting depth
_SENSITIVE_KEY_PARTS = ("email", "password", "token", "secret", "authorization", "phone", "full_name")


@dataclass(frozen=True)
class TelemetryEvent:
    category: TelemetryCategory
    name: str
    component: str
    action: str
    timestamp_utc: str
    tenant_id: str | None = None
    trace_id: str | None = None
    success: bool | None = None
    error_kind: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = {key: value for key, value in asdict(self).items() if value is not None and value != {}}
        payload["category"] = self.category.value
        return payload


def _sensitive_keys(context: Mapping[str, Any], prefix: str = "") -> list[str]:
    found: list[str] = []
    for key, value in context.items():
        path = f"{prefix}{key}"
        if any(part in str(key).lower() for part in _SENSITIVE_KEY_PARTS):
            found.append(path)
        if isinstance(value, Mapping):
            found.extend(_sensitive_keys(value, f"{path}."))
    return found


def build_event(
    *,
    category: TelemetryCategory | str,
    name: str,
    component: str,
    action: str,
    tenant_id: str | None = None,
    trace_id: str | None = None,
    success: bool | None = None,
    error_kind: str | None = None,
    context: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> TelemetryEvent:
    try:
        resolved = TelemetryCategory(category)
    except ValueError as exc:
        raise ValueError(f"Unsupported telemetry category: {category}") from exc
    flagged = sorted(_sensitive_keys(context or {}))
    if flagged:
        raise ValueError(f"Sensitive keys are not allowed in telemetry context: {flagged}")
    return TelemetryEvent(
        category=resolved,
        name=name,
        component=component,
        action=action,
        timestamp_utc=(now or datetime.now(timezone.utc)).isoformat(),
        tenant_id=tenant_id,
        trace_id=trace_id,
        success=success,
        error_kind=error_kind,
        context=dict(context or {}),
    )
