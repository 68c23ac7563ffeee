from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Mapping

TRACE_HEADER = "X-Trace-ID"
_INBOUND_TRACE_HEADERS = (TRACE_HEADER, "X-Request-ID")


@dataclass
class TraceContext:
    """Outbound trace id per request, plus the id the platform echoed back last."""

    trace_id: str | None = None
    server_trace_id: str | None = None

    def begin(self) -> dict[str, str]:
        self.trace_id = uuid.uuid4().hex
        self.server_trace_id = None
        return {TRACE_HEADER: self.trace_id}

    def observe(self, headers: Mapping[str, str]) -> str | None:
        # requests and httpx both hand back case-insensitive header mappings
        for key in _INBOUND_TRACE_HEADERS:
            value = headers.get(key)
            if value:
                self.server_trace_id = value
                return value
        return None

    @property
    def effective_id(self) -> str | None:
        return self.server_trace_id or self.trace_id
