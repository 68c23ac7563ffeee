from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from .config import PortalConfig
from .exceptions import FetchError, FetchErrorKind
from .models import TenantIdentity, TenantRecord, TenantSnapshot
from .tracing import TraceContext

logger = logging.getLogger(__name__)

TENANT_PATH = "/api/customer/tenant/{tenant_id}"


@dataclass(frozen=True)
class FetchResult:
    snapshot: TenantSnapshot | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.snapshot is not None

    @classmethod
    def success(cls, snapshot: TenantSnapshot) -> "FetchResult":
        return cls(snapshot=snapshot)

    @classmethod
    def failure(cls, kind: FetchErrorKind, message: str, *, http_status: int | None = None, trace_id: str | None = None) -> "FetchResult":
        return cls(error=FetchError(kind=kind, message=message, http_status=http_status, trace_id=trace_id))


class PermissionFetcher:
    """Reads one tenant's permission set and display name.

    Transport and payload problems come back as a failed FetchResult; the
    only exception raised is ValueError for a blank tenant id. There is no
    retry here, the synchronizer's next tick is the retry.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 3.0,
        verify_ssl: bool = True,
        client: httpx.AsyncClient | None = None,
        trace: TraceContext | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds, verify=verify_ssl)
        self.trace = trace or TraceContext()

    @classmethod
    def from_config(cls, config: PortalConfig, client: httpx.AsyncClient | None = None) -> "PermissionFetcher":
        return cls(
            config.api_base_url,
            timeout_seconds=config.fetch_timeout_seconds,
            verify_ssl=config.verify_ssl,
            client=client,
        )

    async def fetch(self, tenant_id: str) -> FetchResult:
        if not tenant_id or not tenant_id.strip():
            raise ValueError("tenant_id is required")
        url = self.base_url + TENANT_PATH.format(tenant_id=quote(tenant_id.strip(), safe=""))
        headers = {"Accept": "application/json", **self.trace.begin()}

        try:
            response = await asyncio.wait_for(
                self._client.get(url, headers=headers),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("permissions_fetch_timeout", extra={"tenant_id": tenant_id, "trace_id": self.trace.trace_id})
            return FetchResult.failure(
                FetchErrorKind.UNREACHABLE,
                f"No response within {self.timeout_seconds}s",
                trace_id=self.trace.trace_id,
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "permissions_fetch_unreachable",
                extra={"tenant_id": tenant_id, "trace_id": self.trace.trace_id, "error": type(exc).__name__},
            )
            return FetchResult.failure(FetchErrorKind.UNREACHABLE, str(exc) or type(exc).__name__, trace_id=self.trace.trace_id)

        trace_id = self.trace.observe(response.headers) or self.trace.trace_id
        status = response.status_code
        if status == 404:
            return FetchResult.failure(FetchErrorKind.NOT_FOUND, f"Tenant {tenant_id} not found", http_status=status, trace_id=trace_id)
        if not response.is_success:
            logger.warning("permissions_fetch_rejected", extra={"tenant_id": tenant_id, "status_code": status, "trace_id": trace_id})
            return FetchResult.failure(FetchErrorKind.SERVER_ERROR, f"HTTP {status}", http_status=status, trace_id=trace_id)

        try:
            body = response.json()
            if not isinstance(body, dict):
                raise TypeError(f"expected an object, got {type(body).__name__}")
            body.setdefault("id", tenant_id)
            record = TenantRecord.model_validate(body)
            permissions = record.permission_set()
        except (ValueError, TypeError, PydanticValidationError) as exc:
            logger.warning("permissions_payload_invalid", extra={"tenant_id": tenant_id, "trace_id": trace_id, "error": str(exc)})
            return FetchResult.failure(
                FetchErrorKind.SERVER_ERROR,
                f"Malformed tenant payload: {exc}",
                http_status=status,
                trace_id=trace_id,
            )

        logger.debug("permissions_fetch_success", extra={"tenant_id": tenant_id, "trace_id": trace_id})
        return FetchResult.success(
            TenantSnapshot(
                identity=TenantIdentity(tenant_id=tenant_id, display_name=record.name or ""),
                permissions=permissions,
                trace_id=trace_id,
            )
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
