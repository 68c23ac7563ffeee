from __future__ import annotations

import logging
from collections.abc import Mapping
from urllib.parse import quote

from .capabilities import Capability, PermissionSet
from .exceptions import ValidationError
from .http_client import HttpClient
from .logging_config import log_action
from .models import AdminTenantItem, PermissionUpdateResponse, TenantRecord

logger = logging.getLogger(__name__)


class AdminTenantsClient:
    """Operator-side access to tenant records and their customer permissions."""

    def __init__(self, http: HttpClient, access_token: str | None = None) -> None:
        self.http = http
        self.access_token = access_token

    def _auth_headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def list_tenants(self) -> list[AdminTenantItem]:
        data = self.http.request("GET", "/api/admin/tenants", headers=self._auth_headers(), operation="list_tenants")
        rows = data if isinstance(data, list) else (data or {}).get("data", [])
        return [AdminTenantItem.model_validate(row) for row in rows]

    def get_tenant(self, tenant_id: str) -> TenantRecord:
        data = self.http.request(
            "GET",
            f"/api/customer/tenant/{quote(tenant_id, safe='')}",
            headers=self._auth_headers(),
            operation="get_tenant",
        )
        payload = dict(data or {})
        payload.setdefault("id", tenant_id)
        return TenantRecord.model_validate(payload)

    def update_permissions(self, tenant_id: str, permissions: PermissionSet) -> PermissionSet:
        try:
            data = self.http.request(
                "PUT",
                f"/api/admin/tenants/{quote(tenant_id, safe='')}/permissions",
                headers=self._auth_headers(),
                json_body={"customerPermissions": permissions.to_payload()},
                operation="update_permissions",
            )
        except Exception:
            log_action(logger, "admin", "update_permissions", tenant_id, self.http.trace.effective_id, "error")
            raise
        response = PermissionUpdateResponse.model_validate(data or {})
        if not response.success or response.data is None:
            log_action(logger, "admin", "update_permissions", tenant_id, self.http.trace.effective_id, "rejected")
            raise ValidationError(
                code="PERMISSION_UPDATE_REJECTED",
                message=response.message or "Permission update was not applied",
                details=data,
                trace_id=self.http.trace.effective_id,
                status_code=200,
            )
        stored = response.data.permission_set()
        log_action(
            logger,
            "admin",
            "update_permissions",
            tenant_id,
            self.http.trace.effective_id,
            "success",
            granted=[capability.value for capability in stored.granted()],
        )
        return stored

    def set_capabilities(self, tenant_id: str, changes: Mapping[Capability | str, bool]) -> PermissionSet:
        current = self.get_tenant(tenant_id).permission_set()
        updated = current.with_changes(changes)
        if updated.same_as(current):
            logger.info("admin_permissions_unchanged", extra={"tenant_id": tenant_id})
            return current
        return self.update_permissions(tenant_id, updated)

    def set_capability(self, tenant_id: str, capability: Capability | str, enabled: bool) -> PermissionSet:
        return self.set_capabilities(tenant_id, {capability: enabled})
