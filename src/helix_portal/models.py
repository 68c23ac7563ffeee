from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .capabilities import DEFAULT_PERMISSIONS, PermissionSet


class TenantRecord(BaseModel):
    """Body of GET /api/customer/tenant/{id}."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: Optional[str] = ""
    customer_permissions: Optional[Dict[str, Any]] = Field(None, alias="customerPermissions")

    @field_validator("name", mode="after")
    @classmethod
    def name_or_blank(cls, value: Optional[str]) -> str:
        return value or ""

    def permission_set(self) -> PermissionSet:
        if self.customer_permissions is None:
            return DEFAULT_PERMISSIONS
        return PermissionSet.from_payload(self.customer_permissions)


class AdminTenantItem(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: Optional[str] = ""
    slug: str | None = None
    subscription_plan: str | None = Field(None, alias="subscriptionPlan")
    subscription_status: str | None = Field(None, alias="subscriptionStatus")
    customer_permissions: Optional[Dict[str, Any]] = Field(None, alias="customerPermissions")
    created_at: str | None = Field(None, alias="createdAt")

    @field_validator("name", mode="after")
    @classmethod
    def name_or_blank(cls, value: Optional[str]) -> str:
        return value or ""

    def permission_set(self) -> PermissionSet:
        if self.customer_permissions is None:
            return DEFAULT_PERMISSIONS
        return PermissionSet.from_payload(self.customer_permissions)


class PermissionUpdateResponse(BaseModel):
    success: bool = False
    data: Optional[TenantRecord] = None
    message: str | None = None


@dataclass(frozen=True)
class TenantIdentity:
    tenant_id: str
    display_name: str = ""


@dataclass(frozen=True)
class TenantSnapshot:
    identity: TenantIdentity
    permissions: PermissionSet
    trace_id: str | None = None
