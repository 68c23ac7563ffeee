from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Capability(str, Enum):
    DASHBOARD = "dashboard"
    REGULATORY_UPDATES = "regulatoryUpdates"
    LEGAL_CASES = "legalCases"
    KNOWLEDGE_BASE = "knowledgeBase"
    NEWSLETTERS = "newsletters"
    ANALYTICS = "analytics"
    REPORTS = "reports"
    DATA_COLLECTION = "dataCollection"
    GLOBAL_SOURCES = "globalSources"
    HISTORICAL_DATA = "historicalData"
    ADMINISTRATION = "administration"
    USER_MANAGEMENT = "userManagement"
    SYSTEM_SETTINGS = "systemSettings"
    AUDIT_LOGS = "auditLogs"
    AI_INSIGHTS = "aiInsights"
    ADVANCED_ANALYTICS = "advancedAnalytics"


RECOGNIZED_KEYS: frozenset[str] = frozenset(item.value for item in Capability)


def coerce_capability(key: str | Capability) -> Capability | None:
    if isinstance(key, Capability):
        return key
    try:
        return Capability(str(key).strip())
    except ValueError:
        return None


class PermissionSet(BaseModel):
    """Immutable per-tenant feature flags; every recognized key is always present."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    dashboard: bool = Field(False, alias="dashboard")
    regulatory_updates: bool = Field(False, alias="regulatoryUpdates")
    legal_cases: bool = Field(False, alias="legalCases")
    knowledge_base: bool = Field(False, alias="knowledgeBase")
    newsletters: bool = Field(False, alias="newsletters")
    analytics: bool = Field(False, alias="analytics")
    reports: bool = Field(False, alias="reports")
    data_collection: bool = Field(False, alias="dataCollection")
    global_sources: bool = Field(False, alias="globalSources")
    historical_data: bool = Field(False, alias="historicalData")
    administration: bool = Field(False, alias="administration")
    user_management: bool = Field(False, alias="userManagement")
    system_settings: bool = Field(False, alias="systemSettings")
    audit_logs: bool = Field(False, alias="auditLogs")
    ai_insights: bool = Field(False, alias="aiInsights")
    advanced_analytics: bool = Field(False, alias="advancedAnalytics")

    @classmethod
    def from_payload(cls, payload: Mapping[str, object] | None) -> "PermissionSet":
        """Unknown keys are dropped; missing or null keys default to False."""
        if not payload:
            return cls()
        known = {key: value for key, value in payload.items() if key in RECOGNIZED_KEYS and value is not None}
        return cls.model_validate(known)

    @classmethod
    def granting(cls, capabilities: Iterable[str | Capability]) -> "PermissionSet":
        enabled = {}
        for raw in capabilities:
            capability = coerce_capability(raw)
            if capability is None:
                raise ValueError(f"Unknown capability: {raw!r}")
            enabled[capability.value] = True
        return cls.model_validate(enabled)

    def allows(self, capability: Capability) -> bool:
        return bool(getattr(self, _FIELD_BY_CAPABILITY[capability]))

    def granted(self) -> tuple[Capability, ...]:
        return tuple(capability for capability in Capability if self.allows(capability))

    def same_as(self, other: "PermissionSet | None") -> bool:
        if other is None:
            return False
        return all(self.allows(capability) == other.allows(capability) for capability in Capability)

    def with_changes(self, changes: Mapping[str | Capability, bool]) -> "PermissionSet":
        payload = self.to_payload()
        for raw, enabled in changes.items():
            capability = coerce_capability(raw)
            if capability is None:
                raise ValueError(f"Unknown capability: {raw!r}")
            payload[capability.value] = bool(enabled)
        return PermissionSet.from_payload(payload)

    def to_payload(self) -> dict[str, bool]:
        return {capability.value: self.allows(capability) for capability in Capability}


_FIELD_BY_CAPABILITY: dict[Capability, str] = {
    Capability(field.alias): name for name, field in PermissionSet.model_fields.items()
}

DEFAULT_PERMISSIONS = PermissionSet.granting(
    [
        Capability.DASHBOARD,
        Capability.REGULATORY_UPDATES,
        Capability.LEGAL_CASES,
        Capability.KNOWLEDGE_BASE,
        Capability.NEWSLETTERS,
    ]
)

__all__ = [
    "Capability",
    "DEFAULT_PERMISSIONS",
    "PermissionSet",
    "RECOGNIZED_KEYS",
    "coerce_capability",
]
