from __future__ import annotations

import pytest
from pydantic import ValidationError

from helix_portal.capabilities import (
    DEFAULT_PERMISSIONS,
    RECOGNIZED_KEYS,
    Capability,
    PermissionSet,
    coerce_capability,
)


def test_recognized_keys_cover_every_capability() -> None:
    assert len(RECOGNIZED_KEYS) == 16
    assert "systemSettings" in RECOGNIZED_KEYS
    assert set(PermissionSet().to_payload()) == RECOGNIZED_KEYS


def test_coerce_capability() -> None:
    assert coerce_capability("newsletters") is Capability.NEWSLETTERS
    assert coerce_capability(" aiInsights ") is Capability.AI_INSIGHTS
    assert coerce_capability(Capability.REPORTS) is Capability.REPORTS
    assert coerce_capability("billing") is None


def test_from_payload_drops_unknown_and_defaults_missing() -> None:
    permissions = PermissionSet.from_payload({"dashboard": True, "analytics": False, "billing": True})

    assert permissions.granted() == (Capability.DASHBOARD,)
    assert permissions.allows(Capability.SYSTEM_SETTINGS) is False
    assert "billing" not in permissions.to_payload()


def test_from_payload_empty_grants_nothing() -> None:
    assert PermissionSet.from_payload(None).granted() == ()
    assert PermissionSet.from_payload({}).granted() == ()


def test_from_payload_treats_null_flags_as_missing() -> None:
    permissions = PermissionSet.from_payload({"dashboard": True, "aiInsights": None, "reports": None})

    assert permissions.granted() == (Capability.DASHBOARD,)
    assert permissions.allows(Capability.AI_INSIGHTS) is False


def test_granting_rejects_unknown_capability() -> None:
    with pytest.raises(ValueError, match="billing"):
        PermissionSet.granting(["dashboard", "billing"])


def test_same_as_compares_field_by_field() -> None:
    first = PermissionSet.from_payload({"dashboard": True, "newsletters": True})
    second = PermissionSet.granting([Capability.NEWSLETTERS, Capability.DASHBOARD])

    assert first is not second
    assert first.same_as(second)
    assert not first.same_as(second.with_changes({"newsletters": False}))
    assert not first.same_as(None)


def test_with_changes_returns_new_set() -> None:
    original = PermissionSet.granting(["dashboard"])

    updated = original.with_changes({Capability.ANALYTICS: True, "dashboard": False})

    assert original.granted() == (Capability.DASHBOARD,)
    assert updated.granted() == (Capability.ANALYTICS,)
    with pytest.raises(ValueError):
        original.with_changes({"billing": True})


def test_permission_set_is_immutable() -> None:
    permissions = PermissionSet()
    with pytest.raises(ValidationError):
        permissions.dashboard = True


def test_default_permissions() -> None:
    assert DEFAULT_PERMISSIONS.granted() == (
        Capability.DASHBOARD,
        Capability.REGULATORY_UPDATES,
        Capability.LEGAL_CASES,
        Capability.KNOWLEDGE_BASE,
        Capability.NEWSLETTERS,
    )


def test_to_payload_uses_wire_keys() -> None:
    payload = PermissionSet.granting(["knowledgeBase"]).to_payload()

    assert payload["knowledgeBase"] is True
    assert payload["advancedAnalytics"] is False
