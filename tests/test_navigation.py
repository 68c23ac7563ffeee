from __future__ import annotations

import pytest

from helix_portal.capabilities import Capability, PermissionSet
from helix_portal.exceptions import ConfigurationError
from helix_portal.navigation import (
    NAVIGATION_CATALOG,
    NO_NAVIGATION_MESSAGE,
    NavigationEntry,
    build_tenant_url,
    project,
    render_sidebar,
    validate_catalog,
)


def test_catalog_order_and_settings_capability() -> None:
    assert [entry.name for entry in NAVIGATION_CATALOG] == [
        "Dashboard",
        "Regulatorische Updates",
        "Rechtsprechung",
        "Wissensdatenbank",
        "Newsletter",
        "Analytics",
        "Erweiterte Analytics",
        "KI-Erkenntnisse",
        "Globale Datenquellen",
        "Datensammlung",
        "Historische Daten",
        "Einstellungen",
    ]
    assert NAVIGATION_CATALOG[-1].required_capability is Capability.SYSTEM_SETTINGS


def test_project_keeps_catalog_order() -> None:
    permissions = PermissionSet.granting(["systemSettings", "newsletters", "dashboard"])

    entries = project(NAVIGATION_CATALOG, permissions)

    assert [entry.name for entry in entries] == ["Dashboard", "Newsletter", "Einstellungen"]


def test_project_matches_gate_for_every_entry() -> None:
    permissions = PermissionSet.granting(["legalCases", "aiInsights", "historicalData"])

    visible = set(project(NAVIGATION_CATALOG, permissions))

    for entry in NAVIGATION_CATALOG:
        assert (entry in visible) is permissions.allows(entry.required_capability)


def test_project_absent_permissions_shows_only_public() -> None:
    assert project(NAVIGATION_CATALOG, None) == ()
    entries = project(NAVIGATION_CATALOG, None, public={Capability.DASHBOARD})
    assert [entry.name for entry in entries] == ["Dashboard"]


def test_project_nothing_granted() -> None:
    assert project(NAVIGATION_CATALOG, PermissionSet()) == ()


def test_validate_catalog_rejects_unknown_capability() -> None:
    broken = NAVIGATION_CATALOG + (NavigationEntry("Billing", "/billing", "billing"),)
    with pytest.raises(ConfigurationError, match="billing"):
        validate_catalog(broken)


def test_build_tenant_url() -> None:
    assert build_tenant_url("/newsletters", "t1") == "/tenant/t1/newsletters"
    assert build_tenant_url("newsletters", None) == "/newsletters"


def test_render_sidebar_marks_active_entry() -> None:
    entries = project(NAVIGATION_CATALOG, PermissionSet.granting(["dashboard", "newsletters"]))

    lines = render_sidebar(entries, tenant_id="t1", tenant_name="MedTech Solutions GmbH", active_path="/tenant/t1/newsletters")

    assert lines[0] == "== MedTech Solutions GmbH =="
    assert len(lines) == 3
    assert lines[2].startswith(" * Newsletter")
    assert lines[2].endswith("/tenant/t1/newsletters")
    assert lines[1].startswith("   Dashboard")


def test_render_sidebar_empty_shows_guidance() -> None:
    lines = render_sidebar((), tenant_id="t1")

    assert lines == ["== t1 ==", f"  ({NO_NAVIGATION_MESSAGE})"]
