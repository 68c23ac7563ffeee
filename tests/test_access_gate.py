from __future__ import annotations

import pytest

from helix_portal.access_gate import (
    LOADING_MESSAGE,
    NOT_FOUND_MESSAGE,
    RESTRICTED_MESSAGE,
    PageStatus,
    evaluate_page,
    is_allowed,
    validate_capabilities,
)
from helix_portal.capabilities import Capability, PermissionSet
from helix_portal.exceptions import ConfigurationError


@pytest.mark.parametrize("capability", list(Capability))
def test_is_allowed_matches_flag(capability: Capability) -> None:
    granted = PermissionSet.granting([capability])

    assert is_allowed(granted, capability) is True
    assert is_allowed(PermissionSet(), capability) is False


def test_absent_permissions_deny_unless_public() -> None:
    assert is_allowed(None, Capability.DASHBOARD) is False
    assert is_allowed(None, Capability.DASHBOARD, public={Capability.DASHBOARD}) is True
    assert is_allowed(None, Capability.ANALYTICS, public={Capability.DASHBOARD}) is False


def test_public_does_not_override_explicit_false() -> None:
    permissions = PermissionSet.granting(["analytics"])

    assert is_allowed(permissions, Capability.DASHBOARD, public={Capability.DASHBOARD}) is False


def test_unknown_capability_is_denied_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    everything = PermissionSet.granting(list(Capability))

    with caplog.at_level("WARNING", logger="helix_portal.access_gate"):
        assert is_allowed(everything, "billing") is False

    assert any(record.getMessage() == "access_gate_unknown_capability" for record in caplog.records)


def test_string_capability_is_accepted() -> None:
    assert is_allowed(PermissionSet.granting(["newsletters"]), "newsletters") is True


def test_validate_capabilities() -> None:
    validate_capabilities(["dashboard", Capability.REPORTS])
    with pytest.raises(ConfigurationError, match="billing"):
        validate_capabilities(["dashboard", "billing"])


def test_evaluate_page_loading_before_first_response() -> None:
    decision = evaluate_page(None, Capability.NEWSLETTERS, has_responded=False)

    assert decision.status is PageStatus.LOADING
    assert decision.message == LOADING_MESSAGE
    assert decision.allowed is False


def test_evaluate_page_restricted_after_failed_first_fetch() -> None:
    decision = evaluate_page(None, Capability.NEWSLETTERS, has_responded=True)

    assert decision.status is PageStatus.RESTRICTED
    assert decision.message == RESTRICTED_MESSAGE
    assert "tenant administrator" in decision.message


def test_evaluate_page_allowed_and_restricted() -> None:
    permissions = PermissionSet.granting(["dashboard"])

    assert evaluate_page(permissions, Capability.DASHBOARD, has_responded=True).allowed is True
    assert evaluate_page(permissions, Capability.ANALYTICS, has_responded=True).status is PageStatus.RESTRICTED


def test_evaluate_page_public_while_loading() -> None:
    decision = evaluate_page(None, Capability.DASHBOARD, has_responded=False, public={Capability.DASHBOARD})

    assert decision.status is PageStatus.ALLOWED


def test_evaluate_page_tenant_not_found_wins() -> None:
    everything = PermissionSet.granting(list(Capability))

    decision = evaluate_page(everything, Capability.DASHBOARD, has_responded=True, tenant_not_found=True)

    assert decision.status is PageStatus.TENANT_NOT_FOUND
    assert decision.message == NOT_FOUND_MESSAGE
