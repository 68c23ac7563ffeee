from __future__ import annotations

import json

import httpx
import pytest
import responses

from helix_portal import cli
from helix_portal.fetcher import PermissionFetcher
from support import BASE_URL


def _mock_fetcher(monkeypatch: pytest.MonkeyPatch, handler) -> None:
    def from_config(cls, config, client=None):
        return cls(config.api_base_url, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    monkeypatch.setattr(PermissionFetcher, "from_config", classmethod(from_config))


def test_resolve_prints_route(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["resolve", "/tenant/t1/customer-ai-insights?tab=2"])

    output = json.loads(capsys.readouterr().out)
    assert output == {
        "tenant_id": "t1",
        "route": "customer-ai-insights",
        "page": "ai_insights",
        "fallback": False,
        "required_capability": "aiInsights",
    }


def test_resolve_unknown_route_reports_fallback(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["resolve", "/tenant/t1/billing"])

    output = json.loads(capsys.readouterr().out)
    assert output["page"] == "dashboard"
    assert output["fallback"] is True


def test_grant_rejects_unknown_capability(portal_env, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["grant", "--tenant", "t1", "billing"])

    assert exc_info.value.code == 1
    assert "billing" in capsys.readouterr().err


def test_watch_without_base_url_is_configuration_error(portal_env, monkeypatch, capsys) -> None:
    monkeypatch.delenv("HELIX_API_BASE_URL", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["watch", "--once", "/tenant/t1/dashboard"])

    assert exc_info.value.code == 1
    assert "HELIX_API_BASE_URL" in capsys.readouterr().err


def test_watch_once_prints_page_and_sidebar(portal_env, package_logger, monkeypatch, capsys) -> None:
    _mock_fetcher(
        monkeypatch,
        lambda request: httpx.Response(
            200,
            json={"id": "t1", "name": "MedTech Solutions GmbH", "customerPermissions": {"dashboard": True, "newsletters": True}},
        ),
    )

    cli.main(["watch", "--once", "--tenant", "t1", "/newsletters"])

    out = capsys.readouterr().out
    assert out.splitlines()[0] == "[allowed] newsletters"
    assert "== MedTech Solutions GmbH ==" in out
    assert "/tenant/t1/newsletters" in out


def test_watch_once_exits_2_for_unknown_tenant(portal_env, package_logger, monkeypatch, capsys) -> None:
    monkeypatch.setenv("HELIX_NOT_FOUND_LIMIT", "1")
    _mock_fetcher(monkeypatch, lambda request: httpx.Response(404, json={"error": "Tenant not found"}))

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["watch", "--once", "/tenant/ghost/dashboard"])

    assert exc_info.value.code == 2
    assert capsys.readouterr().out.startswith("[tenant_not_found] dashboard")


def test_watch_once_exits_2_on_first_not_found_with_default_limit(portal_env, package_logger, monkeypatch) -> None:
    requests_seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        return httpx.Response(404, json={"error": "Tenant not found"})

    _mock_fetcher(monkeypatch, handler)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["watch", "--once", "/tenant/ghost/dashboard"])

    assert exc_info.value.code == 2
    assert len(requests_seen) == 1


@responses.activate
def test_tenants_lists_granted_capabilities(portal_env, package_logger, capsys) -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/admin/tenants",
        json=[{"id": "t1", "name": "MedTech", "subscriptionPlan": "starter", "customerPermissions": {"analytics": True}}],
    )

    cli.main(["tenants"])

    assert json.loads(capsys.readouterr().out) == [
        {"id": "t1", "name": "MedTech", "plan": "starter", "granted": ["analytics"]}
    ]


@responses.activate
def test_api_error_is_printed_as_json(portal_env, package_logger, capsys) -> None:
    responses.add(responses.GET, f"{BASE_URL}/api/admin/tenants", status=403, json={"code": "FORBIDDEN", "message": "admins only"})

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["tenants"])

    assert exc_info.value.code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["error"] == "FORBIDDEN"
    assert output["status_code"] == 403


@responses.activate
def test_revoke_writes_permissions(portal_env, package_logger, capsys) -> None:
    responses.add(
        responses.GET,
        f"{BASE_URL}/api/customer/tenant/t1",
        json={"id": "t1", "customerPermissions": {"dashboard": True, "newsletters": True}},
    )
    responses.add(
        responses.PUT,
        f"{BASE_URL}/api/admin/tenants/t1/permissions",
        json={"success": True, "data": {"id": "t1", "customerPermissions": {"dashboard": True}}},
    )

    cli.main(["revoke", "--tenant", "t1", "newsletters"])

    output = json.loads(capsys.readouterr().out)
    assert output["permissions"]["newsletters"] is False
    assert output["permissions"]["dashboard"] is True
    assert json.loads(responses.calls[1].request.body)["customerPermissions"]["newsletters"] is False
