from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .access_gate import PageStatus
from .admin import AdminTenantsClient
from .capabilities import coerce_capability
from .config import PortalConfig, load_config
from .exceptions import ApiError, ConfigurationError, FetchErrorKind
from .fetcher import PermissionFetcher
from .http_client import HttpClient
from .logging_config import configure_logging
from .navigation import render_sidebar
from .portal import CustomerPortal, PageView
from .router import parse
from .synchronizer import LivePermissionSynchronizer, SyncState, SynchronizerRegistry
from .telemetry import TelemetryLogger


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def build_registry(config: PortalConfig, fetcher: PermissionFetcher, telemetry: TelemetryLogger | None = None) -> SynchronizerRegistry:
    def factory() -> LivePermissionSynchronizer:
        return LivePermissionSynchronizer(
            fetcher,
            poll_interval_seconds=config.poll_interval_seconds,
            not_found_limit=config.not_found_limit,
            telemetry=telemetry,
        )

    return SynchronizerRegistry(factory)


def _print_view(view: PageView) -> None:
    print(f"[{view.decision.status.value}] {view.page.value}{' (stale)' if view.stale else ''}")
    if view.decision.message:
        print(f"  {view.decision.message}")
    if view.decision.status is not PageStatus.LOADING:
        for line in render_sidebar(view.navigation, tenant_id=view.tenant_id, tenant_name=view.tenant_name):
            print(line)


def cmd_resolve(args: argparse.Namespace) -> None:
    match = parse(args.path)
    _emit(
        {
            "tenant_id": match.tenant_id,
            "route": match.route,
            "page": match.page.value,
            "fallback": match.is_fallback,
            "required_capability": match.required_capability.value,
        }
    )


async def _watch(config: PortalConfig, path: str, duration: float | None, once: bool) -> int:
    telemetry = TelemetryLogger(enabled=config.telemetry_enabled)
    fetcher = PermissionFetcher.from_config(config)
    registry = build_registry(config, fetcher, telemetry)
    portal = CustomerPortal(
        registry,
        default_tenant_id=config.default_tenant_id,
        public=config.public_capabilities,
        telemetry=telemetry,
    )
    try:
        portal.open(path)
        synchronizer = registry.get(portal.tenant_id)
        if once:
            state = await synchronizer.refetch()
            _print_view(portal.view(path))
            missing = state.last_error is not None and state.last_error.kind is FetchErrorKind.NOT_FOUND
            return 2 if state.tenant_not_found or missing else 0

        def on_change(state: SyncState) -> None:
            _print_view(portal.view(path))

        synchronizer.subscribe(on_change)
        if duration is None:
            while not synchronizer.state.tenant_not_found:
                await asyncio.sleep(config.poll_interval_seconds)
        else:
            await asyncio.sleep(duration)
        return 2 if synchronizer.state.tenant_not_found else 0
    finally:
        portal.close()
        await registry.aclose()
        await fetcher.aclose()


def cmd_watch(args: argparse.Namespace) -> None:
    config = load_config(args.env_file)
    configure_logging(config.log_level)
    path = args.path
    if args.tenant:
        path = f"/tenant/{args.tenant}/{parse(args.path).route}"
    try:
        code = asyncio.run(_watch(config, path, args.duration, args.once))
    except KeyboardInterrupt:
        code = 0
    if code:
        raise SystemExit(code)


def _admin_client(args: argparse.Namespace) -> AdminTenantsClient:
    config = load_config(args.env_file)
    configure_logging(config.log_level)
    return AdminTenantsClient(http=HttpClient(config), access_token=config.admin_token)


def cmd_tenants(args: argparse.Namespace) -> None:
    client = _admin_client(args)
    _emit(
        [
            {
                "id": tenant.id,
                "name": tenant.name,
                "plan": tenant.subscription_plan,
                "granted": [capability.value for capability in tenant.permission_set().granted()],
            }
            for tenant in client.list_tenants()
        ]
    )


def _toggle(args: argparse.Namespace, enabled: bool) -> None:
    unknown = [key for key in args.capabilities if coerce_capability(key) is None]
    if unknown:
        raise ConfigurationError(f"Unknown capabilities: {', '.join(unknown)}")
    client = _admin_client(args)
    stored = client.set_capabilities(args.tenant, {key: enabled for key in args.capabilities})
    _emit({"tenant_id": args.tenant, "permissions": stored.to_payload()})


def cmd_grant(args: argparse.Namespace) -> None:
    _toggle(args, True)


def cmd_revoke(args: argparse.Namespace) -> None:
    _toggle(args, False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="helix-portal", description="Helix customer portal permission tools")
    parser.add_argument("--env-file", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a portal path to its page")
    resolve_parser.add_argument("path")
    resolve_parser.set_defaults(func=cmd_resolve)

    watch_parser = subparsers.add_parser("watch", help="Follow a tenant's live permissions")
    watch_parser.add_argument("path", nargs="?", default="/dashboard")
    watch_parser.add_argument("--tenant", default=None)
    watch_parser.add_argument("--duration", type=float, default=None)
    watch_parser.add_argument("--once", action="store_true")
    watch_parser.set_defaults(func=cmd_watch)

    tenants_parser = subparsers.add_parser("tenants", help="List tenants (admin)")
    tenants_parser.set_defaults(func=cmd_tenants)

    for name, func in (("grant", cmd_grant), ("revoke", cmd_revoke)):
        toggle_parser = subparsers.add_parser(name, help=f"{name.capitalize()} capabilities for a tenant (admin)")
        toggle_parser.add_argument("--tenant", required=True)
        toggle_parser.add_argument("capabilities", nargs="+")
        toggle_parser.set_defaults(func=func)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except ApiError as exc:
        _emit({"error": exc.code, "message": exc.message, "status_code": exc.status_code, "trace_id": exc.trace_id})
        raise SystemExit(1) from exc
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
