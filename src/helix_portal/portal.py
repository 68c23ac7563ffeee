from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .access_gate import PageDecision, PageStatus, evaluate_page
from .capabilities import Capability
from .exceptions import ConfigurationError
from .navigation import NAVIGATION_CATALOG, NO_NAVIGATION_MESSAGE, NavigationEntry, project, validate_catalog
from .router import PageId, RouteMatch, parse
from .synchronizer import SyncState, SynchronizerRegistry
from .telemetry import TelemetryLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageView:
    page: PageId
    tenant_id: str
    tenant_name: str
    decision: PageDecision
    navigation: tuple[NavigationEntry, ...]
    stale: bool = False

    @property
    def navigation_empty_message(self) -> str | None:
        if self.decision.status is PageStatus.LOADING or self.navigation:
            return None
        return NO_NAVIGATION_MESSAGE

    def render(self) -> dict[str, Any]:
        return {
            "page": self.page.value,
            "tenant_id": self.tenant_id,
            "tenant_name": self.tenant_name,
            "status": self.decision.status.value,
            "message": self.decision.message,
            "navigation": [entry.name for entry in self.navigation],
            "navigation_empty_message": self.navigation_empty_message,
            "stale": self.stale,
        }


def build_page_view(
    match: RouteMatch,
    state: SyncState,
    catalog: Sequence[NavigationEntry] = NAVIGATION_CATALOG,
    public: Iterable[Capability] = frozenset(),
) -> PageView:
    """Page gate and sidebar both come from the same snapshot."""
    public = frozenset(public)
    decision = evaluate_page(
        state.permissions,
        match.required_capability,
        has_responded=state.has_responded,
        tenant_not_found=state.tenant_not_found,
        public=public,
    )
    navigation: tuple[NavigationEntry, ...] = ()
    if not state.tenant_not_found:
        navigation = project(catalog, state.permissions, public)
    return PageView(
        page=match.page,
        tenant_id=state.tenant_id or match.tenant_id or "",
        tenant_name=state.tenant_name,
        decision=decision,
        navigation=navigation,
        stale=state.last_error is not None and state.permissions is not None,
    )


class CustomerPortal:
    def __init__(
        self,
        registry: SynchronizerRegistry,
        *,
        default_tenant_id: str | None = None,
        catalog: Sequence[NavigationEntry] = NAVIGATION_CATALOG,
        public: Iterable[Capability] = frozenset(),
        telemetry: TelemetryLogger | None = None,
    ) -> None:
        validate_catalog(catalog)
        self.registry = registry
        self.default_tenant_id = default_tenant_id
        self.catalog = tuple(catalog)
        self.public = frozenset(public)
        self.telemetry = telemetry
        self._held_tenant: str | None = None

    @property
    def tenant_id(self) -> str | None:
        return self._held_tenant

    def _tenant_for(self, match: RouteMatch) -> str:
        tenant_id = match.tenant_id or self.default_tenant_id
        if not tenant_id:
            raise ConfigurationError("No tenant segment in path and no default tenant configured")
        return tenant_id

    def open(self, path: str) -> PageView:
        match = parse(path)
        tenant_id = self._tenant_for(match)
        if tenant_id != self._held_tenant:
            if self._held_tenant is not None:
                self.registry.release(self._held_tenant)
            self.registry.acquire(tenant_id)
            self._held_tenant = tenant_id
        logger.debug("portal_open", extra={"tenant_id": tenant_id, "page": match.page.value, "fallback": match.is_fallback})
        return self._build(match, tenant_id)

    def view(self, path: str) -> PageView:
        match = parse(path)
        return self._build(match, self._tenant_for(match))

    def close(self) -> None:
        if self._held_tenant is not None:
            self.registry.release(self._held_tenant)
            self._held_tenant = None

    def _build(self, match: RouteMatch, tenant_id: str) -> PageView:
        synchronizer = self.registry.get(tenant_id)
        state = synchronizer.state if synchronizer is not None else SyncState(tenant_id=tenant_id, is_loading=True)
        view = build_page_view(match, state, self.catalog, self.public)
        if view.decision.status is PageStatus.RESTRICTED:
            logger.info("portal_access_restricted", extra={"tenant_id": tenant_id, "page": match.page.value})
            if self.telemetry is not None:
                try:
                    self.telemetry.record(
                        category="permission_denied",
                        name="page_restricted",
                        component="portal",
                        action="open",
                        tenant_id=tenant_id,
                        success=False,
                        context={"page": match.page.value, "capability": match.required_capability.value},
                    )
                except Exception:
                    logger.exception("portal_telemetry_failed", extra={"tenant_id": tenant_id, "page": match.page.value})
        return view
