from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .capabilities import Capability


class PageId(str, Enum):
    DASHBOARD = "dashboard"
    REGULATORY_UPDATES = "regulatory_updates"
    LEGAL_CASES = "legal_cases"
    KNOWLEDGE_BASE = "knowledge_base"
    NEWSLETTERS = "newsletters"
    ANALYTICS = "analytics"
    ADVANCED_ANALYTICS = "advanced_analytics"
    AI_INSIGHTS = "ai_insights"
    GLOBAL_SOURCES = "global_sources"
    DATA_COLLECTION = "data_collection"
    HISTORICAL_DATA = "historical_data"
    SETTINGS = "settings"


# Unknown routes resolve here instead of a 404.
DEFAULT_PAGE = PageId.DASHBOARD

ROUTE_TABLE: dict[str, PageId] = {
    "": PageId.DASHBOARD,
    "dashboard": PageId.DASHBOARD,
    "customer-dashboard": PageId.DASHBOARD,
    "regulatory-updates": PageId.REGULATORY_UPDATES,
    "customer/regulatory-updates": PageId.REGULATORY_UPDATES,
    "legal-cases": PageId.LEGAL_CASES,
    "customer/legal-cases": PageId.LEGAL_CASES,
    "knowledge-base": PageId.KNOWLEDGE_BASE,
    "customer/knowledge-base": PageId.KNOWLEDGE_BASE,
    "newsletters": PageId.NEWSLETTERS,
    "customer/newsletters": PageId.NEWSLETTERS,
    "analytics": PageId.ANALYTICS,
    "customer/analytics": PageId.ANALYTICS,
    "advanced-analytics": PageId.ADVANCED_ANALYTICS,
    "customer/advanced-analytics": PageId.ADVANCED_ANALYTICS,
    "ai-insights": PageId.AI_INSIGHTS,
    "customer-ai-insights": PageId.AI_INSIGHTS,
    "global-sources": PageId.GLOBAL_SOURCES,
    "customer/global-sources": PageId.GLOBAL_SOURCES,
    "data-collection": PageId.DATA_COLLECTION,
    "customer/data-collection": PageId.DATA_COLLECTION,
    "historical-data": PageId.HISTORICAL_DATA,
    "customer/historical-data": PageId.HISTORICAL_DATA,
    "settings": PageId.SETTINGS,
    "customer-settings": PageId.SETTINGS,
}

PAGE_CAPABILITIES: dict[PageId, Capability] = {
    PageId.DASHBOARD: Capability.DASHBOARD,
    PageId.REGULATORY_UPDATES: Capability.REGULATORY_UPDATES,
    PageId.LEGAL_CASES: Capability.LEGAL_CASES,
    PageId.KNOWLEDGE_BASE: Capability.KNOWLEDGE_BASE,
    PageId.NEWSLETTERS: Capability.NEWSLETTERS,
    PageId.ANALYTICS: Capability.ANALYTICS,
    PageId.ADVANCED_ANALYTICS: Capability.ADVANCED_ANALYTICS,
    PageId.AI_INSIGHTS: Capability.AI_INSIGHTS,
    PageId.GLOBAL_SOURCES: Capability.GLOBAL_SOURCES,
    PageId.DATA_COLLECTION: Capability.DATA_COLLECTION,
    PageId.HISTORICAL_DATA: Capability.HISTORICAL_DATA,
    PageId.SETTINGS: Capability.SYSTEM_SETTINGS,
}

TENANT_SEGMENT = "tenant"


@dataclass(frozen=True)
class RouteMatch:
    tenant_id: str | None
    route: str
    page: PageId
    is_fallback: bool = False

    @property
    def required_capability(self) -> Capability:
        return PAGE_CAPABILITIES[self.page]


def _split(path: str) -> list[str]:
    for separator in ("?", "#"):
        path = path.split(separator, 1)[0]
    return [segment for segment in path.strip().split("/") if segment]


def parse(path: str, table: dict[str, PageId] | None = None) -> RouteMatch:
    table = ROUTE_TABLE if table is None else table
    segments = _split(path or "")
    tenant_id: str | None = None
    if len(segments) >= 2 and segments[0] == TENANT_SEGMENT:
        tenant_id = segments[1]
        segments = segments[2:]
    route = "/".join(segments)
    page = table.get(route)
    if page is None:
        return RouteMatch(tenant_id=tenant_id, route=route, page=DEFAULT_PAGE, is_fallback=True)
    return RouteMatch(tenant_id=tenant_id, route=route, page=page)


def resolve(path: str) -> PageId:
    return parse(path).page


__all__ = [
    "DEFAULT_PAGE",
    "PAGE_CAPABILITIES",
    "PageId",
    "ROUTE_TABLE",
    "RouteMatch",
    "parse",
    "resolve",
]
