from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .access_gate import is_allowed, validate_capabilities
from .capabilities import Capability, PermissionSet

NO_NAVIGATION_MESSAGE = "No areas are enabled for your organization yet. Contact your tenant administrator."


@dataclass(frozen=True)
class NavigationEntry:
    name: str
    path: str
    required_capability: Capability
    description: str = ""


# Order follows the product's information architecture, not the alphabet.
NAVIGATION_CATALOG: tuple[NavigationEntry, ...] = (
    NavigationEntry("Dashboard", "/dashboard", Capability.DASHBOARD, "Übersicht und aktuelle Statistiken"),
    NavigationEntry("Regulatorische Updates", "/regulatory-updates", Capability.REGULATORY_UPDATES, "Aktuelle regulatorische Änderungen"),
    NavigationEntry("Rechtsprechung", "/legal-cases", Capability.LEGAL_CASES, "Rechtsprechung und Präzedenzfälle"),
    NavigationEntry("Wissensdatenbank", "/knowledge-base", Capability.KNOWLEDGE_BASE, "Wissensdatenbank und Artikel"),
    NavigationEntry("Newsletter", "/newsletters", Capability.NEWSLETTERS, "Newsletter-Verwaltung"),
    NavigationEntry("Analytics", "/analytics", Capability.ANALYTICS, "Datenanalyse und Berichte"),
    NavigationEntry("Erweiterte Analytics", "/advanced-analytics", Capability.ADVANCED_ANALYTICS, "Erweiterte Analysetools"),
    NavigationEntry("KI-Erkenntnisse", "/ai-insights", Capability.AI_INSIGHTS, "KI-gestützte Erkenntnisse"),
    NavigationEntry("Globale Datenquellen", "/global-sources", Capability.GLOBAL_SOURCES, "Globale Datenquellen"),
    NavigationEntry("Datensammlung", "/data-collection", Capability.DATA_COLLECTION, "Datensammlung und -verwaltung"),
    NavigationEntry("Historische Daten", "/historical-data", Capability.HISTORICAL_DATA, "Historische Datenanalyse"),
    NavigationEntry("Einstellungen", "/settings", Capability.SYSTEM_SETTINGS, "Kundeneinstellungen"),
)


def validate_catalog(catalog: Iterable[NavigationEntry]) -> None:
    validate_capabilities(entry.required_capability for entry in catalog)


def project(
    catalog: Sequence[NavigationEntry],
    permissions: PermissionSet | None,
    public: Iterable[Capability] = frozenset(),
) -> tuple[NavigationEntry, ...]:
    public = frozenset(public)
    return tuple(entry for entry in catalog if is_allowed(permissions, entry.required_capability, public))


def build_tenant_url(path: str, tenant_id: str | None) -> str:
    normalized = "/" + path.lstrip("/")
    if tenant_id:
        return f"/tenant/{tenant_id}{normalized}"
    return normalized


def render_sidebar(
    entries: Sequence[NavigationEntry],
    *,
    tenant_id: str | None = None,
    tenant_name: str = "",
    active_path: str | None = None,
) -> list[str]:
    lines = [f"== {tenant_name or tenant_id or 'Helix'} =="]
    if not entries:
        lines.append(f"  ({NO_NAVIGATION_MESSAGE})")
        return lines
    for entry in entries:
        url = build_tenant_url(entry.path, tenant_id)
        marker = "*" if active_path in {url, entry.path} else " "
        lines.append(f" {marker} {entry.name:<24} {url}")
    return lines


validate_catalog(NAVIGATION_CATALOG)

__all__ = [
    "NAVIGATION_CATALOG",
    "NO_NAVIGATION_MESSAGE",
    "NavigationEntry",
    "build_tenant_url",
    "project",
    "render_sidebar",
    "validate_catalog",
]
