from .access_gate import PageDecision, PageStatus, evaluate_page, is_allowed, validate_capabilities
from .admin import AdminTenantsClient
from .capabilities import DEFAULT_PERMISSIONS, Capability, PermissionSet
from .config import ConfigError, PortalConfig, load_config
from .exceptions import (
    ApiError,
    AuthError,
    ConfigurationError,
    FetchError,
    FetchErrorKind,
    NotFoundError,
    PermissionDeniedError,
    ServerError,
    TransportError,
    ValidationError,
)
from .fetcher import FetchResult, PermissionFetcher
from .http_client import HttpClient
from .models import AdminTenantItem, TenantIdentity, TenantRecord, TenantSnapshot
from .navigation import NAVIGATION_CATALOG, NavigationEntry, build_tenant_url, project, validate_catalog
from .portal import CustomerPortal, PageView, build_page_view
from .router import DEFAULT_PAGE, PAGE_CAPABILITIES, ROUTE_TABLE, PageId, RouteMatch, parse, resolve
from .synchronizer import LivePermissionSynchronizer, SyncState, SynchronizerRegistry
from .tracing import TraceContext

__version__ = "0.4.0"

__all__ = [
    "AdminTenantItem",
    "AdminTenantsClient",
    "ApiError",
    "AuthError",
    "Capability",
    "ConfigError",
    "ConfigurationError",
    "CustomerPortal",
    "DEFAULT_PAGE",
    "DEFAULT_PERMISSIONS",
    "FetchError",
    "FetchErrorKind",
    "FetchResult",
    "HttpClient",
    "LivePermissionSynchronizer",
    "NAVIGATION_CATALOG",
    "NavigationEntry",
    "NotFoundError",
    "PAGE_CAPABILITIES",
    "PageDecision",
    "PageId",
    "PageStatus",
    "PageView",
    "PermissionDeniedError",
    "PermissionFetcher",
    "PermissionSet",
    "PortalConfig",
    "ROUTE_TABLE",
    "RouteMatch",
    "ServerError",
    "SyncState",
    "SynchronizerRegistry",
    "TenantIdentity",
    "TenantRecord",
    "TenantSnapshot",
    "TraceContext",
    "TransportError",
    "ValidationError",
    "build_page_view",
    "build_tenant_url",
    "evaluate_page",
    "is_allowed",
    "load_config",
    "parse",
    "project",
    "resolve",
    "validate_capabilities",
    "validate_catalog",
]
