from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .capabilities import Capability, PermissionSet, coerce_capability
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RESTRICTED_MESSAGE = (
    "Access restricted: your organization's plan does not include this area. "
    "Contact your tenant administrator to request access."
)
NOT_FOUND_MESSAGE = "Tenant not found. Check the link or contact support."
LOADING_MESSAGE = "Loading permissions..."


def is_allowed(
    permissions: PermissionSet | None,
    capability: Capability | str,
    public: Iterable[Capability] = frozenset(),
) -> bool:
    """Default deny. Absent permissions only pass capabilities listed as public."""
    resolved = coerce_capability(capability)
    if resolved is None:
        logger.warning("access_gate_unknown_capability", extra={"capability": str(capability)})
        return False
    if permissions is None:
        return resolved in public
    return permissions.allows(resolved)


def validate_capabilities(keys: Iterable[Capability | str]) -> None:
    unknown = sorted({str(key) for key in keys if coerce_capability(key) is None})
    if unknown:
        raise ConfigurationError(f"Unrecognized capability keys: {', '.join(unknown)}")


class PageStatus(str, Enum):
    LOADING = "loading"
    ALLOWED = "allowed"
    RESTRICTED = "restricted"
    TENANT_NOT_FOUND = "tenant_not_found"


@dataclass(frozen=True)
class PageDecision:
    status: PageStatus
    message: str = ""

    @property
    def allowed(self) -> bool:
        return self.status is PageStatus.ALLOWED


def evaluate_page(
    permissions: PermissionSet | None,
    capability: Capability,
    *,
    has_responded: bool,
    tenant_not_found: bool = False,
    public: Iterable[Capability] = frozenset(),
) -> PageDecision:
    if tenant_not_found:
        return PageDecision(PageStatus.TENANT_NOT_FOUND, NOT_FOUND_MESSAGE)
    if is_allowed(permissions, capability, public):
        return PageDecision(PageStatus.ALLOWED)
    # absent and false both deny; only the wording differs
    if not has_responded:
        return PageDecision(PageStatus.LOADING, LOADING_MESSAGE)
    return PageDecision(PageStatus.RESTRICTED, RESTRICTED_MESSAGE)


__all__ = [
    "PageDecision",
    "PageStatus",
    "evaluate_page",
    "is_allowed",
    "validate_capabilities",
]
