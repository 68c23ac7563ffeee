from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Protocol

from .capabilities import PermissionSet
from .exceptions import FetchError, FetchErrorKind
from .fetcher import FetchResult
from .models import TenantIdentity
from .telemetry import TelemetryLogger

logger = logging.getLogger(__name__)

Listener = Callable[["SyncState"], None]
Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


class Fetcher(Protocol):
    async def fetch(self, tenant_id: str) -> FetchResult: ...


@dataclass(frozen=True)
class SyncState:
    tenant_id: str | None = None
    permissions: PermissionSet | None = None
    identity: TenantIdentity | None = None
    is_loading: bool = False
    last_error: FetchError | None = None
    last_fetch_at: datetime | None = None
    tenant_not_found: bool = False

    @property
    def tenant_name(self) -> str:
        return self.identity.display_name if self.identity else ""

    @property
    def has_responded(self) -> bool:
        return self.last_fetch_at is not None

    def signature(self) -> tuple:
        """Everything a consumer renders from; last_fetch_at is excluded."""
        return (
            self.tenant_id,
            self.permissions,
            self.tenant_name,
            self.is_loading,
            self.last_error.signature() if self.last_error else None,
            self.tenant_not_found,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LivePermissionSynchronizer:
    """Polls one tenant's permissions and publishes only real changes.

    Runs on the asyncio loop of whoever activates it. A generation counter
    is bumped on every activate/deactivate. A fetch result is applied only
    if its task is still the tracked one and it belongs to the current
    generation, so nothing is published after teardown or after switching
    tenants. At most one request per tenant is outstanding: re-activating
    while a request for the same tenant is still out adopts that request
    instead of issuing a second one.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        poll_interval_seconds: float = 3.0,
        not_found_limit: int = 3,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = _utcnow,
        telemetry: TelemetryLogger | None = None,
    ) -> None:
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        if not_found_limit < 1:
            raise ValueError("not_found_limit must be >= 1")
        self.fetcher = fetcher
        self.poll_interval_seconds = poll_interval_seconds
        self.not_found_limit = not_found_limit
        self._sleep = sleep
        self._clock = clock
        self._telemetry = telemetry
        self._state = SyncState()
        self._listeners: list[Listener] = []
        self._generation = 0
        self._active = False
        self._poll_task: asyncio.Task | None = None
        self._in_flight: asyncio.Task | None = None
        self._in_flight_tenant: str | None = None
        self._in_flight_generation = 0
        self._not_found_streak = 0

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def tenant_id(self) -> str | None:
        return self._state.tenant_id

    @property
    def is_active(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def fetch_in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def unsubscribe_all(self) -> None:
        self._listeners.clear()

    def activate(self, tenant_id: str) -> None:
        if not tenant_id or not tenant_id.strip():
            raise ValueError("tenant_id is required")
        tenant_id = tenant_id.strip()
        if self.is_active and self._state.tenant_id == tenant_id:
            return

        self._stop()
        self._active = True
        self._not_found_streak = 0
        previous = self._state
        self._state = SyncState(tenant_id=tenant_id, is_loading=True)
        if previous.tenant_id is not None and previous.tenant_id != tenant_id:
            logger.info("permission_sync_tenant_switched", extra={"from_tenant": previous.tenant_id, "tenant_id": tenant_id})
        logger.info("permission_sync_activated", extra={"tenant_id": tenant_id, "interval_s": self.poll_interval_seconds})
        self._publish(previous)

        generation = self._generation
        self._dispatch(generation)
        self._poll_task = asyncio.get_running_loop().create_task(self._poll(generation))

    def deactivate(self) -> None:
        if not self._active:
            return
        self._active = False
        self._stop()
        logger.info("permission_sync_deactivated", extra={"tenant_id": self._state.tenant_id})

    async def refetch(self) -> SyncState:
        """Fetch now in place; joins the outstanding request instead of overlapping it.

        After deactivate() the current state is returned untouched.
        """
        if self._state.tenant_id is None:
            raise RuntimeError("Synchronizer was never activated")
        if not self._active:
            logger.debug("permission_sync_refetch_ignored", extra={"tenant_id": self._state.tenant_id})
            return self._state
        self._dispatch(self._generation)
        task = self._in_flight
        if task is not None and not task.done():
            await asyncio.shield(task)
        return self._state

    async def aclose(self) -> None:
        pending = self._in_flight if self.fetch_in_flight else None
        self.deactivate()
        if pending is not None:
            await asyncio.gather(pending, return_exceptions=True)
        self._listeners.clear()

    def _stop(self) -> None:
        self._generation += 1
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = None
        # an outstanding request stays tracked; its generation is now stale

    async def _poll(self, generation: int) -> None:
        while True:
            await self._sleep(self.poll_interval_seconds)
            if generation != self._generation:
                return
            self._dispatch(generation)

    def _dispatch(self, generation: int) -> None:
        tenant_id = self._state.tenant_id
        if tenant_id is None:
            return
        if self.fetch_in_flight and self._in_flight_tenant == tenant_id:
            self._in_flight_generation = generation
            logger.debug("permission_sync_tick_skipped", extra={"tenant_id": tenant_id})
            return
        self._in_flight = asyncio.get_running_loop().create_task(self._fetch_once(tenant_id))
        self._in_flight_tenant = tenant_id
        self._in_flight_generation = generation

    async def _fetch_once(self, tenant_id: str) -> None:
        task = asyncio.current_task()
        try:
            result = await self.fetcher.fetch(tenant_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # a raising fetcher counts as unreachable
            logger.exception("permission_sync_fetcher_raised", extra={"tenant_id": tenant_id})
            result = FetchResult.failure(FetchErrorKind.UNREACHABLE, str(exc) or type(exc).__name__)

        if task is not self._in_flight or self._in_flight_generation != self._generation:
            logger.debug("permission_sync_stale_result_dropped", extra={"tenant_id": tenant_id})
            return
        self._apply(result)

    def _apply(self, result: FetchResult) -> None:
        previous = self._state
        now = self._clock()
        events: list[dict] = []

        if result.ok:
            snapshot = result.snapshot
            self._not_found_streak = 0
            permissions = previous.permissions
            if not snapshot.permissions.same_as(permissions):
                permissions = snapshot.permissions
            identity = previous.identity
            if identity is None or identity.display_name != snapshot.identity.display_name:
                identity = snapshot.identity
            self._state = replace(
                previous,
                permissions=permissions,
                identity=identity,
                is_loading=False,
                last_error=None,
                last_fetch_at=now,
                tenant_not_found=False,
            )
            if permissions is not previous.permissions:
                events.append(self._permissions_changed(previous.permissions, permissions, snapshot.trace_id))
        else:
            error = result.error
            terminal = False
            if error.kind is FetchErrorKind.NOT_FOUND:
                self._not_found_streak += 1
                terminal = self._not_found_streak >= self.not_found_limit
            else:
                self._not_found_streak = 0
            self._state = replace(
                previous,
                is_loading=False,
                last_error=error,
                last_fetch_at=now,
                tenant_not_found=terminal,
            )
            logger.warning(
                "permission_sync_fetch_failed",
                extra={
                    "tenant_id": previous.tenant_id,
                    "kind": error.kind.value,
                    "status_code": error.http_status,
                    "trace_id": error.trace_id,
                },
            )
            if previous.last_error is None or previous.last_error.signature() != error.signature():
                events.append(
                    {
                        "category": "error",
                        "name": "permission_fetch_failed",
                        "component": "synchronizer",
                        "action": "fetch",
                        "tenant_id": previous.tenant_id,
                        "trace_id": error.trace_id,
                        "success": False,
                        "error_kind": error.kind.value,
                        "context": {"http_status": error.http_status},
                    }
                )
            if terminal:
                logger.error("permission_sync_tenant_not_found", extra={"tenant_id": previous.tenant_id})
                self._stop_polling_only()

        self._publish(previous)
        for event in events:
            self._record(event)

    def _stop_polling_only(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = None

    def _permissions_changed(self, old: PermissionSet | None, new: PermissionSet, trace_id: str | None) -> dict:
        granted = [capability.value for capability in new.granted()]
        revoked = []
        if old is not None:
            revoked = [capability.value for capability in old.granted() if not new.allows(capability)]
        logger.info(
            "permission_sync_updated",
            extra={"tenant_id": self._state.tenant_id, "granted": granted, "revoked": revoked, "trace_id": trace_id},
        )
        return {
            "category": "permission_sync",
            "name": "permissions_changed",
            "component": "synchronizer",
            "action": "apply",
            "tenant_id": self._state.tenant_id,
            "trace_id": trace_id,
            "success": True,
            "context": {"granted": granted, "revoked": revoked},
        }

    def _record(self, event: dict) -> None:
        if self._telemetry is None:
            return
        try:
            self._telemetry.record(**event)
        except Exception:
            logger.exception(
                "permission_sync_telemetry_failed",
                extra={"tenant_id": event.get("tenant_id"), "telemetry_name": event.get("name")},
            )

    def _publish(self, previous: SyncState) -> None:
        if previous.signature() == self._state.signature():
            return
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("permission_sync_listener_failed", extra={"tenant_id": state.tenant_id})


class SynchronizerRegistry:
    """One shared synchronizer per tenant so every consumer sees the same state.

    A released synchronizer whose last request is still out is parked until
    that request finishes; acquiring the tenant again in the meantime reuses
    it, so the outstanding request is adopted rather than duplicated.
    """

    def __init__(self, factory: Callable[[], LivePermissionSynchronizer]) -> None:
        self._factory = factory
        self._instances: dict[str, LivePermissionSynchronizer] = {}
        self._refcounts: dict[str, int] = {}
        self._parked: dict[str, LivePermissionSynchronizer] = {}

    def acquire(self, tenant_id: str) -> LivePermissionSynchronizer:
        key = tenant_id.strip()
        self._prune_parked()
        synchronizer = self._instances.get(key)
        if synchronizer is None:
            synchronizer = self._parked.pop(key, None) or self._factory()
            self._instances[key] = synchronizer
            self._refcounts[key] = 0
        self._refcounts[key] += 1
        if not synchronizer.is_active and not synchronizer.state.tenant_not_found:
            synchronizer.activate(key)
        return synchronizer

    def release(self, tenant_id: str) -> None:
        key = tenant_id.strip()
        if key not in self._refcounts:
            return
        self._refcounts[key] -= 1
        if self._refcounts[key] > 0:
            return
        synchronizer = self._instances.pop(key)
        del self._refcounts[key]
        synchronizer.deactivate()
        synchronizer.unsubscribe_all()
        if synchronizer.fetch_in_flight:
            self._parked[key] = synchronizer
        self._prune_parked()

    def get(self, tenant_id: str) -> LivePermissionSynchronizer | None:
        return self._instances.get(tenant_id.strip())

    def refcount(self, tenant_id: str) -> int:
        return self._refcounts.get(tenant_id.strip(), 0)

    def _prune_parked(self) -> None:
        for key in [key for key, parked in self._parked.items() if not parked.fetch_in_flight]:
            del self._parked[key]

    async def aclose(self) -> None:
        instances = list(self._instances.values()) + list(self._parked.values())
        self._instances.clear()
        self._refcounts.clear()
        self._parked.clear()
        for synchronizer in instances:
            await synchronizer.aclose()
