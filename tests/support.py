"""Test doubles shared by the async suites; conftest puts src/ on sys.path first."""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime, timedelta, timezone

from helix_portal.capabilities import PermissionSet
from helix_portal.exceptions import FetchErrorKind
from helix_portal.fetcher import FetchResult
from helix_portal.models import TenantIdentity, TenantSnapshot

BASE_URL = "https://api.example.com"


async def drain(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualTicker:
    """Stands in for asyncio.sleep; time only moves when the test calls tick()."""

    def __init__(self) -> None:
        self._waiters: list[asyncio.Future] = []
        self.requested: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.requested.append(seconds)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def tick(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
        await drain()


class StepClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def ok(tenant_id: str = "t1", name: str = "MedTech Solutions GmbH", **flags: bool) -> FetchResult:
    return FetchResult.success(
        TenantSnapshot(
            identity=TenantIdentity(tenant_id=tenant_id, display_name=name),
            permissions=PermissionSet.from_payload(flags),
        )
    )


def failed(kind: FetchErrorKind = FetchErrorKind.UNREACHABLE, status: int | None = None) -> FetchResult:
    return FetchResult.failure(kind, kind.value, http_status=status)


class ScriptedFetcher:
    """Returns queued results; `hold()` makes the next call wait until released."""

    def __init__(self, *results: FetchResult) -> None:
        self.results: deque[FetchResult] = deque(results)
        self.calls: list[str] = []
        self._held: deque[asyncio.Future] = deque()
        self._hold_next = 0

    def queue(self, *results: FetchResult) -> None:
        self.results.extend(results)

    def hold(self, count: int = 1) -> None:
        self._hold_next += count

    def release(self, result: FetchResult) -> None:
        waiter = self._held.popleft()
        waiter.set_result(result)

    async def fetch(self, tenant_id: str) -> FetchResult:
        self.calls.append(tenant_id)
        if self._hold_next:
            self._hold_next -= 1
            waiter = asyncio.get_running_loop().create_future()
            self._held.append(waiter)
            return await waiter
        if not self.results:
            raise AssertionError(f"unexpected fetch for {tenant_id}")
        return self.results.popleft()


