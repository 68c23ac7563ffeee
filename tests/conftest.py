from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BASE_DIR / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from support import BASE_URL, ManualTicker, StepClock  # noqa: E402


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def portal_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "HELIX_ENV",
        "HELIX_API_BASE_URL_DEV",
        "HELIX_POLL_INTERVAL_SECONDS",
        "HELIX_FETCH_TIMEOUT_SECONDS",
        "HELIX_DEFAULT_TENANT_ID",
        "HELIX_PUBLIC_CAPABILITIES",
        "HELIX_ADMIN_TOKEN",
        "HELIX_RETRIES",
        "HELIX_CONNECT_TIMEOUT_SECONDS",
        "HELIX_READ_TIMEOUT_SECONDS",
        "HELIX_MAX_CONNECTIONS",
        "HELIX_NOT_FOUND_LIMIT",
        "HELIX_LOG_LEVEL",
        "HELIX_TELEMETRY_ENABLED",
        "HELIX_TELEMETRY_FILE",
        "HELIX_VERIFY_SSL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HELIX_API_BASE_URL", BASE_URL)
    monkeypatch.setenv("HELIX_RETRY_BACKOFF_SECONDS", "0")


@pytest.fixture
def package_logger():
    # configure_logging disables propagation; caplog needs it restored
    logger = logging.getLogger("helix_portal")
    saved = (logger.handlers[:], logger.level, logger.propagate)
    yield logger
    logger.handlers, level, logger.propagate = saved
    logger.setLevel(level)
