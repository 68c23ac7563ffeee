from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TextIO

from .events import TelemetryEvent, build_event

logger = logging.getLogger(__name__)

DEFAULT_TELEMETRY_DIR = Path("artifacts") / "telemetry"


class TelemetryLogger:
    """Append-only JSONL sink for portal telemetry, off unless enabled."""

    def __init__(
        self,
        *,
        app_name: str = "helix_portal",
        enabled: bool | None = None,
        log_file: str | Path | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.app_name = app_name
        self.enabled = enabled if enabled is not None else _env_flag("HELIX_TELEMETRY_ENABLED")
        self.log_file = Path(log_file or os.getenv("HELIX_TELEMETRY_FILE") or DEFAULT_TELEMETRY_DIR / f"{app_name}.jsonl")
        self.stream = stream
        self.emitted = 0

    def emit(self, event: TelemetryEvent) -> bool:
        if not self.enabled:
            return False

        line = json.dumps({**event.to_dict(), "app_name": self.app_name}, sort_keys=True, default=str)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        with self.log_file.open("a", encoding="utf-8") as fp:
            fp.write(line + "\n")
        if self.stream is not None:
            self.stream.write(line + "\n")
            self.stream.flush()

        self.emitted += 1
        logger.debug("telemetry_emitted", extra={"category": event.category.value, "telemetry_name": event.name})
        return True

    def record(self, **fields) -> bool:
        """Build and emit in one step; nothing is built while disabled."""
        if not self.enabled:
            return False
        return self.emit(build_event(**fields))


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in {"1", "true", "yes", "on"}
