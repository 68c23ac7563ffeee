import json
import logging
import sys
from datetime import datetime, timezone

_RESERVED = set(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; `extra=` fields are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", stream=None) -> None:
    root = logging.getLogger("helix_portal")
    root.setLevel(level.upper())
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonLineFormatter())
    # reconfiguring replaces the handler instead of stacking duplicates
    root.handlers = [handler]
    root.propagate = False


def log_action(
    logger: logging.Logger,
    component: str,
    action: str,
    tenant_id: str | None,
    trace_id: str | None,
    outcome: str,
    **details: object,
) -> None:
    logger.info(
        "admin_action",
        extra={
            "component": component,
            "action": action,
            "tenant_id": tenant_id,
            "trace_id": trace_id,
            "outcome": outcome,
            **details,
        },
    )
