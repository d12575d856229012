"""Append-only agent event log.

Every transition of the command pipeline is recorded as one JSON object per
line in `<event_log_dir>/agent-events.ndjson` and mirrored to structlog so the
events reach log aggregation even when the file is unavailable.

Recording never raises: telemetry must not block or fail a conversation turn.

Usage:
    from gitsplits.telemetry import AgentEvent, EventLog

    log = EventLog.from_settings(settings)
    log.record(AgentEvent.PLAN_CREATED, event_id=event_id, plan_id=plan.id)
"""

from __future__ import annotations

import hashlib
import json
import os
import secrets
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

from gitsplits.config.settings import Settings
from gitsplits.observability.logging import get_logger
from gitsplits.paths import resolve_runtime_path

logger = get_logger(__name__)

__all__ = [
    "AgentEvent",
    "EventLog",
    "EVENT_LOG_FILENAME",
    "create_event_id",
]

EVENT_LOG_FILENAME = "agent-events.ndjson"


class AgentEvent(str, Enum):
    """Pipeline transitions written to the event log."""

    MESSAGE_RECEIVED = "message_received"
    MODE_CHANGED = "mode_changed"
    EXPERIENCE_MODE_CHANGED = "experience_mode_changed"
    PLAN_CANCELLED = "plan_cancelled"
    REPLAY_STARTED = "replay_started"
    REPLAY_REJECTED = "replay_rejected"
    PLAN_CREATED = "plan_created"
    PLAN_EXECUTED = "plan_executed"
    PLAN_MISMATCH = "plan_mismatch"
    PLAN_EXPIRED = "plan_expired"
    HANDS_OFF_ASSISTED_PARSE = "hands_off_assisted_parse"
    INTENT_LOW_CONFIDENCE = "intent_low_confidence"
    INTENT_UNRECOGNIZED = "intent_unrecognized"
    VALIDATION_FAILED = "validation_failed"
    POLICY_BLOCK = "policy_block"
    INTENT_EXECUTED = "intent_executed"
    INTENT_FAILED = "intent_failed"
    PIPELINE_ERROR = "pipeline_error"


def create_event_id() -> str:
    """Return a 16-hex-char event id."""
    seed = f"{time.time_ns()}-{secrets.token_hex(8)}-{os.getpid()}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:16]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class EventLog:
    """Thread-safe NDJSON event sink."""

    def __init__(self, path: Path | str, *, enabled: bool = True) -> None:
        self.path = Path(path)
        self.enabled = enabled
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "EventLog":
        directory = resolve_runtime_path(settings.event_log_dir)
        return cls(directory / EVENT_LOG_FILENAME, enabled=settings.enable_telemetry)

    def record(self, event: AgentEvent | str, **fields: Any) -> None:
        """Append `{timestamp, type, **fields}`; failures are logged and swallowed."""
        event_type = event.value if isinstance(event, AgentEvent) else str(event)
        payload: dict[str, Any] = {"timestamp": _timestamp(), "type": event_type, **fields}
        try:
            logger.info("agent_event", **payload)
            if not self.enabled:
                return
            line = json.dumps(payload, default=str)
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
        except Exception as exc:
            # Never re-raise: telemetry failures must not block the pipeline.
            logger.warning(
                "event_log_write_failed",
                path=str(self.path),
                event_type=event_type,
                error=str(exc),
            )

    def iter_events(self) -> Iterator[dict[str, Any]]:
        """Yield logged events in write order, skipping unreadable lines."""
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    logger.debug("event_log_line_skipped", path=str(self.path))

    def tail(self, limit: int = 20) -> list[dict[str, Any]]:
        events = list(self.iter_events())
        return events[-limit:] if limit > 0 else []
