"""Telemetry module - append-only event log and replay cache.

Usage:
    from gitsplits.telemetry import AgentEvent, EventLog, ReplayStore

    events.record(AgentEvent.MESSAGE_RECEIVED, event_id=event_id, author=author)
"""

from gitsplits.telemetry.events import (
    EVENT_LOG_FILENAME,
    AgentEvent,
    EventLog,
    create_event_id,
)
from gitsplits.telemetry.replay import ReplayableCommand, ReplayLookup, ReplayStore

__all__ = [
    "AgentEvent",
    "EventLog",
    "EVENT_LOG_FILENAME",
    "create_event_id",
    "ReplayableCommand",
    "ReplayLookup",
    "ReplayStore",
]
