"""Bounded cache of replayable command envelopes.

Commands that made it past intent resolution are registered under their event
id. `replay <id>` looks them up here and re-runs the full pipeline with the
original envelope. The cache is a fixed-capacity ordered map with FIFO
eviction; entries older than the TTL are kept until evicted but refused on
lookup.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Literal

from gitsplits.clock import Clock, epoch_ms
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "ReplayableCommand",
    "ReplayLookup",
    "ReplayStore",
]

Channel = Literal["cast", "dm", "web"]


@dataclass(frozen=True)
class ReplayableCommand:
    event_id: str
    text: str
    author: str
    type: Channel
    created_at: int
    wallet_address: str | None = None
    near_account_id: str | None = None
    evm_address: str | None = None


@dataclass(frozen=True)
class ReplayLookup:
    """Outcome of a replay lookup: the command, or why it cannot be replayed."""

    command: ReplayableCommand | None
    rejection: Literal["not_found", "expired"] | None = None

    @property
    def ok(self) -> bool:
        return self.command is not None and self.rejection is None


class ReplayStore:
    """Thread-safe FIFO-evicting store keyed by event id."""

    def __init__(
        self,
        capacity: int = 500,
        ttl_seconds: float = 86_400.0,
        *,
        clock: Clock = epoch_ms,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.ttl_ms = int(ttl_seconds * 1000)
        self._clock = clock
        self._entries: OrderedDict[str, ReplayableCommand] = OrderedDict()
        self._lock = threading.Lock()

    def register(self, command: ReplayableCommand) -> None:
        with self._lock:
            self._entries[command.event_id] = command
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("replay_entry_evicted", event_id=evicted)

    def get(self, event_id: str) -> ReplayableCommand | None:
        with self._lock:
            return self._entries.get(event_id)

    def lookup(self, event_id: str) -> ReplayLookup:
        command = self.get(event_id)
        if command is None:
            return ReplayLookup(command=None, rejection="not_found")
        if self._clock() - command.created_at > self.ttl_ms:
            return ReplayLookup(command=command, rejection="expired")
        return ReplayLookup(command=command)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, event_id: object) -> bool:
        with self._lock:
            return event_id in self._entries
