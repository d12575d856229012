"""Per-user conversation state and its in-memory store."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, fields
from typing import Any, AsyncIterator, Literal

from gitsplits.clock import Clock, epoch_ms
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "ExecutionMode",
    "ExperienceMode",
    "Plan",
    "AnalysisSnapshot",
    "SplitSnapshot",
    "PaymentSnapshot",
    "PendingVerification",
    "RepoMemory",
    "ConversationState",
    "ConversationStore",
    "EXECUTION_MODES",
    "EXPERIENCE_MODES",
]

ExecutionMode = Literal["advisor", "draft", "execute"]
ExperienceMode = Literal["guided", "hands_off"]

EXECUTION_MODES: tuple[str, ...] = ("advisor", "draft", "execute")
EXPERIENCE_MODES: tuple[str, ...] = ("guided", "hands_off")


@dataclass(frozen=True)
class Plan:
    """A time-boxed proposal for a sensitive action awaiting approval.

    Times are epoch milliseconds.
    """

    id: str
    intent: str
    params: dict[str, Any]
    dependencies: list[str]
    risks: list[str]
    outputs: list[str]
    created_at: int
    expires_at: int
    confidence: float
    # Text of the message that produced the plan; flags in it apply on approval.
    source_text: str = ""

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at


@dataclass(frozen=True)
class AnalysisSnapshot:
    repo_url: str
    contributors: list[dict[str, Any]]
    timestamp: int


@dataclass(frozen=True)
class SplitSnapshot:
    id: str
    repo_url: str
    created_at: int


@dataclass(frozen=True)
class PaymentSnapshot:
    split_id: str
    repo_url: str
    amount: float
    token: str
    tx_hash: str
    engine: str
    timestamp: int


@dataclass(frozen=True)
class PendingVerification:
    github_username: str
    code: str
    expires_at: int


@dataclass
class RepoMemory:
    updated_at: int
    last_analysis_hash: str | None = None
    last_split_id: str | None = None
    last_payment_at: int | None = None
    last_payment_tx: str | None = None


@dataclass
class ConversationState:
    user_id: str
    execution_mode: ExecutionMode = "execute"
    experience_mode: ExperienceMode = "guided"
    pending_plan: Plan | None = None
    last_analysis: AnalysisSnapshot | None = None
    last_split: SplitSnapshot | None = None
    last_payment: PaymentSnapshot | None = None
    pending_verification: PendingVerification | None = None
    last_verification_coverage: dict[str, Any] | None = None
    repo_memory: dict[str, RepoMemory] = field(default_factory=dict)
    last_event_id: str | None = None

    def apply(self, updates: dict[str, Any]) -> None:
        """Apply a patch produced by an intent handler."""
        known = {f.name for f in fields(self)} - {"user_id", "repo_memory"}
        for key, value in updates.items():
            if key not in known:
                raise KeyError(f"Unknown conversation state field: {key}")
            setattr(self, key, value)

    def remember_repo(self, repo_url: str, now_ms: int, **patch: Any) -> RepoMemory:
        """Merge non-null values into the memory entry of a repository."""
        key = repo_url.strip().lower()
        entry = self.repo_memory.get(key) or RepoMemory(updated_at=now_ms)
        for name, value in patch.items():
            if value is not None:
                setattr(entry, name, value)
        entry.updated_at = now_ms
        self.repo_memory[key] = entry
        return entry


class ConversationStore:
    """In-memory conversation states with a per-user critical section.

    `turn()` serializes turns for one user; different users never contend.
    Idle users beyond `capacity` are evicted least-recently-used first.
    """

    def __init__(
        self,
        *,
        default_execution_mode: ExecutionMode = "execute",
        capacity: int = 10_000,
        clock: Clock = epoch_ms,
    ) -> None:
        self.default_execution_mode = default_execution_mode
        self.capacity = capacity
        self._clock = clock
        self._states: OrderedDict[str, ConversationState] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def _get_or_create(self, user_id: str) -> ConversationState:
        state = self._states.get(user_id)
        if state is None:
            state = ConversationState(
                user_id=user_id, execution_mode=self.default_execution_mode
            )
            self._states[user_id] = state
            logger.debug("conversation_created", user_id=user_id)
        self._states.move_to_end(user_id)
        return state

    def _evict_idle(self) -> None:
        if len(self._states) <= self.capacity:
            return
        for user_id in list(self._states):
            if len(self._states) <= self.capacity:
                break
            lock = self._locks.get(user_id)
            if lock is not None and lock.locked():
                continue
            self._states.pop(user_id, None)
            self._locks.pop(user_id, None)
            logger.debug("conversation_evicted", user_id=user_id)

    @asynccontextmanager
    async def turn(self, user_id: str) -> AsyncIterator[ConversationState]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            state = self._get_or_create(user_id)
            try:
                yield state
            finally:
                self._evict_idle()

    def peek(self, user_id: str) -> ConversationState | None:
        """Return the current state without entering the critical section."""
        return self._states.get(user_id)

    def __len__(self) -> int:
        return len(self._states)
