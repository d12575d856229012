"""Types shared by the intent layer and the pipeline controller."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal

from gitsplits.backends.protocols import (
    InferenceProvider,
    Ledger,
    RepositoryAnalyzer,
    ReputationProvider,
)
from gitsplits.config import Settings
from gitsplits.conversation.state import ConversationState, ExecutionMode
from gitsplits.payments.orchestrator import PaymentOrchestrator

Channel = Literal["cast", "dm", "web"]
MatchSource = Literal["pattern", "llm", "heuristic"]


@dataclass(frozen=True)
class InboundMessage:
    """A command envelope as it arrives from a transport."""

    text: str
    author: str
    channel: Channel = "dm"
    wallet_address: str | None = None
    near_account_id: str | None = None
    evm_address: str | None = None


@dataclass(frozen=True)
class Collaborators:
    analyzer: RepositoryAnalyzer
    ledger: Ledger
    payments: PaymentOrchestrator
    reputation: ReputationProvider
    inference: InferenceProvider | None = None


@dataclass(frozen=True)
class IntentContext:
    message: InboundMessage
    state: ConversationState
    settings: Settings
    tools: Collaborators
    now_ms: int
    execution_mode: ExecutionMode = "execute"
    approved_plan_id: str | None = None


@dataclass
class IntentResult:
    """Reply text plus the conversation fields the intent wants updated."""

    response: str
    updates: dict[str, Any] = field(default_factory=dict)
    success: bool = True


@dataclass(frozen=True)
class IntentMatch:
    name: str
    params: dict[str, Any]
    confidence: float
    source: MatchSource = "pattern"


ParamExtractor = Callable[[re.Match[str]], dict[str, Any]]
ParamValidator = Callable[[dict[str, Any]], None]
IntentExecutor = Callable[[dict[str, Any], IntentContext], Awaitable[IntentResult]]


@dataclass(frozen=True)
class IntentDefinition:
    name: str
    patterns: tuple[re.Pattern[str], ...]
    extract_params: ParamExtractor
    validate: ParamValidator
    execute: IntentExecutor
    confidence: float
    description: str = ""
    examples: tuple[str, ...] = ()
