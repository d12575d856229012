"""Protocol interfaces for the pipeline's external collaborators.

These are intentionally small: intents depend on these capabilities, never on
concrete HTTP clients, so the pipeline stays testable with in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, Sequence


@dataclass(frozen=True)
class Contributor:
    username: str
    commits: int
    percentage: int


@dataclass(frozen=True)
class RepoAnalysis:
    repo_url: str
    contributors: list[Contributor]


@dataclass(frozen=True)
class SplitShare:
    github_username: str
    percentage: float


@dataclass(frozen=True)
class Split:
    id: str
    repo_url: str
    owner: str
    contributors: list[SplitShare]
    created_at: int
    updated_at: int


@dataclass(frozen=True)
class PendingClaim:
    id: str
    github_username: str
    amount: float
    token: str
    created_at: int


@dataclass(frozen=True)
class Recipient:
    wallet: str
    percentage: float


@dataclass(frozen=True)
class PaymentReceipt:
    """What a single payment engine returns for one distribution."""

    tx_hash: str
    status: str
    recipients: int
    total_amount: float
    token: str
    intent_id: str | None = None
    payment_url: str | None = None


@dataclass(frozen=True)
class InferenceReply:
    content: str
    model: str
    signature: str | None = None
    mock: bool = False


@dataclass(frozen=True)
class ReputationProfile:
    subject: str
    kind: Literal["human", "agent", "unknown"]
    score: float
    tier: Literal["bronze", "silver", "gold"]
    sources: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class EligibilityDecision:
    eligible: bool
    profile: ReputationProfile
    reasons: list[str] = field(default_factory=list)


class RepositoryAnalyzer(Protocol):
    async def analyze(self, repo_url: str) -> RepoAnalysis: ...


class Ledger(Protocol):
    async def get_split(self, repo_url: str) -> Split | None: ...

    async def create_split(
        self, *, repo_url: str, owner: str, contributors: Sequence[SplitShare]
    ) -> Split: ...

    async def update_split(self, *, split_id: str, contributors: Sequence[SplitShare]) -> Split: ...

    async def get_verified_wallet(self, github_username: str) -> str | None: ...

    async def store_verification(
        self, *, github_username: str, wallet_address: str, verified_by: str
    ) -> None: ...

    async def store_pending_verification(
        self, *, github_username: str, requested_by: str, code: str, expires_at: int
    ) -> None: ...

    async def store_pending_distribution(
        self, *, github_username: str, amount: float, token: str
    ) -> str: ...

    async def get_pending_distributions(self, github_username: str) -> list[PendingClaim]: ...


class PaymentEngine(Protocol):
    name: str

    @property
    def configured(self) -> bool: ...

    async def distribute(
        self,
        *,
        split_id: str,
        amount: float,
        token: str,
        recipients: Sequence[Recipient],
    ) -> PaymentReceipt: ...


class InferenceProvider(Protocol):
    async def chat(
        self,
        messages: list[dict[str, Any]],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> InferenceReply: ...


class ReputationProvider(Protocol):
    async def get_profile(self, subject: str) -> ReputationProfile: ...

    async def evaluate_payout_eligibility(
        self, github_username: str, wallet_address: str | None
    ) -> EligibilityDecision: ...
