"""In-memory ledger: splits, verified wallets and pending claims.

Stands in for the on-chain registry behind the `Ledger` protocol. State lives
for the lifetime of the process.
"""

from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass, replace
from typing import Sequence

from gitsplits.backends.protocols import PendingClaim, Split, SplitShare
from gitsplits.clock import Clock, epoch_ms
from gitsplits.errors import ValidationError
from gitsplits.observability.logging import get_logger
from gitsplits.repos import normalize_repo_url, repo_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class VerificationRequest:
    github_username: str
    requested_by: str
    code: str
    expires_at: int


class InMemoryLedger:
    def __init__(self, *, clock: Clock = epoch_ms):
        self._clock = clock
        self._lock = asyncio.Lock()
        self._splits: dict[str, Split] = {}
        self._split_ids: dict[str, str] = {}
        self._wallets: dict[str, str] = {}
        self._pending_claims: dict[str, list[PendingClaim]] = {}
        self._verification_requests: dict[str, VerificationRequest] = {}

    async def get_split(self, repo_url: str) -> Split | None:
        async with self._lock:
            split_id = self._split_ids.get(repo_key(repo_url))
            return self._splits.get(split_id) if split_id else None

    async def create_split(
        self, *, repo_url: str, owner: str, contributors: Sequence[SplitShare]
    ) -> Split:
        now = self._clock()
        split = Split(
            id=f"split-{secrets.token_hex(6)}",
            repo_url=normalize_repo_url(repo_url),
            owner=owner,
            contributors=list(contributors),
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            self._splits[split.id] = split
            self._split_ids[repo_key(repo_url)] = split.id
        logger.info("split_created", split_id=split.id, repo_url=split.repo_url)
        return split

    async def update_split(self, *, split_id: str, contributors: Sequence[SplitShare]) -> Split:
        async with self._lock:
            existing = self._splits.get(split_id)
            if existing is None:
                raise ValidationError(f"Unknown split {split_id}")
            updated = replace(existing, contributors=list(contributors), updated_at=self._clock())
            self._splits[split_id] = updated
        logger.info("split_updated", split_id=split_id)
        return updated

    async def get_verified_wallet(self, github_username: str) -> str | None:
        async with self._lock:
            return self._wallets.get(github_username.lower())

    async def store_verification(
        self, *, github_username: str, wallet_address: str, verified_by: str
    ) -> None:
        async with self._lock:
            self._wallets[github_username.lower()] = wallet_address
            self._verification_requests.pop(github_username.lower(), None)
        logger.info("wallet_verified", github_username=github_username, verified_by=verified_by)

    async def store_pending_verification(
        self, *, github_username: str, requested_by: str, code: str, expires_at: int
    ) -> None:
        async with self._lock:
            self._verification_requests[github_username.lower()] = VerificationRequest(
                github_username=github_username,
                requested_by=requested_by,
                code=code,
                expires_at=expires_at,
            )

    async def get_pending_verification(self, github_username: str) -> VerificationRequest | None:
        async with self._lock:
            return self._verification_requests.get(github_username.lower())

    async def store_pending_distribution(
        self, *, github_username: str, amount: float, token: str
    ) -> str:
        claim = PendingClaim(
            id=f"claim-{secrets.token_hex(6)}",
            github_username=github_username,
            amount=amount,
            token=token,
            created_at=self._clock(),
        )
        async with self._lock:
            self._pending_claims.setdefault(github_username.lower(), []).append(claim)
        return claim.id

    async def get_pending_distributions(self, github_username: str) -> list[PendingClaim]:
        async with self._lock:
            return list(self._pending_claims.get(github_username.lower(), []))
