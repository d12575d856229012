"""Contributor reputation: local heuristics plus an optional score API."""

from __future__ import annotations

from typing import Literal

import httpx

from gitsplits.backends.protocols import EligibilityDecision, ReputationProfile
from gitsplits.config import Settings
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)


def infer_kind(subject: str) -> Literal["human", "agent", "unknown"]:
    normalized = (subject or "").lower()
    if not normalized:
        return "unknown"
    if "[bot]" in normalized or normalized.endswith("-bot") or "agent" in normalized:
        return "agent"
    return "human"


def tier_from_score(score: float) -> Literal["bronze", "silver", "gold"]:
    if score >= 80:
        return "gold"
    if score >= 55:
        return "silver"
    return "bronze"


_BASE_SCORES = {"agent": 60.0, "human": 70.0, "unknown": 50.0}


class ReputationService:
    def __init__(
        self,
        *,
        api_base: str = "",
        min_payout_score: float = 50.0,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.min_payout_score = min_payout_score
        self.timeout_seconds = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: httpx.AsyncClient | None = None
    ) -> "ReputationService":
        return cls(
            api_base=settings.reputation_api_base,
            min_payout_score=settings.reputation_min_payout_score,
            client=client,
        )

    async def _external_score(self, subject: str) -> float | None:
        url = f"{self.api_base}/profile"
        params = {"subject": subject}
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(url, params=params)
            if response.status_code >= 400:
                return None
            payload = response.json()
            score = payload.get("score") if isinstance(payload, dict) else None
        except (httpx.HTTPError, ValueError) as exc:
            # The external score only refines the local heuristic.
            logger.warning("reputation_lookup_failed", subject=subject, error=str(exc))
            return None
        if isinstance(score, (int, float)) and not isinstance(score, bool):
            return float(score)
        return None

    async def get_profile(self, subject: str) -> ReputationProfile:
        kind = infer_kind(subject)
        score = _BASE_SCORES[kind]
        sources = ["local-heuristics"]
        if self.api_base:
            external = await self._external_score(subject)
            if external is not None:
                score = external
                sources.append("external-reputation-api")
        return ReputationProfile(
            subject=subject,
            kind=kind,
            score=score,
            tier=tier_from_score(score),
            sources=sources,
        )

    async def evaluate_payout_eligibility(
        self, github_username: str, wallet_address: str | None
    ) -> EligibilityDecision:
        profile = await self.get_profile(github_username)
        reasons: list[str] = []
        if not wallet_address:
            reasons.append("Missing verified payout wallet.")
        if profile.score < self.min_payout_score:
            reasons.append(
                f"Reputation score {profile.score:g} below threshold {self.min_payout_score:g}."
            )
        return EligibilityDecision(eligible=not reasons, profile=profile, reasons=reasons)
