"""Policy gate for value-moving and state-changing intents.

`evaluate_policy` is pure: it reads only its arguments and the settings object
and never touches a collaborator. Every rule is checked; one violation is
enough to deny.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from gitsplits.config import Settings
from gitsplits.conversation.state import ExecutionMode
from gitsplits.repos import repo_key

SENSITIVE_INTENTS = frozenset({"create", "pay"})

ADVISOR_MODE = "ADVISOR_MODE"
TOKEN_NOT_ALLOWED = "TOKEN_NOT_ALLOWED"
NON_POSITIVE_AMOUNT = "NON_POSITIVE_AMOUNT"
AMOUNT_OVER_MAX = "AMOUNT_OVER_MAX"
CANARY_ONLY = "CANARY_ONLY"


@dataclass(frozen=True)
class PolicyViolation:
    code: str
    message: str


@dataclass(frozen=True)
class PolicyDecision:
    violations: list[PolicyViolation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return not self.violations

    @property
    def reasons(self) -> list[str]:
        return [v.message for v in self.violations]

    @property
    def codes(self) -> set[str]:
        return {v.code for v in self.violations}

    @property
    def advisory_only(self) -> bool:
        """True when the only objection is that advisor mode never executes."""
        return self.codes == {ADVISOR_MODE}


def requires_approval(intent_name: str, settings: Settings) -> bool:
    return settings.require_approval and intent_name in SENSITIVE_INTENTS


def _as_amount(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def evaluate_policy(
    intent_name: str,
    params: Mapping[str, Any],
    mode: ExecutionMode,
    *,
    settings: Settings,
) -> PolicyDecision:
    violations: list[PolicyViolation] = []
    warnings: list[str] = []

    if mode == "advisor" and intent_name in SENSITIVE_INTENTS:
        violations.append(
            PolicyViolation(ADVISOR_MODE, "Advisor mode does not execute on-chain/payment actions.")
        )

    if intent_name == "pay":
        token = str(params.get("token") or "").upper()
        amount = _as_amount(params.get("amount"))

        if token not in settings.allowed_tokens:
            violations.append(
                PolicyViolation(TOKEN_NOT_ALLOWED, f"Token {token or '(none)'} is not allowed by policy.")
            )
        if not math.isfinite(amount) or amount <= 0:
            violations.append(PolicyViolation(NON_POSITIVE_AMOUNT, "Pay amount must be positive."))
        elif amount > settings.max_payout_amount:
            violations.append(
                PolicyViolation(
                    AMOUNT_OVER_MAX,
                    f"Pay amount {amount:g} exceeds policy max {settings.max_payout_amount:g}.",
                )
            )

        if settings.canary_only_pay and settings.is_production:
            canaries = {repo_key(repo) for repo in settings.canary_repos}
            target = repo_key(str(params.get("repo") or ""))
            if target not in canaries:
                violations.append(
                    PolicyViolation(
                        CANARY_ONLY,
                        "Pay intent is restricted to canary repositories in this environment.",
                    )
                )

    if intent_name == "create" and settings.is_production:
        warnings.append("Create intent will write split state on mainnet.")

    return PolicyDecision(violations=violations, warnings=warnings)
