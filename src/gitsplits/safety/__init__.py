"""Payout guardrails: the policy gate and the distribution risk inspector."""

from gitsplits.safety.policy import (
    PolicyDecision,
    PolicyViolation,
    SENSITIVE_INTENTS,
    evaluate_policy,
    requires_approval,
)
from gitsplits.safety.risk import (
    RecipientSnapshot,
    SafetyAlert,
    format_safety_block,
    inspect_distribution_risk,
    should_block_for_safety,
)

__all__ = [
    "PolicyDecision",
    "PolicyViolation",
    "SENSITIVE_INTENTS",
    "evaluate_policy",
    "requires_approval",
    "RecipientSnapshot",
    "SafetyAlert",
    "format_safety_block",
    "inspect_distribution_risk",
    "should_block_for_safety",
]
