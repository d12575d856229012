"""Payout routing across payment engines."""

from gitsplits.payments.orchestrator import (
    DistributionRequest,
    DistributionResult,
    EngineTag,
    PaymentOrchestrator,
)

__all__ = ["DistributionRequest", "DistributionResult", "EngineTag", "PaymentOrchestrator"]
