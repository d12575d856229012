"""Collaborator interfaces and the verifiable inference client."""

from gitsplits.backends.protocols import (
    Contributor,
    EligibilityDecision,
    InferenceProvider,
    InferenceReply,
    Ledger,
    PaymentEngine,
    PaymentReceipt,
    PendingClaim,
    Recipient,
    RepoAnalysis,
    RepositoryAnalyzer,
    ReputationProfile,
    ReputationProvider,
    Split,
    SplitShare,
)

__all__ = [
    "Contributor",
    "EligibilityDecision",
    "InferenceProvider",
    "InferenceReply",
    "Ledger",
    "PaymentEngine",
    "PaymentReceipt",
    "PendingClaim",
    "Recipient",
    "RepoAnalysis",
    "RepositoryAnalyzer",
    "ReputationProfile",
    "ReputationProvider",
    "Split",
    "SplitShare",
]
