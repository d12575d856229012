"""Conversation state: modes, pending plan and cross-turn memory per user."""

from gitsplits.conversation.state import (
    EXECUTION_MODES,
    EXPERIENCE_MODES,
    AnalysisSnapshot,
    ConversationState,
    ConversationStore,
    ExecutionMode,
    ExperienceMode,
    PaymentSnapshot,
    PendingVerification,
    Plan,
    RepoMemory,
    SplitSnapshot,
)

__all__ = [
    "EXECUTION_MODES",
    "EXPERIENCE_MODES",
    "AnalysisSnapshot",
    "ConversationState",
    "ConversationStore",
    "ExecutionMode",
    "ExperienceMode",
    "PaymentSnapshot",
    "PendingVerification",
    "Plan",
    "RepoMemory",
    "SplitSnapshot",
]
