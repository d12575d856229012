"""Intent resolution: the registry, shared types and the assisted classifier."""

from gitsplits.agents.classifier import (
    AssistedIntent,
    assist_intent,
    format_assisted_suggestion,
    heuristic_assist,
)
from gitsplits.agents.registry import IntentRegistry
from gitsplits.agents.types import (
    Collaborators,
    InboundMessage,
    IntentContext,
    IntentDefinition,
    IntentMatch,
    IntentResult,
)

__all__ = [
    "AssistedIntent",
    "assist_intent",
    "format_assisted_suggestion",
    "heuristic_assist",
    "IntentRegistry",
    "Collaborators",
    "InboundMessage",
    "IntentContext",
    "IntentDefinition",
    "IntentMatch",
    "IntentResult",
]
