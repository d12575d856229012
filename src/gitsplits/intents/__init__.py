"""Built-in intents and the default registry."""

from gitsplits.agents.registry import IntentRegistry
from gitsplits.intents.analyze import ANALYZE
from gitsplits.intents.create import CREATE
from gitsplits.intents.pay import PAY
from gitsplits.intents.pending import PENDING
from gitsplits.intents.reputation import REPUTATION
from gitsplits.intents.verify import VERIFY

# Order matters: the first intent with a matching pattern wins, so pending
# must come before verify.
DEFAULT_INTENTS = (ANALYZE, CREATE, PAY, PENDING, VERIFY, REPUTATION)


def build_default_registry() -> IntentRegistry:
    return IntentRegistry(DEFAULT_INTENTS)


__all__ = [
    "ANALYZE",
    "CREATE",
    "PAY",
    "PENDING",
    "VERIFY",
    "REPUTATION",
    "DEFAULT_INTENTS",
    "build_default_registry",
]
