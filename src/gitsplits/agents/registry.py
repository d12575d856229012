"""Immutable registry of intents, resolved in registration order."""

from __future__ import annotations

from typing import Iterable, Iterator

from gitsplits.agents.types import IntentDefinition, IntentMatch
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)


class IntentRegistry:
    """Built once at startup and shared read-only by every conversation turn."""

    def __init__(self, intents: Iterable[IntentDefinition]):
        self._intents: tuple[IntentDefinition, ...] = tuple(intents)
        names = [intent.name for intent in self._intents]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate intent names: {names}")
        self._by_name = {intent.name: intent for intent in self._intents}

    def __iter__(self) -> Iterator[IntentDefinition]:
        return iter(self._intents)

    def __len__(self) -> int:
        return len(self._intents)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @property
    def names(self) -> list[str]:
        return [intent.name for intent in self._intents]

    def get(self, name: str) -> IntentDefinition | None:
        return self._by_name.get(name)

    def resolve(self, text: str) -> IntentMatch | None:
        """Return the first intent whose first matching pattern succeeds."""
        cleaned = (text or "").strip()
        if not cleaned:
            return None
        for intent in self._intents:
            for pattern in intent.patterns:
                match = pattern.search(cleaned)
                if match is None:
                    continue
                params = intent.extract_params(match)
                logger.debug("intent_matched", intent=intent.name, pattern=pattern.pattern)
                return IntentMatch(name=intent.name, params=params, confidence=intent.confidence)
        return None
