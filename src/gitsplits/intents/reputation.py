"""Reputation intent: score, tier and kind of a contributor."""

from __future__ import annotations

from typing import Any

from gitsplits.agents.types import IntentContext, IntentDefinition, IntentResult
from gitsplits.errors import GitSplitsError
from gitsplits.intents.common import USERNAME_PATTERN, clean_target, compile_patterns, require


def _extract(match) -> dict[str, Any]:
    return {"subject": clean_target(match.group("subject"))}


def _validate(params: dict[str, Any]) -> None:
    require(params, "subject", "Subject is required")


async def execute_reputation(params: dict[str, Any], ctx: IntentContext) -> IntentResult:
    try:
        profile = await ctx.tools.reputation.get_profile(params["subject"])
    except GitSplitsError as exc:
        return IntentResult(f"❌ Reputation lookup failed: {exc.message}", success=False)
    return IntentResult(
        f"🏅 Reputation for @{profile.subject}\n\n"
        f"Kind: {profile.kind}\n"
        f"Score: {profile.score:g}/100 ({profile.tier})\n"
        f"Sources: {', '.join(profile.sources)}"
    )


REPUTATION = IntentDefinition(
    name="reputation",
    patterns=compile_patterns(
        rf"\breputation\s+(?:for\s+)?@?(?P<subject>{USERNAME_PATTERN})",
        rf"\bis\s+@?(?P<subject>{USERNAME_PATTERN})\s+(?:eligible|trusted|reputable)",
    ),
    extract_params=_extract,
    validate=_validate,
    execute=execute_reputation,
    confidence=0.8,
    description="Look up contributor reputation",
    examples=("reputation for @alice", "is @alice eligible"),
)
