"""Pending intent: claims held for contributors who have not verified yet."""

from __future__ import annotations

import asyncio
from typing import Any

from gitsplits.agents.types import IntentContext, IntentDefinition, IntentResult
from gitsplits.errors import GitSplitsError
from gitsplits.intents.common import clean_target, compile_patterns, require
from gitsplits.repos import looks_like_repo, normalize_repo_url

_SHOWN = 10


def _extract(match) -> dict[str, Any]:
    return {"target": clean_target(match.group("target"))}


def _validate(params: dict[str, Any]) -> None:
    require(params, "target", "Repository or GitHub username is required")


async def _repo_claims(ctx: IntentContext, target: str) -> IntentResult:
    repo_url = normalize_repo_url(target)
    split = await ctx.tools.ledger.get_split(repo_url)
    if split is None:
        return IntentResult(f"No split found for {repo_url}.", success=False)

    usernames = [c.github_username for c in split.contributors]
    claim_lists = await asyncio.gather(
        *(ctx.tools.ledger.get_pending_distributions(u) for u in usernames)
    )
    with_claims = [(u, claims) for u, claims in zip(usernames, claim_lists) if claims]
    total_entries = sum(len(claims) for _, claims in with_claims)
    if not total_entries:
        return IntentResult(f"No pending claims for {repo_url}.")

    lines = "\n".join(
        f"- {username}: {len(claims)} claim(s), {sum(c.amount for c in claims):g} {claims[0].token}"
        for username, claims in with_claims[:_SHOWN]
    )
    return IntentResult(
        f"⏳ Pending claims for {repo_url}\n\n"
        f"Contributors with pending claims: {len(with_claims)}\n"
        f"Total pending claim entries: {total_entries}\n\n"
        f"{lines}\n\n"
        f"Ask contributors to verify at {ctx.settings.verify_base_url}"
    )


async def _user_claims(ctx: IntentContext, target: str) -> IntentResult:
    username = target.lstrip("@")
    claims = await ctx.tools.ledger.get_pending_distributions(username)
    if not claims:
        return IntentResult(f"No pending claims found for @{username}.")
    lines = "\n".join(f"- {c.id}: {c.amount:g} {c.token}" for c in claims[:_SHOWN])
    return IntentResult(f"⏳ Pending claims for @{username}\n\nCount: {len(claims)}\n{lines}")


async def execute_pending(params: dict[str, Any], ctx: IntentContext) -> IntentResult:
    target = params["target"]
    try:
        if looks_like_repo(target):
            return await _repo_claims(ctx, target)
        return await _user_claims(ctx, target)
    except GitSplitsError as exc:
        return IntentResult(f"❌ Failed to fetch pending claims: {exc.message}", success=False)


PENDING = IntentDefinition(
    name="pending",
    patterns=compile_patterns(
        r"\bshow\s+pending\s+(?:claims?\s+)?(?:for\s+)?(?P<target>\S+)",
        r"\bpending\s+(?:claims?\s+)?(?:for\s+)?(?P<target>\S+)",
    ),
    extract_params=_extract,
    validate=_validate,
    execute=execute_pending,
    confidence=0.85,
    description="Show pending claims for a repository or user",
    examples=("pending claims for near/near-sdk-rs", "pending @alice"),
)
