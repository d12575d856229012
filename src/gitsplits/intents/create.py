"""Create intent: register (or refresh) a payout split for a repository.

Examples:
    create split for near/near-sdk-rs
    set up payments for github.com/near/near-sdk-rs
    make a split for facebook/react with 50/30/20
"""

from __future__ import annotations

import re
from typing import Any

from gitsplits.agents.types import IntentContext, IntentDefinition, IntentResult
from gitsplits.backends.protocols import SplitShare
from gitsplits.conversation.state import SplitSnapshot
from gitsplits.errors import GitSplitsError, ValidationError
from gitsplits.intents.common import (
    clean_target,
    compile_patterns,
    lookup_wallets,
    mention_preview,
    require,
    verify_link,
)
from gitsplits.repos import (
    is_likely_near_account,
    is_system_contributor,
    normalize_repo_url,
    repo_path,
)

_ALLOCATION_RE = re.compile(r"^(?P<repo>.+?)\s+(?:with\s+)?(?P<allocation>\d+(?:/\d+)+)$", re.IGNORECASE)


def _extract(match) -> dict[str, Any]:
    target = clean_target(match.group("target"))
    custom = _ALLOCATION_RE.match(target)
    if custom:
        return {
            "repo": clean_target(custom.group("repo")),
            "allocation": custom.group("allocation"),
        }
    return {"repo": target, "allocation": "default"}


def parse_allocation(allocation: str) -> list[int]:
    return [int(part) for part in allocation.split("/") if part.strip()]


def _validate(params: dict[str, Any]) -> None:
    require(params, "repo", "Repository is required")
    allocation = params.get("allocation") or "default"
    if allocation != "default":
        shares = parse_allocation(allocation)
        if sum(shares) != 100:
            raise ValidationError(f"Custom allocation {allocation} must add up to 100")


def resolve_split_owner(ctx: IntentContext) -> str:
    message = ctx.message
    for candidate in (message.near_account_id, message.wallet_address, message.author):
        if is_likely_near_account(candidate):
            return str(candidate)
    if ctx.settings.owner_account_id:
        return ctx.settings.owner_account_id
    raise ValidationError(
        "No valid NEAR owner account available. "
        "Connect a NEAR wallet in the web app or set OWNER_ACCOUNT_ID."
    )


async def execute_create(params: dict[str, Any], ctx: IntentContext) -> IntentResult:
    allocation = params.get("allocation") or "default"
    try:
        repo_url = normalize_repo_url(params["repo"])
        existing = await ctx.tools.ledger.get_split(repo_url)
        analysis = await ctx.tools.analyzer.analyze(repo_url)

        if not analysis.contributors:
            return IntentResult(
                f"No contributors found for {repo_url}. Make sure it's a public repository.",
                success=False,
            )

        if allocation == "default":
            shares = [SplitShare(c.username, c.percentage) for c in analysis.contributors]
        else:
            custom = parse_allocation(allocation)
            if len(custom) > len(analysis.contributors):
                return IntentResult(
                    f"❌ Custom allocation {allocation} has {len(custom)} parts but "
                    f"{repo_url} has only {len(analysis.contributors)} contributors.",
                    success=False,
                )
            shares = [
                SplitShare(c.username, pct)
                for c, pct in zip(analysis.contributors, custom)
            ]

        if existing is not None:
            split = await ctx.tools.ledger.update_split(split_id=existing.id, contributors=shares)
        else:
            split = await ctx.tools.ledger.create_split(
                repo_url=repo_url, owner=resolve_split_owner(ctx), contributors=shares
            )

        eligible = [s.github_username for s in shares if not is_system_contributor(s.github_username)]
        wallets = await lookup_wallets(ctx.tools.ledger, eligible)
    except GitSplitsError as exc:
        return IntentResult(f"❌ Failed to create split: {exc.message}", success=False)

    verified = sum(1 for wallet in wallets if wallet)
    unverified = [name for name, wallet in zip(eligible, wallets) if not wallet]
    skipped_bots = len(shares) - len(eligible)

    top = "\n".join(f"- {s.github_username}: {s.percentage:g}%" for s in shares[:5])
    more = f"\n...and {len(shares) - 5} more" if len(shares) > 5 else ""
    coverage = f"Verification coverage: {verified}/{len(eligible)} verified"
    if skipped_bots:
        coverage += f" ({skipped_bots} bot/system skipped)"
    if unverified:
        invite = verify_link(ctx.settings.verify_base_url, repo=repo_path(repo_url))
        coverage += f"\nNeed verification: {mention_preview(unverified)}\nInvite link: {invite}"

    headline = (
        f"✅ Split updated for {repo_url}!" if existing else f"✅ Split created for {repo_url}!"
    )
    refreshed = "\n\nThis split was refreshed with the latest contributors." if existing else ""
    response = (
        f"{headline}\n\n"
        f"📜 Split ID: {split.id}\n\n"
        f"Top contributors (verified via Git history):\n{top}{more}\n\n"
        f"{coverage}\n\n"
        f'To pay them: "pay 100 USDC to {repo_url}"{refreshed}'
    )
    snapshot = SplitSnapshot(id=split.id, repo_url=repo_url, created_at=ctx.now_ms)
    return IntentResult(response, updates={"last_split": snapshot})


CREATE = IntentDefinition(
    name="create",
    patterns=compile_patterns(
        r"\bcreate\s+(?:a\s+)?(?:split\s+)?(?:for\s+)?(?P<target>.+)",
        r"\bset\s+up\s+(?:payments?\s+)?(?:for\s+)?(?P<target>.+)",
        r"\bmake\s+(?:a\s+)?(?:split\s+)?(?:for\s+)?(?P<target>.+)",
    ),
    extract_params=_extract,
    validate=_validate,
    execute=execute_create,
    confidence=0.85,
    description="Create or refresh a payout split",
    examples=("create split for near/near-sdk-rs", "make a split for facebook/react with 50/30/20"),
)
