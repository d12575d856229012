"""Verify intent: wallet verification for contributors.

Two shapes:
    verify contributors for near/near-sdk-rs   -> coverage report with invite links
    verify @alice / link my github alice       -> verify or start verification
"""

from __future__ import annotations

import secrets
from typing import Any

from gitsplits.agents.types import IntentContext, IntentDefinition, IntentResult
from gitsplits.conversation.state import PendingVerification
from gitsplits.errors import GitSplitsError, ValidationError
from gitsplits.intents.common import (
    USERNAME_PATTERN,
    clean_target,
    compile_patterns,
    lookup_wallets,
    mention_preview,
    verify_link,
)
from gitsplits.repos import (
    is_likely_near_account,
    is_system_contributor,
    normalize_repo_url,
    repo_path,
)

VERIFICATION_TTL_MS = 24 * 60 * 60 * 1000
_SAMPLE = 15
_PREVIEW = 5


def _extract(match) -> dict[str, Any]:
    groups = match.groupdict()
    repo = clean_target(groups.get("repo")) or None
    username = clean_target(groups.get("github_username")) or None
    return {"repo": repo, "github_username": username}


def _validate(params: dict[str, Any]) -> None:
    if not params.get("repo") and not params.get("github_username"):
        raise ValidationError("GitHub username or repository is required")


async def _repo_coverage(ctx: IntentContext, repo: str) -> IntentResult:
    repo_url = normalize_repo_url(repo)
    analysis = await ctx.tools.analyzer.analyze(repo_url)
    if not analysis.contributors:
        return IntentResult(f"No contributors found for {repo_url}.", success=False)

    sample = analysis.contributors[:_SAMPLE]
    eligible = [c.username for c in sample if not is_system_contributor(c.username)]
    skipped = [c.username for c in sample if is_system_contributor(c.username)]
    wallets = await lookup_wallets(ctx.tools.ledger, eligible)
    verified = [(name, wallet) for name, wallet in zip(eligible, wallets) if wallet]
    unverified = [name for name, wallet in zip(eligible, wallets) if not wallet]
    path = repo_path(repo_url)
    base = ctx.settings.verify_base_url

    verified_lines = (
        "\n".join(f"✅ @{name} -> {wallet}" for name, wallet in verified[:_PREVIEW]) or "None yet"
    )
    if len(verified) > _PREVIEW:
        verified_lines += f"\n...and {len(verified) - _PREVIEW} more verified"
    unverified_lines = (
        "\n".join(f"• @{name}: {verify_link(base, repo=path, user=name)}" for name in unverified[:_PREVIEW])
        or "None"
    )
    if len(unverified) > _PREVIEW:
        unverified_lines += f"\n...and {len(unverified) - _PREVIEW} more unverified"

    summary = f"Coverage (top {len(sample)} contributors): {len(verified)} verified, {len(unverified)} unverified"
    if skipped:
        summary += f", {len(skipped)} skipped\nSkipped bot/system accounts: {mention_preview(skipped, 4)}"
    next_step = (
        "Next: share the links above with unverified contributors."
        if unverified
        else f"Next: everyone checked is verified. You can safely run: pay <amount> <token> to {path}"
    )
    coverage = {
        "repo_url": repo_url,
        "checked": len(sample),
        "verified": len(verified),
        "unverified": len(unverified),
        "timestamp": ctx.now_ms,
    }
    return IntentResult(
        f"🔎 Verification status for {repo_url}\n\n"
        f"{summary}\n\n"
        f"Ready to receive payouts:\n{verified_lines}\n\n"
        f"Need verification:\n{unverified_lines}\n\n"
        f"{next_step}",
        updates={"last_verification_coverage": coverage},
    )


async def _verify_user(ctx: IntentContext, username: str) -> IntentResult:
    ledger = ctx.tools.ledger
    wallet = await ledger.get_verified_wallet(username)
    if wallet:
        return IntentResult(f"@{username} is already verified! You can receive payments to {wallet}.")

    message = ctx.message
    near_wallet = message.near_account_id or (
        message.wallet_address if is_likely_near_account(message.wallet_address) else None
    )
    if message.channel == "web" and near_wallet:
        profile = await ctx.tools.reputation.get_profile(username)
        await ledger.store_verification(
            github_username=username, wallet_address=near_wallet, verified_by=message.author or "web"
        )
        return IntentResult(
            f"✅ @{username} verified and linked to {near_wallet}.\n"
            f"🏅 Reputation: {profile.score:g}/100 ({profile.tier})",
            updates={"pending_verification": None},
        )

    code = f"gitsplits-verify-{secrets.token_hex(4)}"
    expires_at = ctx.now_ms + VERIFICATION_TTL_MS
    await ledger.store_pending_verification(
        github_username=username, requested_by=message.author, code=code, expires_at=expires_at
    )
    link = verify_link(ctx.settings.verify_base_url, github=username, code=code)
    return IntentResult(
        f"🔐 Verification initiated for @{username}\n\n"
        "To complete:\n"
        "1. Create a public GitHub gist\n"
        f"2. Paste this code: {code}\n"
        "3. Reply here with the gist URL\n\n"
        f"Or verify at: {link}",
        updates={
            "pending_verification": PendingVerification(
                github_username=username, code=code, expires_at=expires_at
            )
        },
    )


async def execute_verify(params: dict[str, Any], ctx: IntentContext) -> IntentResult:
    try:
        if params.get("repo"):
            return await _repo_coverage(ctx, params["repo"])
        return await _verify_user(ctx, params["github_username"].lstrip("@"))
    except GitSplitsError as exc:
        return IntentResult(f"❌ Verification failed: {exc.message}", success=False)


VERIFY = IntentDefinition(
    name="verify",
    patterns=compile_patterns(
        r"\bverify\s+contributors?\s+(?:for|of)\s+(?P<repo>\S+)",
        rf"\bverify\s+(?!contributors?\b)(?:my\s+)?(?:github\s+)?@?(?P<github_username>{USERNAME_PATTERN})",
        rf"\blink\s+(?:my\s+)?(?:github\s+)?@?(?P<github_username>{USERNAME_PATTERN})",
        rf"\bconnect\s+(?:my\s+)?(?:github\s+)?@?(?P<github_username>{USERNAME_PATTERN})",
    ),
    extract_params=_extract,
    validate=_validate,
    execute=execute_verify,
    confidence=0.8,
    description="Verify contributor wallets",
    examples=("verify contributors for near/near-sdk-rs", "verify @alice"),
)
