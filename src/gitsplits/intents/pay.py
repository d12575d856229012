"""Pay intent: distribute funds to the verified contributors of a split.

Examples:
    pay 100 USDC to near/near-sdk-rs
    send 50 NEAR to github.com/near/near-sdk-rs
    distribute $200 to facebook/react

Verified, payout-eligible contributors are paid in one orchestrated
distribution; unverified contributors get pending claims for their share.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Any

from gitsplits.agents.types import IntentContext, IntentDefinition, IntentResult
from gitsplits.backends.protocols import EligibilityDecision, Recipient
from gitsplits.conversation.state import PaymentSnapshot
from gitsplits.errors import GitSplitsError, ValidationError
from gitsplits.intents.common import clean_target, compile_patterns, lookup_wallets, require
from gitsplits.observability.logging import get_logger
from gitsplits.payments import DistributionRequest
from gitsplits.repos import normalize_repo_url, rebalance_to_hundred
from gitsplits.safety.risk import (
    RecipientSnapshot,
    format_safety_block,
    inspect_distribution_risk,
    should_block_for_safety,
)
from gitsplits.services.pingpay import MOCK_STATUS

logger = get_logger(__name__)

DEFAULT_TOKEN = "USDC"
_STRICT_MARKERS = ("strict", "all-verified", "all verified")


@dataclass(frozen=True)
class _Payee:
    username: str
    percentage: float
    wallet: str | None


def is_strict_all_verified(text: str) -> bool:
    lowered = (text or "").lower()
    return any(marker in lowered for marker in _STRICT_MARKERS)


def _extract(match) -> dict[str, Any]:
    token = match.group("token")
    return {
        "amount": float(match.group("amount")),
        "token": token.upper() if token else DEFAULT_TOKEN,
        "repo": clean_target(match.group("repo")),
    }


def _validate(params: dict[str, Any]) -> None:
    try:
        amount = float(params.get("amount") or 0)
    except (TypeError, ValueError):
        amount = math.nan
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Amount must be a positive number")
    require(params, "repo", "Repository is required")


async def _store_pending_claims(ctx: IntentContext, payees: list[_Payee], amount: float, token: str):
    claims = []
    for payee in payees:
        share = amount * payee.percentage / 100
        claim_id = await ctx.tools.ledger.store_pending_distribution(
            github_username=payee.username, amount=share, token=token
        )
        claims.append((payee.username, share, claim_id))
    return claims


async def execute_pay(params: dict[str, Any], ctx: IntentContext) -> IntentResult:
    amount = float(params["amount"])
    token = str(params.get("token") or DEFAULT_TOKEN).upper()
    verify_url = ctx.settings.verify_base_url
    text = ctx.message.text

    try:
        repo_url = normalize_repo_url(params["repo"])
        split = await ctx.tools.ledger.get_split(repo_url)
        if split is None:
            return IntentResult(
                f'No split found for {repo_url}. Create one first with: "create {repo_url}"',
                success=False,
            )

        usernames = [c.github_username for c in split.contributors]
        wallets = await lookup_wallets(ctx.tools.ledger, usernames)
        payees = [
            _Payee(c.github_username, float(c.percentage), wallet)
            for c, wallet in zip(split.contributors, wallets)
        ]
        verified = [p for p in payees if p.wallet]
        unverified = [p for p in payees if not p.wallet]

        if is_strict_all_verified(text) and unverified:
            return IntentResult(
                f"❌ Strict mode enabled: payment blocked because {len(unverified)} "
                "contributors are unverified.\n\n"
                f"Unverified: {', '.join(p.username for p in unverified)}\n"
                f"Ask them to verify at {verify_url}",
                success=False,
            )

        decisions: list[EligibilityDecision] = list(
            await asyncio.gather(
                *(
                    ctx.tools.reputation.evaluate_payout_eligibility(p.username, p.wallet)
                    for p in verified
                )
            )
        )
        eligible = [p for p, d in zip(verified, decisions) if d.eligible]
        excluded = [(p, d) for p, d in zip(verified, decisions) if not d.eligible]

        if not eligible:
            return IntentResult(
                f"❌ No payout-eligible verified contributors found for {repo_url}. "
                "Nothing can be paid yet.\n\n"
                f"Ask contributors to verify at {verify_url}",
                success=False,
            )

        alerts = inspect_distribution_risk(
            [RecipientSnapshot(p.username, p.percentage, p.wallet) for p in payees]
        )
        if should_block_for_safety(alerts, text):
            logger.info("pay_safety_blocked", repo_url=repo_url, alerts=[a.code for a in alerts])
            return IntentResult(format_safety_block(alerts), success=False)

        eligible_share = sum(p.percentage for p in eligible)
        distributable = amount * eligible_share / 100
        normalized = rebalance_to_hundred([p.percentage for p in eligible])
        recipients = [
            Recipient(wallet=str(p.wallet), percentage=pct) for p, pct in zip(eligible, normalized)
        ]
        distribution = await ctx.tools.payments.distribute(
            DistributionRequest(
                split_id=split.id, amount=distributable, token=token, recipients=recipients
            ),
            hint_text=text,
        )
        # Claims are recorded only once the distribution has gone through.
        pending = await _store_pending_claims(ctx, unverified, amount, token)
    except GitSplitsError as exc:
        return IntentResult(f"❌ Payment failed: {exc.message}", success=False)

    lines = [
        f"✅ Distributed {distributable:.4f} {token} to {len(eligible)} payout-eligible "
        f"verified contributors via {distribution.provider_name}!",
        "",
        f"Coverage: {len(eligible)}/{len(payees)} contributors eligible+verified",
        f"Payment mode: agent_rails_{distribution.engine}",
        f"🌐 Protocol: {distribution.protocol}",
        f"🔗 Transaction: {distribution.tx_hash}",
        f"📜 Split: {split.id}",
    ]
    if distribution.status == MOCK_STATUS:
        lines.append("⚠️ Mock payout: payment engine not configured, no funds moved.")
    if alerts:
        lines.append(f"⚠️ Safety flags: {', '.join(a.code for a in alerts)}")
    if pending:
        lines += ["", f"⏳ Pending claims for unverified contributors ({len(pending)}):"]
        lines += [f"- {name}: {share:.4f} {token} (claim id: {claim_id})" for name, share, claim_id in pending]
        lines += ["", f"Invite them to verify: {verify_url}"]
    if excluded:
        lines += ["", f"🚫 Excluded by eligibility policy ({len(excluded)}):"]
        lines += [
            f"- {p.username}: score {d.profile.score:g} ({'; '.join(d.reasons)})"
            for p, d in excluded[:8]
        ]

    snapshot = PaymentSnapshot(
        split_id=split.id,
        repo_url=repo_url,
        amount=distributable,
        token=token,
        tx_hash=distribution.tx_hash,
        engine=distribution.engine,
        timestamp=ctx.now_ms,
    )
    return IntentResult("\n".join(lines), updates={"last_payment": snapshot})


PAY = IntentDefinition(
    name="pay",
    patterns=compile_patterns(
        r"\b(?:pay|send|give)\s+(?P<amount>\d+(?:\.\d+)?)(?:\s*(?P<token>(?!to\b)[a-z]\w*))?"
        r"\s+(?:to\s+)?(?P<repo>\S+)",
        r"\bdistribute\s+\$?(?P<amount>\d+(?:\.\d+)?)(?:\s*(?P<token>(?!to\b)[a-z]\w*))?"
        r"\s+(?:to\s+)?(?P<repo>\S+)",
    ),
    extract_params=_extract,
    validate=_validate,
    execute=execute_pay,
    confidence=0.95,
    description="Pay the verified contributors of a split",
    examples=("pay 100 USDC to near/near-sdk-rs", "distribute $200 to facebook/react"),
)
