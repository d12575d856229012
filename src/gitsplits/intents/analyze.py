"""Analyze intent: contributor breakdown for a repository.

Examples:
    analyze near/near-sdk-rs
    who contributes to github.com/near/near-sdk-rs
    show contributors for facebook/react
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from gitsplits.agents.insight import generate_fairness_insight
from gitsplits.agents.types import IntentContext, IntentDefinition, IntentResult
from gitsplits.conversation.state import AnalysisSnapshot
from gitsplits.errors import CollaboratorUnavailable, GitSplitsError
from gitsplits.intents.common import clean_target, compile_patterns, lookup_wallets, require
from gitsplits.observability.logging import get_logger
from gitsplits.repos import is_system_contributor, normalize_repo_url

logger = get_logger(__name__)

_MEDALS = ("🥇", "🥈", "🥉")
_TOP_SHOWN = 5
_COVERAGE_SAMPLE = 10


def _extract(match) -> dict[str, Any]:
    return {"repo": clean_target(match.group("repo"))}


def _validate(params: dict[str, Any]) -> None:
    require(params, "repo", "Repository is required")


async def _verification_coverage(ctx: IntentContext, contributors) -> str:
    sample = contributors[:_COVERAGE_SAMPLE]
    eligible = [c.username for c in sample if not is_system_contributor(c.username)]
    skipped = len(sample) - len(eligible)
    try:
        wallets = await lookup_wallets(ctx.tools.ledger, eligible)
    except GitSplitsError as exc:
        logger.info("analyze_coverage_skipped", error=exc.message)
        return ""
    verified = sum(1 for wallet in wallets if wallet)
    skipped_note = f" ({skipped} bot/system skipped)" if skipped else ""
    return (
        f"\n\n✅ Verification coverage (top {len(sample)}): "
        f"{verified}/{len(eligible)} verified{skipped_note}"
        f"\nInvite unverified contributors: {ctx.settings.verify_base_url}"
    )


async def _ai_insight(ctx: IntentContext, repo_url: str, contributors) -> str:
    if ctx.tools.inference is None:
        return ""
    try:
        insight = await generate_fairness_insight(
            ctx.tools.inference, repo_url, contributors[:_COVERAGE_SAMPLE]
        )
    except Exception as exc:
        # The insight is optional; the breakdown stands on its own.
        logger.info("analyze_insight_skipped", repo_url=repo_url, error=str(exc))
        return ""
    if not insight.analysis:
        return ""
    proof = f"\n🔗 Proof: {insight.explorer_url}" if insight.explorer_url else ""
    return f"\n\n🛡️ Verifiable AI Insight:\n{insight.analysis}{proof}"


async def execute_analyze(params: dict[str, Any], ctx: IntentContext) -> IntentResult:
    repo = params["repo"]
    try:
        repo_url = normalize_repo_url(repo)
        analysis = await ctx.tools.analyzer.analyze(repo_url)
    except GitSplitsError as exc:
        hint = ""
        if isinstance(exc, CollaboratorUnavailable) and exc.status_code == 403:
            hint = " GitHub API rate limit may have been reached, try again shortly."
        return IntentResult(f"❌ Analysis failed for {repo}: {exc.message}{hint}", success=False)

    contributors = analysis.contributors
    if not contributors:
        return IntentResult(
            f"No contributors found for {repo_url}. "
            "Make sure it's a public repository with commit history.",
            success=False,
        )

    top = "\n".join(
        f"{_MEDALS[i] if i < len(_MEDALS) else '•'} {c.username}: {c.commits} commits ({c.percentage}%)"
        for i, c in enumerate(contributors[:_TOP_SHOWN])
    )
    extra = len(contributors) - _TOP_SHOWN
    more = f"\n...and {extra} more" if extra > 0 else ""
    total_commits = sum(c.commits for c in contributors)

    coverage = await _verification_coverage(ctx, contributors)
    insight = await _ai_insight(ctx, repo_url, contributors)

    response = (
        f"📊 Analysis for {repo_url}\n\n"
        f"Total commits: {total_commits}\n"
        f"Contributors: {len(contributors)}\n\n"
        f"Top contributors:\n{top}{more}{coverage}{insight}\n\n"
        f'Create a split: "create {repo_url}"'
    )
    snapshot = AnalysisSnapshot(
        repo_url=repo_url,
        contributors=[asdict(c) for c in contributors],
        timestamp=ctx.now_ms,
    )
    return IntentResult(response, updates={"last_analysis": snapshot})


ANALYZE = IntentDefinition(
    name="analyze",
    patterns=compile_patterns(
        r"\banalyze\s+(?P<repo>\S+)",
        r"\bwho\s+(?:contributes?\s+to|works?\s+on)\s+(?P<repo>\S+)",
        r"\bshow\s+(?:me\s+)?(?:the\s+)?contributors?\s+(?:for|of)\s+(?P<repo>\S+)",
    ),
    extract_params=_extract,
    validate=_validate,
    execute=execute_analyze,
    confidence=0.9,
    description="Analyze repository contributions",
    examples=("analyze near/near-sdk-rs", "who contributes to facebook/react"),
)
