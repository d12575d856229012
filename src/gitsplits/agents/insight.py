"""Verifiable fairness insight for a contributor breakdown.

Generate, then critique-and-refine: a first completion assesses the split, a
second one challenges it for gaming patterns, bot inflation and undervalued
review work. Unusable drafts are replaced by a deterministic concentration
summary so users never see hidden reasoning.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from gitsplits.backends.inference import (
    is_low_signal_output,
    looks_like_internal_reasoning,
    sanitize_inference_content,
)
from gitsplits.backends.protocols import Contributor, InferenceProvider
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)

PROOF_EXPLORER_URL = "https://determinal.eigenarcade.com/verify"

_GENERATE_SYSTEM = (
    "You are a fair and objective analyst of open source contributions. "
    "Assess the contribution percentages and suggest adjustments if needed. "
    "Return only a concise user-facing summary. Do not output chain-of-thought, "
    "internal reasoning, scratch work, or hidden analysis."
)

_CRITIQUE_SYSTEM = (
    "You are a critical reviewer of open source contribution analyses. "
    "Given a contribution breakdown and a draft analysis, identify problems: "
    "gaming patterns (trivial commits inflating counts), bot contributions counted as human, "
    "maintenance/review work undervalued vs commit counts, and concentration risks. "
    "Return a refined, concise user-facing summary incorporating your corrections. "
    "Do not mention that you are reviewing a draft."
)


@dataclass(frozen=True)
class FairnessInsight:
    analysis: str
    model: str
    signature: str | None = None
    mock: bool = False

    @property
    def explorer_url(self) -> str | None:
        if not self.signature or self.mock:
            return None
        return f"{PROOF_EXPLORER_URL}/{self.signature}"


def concentration_summary(contributors: Sequence[Contributor]) -> str:
    total = sum(c.commits for c in contributors)
    top3 = sum(c.commits for c in contributors[:3])
    concentration = round(top3 / total * 100) if total > 0 else 0
    return (
        f"Top contributors account for about {concentration}% of commits among the sampled set. "
        "Commit count suggests concentration, but final payout weights should also consider "
        "review load, maintenance work, and architectural impact."
    )


def _contributor_lines(contributors: Sequence[Contributor]) -> str:
    return "\n".join(
        f"- {c.username}: {c.commits} commits ({c.percentage}%)" for c in contributors
    )


async def generate_fairness_insight(
    inference: InferenceProvider,
    repo_url: str,
    contributors: Sequence[Contributor],
) -> FairnessInsight:
    lines = _contributor_lines(contributors)
    draft = await inference.chat(
        [
            {"role": "system", "content": _GENERATE_SYSTEM},
            {
                "role": "user",
                "content": (
                    f"Analyze the following contribution breakdown for the repository {repo_url}:\n\n"
                    f"{lines}\n\n"
                    "Are these percentages fair based on the commit distribution? "
                    "Suggest any adjustments and explain your reasoning."
                ),
            },
        ],
        temperature=0.3,
    )
    draft_text = sanitize_inference_content(draft.content)

    if draft.mock:
        return FairnessInsight(draft_text, draft.model, draft.signature, mock=True)
    if looks_like_internal_reasoning(draft_text) or is_low_signal_output(draft_text):
        logger.info("insight_draft_replaced", repo_url=repo_url)
        return FairnessInsight(concentration_summary(contributors), draft.model, draft.signature)

    try:
        refined = await inference.chat(
            [
                {"role": "system", "content": _CRITIQUE_SYSTEM},
                {
                    "role": "user",
                    "content": (
                        f"Repository: {repo_url}\n\nContribution data:\n{lines}\n\n"
                        f"Draft analysis:\n{draft_text}"
                    ),
                },
            ],
            temperature=0.2,
        )
    except Exception as exc:
        logger.info("insight_critique_skipped", repo_url=repo_url, error=str(exc))
        return FairnessInsight(draft_text, draft.model, draft.signature)

    refined_text = sanitize_inference_content(refined.content)
    if not refined_text or looks_like_internal_reasoning(refined_text):
        return FairnessInsight(draft_text, draft.model, draft.signature)
    return FairnessInsight(refined_text, draft.model, refined.signature or draft.signature)
