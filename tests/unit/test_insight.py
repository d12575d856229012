"""Unit tests for the generate-then-critique fairness insight."""

import pytest

from fakes import DEFAULT_CONTRIBUTORS
from gitsplits.agents.insight import (
    PROOF_EXPLORER_URL,
    concentration_summary,
    generate_fairness_insight,
)
from gitsplits.backends.protocols import InferenceReply


class ScriptedInference:
    """Returns queued replies; an Exception in the queue is raised instead."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def chat(self, messages, *, temperature=None, max_tokens=None):
        self.calls.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def _reply(content: str, signature: str | None = "0xsig", mock: bool = False) -> InferenceReply:
    return InferenceReply(content=content, model="m", signature=signature, mock=mock)


DRAFT = "Alice carries most of the work; the split looks reasonable overall."
REFINED = "Alice leads, but Carol's review work deserves a larger share than commits suggest."


@pytest.mark.anyio
async def test_critique_refines_draft():
    inference = ScriptedInference(_reply(DRAFT), _reply(REFINED, signature="0xrefined"))

    insight = await generate_fairness_insight(inference, "github.com/a/b", DEFAULT_CONTRIBUTORS)

    assert insight.analysis == REFINED
    assert insight.explorer_url == f"{PROOF_EXPLORER_URL}/0xrefined"
    assert len(inference.calls) == 2
    assert "- alice: 60 commits (60%)" in inference.calls[0][1]["content"]
    assert DRAFT in inference.calls[1][1]["content"]


@pytest.mark.anyio
async def test_mock_reply_skips_critique():
    inference = ScriptedInference(_reply("mock text", signature="0xmock", mock=True))

    insight = await generate_fairness_insight(inference, "github.com/a/b", DEFAULT_CONTRIBUTORS)

    assert insight.mock
    assert insight.explorer_url is None
    assert len(inference.calls) == 1


@pytest.mark.anyio
@pytest.mark.parametrize("draft", ["We need to think about the user's question first.", "final"])
async def test_unusable_draft_becomes_concentration_summary(draft):
    inference = ScriptedInference(_reply(draft))

    insight = await generate_fairness_insight(inference, "github.com/a/b", DEFAULT_CONTRIBUTORS)

    assert insight.analysis == concentration_summary(DEFAULT_CONTRIBUTORS)
    assert "about 100% of commits" in insight.analysis


@pytest.mark.anyio
async def test_failed_critique_keeps_draft():
    inference = ScriptedInference(_reply(DRAFT), RuntimeError("timeout"))

    insight = await generate_fairness_insight(inference, "github.com/a/b", DEFAULT_CONTRIBUTORS)

    assert insight.analysis == DRAFT
    assert insight.signature == "0xsig"


@pytest.mark.anyio
async def test_reasoning_critique_keeps_draft():
    inference = ScriptedInference(_reply(DRAFT), _reply("Let's reconsider the numbers."))

    insight = await generate_fairness_insight(inference, "github.com/a/b", DEFAULT_CONTRIBUTORS)

    assert insight.analysis == DRAFT
