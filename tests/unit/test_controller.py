"""End-to-end tests for the command pipeline controller."""

from __future__ import annotations

import anyio
import pytest

from fakes import REPO, REPO_URL, FakeAnalyzer, contributors
from gitsplits.agents.registry import IntentRegistry
from gitsplits.agents.types import InboundMessage, IntentDefinition, IntentResult
from gitsplits.backends.protocols import SplitShare
from gitsplits.errors import CollaboratorUnavailable, PaymentEngineFailure
from gitsplits.intents.common import compile_patterns
from gitsplits.pipeline.controller import (
    ADVISOR_PREFIX,
    PIPELINE_FAILURE_REPLY,
    UNRECOGNIZED_REPLY,
    AgentReply,
)


async def seed_split(h, repo_url: str = REPO_URL) -> None:
    await h.ledger.create_split(
        repo_url=repo_url,
        owner="owner.near",
        contributors=[
            SplitShare("alice", 60),
            SplitShare("bob", 30),
            SplitShare("carol", 10),
        ],
    )


# Analyze / create


@pytest.mark.anyio
async def test_analyze_lists_contributors_and_suggests_create(harness) -> None:
    reply = await harness.send(f"analyze {REPO}")

    assert reply.startswith(f"📊 Analysis for {REPO_URL}")
    assert "🥇 alice: 60 commits (60%)" in reply
    assert "Verification coverage (top 3): 0/3 verified" in reply
    assert reply.endswith(f'💡 Next: "create {REPO}" to set up a split.')

    state = harness.state()
    assert state.last_analysis.repo_url == REPO_URL
    assert state.repo_memory[REPO_URL].last_analysis_hash
    assert harness.event_types() == ["message_received", "intent_executed"]


@pytest.mark.anyio
async def test_analyze_reports_collaborator_failure(harness) -> None:
    harness.analyzer.error = CollaboratorUnavailable(
        "github", "Repository not found", status_code=404
    )

    reply = await harness.send(f"analyze {REPO}")

    assert reply == f"❌ Analysis failed for {REPO}: Repository not found"
    assert harness.event_types()[-1] == "intent_failed"


@pytest.mark.anyio
async def test_unexpected_intent_error_is_contained(harness) -> None:
    harness.analyzer.error = RuntimeError("boom")

    reply = await harness.send(f"analyze {REPO}")

    assert reply == "❌ analyze failed unexpectedly. Please try again."
    assert harness.event_types()[-1] == "intent_failed"


@pytest.mark.anyio
async def test_create_split_then_hint_points_to_pay(harness) -> None:
    reply = await harness.send(f"create split for {REPO}")

    assert reply.startswith(f"✅ Split created for {REPO_URL}!")
    assert "Need verification: @alice, @bob, @carol" in reply
    assert reply.endswith(f'💡 Next: "pay 100 USDC to {REPO}"')
    split = await harness.ledger.get_split(REPO_URL)
    assert split is not None and split.owner == "owner.near"
    assert harness.state().repo_memory[REPO_URL].last_split_id == split.id

    again = await harness.send(f"create {REPO}")
    assert again.startswith(f"✅ Split updated for {REPO_URL}!")


@pytest.mark.anyio
async def test_create_rejects_allocation_not_summing_to_100(harness) -> None:
    reply = await harness.send(f"create split for {REPO} with 50/30/10")

    assert reply == "❌ Custom allocation 50/30/10 must add up to 100"
    assert "validation_failed" in harness.event_types()


@pytest.mark.anyio
async def test_create_without_near_owner_fails_cleanly(harness) -> None:
    reply = await harness.send(f"create split for {REPO}", author="someone")

    assert reply.startswith("❌ Failed to create split: No valid NEAR owner account")


# Pay


@pytest.mark.anyio
async def test_pay_distributes_to_verified_and_stores_pending_claims(harness) -> None:
    await harness.send(f"create split for {REPO}")
    await harness.verify("alice", "bob")

    reply = await harness.send(f"pay 100 USDC to {REPO}")

    assert "✅ Distributed 90.0000 USDC to 2 payout-eligible verified contributors via Ping Pay!" in reply
    assert "- carol: 10.0000 USDC" in reply
    assert len(harness.pingpay.calls) == 1
    assert harness.hotpay.calls == []

    call = harness.pingpay.calls[0]
    assert call["amount"] == pytest.approx(90.0)
    assert [r.wallet for r in call["recipients"]] == ["alice.near", "bob.near"]
    assert [r.percentage for r in call["recipients"]] == [
        pytest.approx(200 / 3),
        pytest.approx(100 / 3),
    ]

    claims = await harness.ledger.get_pending_distributions("carol")
    assert [c.amount for c in claims] == [pytest.approx(10.0)]

    state = harness.state()
    assert state.last_payment.engine == "pingpay"
    assert state.repo_memory[REPO_URL].last_payment_tx == "0xpingpay1"
    assert reply.endswith(f'💡 Next: "pending claims for {REPO}"')

    pending = await harness.send(f"pending claims for {REPO}")
    assert "Contributors with pending claims: 1" in pending
    assert "carol: 1 claim(s), 10 USDC" in pending


@pytest.mark.anyio
async def test_pay_native_token_routes_to_chain_native_engine(harness) -> None:
    await seed_split(harness)
    await harness.verify("alice", "bob", "carol")

    reply = await harness.send(f"pay 10 NEAR to {REPO}")

    assert "via HOT Pay!" in reply
    assert harness.pingpay.calls == []
    assert len(harness.hotpay.calls) == 1


@pytest.mark.anyio
async def test_pay_falls_back_once_when_primary_engine_fails(harness) -> None:
    await seed_split(harness)
    await harness.verify("alice", "bob", "carol")
    harness.pingpay.error = PaymentEngineFailure("pingpay", "intents API down")

    reply = await harness.send(f"pay 10 USDC to {REPO}")

    assert "via HOT Pay (Ping Pay fallback)!" in reply
    assert "Payment mode: agent_rails_hotpay_fallback" in reply
    assert len(harness.pingpay.calls) == 1
    assert len(harness.hotpay.calls) == 1


@pytest.mark.anyio
async def test_pay_reports_last_error_when_both_engines_fail(harness) -> None:
    await seed_split(harness)
    await harness.verify("alice", "bob", "carol")
    harness.pingpay.error = PaymentEngineFailure("pingpay", "intents API down")
    harness.hotpay.error = PaymentEngineFailure("hotpay", "partner API down")

    reply = await harness.send(f"pay 10 USDC to {REPO}")

    assert reply == "❌ Payment failed: partner API down"
    assert harness.event_types()[-1] == "intent_failed"


@pytest.mark.anyio
async def test_failed_payout_leaves_no_pending_claims(make_harness) -> None:
    h = make_harness()
    h.hotpay.configured = False
    await h.send(f"create split for {REPO}")
    await h.verify("alice", "bob")
    h.pingpay.error = PaymentEngineFailure("pingpay", "down")

    first = await h.send(f"pay 100 USDC to {REPO}")
    second = await h.send(f"pay 100 USDC to {REPO}")

    assert first == second == "❌ Payment failed: down"
    assert await h.ledger.get_pending_distributions("carol") == []

    h.pingpay.error = None
    await h.send(f"pay 100 USDC to {REPO}")

    claims = await h.ledger.get_pending_distributions("carol")
    assert [c.amount for c in claims] == [pytest.approx(10.0)]


@pytest.mark.anyio
async def test_pay_without_split_asks_for_create(harness) -> None:
    reply = await harness.send(f"pay 10 USDC to {REPO}")

    assert reply.startswith(f"No split found for {REPO_URL}.")
    assert harness.pingpay.calls == []


@pytest.mark.anyio
async def test_pay_with_no_verified_contributors_moves_nothing(harness) -> None:
    await seed_split(harness)

    reply = await harness.send(f"pay 10 USDC to {REPO}")

    assert reply.startswith("❌ No payout-eligible verified contributors")
    assert harness.pingpay.calls == []
    assert await harness.ledger.get_pending_distributions("alice") == []


@pytest.mark.anyio
async def test_pay_strict_mode_blocks_on_unverified(harness) -> None:
    await seed_split(harness)
    await harness.verify("alice", "bob")

    reply = await harness.send(f"pay 10 USDC to {REPO} strict")

    assert reply.startswith("❌ Strict mode enabled")
    assert "Unverified: carol" in reply
    assert harness.pingpay.calls == []


@pytest.mark.anyio
async def test_pay_blocked_by_safety_until_override(make_harness) -> None:
    analyzer = FakeAnalyzer({"acme/bots": contributors(("dependabot[bot]", 80), ("alice", 20))})
    h = make_harness(analyzer=analyzer)
    await h.send("create split for acme/bots")
    await h.verify("alice")

    blocked = await h.send("pay 10 USDC to acme/bots")

    assert blocked.startswith("🛑 Safety review required before payout:")
    assert "[HIGH] Bot/system contributors account for 80.0% of allocation." in blocked
    assert h.pingpay.calls == []
    assert await h.ledger.get_pending_distributions("dependabot[bot]") == []

    forced = await h.send("pay 10 USDC to acme/bots override safety")

    assert "✅ Distributed 2.0000 USDC to 1" in forced
    assert "⚠️ Safety flags: BOT_HEAVY, MISSING_WALLETS" in forced
    assert len(h.pingpay.calls) == 1


@pytest.mark.anyio
async def test_pay_over_policy_max_is_blocked(harness) -> None:
    await seed_split(harness)

    reply = await harness.send(f"pay 1000 USDC to {REPO}")

    assert reply == "🛑 Policy blocked pay: Pay amount 1000 exceeds policy max 250."
    assert harness.event_types()[-1] == "policy_block"
    assert harness.pingpay.calls == []


@pytest.mark.anyio
async def test_pay_with_disallowed_token_is_blocked(harness) -> None:
    reply = await harness.send(f"pay 5 DOGE to {REPO}")

    assert reply == "🛑 Policy blocked pay: Token DOGE is not allowed by policy."


@pytest.mark.anyio
async def test_pay_zero_amount_fails_validation(harness) -> None:
    reply = await harness.send(f"pay 0 USDC to {REPO}")

    assert reply == "❌ Amount must be a positive number"
    assert harness.event_types()[-1] == "validation_failed"


# Modes and plans


@pytest.mark.anyio
async def test_advisor_mode_produces_plan_without_executing(harness) -> None:
    await seed_split(harness)
    await harness.verify("alice", "bob", "carol")

    assert (await harness.send("mode advisor")).startswith("✅ Execution mode set to advisor")
    reply = await harness.send(f"pay 10 USDC to {REPO}")

    assert reply.startswith(ADVISOR_PREFIX)
    assert "🧭 Execution plan prepared (pay)." in reply
    assert '"split_exists"' in reply
    assert '"verified_recipients"' in reply
    assert harness.pingpay.calls == []
    assert harness.hotpay.calls == []

    plan = harness.state().pending_plan
    assert plan is not None and plan.intent == "pay"

    denied = await harness.send(f"approve {plan.id}")

    assert denied == (
        "🛑 Policy blocked pay: Advisor mode does not execute on-chain/payment actions."
    )
    assert harness.state().pending_plan == plan
    assert harness.pingpay.calls == []


@pytest.mark.anyio
async def test_advisor_mode_still_runs_read_only_intents(harness) -> None:
    await harness.send("mode advisor")

    reply = await harness.send(f"analyze {REPO}")

    assert reply.startswith("📊 Analysis for")


@pytest.mark.anyio
async def test_draft_plan_executes_on_matching_approval(make_harness) -> None:
    h = make_harness(default_execution_mode="draft")
    await seed_split(h)
    await h.verify("alice", "bob", "carol")

    reply = await h.send(f"pay 10 USDC to {REPO}")
    plan = h.state().pending_plan

    assert reply.startswith("🧭 Execution plan prepared (pay).")
    assert reply.endswith(f'Reply with "approve {plan.id}" to execute, or "cancel" to discard.')
    assert h.pingpay.calls == []

    mismatch = await h.send("approve plan-0000000000")
    assert mismatch == f"⚠️ Pending plan mismatch. Expected {plan.id}."
    assert h.state().pending_plan == plan

    executed = await h.send(f"approve {plan.id}")

    assert "✅ Distributed 10.0000 USDC" in executed
    assert len(h.pingpay.calls) == 1
    assert h.state().pending_plan is None
    types = h.event_types()
    assert "plan_created" in types
    assert "plan_mismatch" in types
    assert types[-2:] == ["plan_executed", "intent_executed"]


@pytest.mark.anyio
async def test_approved_plan_keeps_strict_mode(make_harness) -> None:
    h = make_harness(default_execution_mode="draft")
    await seed_split(h)
    await h.verify("alice", "bob")

    await h.send(f"pay 10 USDC to {REPO} strict")
    plan = h.state().pending_plan
    assert plan.source_text == f"pay 10 USDC to {REPO} strict"

    reply = await h.send(f"approve {plan.id}")

    assert reply.startswith("❌ Strict mode enabled")
    assert h.pingpay.calls == []


@pytest.mark.anyio
async def test_approved_plan_keeps_engine_hint(make_harness) -> None:
    h = make_harness(default_execution_mode="draft")
    await seed_split(h)
    await h.verify("alice", "bob", "carol")

    await h.send(f"pay 10 USDC to {REPO} via hotpay")
    reply = await h.send(f"approve {h.state().pending_plan.id}")

    assert "via HOT Pay!" in reply
    assert h.pingpay.calls == []
    assert len(h.hotpay.calls) == 1


@pytest.mark.anyio
async def test_approved_plan_honours_safety_override(make_harness) -> None:
    analyzer = FakeAnalyzer({"acme/bots": contributors(("dependabot[bot]", 80), ("alice", 20))})
    h = make_harness(analyzer=analyzer, default_execution_mode="draft")
    await h.send("mode execute")
    await h.send("create split for acme/bots")
    await h.verify("alice")
    await h.send("mode draft")

    await h.send("pay 10 USDC to acme/bots override safety")
    forced = await h.send(f"approve {h.state().pending_plan.id}")

    assert "✅ Distributed 2.0000 USDC to 1" in forced
    assert len(h.pingpay.calls) == 1


@pytest.mark.anyio
async def test_safety_override_can_be_given_on_approval(make_harness) -> None:
    analyzer = FakeAnalyzer({"acme/bots": contributors(("dependabot[bot]", 80), ("alice", 20))})
    h = make_harness(analyzer=analyzer, default_execution_mode="draft")
    await h.send("mode execute")
    await h.send("create split for acme/bots")
    await h.verify("alice")
    await h.send("mode draft")

    await h.send("pay 10 USDC to acme/bots")
    plan_id = h.state().pending_plan.id
    blocked = await h.send(f"approve {plan_id}")
    assert blocked.startswith("🛑 Safety review required before payout:")
    assert h.pingpay.calls == []

    await h.send("pay 10 USDC to acme/bots")
    forced = await h.send(f"approve {h.state().pending_plan.id} override safety")

    assert "✅ Distributed 2.0000 USDC to 1" in forced
    assert len(h.pingpay.calls) == 1


@pytest.mark.anyio
async def test_expired_plan_is_cleared_on_approval(make_harness) -> None:
    h = make_harness(default_execution_mode="draft", plan_ttl_seconds=600)
    await h.send(f"pay 10 USDC to {REPO}")
    plan = h.state().pending_plan

    h.clock.advance(601)
    reply = await h.send(f"approve {plan.id}")

    assert reply == f"⌛ Plan {plan.id} expired. Request a fresh plan."
    assert h.state().pending_plan is None
    assert h.event_types()[-1] == "plan_expired"
    assert await h.send(f"approve {plan.id}") == "⚠️ No pending plan to approve."
    assert h.pingpay.calls == []


@pytest.mark.anyio
async def test_plan_is_still_valid_at_exact_ttl(make_harness) -> None:
    h = make_harness(default_execution_mode="draft", plan_ttl_seconds=600)
    await seed_split(h)
    await h.verify("alice", "bob", "carol")
    await h.send(f"pay 10 USDC to {REPO}")
    plan = h.state().pending_plan

    h.clock.advance(600)
    reply = await h.send(f"approve {plan.id}")

    assert reply.startswith("✅ Distributed")


@pytest.mark.anyio
async def test_cancel_discards_pending_plan(make_harness) -> None:
    h = make_harness(default_execution_mode="draft")
    await h.send(f"create split for {REPO}")
    plan = h.state().pending_plan
    assert plan.intent == "create"

    assert await h.send("cancel") == f"Cancelled pending plan {plan.id}."
    assert await h.send("cancel") == "No pending plan to cancel."
    assert h.event_types().count("plan_cancelled") == 1
    assert await h.ledger.get_split(REPO_URL) is None


@pytest.mark.anyio
async def test_mode_change_discards_pending_plan(make_harness) -> None:
    h = make_harness(default_execution_mode="draft")
    await h.send(f"pay 10 USDC to {REPO}")
    plan = h.state().pending_plan

    reply = await h.send("mode execute")

    assert reply.startswith("✅ Execution mode set to execute")
    assert f"Pending plan {plan.id} was discarded." in reply
    assert h.state().pending_plan is None
    assert h.state().execution_mode == "execute"


@pytest.mark.anyio
async def test_require_approval_plans_even_in_execute_mode(make_harness) -> None:
    h = make_harness(require_approval=True)

    reply = await h.send(f"pay 10 USDC to {REPO}")

    assert reply.startswith("🧭 Execution plan prepared (pay).")
    assert h.state().execution_mode == "execute"


@pytest.mark.anyio
async def test_modes_are_per_user(harness) -> None:
    await harness.send("mode advisor", author="alice.near")
    await seed_split(harness)
    await harness.verify("alice", "bob", "carol")

    reply = await harness.send(f"pay 10 USDC to {REPO}", author="bob.near")

    assert reply.startswith("✅ Distributed")
    assert harness.state("alice.near").execution_mode == "advisor"


# Replay


@pytest.mark.anyio
async def test_replay_reruns_original_command(harness) -> None:
    await harness.send(f"analyze {REPO}")
    event_id = harness.state().last_event_id

    reply = await harness.send(f"replay {event_id}")

    assert reply.startswith(f"🔁 Replay {event_id}\n\n📊 Analysis for {REPO_URL}")
    assert len(harness.analyzer.calls) == 2
    assert "replay_started" in harness.event_types()


@pytest.mark.anyio
async def test_replay_rejects_other_authors_and_unknown_ids(harness) -> None:
    await harness.send(f"analyze {REPO}")
    event_id = harness.state().last_event_id

    assert await harness.send(f"replay {event_id}", author="mallory") == (
        f"❌ Replay {event_id} not found."
    )
    assert await harness.send("replay deadbeefdeadbeef") == "❌ Replay deadbeefdeadbeef not found."
    assert harness.event_types().count("replay_rejected") == 2
    assert len(harness.analyzer.calls) == 1


@pytest.mark.anyio
async def test_replay_refuses_commands_older_than_ttl(harness) -> None:
    await harness.send(f"analyze {REPO}")
    event_id = harness.state().last_event_id

    harness.clock.advance(24 * 60 * 60 + 1)
    reply = await harness.send(f"replay {event_id}")

    assert reply.startswith(f"⌛ Replay {event_id} expired.")
    assert len(harness.analyzer.calls) == 1


@pytest.mark.anyio
async def test_control_commands_are_not_replayable(harness) -> None:
    await harness.send("mode draft")
    event_id = harness.state().last_event_id

    assert await harness.send(f"replay {event_id}") == f"❌ Replay {event_id} not found."


# Resolution


@pytest.mark.anyio
async def test_unrecognized_text_gets_usage_hint(harness) -> None:
    reply = await harness.send("hello there")

    assert reply == UNRECOGNIZED_REPLY
    assert harness.event_types()[-1] == "intent_unrecognized"


@pytest.mark.anyio
async def test_hands_off_experience_uses_assisted_classification(harness) -> None:
    text = f"could you look at the contributors of {REPO}"
    assert await harness.send(text) == UNRECOGNIZED_REPLY

    assert await harness.send("experience hands-off") == "✅ Experience mode set to hands_off."
    reply = await harness.send(text)

    assert reply.startswith(f"📊 Analysis for {REPO_URL}")
    assert "💡 Next" not in reply
    assert "hands_off_assisted_parse" in harness.event_types()


@pytest.mark.anyio
async def test_low_confidence_match_asks_for_confirmation(make_harness) -> None:
    async def _echo(params, ctx):
        return IntentResult(params["text"])

    echo = IntentDefinition(
        name="echo",
        patterns=compile_patterns(r"\becho\s+(?P<text>.+)"),
        extract_params=lambda m: {"text": m.group("text")},
        validate=lambda params: None,
        execute=_echo,
        confidence=0.3,
    )
    h = make_harness(registry=IntentRegistry([echo]))

    reply = await h.send("echo hi")

    assert reply.startswith("I may have misunderstood that (echo, confidence 0.30).")
    assert h.event_types()[-1] == "intent_low_confidence"


@pytest.mark.anyio
async def test_pipeline_never_raises(harness, monkeypatch) -> None:
    def _boom(text):
        raise RuntimeError("registry exploded")

    monkeypatch.setattr(harness.controller.registry, "resolve", _boom)

    reply = await harness.send(f"analyze {REPO}")

    assert reply == PIPELINE_FAILURE_REPLY
    assert harness.event_types()[-1] == "pipeline_error"


@pytest.mark.anyio
async def test_each_reply_carries_its_own_event_id(harness) -> None:
    texts = [f"analyze {REPO}", "reputation for @alice", "mode advisor"]
    replies: dict[str, AgentReply] = {}

    async def send(text: str) -> None:
        replies[text] = await harness.controller.handle_message(
            InboundMessage(text=text, author="owner.near")
        )

    async with anyio.create_task_group() as tg:
        for text in texts:
            tg.start_soon(send, text)

    received = {
        event["event_id"]: event["text"]
        for event in harness.events.iter_events()
        if event["type"] == "message_received"
    }
    assert {received[reply.event_id] for reply in replies.values()} == set(texts)
    assert all(received[replies[text].event_id] == text for text in texts)


@pytest.mark.anyio
async def test_replay_reply_carries_the_replayed_event_id(harness) -> None:
    first = await harness.controller.handle_message(
        InboundMessage(text=f"analyze {REPO}", author="owner.near")
    )

    replayed = await harness.controller.handle_message(
        InboundMessage(text=f"replay {first.event_id}", author="owner.near")
    )

    assert replayed.event_id not in (first.event_id, "")
    assert replayed.event_id == harness.state().last_event_id


# Verify / reputation


@pytest.mark.anyio
async def test_verify_on_web_with_near_account_links_wallet(harness) -> None:
    reply = await harness.send(
        "verify @carol", author="carol", channel="web", near_account_id="carol.near"
    )

    assert reply.startswith("✅ @carol verified and linked to carol.near.")
    assert await harness.ledger.get_verified_wallet("carol") == "carol.near"

    again = await harness.send("verify @carol", author="carol")
    assert again == "@carol is already verified! You can receive payments to carol.near."


@pytest.mark.anyio
async def test_verify_elsewhere_starts_code_challenge(harness) -> None:
    reply = await harness.send("verify @dave", author="dave")

    pending = harness.state("dave").pending_verification
    assert reply.startswith("🔐 Verification initiated for @dave")
    assert pending.github_username == "dave"
    assert pending.code.startswith("gitsplits-verify-")
    assert pending.code in reply
    request = await harness.ledger.get_pending_verification("dave")
    assert request.code == pending.code


@pytest.mark.anyio
async def test_verify_contributors_reports_coverage(harness) -> None:
    await harness.verify("alice")

    reply = await harness.send(f"verify contributors for {REPO}")

    assert "1 verified, 2 unverified" in reply
    assert "✅ @alice -> alice.near" in reply
    coverage = harness.state().last_verification_coverage
    assert coverage["verified"] == 1 and coverage["unverified"] == 2


@pytest.mark.anyio
async def test_reputation_lookup(harness) -> None:
    reply = await harness.send("reputation for @alice")

    assert "Kind: human" in reply
    assert "Score: 70/100 (silver)" in reply
