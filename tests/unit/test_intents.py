"""Intent handler behaviour through the controller."""

import pytest

from fakes import REPO, REPO_URL, FakeAnalyzer, contributors
from gitsplits.errors import CollaboratorUnavailable


@pytest.mark.anyio
async def test_create_with_custom_allocation(harness):
    reply = await harness.send(f"create split for {REPO} with 50/30/20")

    assert reply.startswith(f"✅ Split created for {REPO_URL}!")
    split = await harness.ledger.get_split(REPO_URL)
    assert [(s.github_username, s.percentage) for s in split.contributors] == [
        ("alice", 50),
        ("bob", 30),
        ("carol", 20),
    ]


@pytest.mark.anyio
async def test_create_rejects_allocation_with_more_parts_than_contributors(harness):
    reply = await harness.send(f"create split for {REPO} with 40/30/20/10")

    assert reply == (
        f"❌ Custom allocation 40/30/20/10 has 4 parts but {REPO_URL} has only 3 contributors."
    )
    assert await harness.ledger.get_split(REPO_URL) is None


@pytest.mark.anyio
async def test_create_twice_refreshes_split(harness):
    await harness.send(f"create {REPO}")
    first = await harness.ledger.get_split(REPO_URL)

    reply = await harness.send(f"create {REPO}")

    assert reply.startswith(f"✅ Split updated for {REPO_URL}!")
    assert "This split was refreshed with the latest contributors." in reply
    assert (await harness.ledger.get_split(REPO_URL)).id == first.id


@pytest.mark.anyio
async def test_create_skips_bots_in_coverage(make_harness):
    harness = make_harness(
        analyzer=FakeAnalyzer({"a/bots": contributors(("alice", 70), ("dependabot[bot]", 30))})
    )
    await harness.verify("alice")

    reply = await harness.send("create a/bots")

    assert "Verification coverage: 1/1 verified (1 bot/system skipped)" in reply
    assert "Need verification" not in reply


@pytest.mark.anyio
async def test_create_falls_back_to_configured_owner(make_harness):
    harness = make_harness(owner_account_id="treasury.near")

    await harness.send(f"create {REPO}", author="someone")

    assert (await harness.ledger.get_split(REPO_URL)).owner == "treasury.near"


@pytest.mark.anyio
async def test_create_prefers_attached_near_account(harness):
    await harness.send(f"create {REPO}", author="someone", near_account_id="someone.near")
    assert (await harness.ledger.get_split(REPO_URL)).owner == "someone.near"


@pytest.mark.anyio
async def test_analyze_rate_limit_hint(harness):
    harness.analyzer.error = CollaboratorUnavailable(
        "github", "GitHub API rate limit reached", status_code=403
    )

    reply = await harness.send(f"analyze {REPO}")

    assert reply.endswith("GitHub API rate limit may have been reached, try again shortly.")


@pytest.mark.anyio
async def test_analyze_repository_without_contributors(make_harness):
    harness = make_harness(analyzer=FakeAnalyzer({"a/empty": []}))

    reply = await harness.send("analyze a/empty")

    assert reply.startswith("No contributors found for github.com/a/empty.")
    assert harness.event_types()[-1] == "intent_failed"


@pytest.mark.anyio
async def test_pending_claims_for_user(harness):
    assert await harness.send("pending @carol") == "No pending claims found for @carol."

    await harness.ledger.store_pending_distribution(github_username="carol", amount=4, token="USDC")
    reply = await harness.send("pending @carol")

    assert reply.startswith("⏳ Pending claims for @carol\n\nCount: 1\n- claim-")
    assert reply.endswith(": 4 USDC")


@pytest.mark.anyio
async def test_pending_claims_without_split(harness):
    assert await harness.send(f"pending claims for {REPO}") == f"No split found for {REPO_URL}."


@pytest.mark.anyio
async def test_pending_claims_none_outstanding(harness):
    await harness.send(f"create {REPO}")
    reply = await harness.send(f"pending claims for {REPO}")
    assert reply == f"No pending claims for {REPO_URL}."


@pytest.mark.anyio
async def test_verify_code_flow_stores_request(harness):
    reply = await harness.send("verify @dave", author="dave.near")

    request = await harness.ledger.get_pending_verification("dave")
    assert request.requested_by == "dave.near"
    assert request.code in reply
    assert "https://gitsplits.vercel.app/verify?github=dave&code=" in reply
    assert harness.state("dave.near").pending_verification.code == request.code
