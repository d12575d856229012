"""Unit tests for contributor reputation and payout eligibility."""

import httpx
import pytest

from gitsplits.services.reputation import ReputationService, infer_kind, tier_from_score


def test_infer_kind_and_tier():
    assert infer_kind("alice") == "human"
    assert infer_kind("dependabot[bot]") == "agent"
    assert infer_kind("payout-agent") == "agent"
    assert infer_kind("") == "unknown"
    assert [tier_from_score(s) for s in (54.9, 55, 79, 80)] == ["bronze", "silver", "silver", "gold"]


@pytest.mark.anyio
async def test_local_profile_without_api():
    profile = await ReputationService().get_profile("alice")
    assert (profile.kind, profile.score, profile.tier) == ("human", 70.0, "silver")
    assert profile.sources == ["local-heuristics"]


@pytest.mark.anyio
async def test_external_score_overrides_heuristic():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/profile"
        assert request.url.params["subject"] == "alice"
        return httpx.Response(200, json={"score": 91})

    service = ReputationService(
        api_base="https://rep.example/",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    profile = await service.get_profile("alice")

    assert profile.score == 91.0
    assert profile.tier == "gold"
    assert profile.sources == ["local-heuristics", "external-reputation-api"]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(200, json={"score": "high"}),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json=[{"score": 90}]),
    ],
)
async def test_unusable_external_score_keeps_heuristic(response):
    service = ReputationService(
        api_base="https://rep.example",
        client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response)),
    )
    profile = await service.get_profile("alice")
    assert profile.score == 70.0
    assert profile.sources == ["local-heuristics"]


@pytest.mark.anyio
async def test_payout_eligibility():
    service = ReputationService(min_payout_score=65)

    eligible = await service.evaluate_payout_eligibility("alice", "alice.near")
    assert eligible.eligible
    assert eligible.reasons == []

    bot = await service.evaluate_payout_eligibility("ci-bot", None)
    assert not bot.eligible
    assert bot.reasons == [
        "Missing verified payout wallet.",
        "Reputation score 60 below threshold 65.",
    ]
