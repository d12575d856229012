"""Unit tests for the GitHub contributor analyzer."""

import httpx
import pytest

from gitsplits.errors import CollaboratorUnavailable
from gitsplits.services.github import GitHubAnalyzer


def _analyzer(handler, token: str = "") -> GitHubAnalyzer:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubAnalyzer(token=token, client=client)


@pytest.mark.anyio
async def test_analyze_lists_contributors_with_shares():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(
            200,
            json=[
                {"login": "alice", "contributions": 2},
                {"login": "bob", "contributions": 2},
                {"login": "carol", "contributions": 3},
            ],
        )

    analysis = await _analyzer(handler, token="ghp_secret").analyze(
        "https://github.com/near/near-sdk-rs.git"
    )

    assert seen["url"] == "https://api.github.com/repos/near/near-sdk-rs/contributors?per_page=100"
    assert seen["auth"] == "Bearer ghp_secret"
    assert analysis.repo_url == "github.com/near/near-sdk-rs"
    assert [(c.username, c.commits, c.percentage) for c in analysis.contributors] == [
        ("alice", 2, 29),
        ("bob", 2, 28),
        ("carol", 3, 43),
    ]


@pytest.mark.anyio
async def test_placeholder_token_sends_no_auth():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Authorization" not in request.headers
        return httpx.Response(200, json=[])

    analysis = await _analyzer(handler, token="placeholder").analyze("a/b")
    assert analysis.contributors == []


@pytest.mark.anyio
async def test_empty_repository():
    analysis = await _analyzer(lambda request: httpx.Response(204)).analyze("a/b")
    assert analysis.contributors == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("status", "message"),
    [
        (404, "Repository a/b not found"),
        (403, "GitHub API rate limit reached"),
        (500, "GitHub error (500)"),
    ],
)
async def test_http_errors_are_collaborator_failures(status, message):
    with pytest.raises(CollaboratorUnavailable) as exc_info:
        await _analyzer(lambda request: httpx.Response(status)).analyze("a/b")
    assert exc_info.value.message == message
    assert exc_info.value.status_code == status


@pytest.mark.anyio
async def test_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(CollaboratorUnavailable):
        await _analyzer(handler).analyze("a/b")


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json={"message": "moved"}),
        httpx.Response(200, json=["alice"]),
    ],
)
async def test_unusable_contributor_body(response):
    with pytest.raises(CollaboratorUnavailable) as exc_info:
        await _analyzer(lambda request: response).analyze("a/b")
    assert exc_info.value.collaborator == "github"
