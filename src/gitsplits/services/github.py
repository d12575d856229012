"""Repository contribution analysis via the GitHub REST API."""

from __future__ import annotations

from typing import Any

import httpx

from gitsplits.backends.protocols import Contributor, RepoAnalysis
from gitsplits.config import Settings, has_credential
from gitsplits.errors import CollaboratorUnavailable
from gitsplits.observability.logging import get_logger
from gitsplits.repos import normalize_percentages, normalize_repo_url, split_owner_repo

logger = get_logger(__name__)

_PER_PAGE = 100


class GitHubAnalyzer:
    """Lists contributors of a public repository with their commit shares."""

    def __init__(
        self,
        *,
        api_base: str = "https://api.github.com",
        token: str = "",
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: httpx.AsyncClient | None = None
    ) -> "GitHubAnalyzer":
        return cls(
            api_base=settings.github_api_base,
            token=settings.github_token,
            timeout_seconds=settings.github_timeout_seconds,
            client=client,
        )

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "gitsplits-agent",
        }
        if has_credential(self.token):
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params, headers=self._headers())
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await client.get(url, params=params, headers=self._headers())

    async def analyze(self, repo_url: str) -> RepoAnalysis:
        repo_url = normalize_repo_url(repo_url)
        owner, repo = split_owner_repo(repo_url)
        url = f"{self.api_base}/repos/{owner}/{repo}/contributors"

        try:
            response = await self._get(url, {"per_page": _PER_PAGE})
        except httpx.HTTPError as exc:
            raise CollaboratorUnavailable("github", f"GitHub request failed: {exc}") from exc

        if response.status_code == 404:
            raise CollaboratorUnavailable(
                "github", f"Repository {owner}/{repo} not found", status_code=404
            )
        if response.status_code == 403:
            raise CollaboratorUnavailable(
                "github", "GitHub API rate limit reached", status_code=403
            )
        # 204: repository has no commit history.
        if response.status_code == 204:
            return RepoAnalysis(repo_url=repo_url, contributors=[])
        if response.status_code >= 400:
            raise CollaboratorUnavailable(
                "github",
                f"GitHub error ({response.status_code})",
                status_code=response.status_code,
            )

        try:
            rows = response.json() if response.content else []
        except ValueError as exc:
            raise CollaboratorUnavailable("github", "GitHub returned a non-JSON response") from exc
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            raise CollaboratorUnavailable("github", "GitHub contributors response must be a list")
        names = [str(row.get("login") or row.get("name") or "unknown") for row in rows]
        commits = [int(row.get("contributions") or 0) for row in rows]
        shares = normalize_percentages(commits)
        contributors = [
            Contributor(username=name, commits=count, percentage=share)
            for name, count, share in zip(names, commits, shares)
        ]
        logger.info("repo_analyzed", repo_url=repo_url, contributors=len(contributors))
        return RepoAnalysis(repo_url=repo_url, contributors=contributors)
