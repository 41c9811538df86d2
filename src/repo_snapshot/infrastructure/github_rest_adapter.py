"""GitHub REST API adapter — implements the RemoteTreeClient port."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from repo_snapshot.domain.entities import EntryKind, RemoteFileNode, RepoMetadata
from repo_snapshot.domain.exceptions import (
    FetchError,
    GitHubRateLimitError,
    RemoteQueryError,
    RepositoryAccessDeniedError,
    RepositoryNotFoundError,
)

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"
_USER_AGENT = "repo-snapshot/1.0"


class GitHubRestAdapter:
    """Concrete RemoteTreeClient backed by the GitHub v3 REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        api_base: str = _GITHUB_API,
    ) -> None:
        self._client = client
        self._api_base = api_base.rstrip("/")
        self._api_headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": _USER_AGENT,
        }
        if token:
            self._api_headers["Authorization"] = f"Bearer {token}"

    async def fetch_metadata(self, owner: str, repo: str) -> RepoMetadata:
        """GET /repos/{owner}/{repo} → RepoMetadata."""
        resp = await self._api_get(f"/repos/{owner}/{repo}")
        data = resp.json()
        return RepoMetadata(
            owner=owner,
            repo=repo,
            default_branch=data.get("default_branch", "main"),
            description=data.get("description"),
        )

    async def list_entries(
        self, owner: str, repo: str, path: str, ref: str
    ) -> list[RemoteFileNode]:
        """GET /repos/{owner}/{repo}/contents/{path}?ref={ref} → [RemoteFileNode]."""
        endpoint = f"/repos/{owner}/{repo}/contents/{quote(path.strip('/'), safe='/')}"
        resp = await self._api_get(endpoint, params={"ref": ref})
        data = resp.json()

        # A file path yields a single object rather than a listing.
        items: list[dict[str, Any]] = data if isinstance(data, list) else [data]
        return [node for node in map(_to_node, items) if node is not None]

    async def list_branches(self, owner: str, repo: str) -> list[str]:
        """GET /repos/{owner}/{repo}/branches, following pagination."""
        names: list[str] = []
        url: str | None = f"{self._api_base}/repos/{owner}/{repo}/branches"
        params: dict[str, str] | None = {"per_page": "100"}
        while url:
            resp = await self._get(url, params=params)
            names.extend(item["name"] for item in resp.json())
            url = resp.links.get("next", {}).get("url")
            # The "next" link already carries the query string.
            params = None
        return names

    async def fetch_content(self, download_url: str) -> bytes:
        """Fetch raw file bytes from the entry's ``download_url``."""
        try:
            resp = await self._client.get(
                download_url,
                headers={"User-Agent": _USER_AGENT},
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            raise FetchError(f"Network error fetching {download_url}: {exc}") from exc

        if resp.status_code == 200:
            return resp.content

        raise FetchError(f"HTTP {resp.status_code} fetching {download_url}")

    async def _api_get(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self._get(f"{self._api_base}{endpoint}", params=params)

    async def _get(
        self,
        url: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform a GitHub API GET request with error translation."""
        try:
            resp = await self._client.get(
                url, headers=self._api_headers, params=params
            )
        except httpx.HTTPError as exc:
            raise RemoteQueryError(f"Network error fetching {url}: {exc}") from exc

        if resp.status_code == 200:
            return resp

        if resp.status_code == 404:
            raise RepositoryNotFoundError(f"Not found on GitHub: {url}")

        if resp.status_code == 403:
            remaining = resp.headers.get("x-ratelimit-remaining", "")
            if remaining == "0":
                reset_raw = resp.headers.get("x-ratelimit-reset", "")
                try:
                    reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
                        "%Y-%m-%d %H:%M:%S UTC"
                    )
                except (ValueError, OSError):
                    reset_str = reset_raw or "unknown"
                raise GitHubRateLimitError(
                    f"GitHub API rate limit exceeded. Resets at {reset_str}. "
                    "Set the GITHUB_TOKEN environment variable to increase the limit."
                )
            raise RepositoryAccessDeniedError(
                "Access denied. The repository may be private."
            )

        if resp.status_code == 429:
            raise GitHubRateLimitError("GitHub API rate limit exceeded (HTTP 429).")

        raise RemoteQueryError(f"GitHub API returned HTTP {resp.status_code} for {url}")


def _to_node(item: dict[str, Any]) -> RemoteFileNode | None:
    try:
        kind = EntryKind(item.get("type", ""))
    except ValueError:
        logger.debug("Ignoring entry %s of unknown type %r", item.get("path"), item.get("type"))
        return None
    return RemoteFileNode(
        path=item["path"],
        kind=kind,
        download_url=item.get("download_url"),
    )
