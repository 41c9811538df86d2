"""List-branches use case."""

from __future__ import annotations

import logging

from repo_snapshot.domain.exceptions import RemoteQueryError
from repo_snapshot.domain.ports.remote_tree import RemoteTreeClient
from repo_snapshot.domain.value_objects import validate_name

logger = logging.getLogger(__name__)


class ListBranchesUseCase:
    """Branch lookups that degrade to a fallback instead of failing."""

    def __init__(self, client: RemoteTreeClient) -> None:
        self._client = client

    async def execute(self, owner: str, repo: str) -> list[str]:
        """Return the branch names of a repository, or ``[]`` if they cannot be listed."""
        owner = validate_name("owner", owner)
        repo = validate_name("repository", repo)
        try:
            return await self._client.list_branches(owner, repo)
        except RemoteQueryError as exc:
            logger.warning("Error fetching branches for %s/%s: %s", owner, repo, exc)
            return []

    async def default_branch(self, owner: str, repo: str, fallback: str) -> str:
        """Return the repository's default branch, or ``fallback`` if the lookup fails."""
        try:
            metadata = await self._client.fetch_metadata(
                validate_name("owner", owner), validate_name("repository", repo)
            )
        except RemoteQueryError as exc:
            logger.warning("Using branch %r for %s/%s: %s", fallback, owner, repo, exc)
            return fallback
        return metadata.default_branch
