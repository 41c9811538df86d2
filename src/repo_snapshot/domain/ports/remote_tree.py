"""Port: remote tree client — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from repo_snapshot.domain.entities import RemoteFileNode, RepoMetadata


class RemoteTreeClient(Protocol):
    """Abstract contract for read-only access to a hosted repository.

    Failures raise :class:`~repo_snapshot.domain.exceptions.RemoteQueryError`
    (or a subclass) so callers can tell "could not query" from "empty".
    """

    async def list_entries(
        self, owner: str, repo: str, path: str, ref: str
    ) -> list[RemoteFileNode]:
        """Return the entries found at ``path`` on ``ref``."""
        ...

    async def list_branches(self, owner: str, repo: str) -> list[str]:
        """Return all branch names of the repository."""
        ...

    async def fetch_content(self, download_url: str) -> bytes:
        """Return the raw bytes addressed by a content locator."""
        ...

    async def fetch_metadata(self, owner: str, repo: str) -> RepoMetadata:
        """Return high-level repository metadata."""
        ...
