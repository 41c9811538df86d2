"""Domain exception hierarchy.

Each exception maps to a specific HTTP status code at the interface layer.
Inner layers raise these; the outermost error-handler translates them.
"""

from __future__ import annotations


class RepoSnapshotError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidRepositoryKeyError(RepoSnapshotError):
    """The owner, repository or branch name is not acceptable."""


# ── Remote repository errors ────────────────────────────────────────────────


class RemoteQueryError(RepoSnapshotError):
    """A listing or branch lookup against the remote host could not complete."""


class RepositoryNotFoundError(RemoteQueryError):
    """The repository or path does not exist or is not accessible (404)."""


class RepositoryAccessDeniedError(RemoteQueryError):
    """Access to the repository was denied (403)."""


class GitHubRateLimitError(RemoteQueryError):
    """GitHub API rate limit exceeded (429 / 403 with rate-limit header)."""


class FetchError(RepoSnapshotError):
    """The raw content of a single file could not be retrieved."""


# ── Snapshot errors ─────────────────────────────────────────────────────────


class EmptySnapshotError(RepoSnapshotError):
    """Materialization finished without storing a single file."""

    def __init__(self, message: str, failures: list[str] | None = None) -> None:
        super().__init__(message)
        self.failures = failures or []


class SnapshotNotFoundError(RepoSnapshotError):
    """No live snapshot exists for the requested repository key."""


class PathNotFoundError(RepoSnapshotError):
    """The requested file is not part of the snapshot."""


class InvalidPathError(RepoSnapshotError):
    """The requested path resolves outside the snapshot root."""


class StorageError(RepoSnapshotError):
    """The local snapshot area could not be created, written or removed."""


# ── Analysis errors ─────────────────────────────────────────────────────────


class AnalysisBackendError(RepoSnapshotError):
    """Any error originating from the content-generation provider."""
