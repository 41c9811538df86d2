"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from repo_snapshot.domain.exceptions import InvalidRepositoryKeyError

_NAME_RE = re.compile(r"^[A-Za-z0-9\-_.]+$")


def validate_name(label: str, value: str) -> str:
    """Return ``value`` stripped, or raise if it is not a valid GitHub owner/repo name."""
    value = value.strip()
    if not _NAME_RE.match(value) or value in {".", ".."}:
        raise InvalidRepositoryKeyError(f"Invalid {label} name: '{value}'.")
    return value


@dataclass(frozen=True, slots=True)
class RepositoryKey:
    """Identity of one snapshot: ``(owner, repo, branch)``.

    Comparison is case-sensitive, so ``Acme/widgets@main`` and
    ``acme/widgets@main`` are two distinct snapshots.
    """

    owner: str
    repo: str
    branch: str

    @classmethod
    def from_parts(cls, owner: str, repo: str, branch: str) -> RepositoryKey:
        """Validate raw path parameters and build a key."""
        branch = branch.strip()
        if not branch or branch.startswith("/") or ".." in branch.split("/"):
            raise InvalidRepositoryKeyError(f"Invalid branch name: '{branch}'.")
        return cls(
            owner=validate_name("owner", owner),
            repo=validate_name("repository", repo),
            branch=branch,
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}@{self.branch}"
