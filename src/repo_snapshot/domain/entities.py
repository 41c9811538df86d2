"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from repo_snapshot.domain.value_objects import RepositoryKey


class EntryKind(str, Enum):
    """Kind of an entry in a remote directory listing."""

    FILE = "file"
    DIR = "dir"
    SUBMODULE = "submodule"
    SYMLINK = "symlink"


@dataclass(frozen=True, slots=True)
class RemoteFileNode:
    """A single entry from a remote directory listing."""

    path: str
    kind: EntryKind
    download_url: str | None = None

    @property
    def is_downloadable(self) -> bool:
        return self.kind is EntryKind.FILE and bool(self.download_url)


@dataclass(frozen=True, slots=True)
class RepoMetadata:
    """High-level metadata about a GitHub repository."""

    owner: str
    repo: str
    default_branch: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class WalkFailure:
    """One entry the walker had to leave out of the manifest."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path or '/'}: {self.reason}"


@dataclass(slots=True)
class WalkResult:
    """Outcome of one materialization run."""

    files: list[Path] = field(default_factory=list)
    failures: list[WalkFailure] = field(default_factory=list)


@dataclass(slots=True, eq=False)
class Snapshot:
    """A materialized repository tree living under ``root``.

    The snapshot owns ``root`` exclusively. ``readers`` counts the reads and
    analyses currently pinning it; the store never deletes ``root`` while it
    is above zero.
    """

    key: RepositoryKey
    root: Path
    manifest: list[Path]
    created_at: datetime
    expires_at: datetime
    paths: frozenset[Path] = field(init=False)
    readers: int = 0

    def __post_init__(self) -> None:
        self.paths = frozenset(self.manifest)

    def relative_paths(self) -> list[str]:
        """Manifest entries as slash-separated paths relative to ``root``."""
        return sorted(p.relative_to(self.root).as_posix() for p in self.manifest)


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Generated analysis for a single snapshot file."""

    path: str
    analysis: str
