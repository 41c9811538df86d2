"""Read and analyze files of a materialized snapshot."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath

from repo_snapshot.domain.entities import AnalysisResult, Snapshot
from repo_snapshot.domain.exceptions import (
    AnalysisBackendError,
    InvalidPathError,
    PathNotFoundError,
)
from repo_snapshot.domain.ports.content_generator import ContentGenerator
from repo_snapshot.domain.value_objects import RepositoryKey
from repo_snapshot.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class AccessLayer:
    """Serves file content out of live snapshots only.

    Every read pins its snapshot through :meth:`SnapshotStore.open`, so an
    eviction that fires mid-read waits for the read to finish.
    """

    def __init__(self, store: SnapshotStore, generator: ContentGenerator) -> None:
        self._store = store
        self._generator = generator

    async def read_file(self, key: RepositoryKey, relative_path: str) -> bytes:
        """Return the raw bytes of ``relative_path`` in the snapshot for ``key``."""
        async with self._store.open(key) as snapshot:
            return await asyncio.to_thread(_read_bytes, snapshot, relative_path)

    async def read_text(self, key: RepositoryKey, relative_path: str) -> str:
        data = await self.read_file(key, relative_path)
        return data.decode("utf-8", errors="replace")

    async def analyze(
        self, key: RepositoryKey, relative_path: str, prompt: str
    ) -> AnalysisResult:
        """Run ``prompt`` against one snapshot file and return the generated text."""
        content = await self.read_text(key, relative_path)
        try:
            analysis = await self._generator.generate(prompt, content)
        except AnalysisBackendError as exc:
            logger.error("Error analyzing %s in %s: %s", relative_path, key.full_name, exc)
            raise
        return AnalysisResult(path=relative_path, analysis=analysis)


def resolve_in_snapshot(snapshot: Snapshot, relative_path: str) -> Path:
    """Map a client-supplied relative path to a manifest file of ``snapshot``.

    Raises :class:`InvalidPathError` for anything that would leave the
    snapshot root and :class:`PathNotFoundError` for paths that were never
    materialized.  Touches the filesystem, so call it from a worker thread.
    """
    pure = PurePosixPath(relative_path)
    if pure.is_absolute() or ".." in pure.parts:
        raise InvalidPathError(f"Path escapes the snapshot root: '{relative_path}'.")

    target = snapshot.root.joinpath(*pure.parts).resolve()
    if not target.is_relative_to(snapshot.root):
        raise InvalidPathError(f"Path escapes the snapshot root: '{relative_path}'.")

    if target not in snapshot.paths:
        raise PathNotFoundError("File not found")
    return target


def _read_bytes(snapshot: Snapshot, relative_path: str) -> bytes:
    target = resolve_in_snapshot(snapshot, relative_path)
    try:
        return target.read_bytes()
    except FileNotFoundError as exc:
        raise PathNotFoundError("File not found") from exc
