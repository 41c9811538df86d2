"""Shared fakes and fixtures."""

from __future__ import annotations

import asyncio
import posixpath
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import pytest

from repo_snapshot.domain.entities import EntryKind, RemoteFileNode, RepoMetadata
from repo_snapshot.domain.exceptions import (
    AnalysisBackendError,
    FetchError,
    RemoteQueryError,
    RepositoryNotFoundError,
)
from repo_snapshot.domain.value_objects import RepositoryKey
from repo_snapshot.services.file_fetcher import FileFetcher
from repo_snapshot.services.snapshot_store import SnapshotStore
from repo_snapshot.services.tree_walker import TreeWalker

RAW_BASE = "https://raw.example.test/"

WIDGETS_KEY = RepositoryKey("acme", "widgets", "main")


class FakeRemoteTree:
    """In-memory ``RemoteTreeClient`` built from a ``{path: bytes}`` mapping."""

    def __init__(
        self,
        files: dict[str, bytes],
        *,
        submodules: tuple[str, ...] = (),
        broken_files: tuple[str, ...] = (),
        broken_dirs: tuple[str, ...] = (),
        branches: list[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.files = dict(files)
        self.broken_files = set(broken_files)
        self.broken_dirs = set(broken_dirs)
        self.branches = branches
        self.delay = delay
        self.list_calls: list[str] = []
        self.fetch_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.listings: dict[str, list[RemoteFileNode]] = {"": []}
        for path in self.files:
            self._add(path, EntryKind.FILE)
        for path in submodules:
            self._add(path, EntryKind.SUBMODULE)

    def _add(self, path: str, kind: EntryKind) -> None:
        parts = path.split("/")
        for depth in range(1, len(parts) + 1):
            child = "/".join(parts[:depth])
            parent = posixpath.dirname(child)
            if depth < len(parts):
                node = RemoteFileNode(child, EntryKind.DIR)
            elif kind is EntryKind.FILE:
                node = RemoteFileNode(child, kind, RAW_BASE + child)
            else:
                node = RemoteFileNode(child, kind)
            listing = self.listings.setdefault(parent, [])
            if node not in listing:
                listing.append(node)

    @asynccontextmanager
    async def _request(self) -> AsyncIterator[None]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            yield
        finally:
            self.in_flight -= 1

    async def list_entries(
        self, owner: str, repo: str, path: str, ref: str
    ) -> list[RemoteFileNode]:
        self.list_calls.append(path)
        async with self._request():
            if path in self.broken_dirs:
                raise RemoteQueryError(f"listing {path} failed")
            if path in self.files:
                return [RemoteFileNode(path, EntryKind.FILE, RAW_BASE + path)]
            if path not in self.listings:
                raise RepositoryNotFoundError(f"Not found: {path}")
            return list(self.listings[path])

    async def fetch_content(self, download_url: str) -> bytes:
        self.fetch_calls.append(download_url)
        async with self._request():
            path = download_url.removeprefix(RAW_BASE)
            if path in self.broken_files:
                raise FetchError(f"HTTP 500 fetching {download_url}")
            return self.files[path]

    async def list_branches(self, owner: str, repo: str) -> list[str]:
        if self.branches is None:
            raise RepositoryNotFoundError(f"Not found: {owner}/{repo}")
        return list(self.branches)

    async def fetch_metadata(self, owner: str, repo: str) -> RepoMetadata:
        if self.branches is None:
            raise RepositoryNotFoundError(f"Not found: {owner}/{repo}")
        return RepoMetadata(owner=owner, repo=repo, default_branch="main")


class FakeGenerator:
    """In-memory ``ContentGenerator`` that records its calls."""

    def __init__(self, reply: str = "Looks fine.", fail: bool = False) -> None:
        self.reply = reply
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    async def generate(self, prompt: str, file_content: str) -> str:
        self.calls.append((prompt, file_content))
        if self.fail:
            raise AnalysisBackendError("Analysis request failed: boom")
        return self.reply


def widgets_tree(**kwargs: object) -> FakeRemoteTree:
    """``acme/widgets``: two files and one submodule."""
    return FakeRemoteTree(
        {"a.txt": b"alpha\n", "src/b.txt": b"bravo\n"},
        submodules=("src/.git",),
        branches=["main", "dev"],
        **kwargs,  # type: ignore[arg-type]
    )


def make_store(
    remote: FakeRemoteTree,
    base_dir: Path,
    *,
    ttl_seconds: float = 60.0,
    max_concurrency: int = 4,
) -> SnapshotStore:
    walker = TreeWalker(remote, FileFetcher(remote), max_concurrency=max_concurrency)
    return SnapshotStore(walker, ttl_seconds=ttl_seconds, base_dir=base_dir)


@pytest.fixture
def remote() -> FakeRemoteTree:
    return widgets_tree()


@pytest.fixture
def snapshot_dir(tmp_path: Path) -> Path:
    return tmp_path / "snapshots"


@pytest.fixture
async def store(remote: FakeRemoteTree, snapshot_dir: Path) -> AsyncIterator[SnapshotStore]:
    store = make_store(remote, snapshot_dir)
    yield store
    await store.close()
