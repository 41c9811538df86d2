"""Snapshot store: the cache of materialized repository trees.

One :class:`SnapshotStore` lives for the whole process.  It maps a
:class:`RepositoryKey` to a :class:`Snapshot` whose files sit in a private
temporary directory, and guarantees:

* at most one live snapshot, and at most one materialization in flight, per
  key (concurrent callers await the same memoized task);
* each snapshot is evicted after ``ttl_seconds``, but its directory is only
  deleted once every reader pinned through :meth:`SnapshotStore.open` is done;
* an evicted key behaves exactly as if it had never been fetched.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, AsyncIterator

from repo_snapshot.domain.entities import Snapshot
from repo_snapshot.domain.exceptions import (
    EmptySnapshotError,
    SnapshotNotFoundError,
    StorageError,
)
from repo_snapshot.domain.value_objects import RepositoryKey
from repo_snapshot.services.tree_walker import TreeWalker

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Keyed cache of repository snapshots with delayed eviction.

    Parameters
    ----------
    walker:
        Materializes a repository tree into a fresh root.
    ttl_seconds:
        Lifetime of a snapshot, counted from its creation.
    base_dir:
        Parent directory for snapshot roots; the system temp dir when ``None``.
    """

    def __init__(
        self,
        walker: TreeWalker,
        ttl_seconds: float = 600.0,
        base_dir: Path | None = None,
    ) -> None:
        self._walker = walker
        self._ttl = ttl_seconds
        self._base_dir = base_dir
        self._snapshots: dict[RepositoryKey, Snapshot] = {}
        self._pending: dict[RepositoryKey, asyncio.Task[Snapshot]] = {}
        self._deadlines: dict[RepositoryKey, asyncio.Task[None]] = {}
        self._draining: set[asyncio.Task[None]] = set()
        self._released = asyncio.Condition()

    # ── Public API ──────────────────────────────────────────────────────

    async def get_or_create(self, key: RepositoryKey, *, refresh: bool = False) -> Snapshot:
        """Return the live snapshot for ``key``, materializing it if needed.

        With ``refresh=True`` an existing snapshot is evicted first and a new
        one is built in a brand new root.  A refresh that arrives while a
        materialization is already running simply joins it.
        """
        if refresh and key not in self._pending:
            await self.evict(key)

        # No await between the lookups and registering the task, so two
        # callers can never both start a materialization for the same key.
        snapshot = self._snapshots.get(key)
        if snapshot is not None:
            logger.info("Reusing snapshot for %s at %s", key.full_name, snapshot.root)
            return snapshot

        task = self._pending.get(key)
        if task is None:
            task = asyncio.create_task(self._create(key), name=f"snapshot:{key.full_name}")
            task.add_done_callback(_consume_exception)
            self._pending[key] = task
        else:
            logger.info("Joining in-flight materialization of %s", key.full_name)

        # Cancelling one caller leaves the shared materialization running.
        return await asyncio.shield(task)

    def lookup(self, key: RepositoryKey) -> Snapshot | None:
        """Return the live snapshot for ``key`` without creating one."""
        return self._snapshots.get(key)

    def require(self, key: RepositoryKey) -> Snapshot:
        """Return the live snapshot for ``key`` or raise :class:`SnapshotNotFoundError`."""
        snapshot = self._snapshots.get(key)
        if snapshot is None:
            raise SnapshotNotFoundError("Files not fetched yet. Fetch via /files first.")
        return snapshot

    @asynccontextmanager
    async def open(self, key: RepositoryKey) -> AsyncIterator[Snapshot]:
        """Pin the snapshot for ``key`` so it cannot be deleted while in use."""
        snapshot = self.require(key)
        snapshot.readers += 1
        try:
            yield snapshot
        finally:
            snapshot.readers -= 1
            async with self._released:
                self._released.notify_all()

    def snapshots(self) -> list[Snapshot]:
        return list(self._snapshots.values())

    async def evict(self, key: RepositoryKey) -> bool:
        """Drop the snapshot for ``key`` and delete its root.

        Returns ``False`` when there was nothing to evict.
        """
        snapshot = self._snapshots.pop(key, None)
        deadline = self._deadlines.pop(key, None)
        if deadline is not None and deadline is not asyncio.current_task():
            deadline.cancel()
        if snapshot is None:
            return False

        cleanup = asyncio.create_task(self._discard(snapshot), name=f"evict:{key.full_name}")
        cleanup.add_done_callback(_consume_exception)
        cleanup.add_done_callback(self._draining.discard)
        self._draining.add(cleanup)

        # The entry is already gone, so the root must be deleted even if the
        # caller is cancelled while readers drain.
        await asyncio.shield(cleanup)
        return True

    async def close(self) -> None:
        """Cancel in-flight work and evict every snapshot."""
        for task in list(self._pending.values()):
            task.cancel()
        await asyncio.gather(*self._pending.values(), return_exceptions=True)
        for key in list(self._snapshots):
            await self.evict(key)
        await asyncio.gather(*self._draining, return_exceptions=True)

    # ── Materialization ─────────────────────────────────────────────────

    async def _create(self, key: RepositoryKey) -> Snapshot:
        try:
            root = await self._allocate_root(key)
            logger.info("Temporary directory for %s: %s", key.full_name, root)
            try:
                result = await self._walker.materialize(key.owner, key.repo, "", key.branch, root)
            except BaseException:
                await self._remove_root(root)
                raise

            if not result.files:
                await self._remove_root(root)
                raise EmptySnapshotError(
                    "No files found in repository",
                    failures=[str(failure) for failure in result.failures],
                )

            now = datetime.now(timezone.utc)
            snapshot = Snapshot(
                key=key,
                root=root,
                manifest=result.files,
                created_at=now,
                expires_at=now + timedelta(seconds=self._ttl),
            )
            self._snapshots[key] = snapshot
            self._deadlines[key] = asyncio.create_task(self._expire(snapshot))
            logger.info(
                "Snapshot of %s ready: %d file(s), expires at %s",
                key.full_name,
                len(snapshot.manifest),
                snapshot.expires_at.isoformat(),
            )
            return snapshot
        finally:
            self._pending.pop(key, None)

    async def _expire(self, snapshot: Snapshot) -> None:
        await asyncio.sleep(self._ttl)
        if self._snapshots.get(snapshot.key) is not snapshot:
            return
        try:
            await self.evict(snapshot.key)
        except Exception:
            logger.exception("Error cleaning up temp files for %s", snapshot.key.full_name)

    async def _discard(self, snapshot: Snapshot) -> None:
        if snapshot.readers:
            logger.info(
                "Waiting for %d reader(s) before deleting %s",
                snapshot.readers,
                snapshot.root,
            )
        async with self._released:
            await self._released.wait_for(lambda: snapshot.readers == 0)

        await self._remove_root(snapshot.root)
        logger.info("Cleaned up: %s (%s)", snapshot.root, snapshot.key.full_name)

    # ── Filesystem ──────────────────────────────────────────────────────

    async def _allocate_root(self, key: RepositoryKey) -> Path:
        def _mkdtemp() -> Path:
            if self._base_dir is not None:
                self._base_dir.mkdir(parents=True, exist_ok=True)
            prefix = f"{key.owner}-{key.repo}-"
            return Path(tempfile.mkdtemp(prefix=prefix, dir=self._base_dir)).resolve()

        try:
            return await asyncio.to_thread(_mkdtemp)
        except OSError as exc:
            raise StorageError(f"Could not create snapshot directory: {exc}") from exc

    @staticmethod
    async def _remove_root(root: Path) -> None:
        try:
            await asyncio.to_thread(shutil.rmtree, root)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise StorageError(f"Could not remove snapshot directory {root}: {exc}") from exc


def _consume_exception(task: asyncio.Task[Any]) -> None:
    # Callers see the exception through the shielded await; this only keeps
    # asyncio quiet when every caller has gone away.
    if not task.cancelled():
        task.exception()
