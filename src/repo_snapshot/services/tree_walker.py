"""Materialize a remote repository tree into a local directory.

The traversal is a queue of pending work items (directories to list, files to
download) drained by a fixed number of workers, so a wide or deep repository
never has more than ``max_concurrency`` requests in flight.  A failure on one
entry is recorded and the entry is left out; the rest of the tree carries on.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from repo_snapshot.domain.entities import EntryKind, RemoteFileNode, WalkFailure, WalkResult
from repo_snapshot.domain.exceptions import RemoteQueryError
from repo_snapshot.domain.ports.remote_tree import RemoteTreeClient
from repo_snapshot.services.file_fetcher import FileFetcher

logger = logging.getLogger(__name__)


class TreeWalker:
    """Recursively lists a remote tree and downloads every file it contains.

    Parameters
    ----------
    client:
        Adapter used to list directory entries.
    fetcher:
        Downloads individual files into the destination root.
    max_concurrency:
        Number of workers, i.e. the bound on simultaneous listings/downloads.
    """

    def __init__(
        self,
        client: RemoteTreeClient,
        fetcher: FileFetcher,
        max_concurrency: int = 8,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._client = client
        self._fetcher = fetcher
        self._max_concurrency = max_concurrency

    async def materialize(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str,
        destination: Path,
    ) -> WalkResult:
        """Mirror the tree below ``path`` on ``ref`` into ``destination``."""
        result = WalkResult()
        queue: asyncio.Queue[RemoteFileNode] = asyncio.Queue()
        queue.put_nowait(RemoteFileNode(path=path, kind=EntryKind.DIR))

        async def _worker() -> None:
            while True:
                node = await queue.get()
                try:
                    await self._process(owner, repo, ref, destination, node, queue, result)
                except Exception as exc:
                    logger.exception("Unexpected error processing %s", node.path)
                    result.failures.append(WalkFailure(node.path, str(exc)))
                finally:
                    queue.task_done()

        workers = [asyncio.create_task(_worker()) for _ in range(self._max_concurrency)]
        try:
            await queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        logger.info(
            "Materialized %s/%s@%s: %d file(s), %d failure(s)",
            owner,
            repo,
            ref,
            len(result.files),
            len(result.failures),
        )
        return result

    async def _process(
        self,
        owner: str,
        repo: str,
        ref: str,
        destination: Path,
        node: RemoteFileNode,
        queue: asyncio.Queue[RemoteFileNode],
        result: WalkResult,
    ) -> None:
        if node.kind is EntryKind.DIR:
            try:
                entries = await self._client.list_entries(owner, repo, node.path, ref)
            except RemoteQueryError as exc:
                logger.warning("Error listing %s/%s:%s: %s", owner, repo, node.path or "/", exc)
                result.failures.append(WalkFailure(node.path, str(exc)))
                return
            for entry in entries:
                if entry.kind is EntryKind.DIR or entry.is_downloadable:
                    queue.put_nowait(entry)
                else:
                    logger.debug("Skipping %s (%s)", entry.path, entry.kind.value)
            return

        if not node.is_downloadable or node.download_url is None:
            logger.debug("Skipping %s (%s)", node.path, node.kind.value)
            return

        stored = await self._fetcher.fetch(node.download_url, node.path, destination)
        if stored is None:
            result.failures.append(WalkFailure(node.path, "download failed"))
        else:
            result.files.append(stored)
