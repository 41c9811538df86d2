"""Download one remote file into a snapshot root."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath

from repo_snapshot.domain.exceptions import FetchError
from repo_snapshot.domain.ports.remote_tree import RemoteTreeClient

logger = logging.getLogger(__name__)


class FileFetcher:
    """Writes remote file content to ``destination/relative_path``.

    Failures never propagate: :meth:`fetch` logs them and returns ``None`` so
    the caller can simply leave the entry out.
    """

    def __init__(self, client: RemoteTreeClient) -> None:
        self._client = client

    async def fetch(
        self, download_url: str, relative_path: str, destination: Path
    ) -> Path | None:
        """Download one file and return its local path, or ``None`` on failure."""
        target = _target_path(destination, relative_path)
        if target is None:
            logger.warning("Refusing to store %r outside %s", relative_path, destination)
            return None

        try:
            data = await self._client.fetch_content(download_url)
        except FetchError as exc:
            logger.warning("Error downloading file %s: %s", download_url, exc)
            return None

        try:
            await asyncio.to_thread(_write_bytes, target, data)
        except OSError as exc:
            logger.warning("Error writing %s: %s", target, exc)
            return None

        logger.debug("Stored: %s", target)
        return target


def _target_path(destination: Path, relative_path: str) -> Path | None:
    pure = PurePosixPath(relative_path)
    if pure.is_absolute() or ".." in pure.parts or not pure.parts:
        return None
    return destination.joinpath(*pure.parts)


def _write_bytes(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
