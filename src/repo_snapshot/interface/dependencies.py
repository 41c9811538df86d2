"""FastAPI dependency injection wiring.

Every collaborator is built once in :func:`startup` and handed out by the
``get_*`` providers below.
"""

from __future__ import annotations

import httpx

from repo_snapshot.domain.ports.content_generator import ContentGenerator
from repo_snapshot.domain.ports.remote_tree import RemoteTreeClient
from repo_snapshot.infrastructure.config import get_settings
from repo_snapshot.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_snapshot.infrastructure.openai_adapter import OpenAIAdapter
from repo_snapshot.services.access_layer import AccessLayer
from repo_snapshot.services.file_fetcher import FileFetcher
from repo_snapshot.services.list_branches import ListBranchesUseCase
from repo_snapshot.services.snapshot_store import SnapshotStore
from repo_snapshot.services.tree_walker import TreeWalker

_http_client: httpx.AsyncClient | None = None
_openai_adapter: OpenAIAdapter | None = None
_remote_client: RemoteTreeClient | None = None
_generator: ContentGenerator | None = None
_store: SnapshotStore | None = None


async def startup(
    remote_client: RemoteTreeClient | None = None,
    generator: ContentGenerator | None = None,
) -> None:
    """Initialise shared resources — called from the lifespan context manager.

    ``remote_client`` and ``generator`` replace the GitHub and OpenAI adapters
    when given.
    """
    global _http_client, _openai_adapter, _remote_client, _generator, _store  # noqa: PLW0603

    settings = get_settings()

    if remote_client is None:
        _http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds))
        token = settings.github_token.get_secret_value() if settings.github_token else None
        remote_client = GitHubRestAdapter(client=_http_client, token=token)

    if generator is None:
        _openai_adapter = OpenAIAdapter(
            api_key=settings.openai_api_key.get_secret_value(),
            model=settings.openai_model,
            max_tokens=settings.analysis_max_tokens,
            temperature=settings.analysis_temperature,
        )
        generator = _openai_adapter

    walker = TreeWalker(
        client=remote_client,
        fetcher=FileFetcher(remote_client),
        max_concurrency=settings.max_concurrency,
    )
    _remote_client = remote_client
    _generator = generator
    _store = SnapshotStore(
        walker=walker,
        ttl_seconds=settings.snapshot_ttl_seconds,
        base_dir=settings.snapshot_dir,
    )


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _openai_adapter, _remote_client, _generator, _store  # noqa: PLW0603

    if _store:
        await _store.close()
        _store = None
    if _http_client:
        await _http_client.aclose()
        _http_client = None
    if _openai_adapter:
        await _openai_adapter.close()
        _openai_adapter = None
    _remote_client = None
    _generator = None


def get_store() -> SnapshotStore:
    assert _store is not None, "startup() was not called"
    return _store


def get_access_layer() -> AccessLayer:
    assert _generator is not None, "startup() was not called"
    return AccessLayer(store=get_store(), generator=_generator)


def get_list_branches() -> ListBranchesUseCase:
    assert _remote_client is not None, "startup() was not called"
    return ListBranchesUseCase(client=_remote_client)
