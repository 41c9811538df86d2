"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from repo_snapshot.domain.ports.content_generator import ContentGenerator
from repo_snapshot.domain.ports.remote_tree import RemoteTreeClient
from repo_snapshot.interface.dependencies import shutdown, startup
from repo_snapshot.interface.error_handlers import register_error_handlers
from repo_snapshot.interface.routes import router


def create_app(
    remote_client: RemoteTreeClient | None = None,
    generator: ContentGenerator | None = None,
) -> FastAPI:
    """Build and wire the FastAPI application."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Manage startup / shutdown of shared resources."""
        await startup(remote_client=remote_client, generator=generator)
        yield
        await shutdown()

    app = FastAPI(
        title="GitHub Repo Snapshot",
        version="1.0.0",
        description=(
            "Snapshots the file tree of a GitHub repository branch into a "
            "short-lived local cache, then serves and analyzes its files."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.include_router(router)

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def index() -> str:
        return "Welcome to the GitHub Repo Snapshot service"

    # ── Health check (simple liveness probe) ────────────────────────────

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
