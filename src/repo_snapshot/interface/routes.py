"""API routes — thin controllers that delegate to the services."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from repo_snapshot.domain.exceptions import SnapshotNotFoundError
from repo_snapshot.domain.value_objects import RepositoryKey
from repo_snapshot.infrastructure.config import Settings, get_settings
from repo_snapshot.interface.dependencies import (
    get_access_layer,
    get_list_branches,
    get_store,
)
from repo_snapshot.interface.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    BranchesResponse,
    SnapshotResponse,
)
from repo_snapshot.services.access_layer import AccessLayer
from repo_snapshot.services.list_branches import ListBranchesUseCase
from repo_snapshot.services.snapshot_store import SnapshotStore

router = APIRouter()


@router.get("/branches/{owner}/{repo}", response_model=BranchesResponse)
async def list_branches(
    owner: str,
    repo: str,
    use_case: ListBranchesUseCase = Depends(get_list_branches),
) -> BranchesResponse:
    """List the branches of a repository."""
    branches = await use_case.execute(owner, repo)
    return BranchesResponse(branches=branches or "No branches found")


@router.get(
    "/files/{owner}/{repo}",
    response_model=SnapshotResponse,
    responses={404: {"description": "No files found in repository"}},
)
@router.get(
    "/files/{owner}/{repo}/{branch:path}",
    response_model=SnapshotResponse,
    responses={404: {"description": "No files found in repository"}},
)
async def fetch_files(
    owner: str,
    repo: str,
    branch: str | None = None,
    refresh: bool = False,
    store: SnapshotStore = Depends(get_store),
    branches: ListBranchesUseCase = Depends(get_list_branches),
    settings: Settings = Depends(get_settings),
) -> SnapshotResponse:
    """Materialize (or reuse) the snapshot of a repository branch.

    Without a branch, the repository's default branch is used.
    """
    if not branch:
        branch = await branches.default_branch(owner, repo, settings.default_branch)
    key = RepositoryKey.from_parts(owner, repo, branch)
    snapshot = await store.get_or_create(key, refresh=refresh)
    return SnapshotResponse.from_snapshot(snapshot)


@router.delete("/files/{owner}/{repo}/{branch:path}", status_code=204)
async def evict_files(
    owner: str,
    repo: str,
    branch: str,
    store: SnapshotStore = Depends(get_store),
) -> Response:
    """Drop a snapshot before its deadline."""
    key = RepositoryKey.from_parts(owner, repo, branch)
    if not await store.evict(key):
        raise SnapshotNotFoundError(f"No snapshot for {key.full_name}.")
    return Response(status_code=204)


@router.get(
    "/file-content/{owner}/{repo}/{branch}/{file_path:path}",
    response_class=Response,
    responses={
        400: {"description": "Path escapes the snapshot"},
        404: {"description": "Snapshot or file not found"},
    },
)
async def file_content(
    owner: str,
    repo: str,
    branch: str,
    file_path: str,
    access: AccessLayer = Depends(get_access_layer),
) -> Response:
    """Return the raw content of one snapshot file."""
    key = RepositoryKey.from_parts(owner, repo, branch)
    data = await access.read_file(key, file_path)
    return Response(content=data, media_type="text/plain; charset=utf-8")


@router.post(
    "/analyze/{owner}/{repo}/{branch}/{file_path:path}",
    response_model=AnalyzeResponse,
    responses={
        400: {"description": "Path escapes the snapshot"},
        404: {"description": "Snapshot or file not found"},
        502: {"description": "Analysis backend error"},
    },
)
async def analyze(
    owner: str,
    repo: str,
    branch: str,
    file_path: str,
    body: AnalyzeRequest,
    access: AccessLayer = Depends(get_access_layer),
) -> AnalyzeResponse:
    """Analyze one snapshot file with the given prompt."""
    key = RepositoryKey.from_parts(owner, repo, branch)
    result = await access.analyze(key, file_path, body.prompt)
    return AnalyzeResponse(file=result.path, analysis=result.analysis)
