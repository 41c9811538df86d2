"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

from repo_snapshot.domain.entities import Snapshot


class BranchesResponse(BaseModel):
    """Response from ``GET /branches/{owner}/{repo}``."""

    branches: list[str] | str


class SnapshotResponse(BaseModel):
    """Response from ``GET /files/{owner}/{repo}/{branch}``."""

    root: str
    stored_files: list[str]
    expires_at: datetime

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> SnapshotResponse:
        return cls(
            root=str(snapshot.root),
            stored_files=sorted(str(path) for path in snapshot.manifest),
            expires_at=snapshot.expires_at,
        )


class AnalyzeRequest(BaseModel):
    """Request body for ``POST /analyze/{owner}/{repo}/{branch}/{path}``."""

    prompt: str

    @field_validator("prompt")
    @classmethod
    def _must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "prompt must not be empty."
            raise ValueError(msg)
        return v


class AnalyzeResponse(BaseModel):
    """Successful response from ``POST /analyze/...``."""

    file: str
    analysis: str


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
