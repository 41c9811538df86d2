"""End-to-end tests of the HTTP surface with in-memory collaborators."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import FakeGenerator, FakeRemoteTree, widgets_tree
from repo_snapshot.infrastructure.config import get_settings
from repo_snapshot.interface.app import create_app


@pytest.fixture
def settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("SNAPSHOT_DIR", str(tmp_path / "snapshots"))
    monkeypatch.setenv("SNAPSHOT_TTL_SECONDS", "60")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _client(remote: FakeRemoteTree, generator: FakeGenerator | None = None) -> TestClient:
    app = create_app(remote_client=remote, generator=generator or FakeGenerator())
    return TestClient(app)


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator(reply="It prints alpha.")


@pytest.fixture
def client(settings_env: None, generator: FakeGenerator) -> Iterator[TestClient]:
    with _client(widgets_tree(), generator) as client:
        yield client


def test_index_and_health(client: TestClient) -> None:
    assert client.get("/").status_code == 200
    assert client.get("/health").json() == {"status": "ok"}


class TestBranches:
    def test_lists_branches(self, client: TestClient) -> None:
        response = client.get("/branches/acme/widgets")

        assert response.status_code == 200
        assert response.json() == {"branches": ["main", "dev"]}

    def test_unknown_repository(self, settings_env: None) -> None:
        with _client(FakeRemoteTree({}, branches=None)) as client:
            response = client.get("/branches/acme/nope")

        assert response.status_code == 200
        assert response.json() == {"branches": "No branches found"}


class TestFiles:
    def test_default_branch_snapshot(self, client: TestClient) -> None:
        response = client.get("/files/acme/widgets")

        assert response.status_code == 200
        body = response.json()
        assert len(body["stored_files"]) == 2
        assert body["stored_files"][0].endswith("a.txt")
        assert body["stored_files"][1].endswith("src/b.txt")
        assert all(path.startswith(body["root"]) for path in body["stored_files"])

    def test_repeated_fetch_reuses_root(self, client: TestClient) -> None:
        first = client.get("/files/acme/widgets/main").json()
        second = client.get("/files/acme/widgets/main").json()
        refreshed = client.get("/files/acme/widgets/main", params={"refresh": "true"}).json()

        assert first["root"] == second["root"]
        assert refreshed["root"] != first["root"]
        assert not Path(first["root"]).exists()

    def test_empty_repository(self, settings_env: None) -> None:
        with _client(FakeRemoteTree({})) as client:
            response = client.get("/files/acme/empty/main")

        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "No files found in repository"}

    def test_invalid_owner(self, client: TestClient) -> None:
        response = client.get("/files/bad$owner/widgets/main")

        assert response.status_code == 422
        assert response.json()["status"] == "error"

    def test_evict(self, client: TestClient) -> None:
        root = client.get("/files/acme/widgets/main").json()["root"]

        assert client.delete("/files/acme/widgets/main").status_code == 204
        assert not Path(root).exists()
        assert client.delete("/files/acme/widgets/main").status_code == 404


class TestFileContent:
    def test_requires_fetch_first(self, client: TestClient) -> None:
        response = client.get("/file-content/acme/widgets/main/a.txt")

        assert response.status_code == 404
        assert response.json()["message"] == "Files not fetched yet. Fetch via /files first."

    def test_reads_file(self, client: TestClient) -> None:
        client.get("/files/acme/widgets/main")

        response = client.get("/file-content/acme/widgets/main/src/b.txt")

        assert response.status_code == 200
        assert response.text == "bravo\n"
        assert response.headers["content-type"].startswith("text/plain")

    def test_skipped_submodule_is_not_found(self, client: TestClient) -> None:
        client.get("/files/acme/widgets/main")

        response = client.get("/file-content/acme/widgets/main/src/.git")

        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "File not found"}


class TestAnalyze:
    def test_analyzes_file(self, client: TestClient, generator: FakeGenerator) -> None:
        client.get("/files/acme/widgets/main")

        response = client.post(
            "/analyze/acme/widgets/main/a.txt", json={"prompt": "What does this do?"}
        )

        assert response.status_code == 200
        assert response.json() == {"file": "a.txt", "analysis": "It prints alpha."}
        assert generator.calls == [("What does this do?", "alpha\n")]

    def test_backend_failure(self, settings_env: None) -> None:
        with _client(widgets_tree(), FakeGenerator(fail=True)) as client:
            client.get("/files/acme/widgets/main")
            response = client.post("/analyze/acme/widgets/main/a.txt", json={"prompt": "Explain"})

        assert response.status_code == 502
        assert response.json()["status"] == "error"

    def test_blank_prompt(self, client: TestClient) -> None:
        client.get("/files/acme/widgets/main")

        response = client.post("/analyze/acme/widgets/main/a.txt", json={"prompt": "  "})

        assert response.status_code == 422
