"""Tests for the FastAPI tool service."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tests._fixtures.workspace_builder import WorkspaceBuilder
from wikisync.context.manager import ContextManager
from wikisync.service import create_app


@pytest.fixture
def repo(workspace_builder: WorkspaceBuilder) -> Path:
    return workspace_builder.repo("api", {"README.md": "# api\n", "src/app.py": "app = 1\n"})


@pytest.fixture
def client(repo: Path) -> TestClient:
    manager = ContextManager(repo)
    return TestClient(create_app(lambda: manager))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_detect_endpoint(client: TestClient, repo: Path) -> None:
    response = client.post("/context/detect", json={})

    assert response.status_code == 200
    document = response.json()["document"]
    assert document["gitRoot"] == str(repo)
    assert document["suggestedLevel"] == "repository"
    assert document["hasRepoContext"] is False


def test_detect_endpoint_with_directory(
    client: TestClient, workspace_builder: WorkspaceBuilder
) -> None:
    other = workspace_builder.repo("web")

    response = client.post("/context/detect", json={"directory": str(other)})

    assert response.json()["document"]["gitRoot"] == str(other)


def test_repository_flow(client: TestClient, repo: Path) -> None:
    init = client.post("/repository/init", json={"wiki_space": "api-docs"})
    assert init.status_code == 200
    assert init.json()["document"]["wikiSpace"] == "api-docs"

    changed = client.post("/files/changed", json={"path": "README.md"})
    assert changed.json()["changed"] is True

    mapping = client.post("/files/mapping", json={"path": "README.md", "page_id": 12})
    assert mapping.status_code == 200
    assert mapping.json()["path"] == "README.md"
    assert mapping.json()["page_id"] == 12

    unchanged = client.post("/files/changed", json={"path": "README.md"})
    assert unchanged.json()["changed"] is False

    status = client.get("/repository/status")
    assert status.json()["document"]["quickContext"]["totalFiles"] == 1
    assert "- README.md -> Page 12" in status.json()["text"]

    context = client.get("/context")
    assert context.json()["mode"] == "repository"
    assert context.json()["data"]["recentFiles"][0]["pageId"] == 12


def test_mode_is_shared_between_requests(client: TestClient) -> None:
    response = client.post("/context/mode", json={"mode": "architectural"})
    assert response.json() == {"mode": "architectural"}

    context = client.get("/context")
    assert context.json()["mode"] == "architectural"
    assert context.json()["token_count"] == 150


def test_auto_mode_endpoint(client: TestClient) -> None:
    response = client.post("/context/auto-mode", json={"request": "map the system architecture"})
    assert response.json() == {"mode": "architectural"}


def test_invalid_mode_is_rejected(client: TestClient) -> None:
    assert client.post("/context/mode", json={"mode": "galaxy"}).status_code == 422
    assert client.get("/context", params={"mode": "galaxy"}).status_code == 422


def test_mapping_without_context_returns_404(client: TestClient) -> None:
    response = client.post("/files/mapping", json={"path": "README.md", "page_id": 1})

    assert response.status_code == 404
    assert response.json() == {"detail": "No repository context found"}


def test_workspace_flow(workspace_builder: WorkspaceBuilder) -> None:
    root = workspace_builder.repo(".")
    workspace_builder.repo("api")
    workspace_builder.repo("web")
    client = TestClient(create_app(lambda: ContextManager(root)))

    missing = client.post(
        "/links",
        json={
            "description": "web calls api",
            "source": {"repo": "web", "component": "client"},
            "target": {"repo": "api", "component": "router"},
            "relationship": "calls",
        },
    )
    assert missing.status_code == 404

    init = client.post("/workspace/init", json={"workspace_name": "platform"})
    assert init.status_code == 200
    assert sorted(init.json()["document"]["repositories"]) == ["api", "web", "ws"]

    link = client.post(
        "/links",
        json={
            "description": "web calls api",
            "source": {"repo": "web", "component": "client"},
            "target": {"repo": "api", "component": "router", "page_id": 4},
            "relationship": "calls",
        },
    )
    assert link.status_code == 200
    assert link.json()["document"]["to"] == {"repo": "api", "component": "router", "pageId": 4}

    status = client.get("/workspace/status")
    mappings = status.json()["document"]["systemArchitecture"]["crossRepoMappings"]
    assert [item["id"] for item in mappings] == [link.json()["document"]["id"]]


def test_workspace_init_with_explicit_repositories(
    client: TestClient, workspace_builder: WorkspaceBuilder
) -> None:
    response = client.post(
        "/workspace/init",
        json={
            "workspace_root": str(workspace_builder.root),
            "repositories": [{"name": "core", "path": "/src/core", "wiki_space": "core"}],
        },
    )

    assert response.status_code == 200
    assert list(response.json()["document"]["repositories"]) == ["core"]


class _StubWiki:
    def __init__(self) -> None:
        self.published: list[str] = []

    def publish_file(self, file_path: Path, wiki_path: str) -> int:
        self.published.append(wiki_path)
        return 70 + len(self.published)


def test_sync_endpoint_with_page_id(client: TestClient) -> None:
    client.post("/repository/init", json={"wiki_space": "api-docs"})

    first = client.post("/files/sync", json={"path": "src/app.py", "page_id": 9})
    second = client.post("/files/sync", json={"path": "src/app.py", "page_id": 9})

    assert first.status_code == 200
    assert first.json()["skipped"] is False
    assert first.json()["wiki_path"] == "/api-docs/src-app.py"
    assert first.json()["page_id"] == 9
    assert second.json()["skipped"] is True
    assert "has not changed" in second.json()["text"]


def test_sync_endpoint_without_wiki_or_page_id_returns_400(client: TestClient) -> None:
    client.post("/repository/init", json={})

    response = client.post("/files/sync", json={"path": "README.md"})

    assert response.status_code == 400
    assert response.json() == {"detail": "No wiki service configured; supply page_id"}


def test_sync_endpoint_uses_injected_wiki(repo: Path) -> None:
    wiki = _StubWiki()
    manager = ContextManager(repo)
    client = TestClient(create_app(lambda: manager, wiki_factory=lambda: wiki))
    client.post("/repository/init", json={"wiki_space": "api"})

    response = client.post("/files/sync", json={"path": "README.md", "auto_path": False})

    assert response.json()["page_id"] == 71
    assert wiki.published == ["/docs/README"]
    assert manager.get_file_mapping("README.md").page_id == 71
