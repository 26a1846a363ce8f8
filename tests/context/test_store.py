"""Tests for the context document store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from wikisync.context.store import ContextStore, link_to_dict
from wikisync.models import (
    REPOSITORY_STATE_FILENAME,
    WORKSPACE_STATE_FILENAME,
    ArchitecturalLink,
    FileMapping,
    KeyPage,
    LinkEndpoint,
    NetworkDiagram,
    QuickContext,
    RepositoryContext,
    RepositoryEntry,
    SystemArchitecture,
    WorkspaceContext,
)


def _repository_context(root: Path) -> RepositoryContext:
    return RepositoryContext(
        repo_root=str(root),
        repo_name="api",
        wiki_space="api-docs",
        last_sync="2024-05-01T10:00:00.000Z",
        parent_workspace="platform",
        quick_context=QuickContext(
            total_files=2,
            total_pages=3,
            recent_files={
                "src/app.py": FileMapping(page_id=7, hash="abc", last_updated="2024-05-01T10:00:00.000Z"),
                "docs/guide.md": FileMapping(page_id=8, hash=""),
            },
            key_pages=[KeyPage(path="/api/overview", page_id=1, importance="high")],
        ),
    )


def _workspace_context(root: Path) -> WorkspaceContext:
    return WorkspaceContext(
        workspace_name="platform",
        workspace_root=str(root),
        last_sync="2024-05-01T10:00:00.000Z",
        repositories={
            "api": RepositoryEntry(
                path=str(root / "api"),
                wiki_space="api",
                key_pages=[KeyPage(path="/api/home", page_id=3)],
            ),
            "web": RepositoryEntry(path=str(root / "web"), wiki_space="web"),
        },
        system_architecture=SystemArchitecture(
            wiki_space="platform-architecture",
            network_diagrams=[NetworkDiagram(path="/platform/network", page_id=42)],
            cross_repo_mappings=[
                ArchitecturalLink(
                    id="0b6c1c1e-7d0c-4c55-9b59-5d0c8f7f8a11",
                    description="web calls the api",
                    source=LinkEndpoint(repo="web", component="client"),
                    target=LinkEndpoint(repo="api", component="router", page_id=9),
                    relationship="calls",
                    wiki_page_id=12,
                )
            ],
        ),
    )


def test_repository_context_round_trip(tmp_path: Path) -> None:
    store = ContextStore()
    context = _repository_context(tmp_path)

    path = store.save_repository_context(tmp_path, context)
    loaded = store.load_repository_context(tmp_path)

    assert path == tmp_path / REPOSITORY_STATE_FILENAME
    assert loaded == context
    assert list(loaded.quick_context.recent_files) == ["src/app.py", "docs/guide.md"]


def test_workspace_context_round_trip(tmp_path: Path) -> None:
    store = ContextStore()
    context = _workspace_context(tmp_path)

    path = store.save_workspace_context(tmp_path, context)
    loaded = store.load_workspace_context(tmp_path)

    assert path == tmp_path / WORKSPACE_STATE_FILENAME
    assert loaded == context
    assert loaded.system_architecture.cross_repo_mappings[0].id == (
        "0b6c1c1e-7d0c-4c55-9b59-5d0c8f7f8a11"
    )


def test_repository_document_layout(tmp_path: Path) -> None:
    store = ContextStore()
    store.save_repository_context(tmp_path, _repository_context(tmp_path))

    text = (tmp_path / REPOSITORY_STATE_FILENAME).read_text(encoding="utf-8")
    payload = json.loads(text)

    assert text.startswith('{\n  "repoRoot"')
    assert list(payload) == [
        "repoRoot",
        "repoName",
        "wikiSpace",
        "contextLevel",
        "lastSync",
        "parentWorkspace",
        "quickContext",
    ]
    assert payload["contextLevel"] == "repository"
    assert payload["quickContext"]["recentFiles"]["docs/guide.md"] == {"pageId": 8, "hash": ""}


def test_link_serialisation_omits_missing_optionals() -> None:
    link = ArchitecturalLink(
        id="link-1",
        description="queue fan-out",
        source=LinkEndpoint(repo="a", component="producer"),
        target=LinkEndpoint(repo="b", component="consumer"),
        relationship="publishes-to",
    )

    payload = link_to_dict(link)

    assert list(payload) == ["description", "from", "to", "relationship", "id"]
    assert payload["from"] == {"repo": "a", "component": "producer"}


def test_save_replaces_previous_document(tmp_path: Path) -> None:
    store = ContextStore()
    context = _repository_context(tmp_path)
    store.save_repository_context(tmp_path, context)

    context.wiki_space = "renamed"
    store.save_repository_context(tmp_path, context)

    assert store.load_repository_context(tmp_path).wiki_space == "renamed"
    assert [entry.name for entry in tmp_path.iterdir()] == [REPOSITORY_STATE_FILENAME]


def test_load_returns_none_when_missing(tmp_path: Path) -> None:
    store = ContextStore()

    assert store.load_repository_context(tmp_path) is None
    assert store.load_workspace_context(tmp_path) is None


def test_load_returns_none_for_corrupt_json(tmp_path: Path) -> None:
    (tmp_path / REPOSITORY_STATE_FILENAME).write_text("{ not json", encoding="utf-8")
    (tmp_path / WORKSPACE_STATE_FILENAME).write_text("[]", encoding="utf-8")

    store = ContextStore()

    assert store.load_repository_context(tmp_path) is None
    assert store.load_workspace_context(tmp_path) is None


def test_load_rejects_wrong_context_level(tmp_path: Path) -> None:
    store = ContextStore()
    store.save_repository_context(tmp_path, _repository_context(tmp_path))
    path = tmp_path / REPOSITORY_STATE_FILENAME
    payload = json.loads(path.read_text(encoding="utf-8"))
    payload["contextLevel"] = "workspace"
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert store.load_repository_context(tmp_path) is None


@pytest.mark.parametrize(
    "mutate",
    [
        lambda payload: payload["quickContext"].update(totalFiles="2"),
        lambda payload: payload["quickContext"].update(totalPages=True),
        lambda payload: payload["quickContext"]["recentFiles"]["src/app.py"].pop("hash"),
        lambda payload: payload["quickContext"]["keyPages"][0].update(importance="urgent"),
        lambda payload: payload.pop("repoName"),
    ],
)
def test_load_rejects_malformed_repository_fields(tmp_path: Path, mutate) -> None:
    store = ContextStore()
    store.save_repository_context(tmp_path, _repository_context(tmp_path))
    path = tmp_path / REPOSITORY_STATE_FILENAME
    payload = json.loads(path.read_text(encoding="utf-8"))
    mutate(payload)
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert store.load_repository_context(tmp_path) is None


def test_load_defaults_missing_lists(tmp_path: Path) -> None:
    (tmp_path / REPOSITORY_STATE_FILENAME).write_text(
        json.dumps(
            {
                "repoRoot": str(tmp_path),
                "repoName": "api",
                "wikiSpace": "api",
                "contextLevel": "repository",
                "quickContext": {"totalFiles": 0, "totalPages": 0, "recentFiles": {}},
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / WORKSPACE_STATE_FILENAME).write_text(
        json.dumps(
            {
                "workspaceName": "ws",
                "contextLevel": "workspace",
                "workspaceRoot": str(tmp_path),
                "repositories": {"api": {"path": "/src/api", "wikiSpace": "api"}},
                "systemArchitecture": {"wikiSpace": "ws-architecture"},
            }
        ),
        encoding="utf-8",
    )

    store = ContextStore()
    repository = store.load_repository_context(tmp_path)
    workspace = store.load_workspace_context(tmp_path)

    assert repository is not None
    assert repository.quick_context.key_pages == []
    assert repository.last_sync is None
    assert workspace is not None
    assert workspace.repositories["api"].key_pages == []
    assert workspace.system_architecture.network_diagrams == []
    assert workspace.system_architecture.cross_repo_mappings == []
