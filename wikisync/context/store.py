"""Persistence for repository and workspace context documents."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..logging import get_logger
from ..models import (
    IMPORTANCE_LEVELS,
    REPOSITORY_STATE_FILENAME,
    WORKSPACE_STATE_FILENAME,
    ArchitecturalLink,
    ContextMode,
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


class ContextStore:
    """Reads and writes the two context documents as whole units.

    Loads never raise: a missing, unreadable or malformed document is
    reported as ``None``. Saves replace the file atomically but take no lock,
    so concurrent writers can still overwrite each other.
    """

    def __init__(self) -> None:
        self.logger = get_logger("context.store")

    @staticmethod
    def repository_state_path(root: Path | str) -> Path:
        return Path(root) / REPOSITORY_STATE_FILENAME

    @staticmethod
    def workspace_state_path(root: Path | str) -> Path:
        return Path(root) / WORKSPACE_STATE_FILENAME

    def load_repository_context(self, root: Path | str) -> Optional[RepositoryContext]:
        payload = self._read(self.repository_state_path(root))
        if payload is None:
            return None
        context = repository_context_from_dict(payload)
        if context is None:
            self.logger.warning("Ignoring malformed repository context at %s", root)
        return context

    def load_workspace_context(self, root: Path | str) -> Optional[WorkspaceContext]:
        payload = self._read(self.workspace_state_path(root))
        if payload is None:
            return None
        context = workspace_context_from_dict(payload)
        if context is None:
            self.logger.warning("Ignoring malformed workspace context at %s", root)
        return context

    def save_repository_context(self, root: Path | str, context: RepositoryContext) -> Path:
        path = self.repository_state_path(root)
        self._write(path, repository_context_to_dict(context))
        return path

    def save_workspace_context(self, root: Path | str, context: WorkspaceContext) -> Path:
        path = self.workspace_state_path(root)
        self._write(path, workspace_context_to_dict(context))
        return path

    # ------------------------------------------------------------------
    # Internal helpers

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            self.logger.debug("Unable to read %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            return None
        return data

    def _write(self, path: Path, payload: Dict[str, Any]) -> None:
        text = json.dumps(payload, indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(prefix=f"{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self.logger.debug("Wrote %s", path)


# ----------------------------------------------------------------------
# Serialisation


def repository_context_to_dict(context: RepositoryContext) -> Dict[str, Any]:
    quick = context.quick_context
    data: Dict[str, Any] = {
        "repoRoot": context.repo_root,
        "repoName": context.repo_name,
        "wikiSpace": context.wiki_space,
        "contextLevel": ContextMode.REPOSITORY.value,
    }
    _put_optional(data, "lastSync", context.last_sync)
    _put_optional(data, "parentWorkspace", context.parent_workspace)
    data["quickContext"] = {
        "totalFiles": quick.total_files,
        "totalPages": quick.total_pages,
        "recentFiles": {
            path: _file_mapping_to_dict(mapping) for path, mapping in quick.recent_files.items()
        },
        "keyPages": [_key_page_to_dict(page) for page in quick.key_pages],
    }
    return data


def workspace_context_to_dict(context: WorkspaceContext) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "workspaceName": context.workspace_name,
        "contextLevel": ContextMode.WORKSPACE.value,
        "workspaceRoot": context.workspace_root,
    }
    _put_optional(data, "lastSync", context.last_sync)
    repositories: Dict[str, Any] = {}
    for name, entry in context.repositories.items():
        repo: Dict[str, Any] = {"path": entry.path, "wikiSpace": entry.wiki_space}
        _put_optional(repo, "lastSync", entry.last_sync)
        repo["keyPages"] = [_key_page_to_dict(page) for page in entry.key_pages]
        repositories[name] = repo
    data["repositories"] = repositories
    architecture = context.system_architecture
    data["systemArchitecture"] = {
        "wikiSpace": architecture.wiki_space,
        "networkDiagrams": [
            {"path": diagram.path, "pageId": diagram.page_id}
            for diagram in architecture.network_diagrams
        ],
        "crossRepoMappings": [link_to_dict(link) for link in architecture.cross_repo_mappings],
    }
    return data


def link_to_dict(link: ArchitecturalLink) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "description": link.description,
        "from": _endpoint_to_dict(link.source),
        "to": _endpoint_to_dict(link.target),
    }
    _put_optional(data, "wikiPageId", link.wiki_page_id)
    data["relationship"] = link.relationship
    data["id"] = link.id
    return data


def _endpoint_to_dict(endpoint: LinkEndpoint) -> Dict[str, Any]:
    data: Dict[str, Any] = {"repo": endpoint.repo, "component": endpoint.component}
    _put_optional(data, "pageId", endpoint.page_id)
    return data


def _file_mapping_to_dict(mapping: FileMapping) -> Dict[str, Any]:
    data: Dict[str, Any] = {"pageId": mapping.page_id, "hash": mapping.hash}
    _put_optional(data, "lastUpdated", mapping.last_updated)
    return data


def _key_page_to_dict(page: KeyPage) -> Dict[str, Any]:
    return {"path": page.path, "pageId": page.page_id, "importance": page.importance}


def _put_optional(data: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


# ----------------------------------------------------------------------
# Deserialisation


def repository_context_from_dict(payload: object) -> Optional[RepositoryContext]:
    if not isinstance(payload, dict):
        return None
    if payload.get("contextLevel") != ContextMode.REPOSITORY.value:
        return None
    repo_root = payload.get("repoRoot")
    repo_name = payload.get("repoName")
    wiki_space = payload.get("wikiSpace")
    if not all(isinstance(value, str) for value in (repo_root, repo_name, wiki_space)):
        return None
    last_sync = payload.get("lastSync")
    parent = payload.get("parentWorkspace")
    if not _is_optional_str(last_sync) or not _is_optional_str(parent):
        return None

    quick_payload = payload.get("quickContext")
    if not isinstance(quick_payload, dict):
        return None
    total_files = quick_payload.get("totalFiles")
    total_pages = quick_payload.get("totalPages")
    if not _is_int(total_files) or not _is_int(total_pages):
        return None
    recent_payload = quick_payload.get("recentFiles")
    if not isinstance(recent_payload, dict):
        return None
    recent_files: Dict[str, FileMapping] = {}
    for path, raw in recent_payload.items():
        mapping = _file_mapping_from_dict(raw)
        if not isinstance(path, str) or mapping is None:
            return None
        recent_files[path] = mapping
    key_pages = _key_pages_from_list(quick_payload.get("keyPages", []))
    if key_pages is None:
        return None

    return RepositoryContext(
        repo_root=repo_root,  # type: ignore[arg-type]
        repo_name=repo_name,  # type: ignore[arg-type]
        wiki_space=wiki_space,  # type: ignore[arg-type]
        last_sync=last_sync,  # type: ignore[arg-type]
        parent_workspace=parent,  # type: ignore[arg-type]
        quick_context=QuickContext(
            total_files=total_files,  # type: ignore[arg-type]
            total_pages=total_pages,  # type: ignore[arg-type]
            recent_files=recent_files,
            key_pages=key_pages,
        ),
    )


def workspace_context_from_dict(payload: object) -> Optional[WorkspaceContext]:
    if not isinstance(payload, dict):
        return None
    if payload.get("contextLevel") != ContextMode.WORKSPACE.value:
        return None
    name = payload.get("workspaceName")
    root = payload.get("workspaceRoot")
    last_sync = payload.get("lastSync")
    if not isinstance(name, str) or not isinstance(root, str) or not _is_optional_str(last_sync):
        return None

    repositories_payload = payload.get("repositories")
    if not isinstance(repositories_payload, dict):
        return None
    repositories: Dict[str, RepositoryEntry] = {}
    for repo_name, raw in repositories_payload.items():
        entry = _repository_entry_from_dict(raw)
        if not isinstance(repo_name, str) or entry is None:
            return None
        repositories[repo_name] = entry

    architecture = _architecture_from_dict(payload.get("systemArchitecture"))
    if architecture is None:
        return None

    return WorkspaceContext(
        workspace_name=name,
        workspace_root=root,
        system_architecture=architecture,
        last_sync=last_sync,  # type: ignore[arg-type]
        repositories=repositories,
    )


def _repository_entry_from_dict(raw: object) -> Optional[RepositoryEntry]:
    if not isinstance(raw, dict):
        return None
    path = raw.get("path")
    wiki_space = raw.get("wikiSpace")
    last_sync = raw.get("lastSync")
    if not isinstance(path, str) or not isinstance(wiki_space, str):
        return None
    if not _is_optional_str(last_sync):
        return None
    key_pages = _key_pages_from_list(raw.get("keyPages", []))
    if key_pages is None:
        return None
    return RepositoryEntry(path=path, wiki_space=wiki_space, last_sync=last_sync, key_pages=key_pages)


def _architecture_from_dict(raw: object) -> Optional[SystemArchitecture]:
    if not isinstance(raw, dict):
        return None
    wiki_space = raw.get("wikiSpace")
    if not isinstance(wiki_space, str):
        return None

    diagrams_payload = raw.get("networkDiagrams", [])
    if not isinstance(diagrams_payload, list):
        return None
    diagrams: List[NetworkDiagram] = []
    for item in diagrams_payload:
        if not isinstance(item, dict):
            return None
        path = item.get("path")
        page_id = item.get("pageId")
        if not isinstance(path, str) or not _is_int(page_id):
            return None
        diagrams.append(NetworkDiagram(path=path, page_id=page_id))  # type: ignore[arg-type]

    mappings_payload = raw.get("crossRepoMappings", [])
    if not isinstance(mappings_payload, list):
        return None
    links: List[ArchitecturalLink] = []
    for item in mappings_payload:
        link = _link_from_dict(item)
        if link is None:
            return None
        links.append(link)

    return SystemArchitecture(
        wiki_space=wiki_space, network_diagrams=diagrams, cross_repo_mappings=links
    )


def _link_from_dict(raw: object) -> Optional[ArchitecturalLink]:
    if not isinstance(raw, dict):
        return None
    link_id = raw.get("id")
    description = raw.get("description")
    relationship = raw.get("relationship")
    wiki_page_id = raw.get("wikiPageId")
    if not all(isinstance(value, str) for value in (link_id, description, relationship)):
        return None
    if wiki_page_id is not None and not _is_int(wiki_page_id):
        return None
    source = _endpoint_from_dict(raw.get("from"))
    target = _endpoint_from_dict(raw.get("to"))
    if source is None or target is None:
        return None
    return ArchitecturalLink(
        id=link_id,  # type: ignore[arg-type]
        description=description,  # type: ignore[arg-type]
        source=source,
        target=target,
        relationship=relationship,  # type: ignore[arg-type]
        wiki_page_id=wiki_page_id,
    )


def _endpoint_from_dict(raw: object) -> Optional[LinkEndpoint]:
    if not isinstance(raw, dict):
        return None
    repo = raw.get("repo")
    component = raw.get("component")
    page_id = raw.get("pageId")
    if not isinstance(repo, str) or not isinstance(component, str):
        return None
    if page_id is not None and not _is_int(page_id):
        return None
    return LinkEndpoint(repo=repo, component=component, page_id=page_id)


def _file_mapping_from_dict(raw: object) -> Optional[FileMapping]:
    if not isinstance(raw, dict):
        return None
    page_id = raw.get("pageId")
    file_hash = raw.get("hash")
    last_updated = raw.get("lastUpdated")
    if not _is_int(page_id) or not isinstance(file_hash, str) or not _is_optional_str(last_updated):
        return None
    return FileMapping(page_id=page_id, hash=file_hash, last_updated=last_updated)  # type: ignore[arg-type]


def _key_pages_from_list(raw: object) -> Optional[List[KeyPage]]:
    if not isinstance(raw, list):
        return None
    pages: List[KeyPage] = []
    for item in raw:
        if not isinstance(item, dict):
            return None
        path = item.get("path")
        page_id = item.get("pageId")
        importance = item.get("importance", "medium")
        if not isinstance(path, str) or not _is_int(page_id):
            return None
        if importance not in IMPORTANCE_LEVELS:
            return None
        pages.append(KeyPage(path=path, page_id=page_id, importance=importance))  # type: ignore[arg-type]
    return pages


def _is_int(value: object) -> bool:
    # bool is a subclass of int.
    if isinstance(value, bool):
        return False
    return isinstance(value, int)


def _is_optional_str(value: object) -> bool:
    return value is None or isinstance(value, str)


__all__ = [
    "ContextStore",
    "link_to_dict",
    "repository_context_from_dict",
    "repository_context_to_dict",
    "workspace_context_from_dict",
    "workspace_context_to_dict",
]
