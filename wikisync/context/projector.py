"""Compact, token-budgeted views of persisted context for calling agents."""

from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Optional

from ..models import ContextData, ContextMode, RepositoryContext, WorkspaceContext

RECENT_FILES_LIMIT = 5
KEY_PAGES_LIMIT = 5
REPO_KEY_PAGES_LIMIT = 3
CROSS_REPO_MAPPINGS_LIMIT = 5

_PLACEHOLDER_TOKENS = {
    ContextMode.REPOSITORY: 50,
    ContextMode.WORKSPACE: 100,
    ContextMode.ARCHITECTURAL: 150,
}


class ContextProjector:
    """Turns full context documents into bounded payloads.

    Missing state never raises; each level has a placeholder view with a
    fixed token estimate.
    """

    def project(
        self,
        mode: ContextMode,
        repository: Optional[RepositoryContext] = None,
        workspace: Optional[WorkspaceContext] = None,
    ) -> ContextData:
        if mode is ContextMode.REPOSITORY:
            return self.repository_view(repository)
        if mode is ContextMode.WORKSPACE:
            return self.workspace_view(workspace)
        return self.architectural_view(workspace)

    def repository_view(self, context: Optional[RepositoryContext]) -> ContextData:
        if context is None:
            return _placeholder(
                ContextMode.REPOSITORY,
                {
                    "repoName": "unknown",
                    "wikiSpace": "unknown",
                    "totalFiles": 0,
                    "totalPages": 0,
                    "recentFiles": [],
                    "keyPages": [],
                },
            )

        quick = context.quick_context
        # Most recently inserted entries sit at the end of the mapping.
        recent = list(quick.recent_files.items())[-RECENT_FILES_LIMIT:]
        data = {
            "repoName": context.repo_name,
            "wikiSpace": context.wiki_space,
            "totalFiles": quick.total_files,
            "totalPages": quick.total_pages,
            "recentFiles": [
                {"path": path, "pageId": mapping.page_id, "hash": mapping.hash}
                for path, mapping in recent
            ],
            "keyPages": [
                {"path": page.path, "pageId": page.page_id, "importance": page.importance}
                for page in quick.key_pages[:KEY_PAGES_LIMIT]
            ],
        }
        return _measured(ContextMode.REPOSITORY, data)

    def workspace_view(self, context: Optional[WorkspaceContext]) -> ContextData:
        if context is None:
            return _placeholder(
                ContextMode.WORKSPACE,
                {"workspaceName": "unknown", "repositoryCount": 0, "repositories": []},
            )
        return _measured(ContextMode.WORKSPACE, _workspace_summary(context))

    def architectural_view(self, context: Optional[WorkspaceContext]) -> ContextData:
        if context is None:
            return _placeholder(
                ContextMode.ARCHITECTURAL,
                {
                    "workspaceName": "unknown",
                    "repositoryCount": 0,
                    "repositories": [],
                    "systemArchitecture": {
                        "wikiSpace": "unknown",
                        "networkDiagrams": [],
                        "crossRepoMappings": [],
                    },
                },
            )

        architecture = context.system_architecture
        data = _workspace_summary(context)
        data["systemArchitecture"] = {
            "wikiSpace": architecture.wiki_space,
            "networkDiagrams": [
                {"path": diagram.path, "pageId": diagram.page_id}
                for diagram in architecture.network_diagrams
            ],
            "crossRepoMappings": [
                {
                    "description": link.description,
                    "from": {"repo": link.source.repo, "component": link.source.component},
                    "to": {"repo": link.target.repo, "component": link.target.component},
                    "relationship": link.relationship,
                }
                for link in architecture.cross_repo_mappings[:CROSS_REPO_MAPPINGS_LIMIT]
            ],
        }
        return _measured(ContextMode.ARCHITECTURAL, data)


def estimate_token_count(data: Any) -> int:
    """Approximate tokens as one per four characters of compact JSON."""
    serialized = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return math.ceil(len(serialized) / 4)


def _workspace_summary(context: WorkspaceContext) -> Dict[str, Any]:
    repositories: List[Dict[str, Any]] = []
    for name, entry in context.repositories.items():
        repositories.append(
            {
                "name": name,
                "wikiSpace": entry.wiki_space,
                "keyPages": [
                    {"path": page.path, "pageId": page.page_id, "importance": page.importance}
                    for page in entry.key_pages[:REPO_KEY_PAGES_LIMIT]
                ],
                "path": entry.path,
            }
        )
    return {
        "workspaceName": context.workspace_name,
        "repositoryCount": len(context.repositories),
        "repositories": repositories,
    }


def _measured(mode: ContextMode, data: Dict[str, Any]) -> ContextData:
    return ContextData(mode=mode, token_count=estimate_token_count(data), data=data)


def _placeholder(mode: ContextMode, data: Dict[str, Any]) -> ContextData:
    return ContextData(mode=mode, token_count=_PLACEHOLDER_TOKENS[mode], data=data)


__all__ = ["ContextProjector", "estimate_token_count"]
