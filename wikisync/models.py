"""Core data models shared across wikisync components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

REPOSITORY_STATE_FILENAME = ".wikijs-state.json"
WORKSPACE_STATE_FILENAME = ".wikijs-workspace.json"

IMPORTANCE_LEVELS = ("high", "medium", "low")


class ContextMode(str, Enum):
    """Granularity of context handed to a calling agent."""

    REPOSITORY = "repository"
    WORKSPACE = "workspace"
    ARCHITECTURAL = "architectural"


@dataclass
class ContextInfo:
    """Snapshot of the filesystem surrounding the detector's anchor directory."""

    current_dir: Path
    git_root: Optional[Path]
    workspace_root: Optional[Path]
    is_monorepo: bool
    detected_repos: List[Path]
    suggested_level: ContextMode
    has_repo_context: bool
    has_workspace_context: bool


@dataclass
class FileMapping:
    """Link between a tracked source file and the wiki page documenting it."""

    page_id: int
    hash: str
    last_updated: Optional[str] = None


@dataclass
class KeyPage:
    path: str
    page_id: int
    importance: str = "medium"


@dataclass
class QuickContext:
    """Counters and recent activity kept inside a repository context."""

    total_files: int = 0
    total_pages: int = 0
    recent_files: Dict[str, FileMapping] = field(default_factory=dict)
    key_pages: List[KeyPage] = field(default_factory=list)


@dataclass
class RepositoryContext:
    """Persisted documentation state for a single repository."""

    repo_root: str
    repo_name: str
    wiki_space: str
    last_sync: Optional[str] = None
    parent_workspace: Optional[str] = None
    quick_context: QuickContext = field(default_factory=QuickContext)

    @property
    def context_level(self) -> ContextMode:
        return ContextMode.REPOSITORY


@dataclass
class RepositoryEntry:
    """A repository as registered inside a workspace context."""

    path: str
    wiki_space: str
    last_sync: Optional[str] = None
    key_pages: List[KeyPage] = field(default_factory=list)


@dataclass
class NetworkDiagram:
    path: str
    page_id: int


@dataclass
class LinkEndpoint:
    """One side of an architectural link."""

    repo: str
    component: str
    page_id: Optional[int] = None


@dataclass
class ArchitecturalLink:
    """Directional relationship between components in two repositories."""

    id: str
    description: str
    source: LinkEndpoint
    target: LinkEndpoint
    relationship: str
    wiki_page_id: Optional[int] = None


@dataclass
class SystemArchitecture:
    wiki_space: str
    network_diagrams: List[NetworkDiagram] = field(default_factory=list)
    cross_repo_mappings: List[ArchitecturalLink] = field(default_factory=list)


@dataclass
class WorkspaceContext:
    """Persisted documentation state spanning several repositories."""

    workspace_name: str
    workspace_root: str
    system_architecture: SystemArchitecture
    last_sync: Optional[str] = None
    repositories: Dict[str, RepositoryEntry] = field(default_factory=dict)

    @property
    def context_level(self) -> ContextMode:
        return ContextMode.WORKSPACE


@dataclass
class RepositorySpec:
    """Explicit repository registration used when initialising a workspace."""

    name: str
    path: str
    wiki_space: str


@dataclass
class ContextData:
    """Token-budgeted projection of persisted state for a calling agent."""

    mode: ContextMode
    token_count: int
    data: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"mode": self.mode.value, "tokenCount": self.token_count, "data": self.data}


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


__all__ = [
    "ArchitecturalLink",
    "ContextData",
    "ContextInfo",
    "ContextMode",
    "FileMapping",
    "IMPORTANCE_LEVELS",
    "KeyPage",
    "LinkEndpoint",
    "NetworkDiagram",
    "QuickContext",
    "REPOSITORY_STATE_FILENAME",
    "RepositoryContext",
    "RepositoryEntry",
    "RepositorySpec",
    "SystemArchitecture",
    "WORKSPACE_STATE_FILENAME",
    "WorkspaceContext",
    "utc_timestamp",
]
