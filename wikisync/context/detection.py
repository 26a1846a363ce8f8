"""Filesystem classification: git roots, workspaces, monorepos and sibling repositories."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional, Sequence

from ..config import DEFAULT_EXCLUDED_DIRS, DEFAULT_MAX_DEPTH, DetectionConfig
from ..logging import get_logger
from ..models import (
    REPOSITORY_STATE_FILENAME,
    WORKSPACE_STATE_FILENAME,
    ContextInfo,
    ContextMode,
)

_GIT_ENTRY = ".git"
_PACKAGE_MANIFEST = "package.json"

# Tool manifests that make a directory a workspace root on their own.
_WORKSPACE_TOOL_MANIFESTS: Sequence[str] = ("lerna.json", "nx.json")

# Tool manifests that mark a git root as a monorepo.
_MONOREPO_MANIFESTS: Sequence[str] = (
    "lerna.json",
    "nx.json",
    "rush.json",
    "pnpm-workspace.yaml",
)

_ARCHITECTURAL_KEYWORDS: Sequence[str] = (
    "architecture",
    "network",
    "system",
    "cross-repo",
    "cross repo",
    "service communication",
    "microservice",
    "diagram",
    "relationship",
    "integration",
    "system design",
    "overview",
)

_WORKSPACE_KEYWORDS: Sequence[str] = (
    "workspace",
    "multi-repo",
    "multiple repo",
    "all repos",
    "across repos",
    "coordinate",
    "project",
)


@dataclass(frozen=True)
class DetectionOptions:
    """Tunables for the downward directory searches."""

    excluded_dirs: FrozenSet[str] = field(default_factory=lambda: frozenset(DEFAULT_EXCLUDED_DIRS))
    max_depth: int = DEFAULT_MAX_DEPTH
    nested_repo_depth: int = 2
    manifest_scan_depth: int = 2

    @classmethod
    def from_config(cls, config: DetectionConfig) -> "DetectionOptions":
        return cls(excluded_dirs=frozenset(config.exclude_dirs), max_depth=config.max_depth)


@dataclass(frozen=True)
class WorkspaceMarker:
    """Named predicate telling whether a directory is a workspace root."""

    name: str
    check: Callable[[Path], bool]

    def matches(self, directory: Path) -> bool:
        return self.check(directory)


class ContextDetector:
    """Classifies the filesystem around an anchor directory.

    Every search absorbs filesystem errors and treats the unreadable entry as
    absent, so :meth:`detect_context` never raises.
    """

    def __init__(
        self,
        current_dir: Path | str | None = None,
        *,
        options: DetectionOptions | None = None,
    ) -> None:
        anchor = Path(current_dir) if current_dir is not None else Path.cwd()
        self.current_dir = anchor.expanduser().resolve()
        self.options = options or DetectionOptions()
        self.logger = get_logger("context.detection")
        self.workspace_markers: tuple[WorkspaceMarker, ...] = (
            WorkspaceMarker("workspace-file", self._has_workspace_file),
            WorkspaceMarker("package-workspaces", self._declares_package_workspaces),
            WorkspaceMarker("workspace-tool", self._has_workspace_tool_manifest),
            WorkspaceMarker("multi-repo-git", self._contains_multiple_repositories),
        )

    def detect_context(self) -> ContextInfo:
        """Return a fresh classification of the anchor directory."""
        git_root = self.find_git_root()
        workspace_root = self.find_workspace_root()
        is_monorepo = self.detect_monorepo(git_root)
        detected_repos = self.find_all_repositories(
            workspace_root or self.current_dir, self.options.max_depth
        )

        has_repo_context = bool(git_root) and _entry_exists(git_root / REPOSITORY_STATE_FILENAME)
        has_workspace_context = bool(workspace_root) and _entry_exists(
            workspace_root / WORKSPACE_STATE_FILENAME
        )

        info = ContextInfo(
            current_dir=self.current_dir,
            git_root=git_root,
            workspace_root=workspace_root,
            is_monorepo=is_monorepo,
            detected_repos=detected_repos,
            suggested_level=infer_context_level(
                git_root, workspace_root, is_monorepo, len(detected_repos)
            ),
            has_repo_context=has_repo_context,
            has_workspace_context=has_workspace_context,
        )
        self.logger.debug(
            "Detected context for %s: git_root=%s workspace_root=%s monorepo=%s repos=%d level=%s",
            self.current_dir,
            git_root,
            workspace_root,
            is_monorepo,
            len(detected_repos),
            info.suggested_level.value,
        )
        return info

    # ------------------------------------------------------------------
    # Upward searches

    def find_git_root(self, start: Path | None = None) -> Optional[Path]:
        """Return the nearest ancestor (inclusive) holding a ``.git`` entry."""
        for candidate in _ancestors(start or self.current_dir):
            if _entry_exists(candidate / _GIT_ENTRY):
                return candidate
        return None

    def find_workspace_root(self, start: Path | None = None) -> Optional[Path]:
        """Return the nearest ancestor matching any workspace marker.

        Markers are tried in priority order at each level before ascending.
        """
        for candidate in _ancestors(start or self.current_dir):
            for marker in self.workspace_markers:
                if marker.matches(candidate):
                    self.logger.debug("Workspace marker %s matched at %s", marker.name, candidate)
                    return candidate
        return None

    # ------------------------------------------------------------------
    # Downward searches

    def detect_monorepo(self, git_root: Path | None) -> bool:
        """Return True when the repository at ``git_root`` hosts several packages."""
        if git_root is None:
            return False
        if any(_entry_exists(git_root / name) for name in _MONOREPO_MANIFESTS):
            return True
        if self._declares_package_workspaces(git_root):
            return True
        manifests = self.find_files(git_root, _PACKAGE_MANIFEST, self.options.manifest_scan_depth)
        return len(manifests) > 1

    def find_all_repositories(self, search_root: Path, max_depth: int | None = None) -> List[Path]:
        """Collect every directory holding ``.git`` within ``max_depth`` levels.

        Detected repositories are still descended into, so nested checkouts
        are reported alongside their parent.
        """
        depth_limit = self.options.max_depth if max_depth is None else max_depth
        repos: List[Path] = []
        self._collect_repositories(Path(search_root), repos, 0, depth_limit)
        return repos

    def find_files(self, search_root: Path, file_name: str, max_depth: int) -> List[Path]:
        """Return files named ``file_name`` within ``max_depth`` levels of ``search_root``."""
        found: List[Path] = []
        self._collect_files(Path(search_root), file_name, found, 0, max_depth)
        return found

    @staticmethod
    def infer_context_from_request(request_text: str) -> ContextMode:
        """Infer the context granularity a natural-language request asks for."""
        lowered = request_text.lower()
        if any(keyword in lowered for keyword in _ARCHITECTURAL_KEYWORDS):
            return ContextMode.ARCHITECTURAL
        if any(keyword in lowered for keyword in _WORKSPACE_KEYWORDS):
            return ContextMode.WORKSPACE
        return ContextMode.REPOSITORY

    # ------------------------------------------------------------------
    # Internals

    def _collect_repositories(
        self, directory: Path, repos: List[Path], depth: int, max_depth: int
    ) -> None:
        if depth > max_depth:
            return
        if _entry_exists(directory / _GIT_ENTRY):
            repos.append(directory)
        for child in self._child_directories(directory):
            self._collect_repositories(child, repos, depth + 1, max_depth)

    def _collect_files(
        self, directory: Path, file_name: str, found: List[Path], depth: int, max_depth: int
    ) -> None:
        if depth > max_depth:
            return
        for entry_path, is_file, is_dir in self._scan(directory):
            if is_file and entry_path.name == file_name:
                found.append(entry_path)
            elif is_dir and not self._is_pruned(entry_path.name):
                self._collect_files(entry_path, file_name, found, depth + 1, max_depth)

    def _child_directories(self, directory: Path) -> Iterator[Path]:
        for entry_path, _, is_dir in self._scan(directory):
            if is_dir and not self._is_pruned(entry_path.name):
                yield entry_path

    def _scan(self, directory: Path) -> List[tuple[Path, bool, bool]]:
        entries: List[tuple[Path, bool, bool]] = []
        try:
            with os.scandir(directory) as iterator:
                for entry in iterator:
                    try:
                        is_file = entry.is_file(follow_symlinks=False)
                        is_dir = entry.is_dir(follow_symlinks=False)
                    except OSError:
                        continue
                    entries.append((Path(entry.path), is_file, is_dir))
        except OSError as exc:
            self.logger.debug("Skipping unreadable directory %s: %s", directory, exc)
            return []
        entries.sort(key=lambda item: item[0].name)
        return entries

    def _is_pruned(self, name: str) -> bool:
        return name.startswith(".") or name in self.options.excluded_dirs

    def _has_workspace_file(self, directory: Path) -> bool:
        return _entry_exists(directory / WORKSPACE_STATE_FILENAME)

    def _declares_package_workspaces(self, directory: Path) -> bool:
        manifest = _read_json_object(directory / _PACKAGE_MANIFEST)
        return manifest is not None and _is_declared(manifest.get("workspaces"))

    def _has_workspace_tool_manifest(self, directory: Path) -> bool:
        return any(_entry_exists(directory / name) for name in _WORKSPACE_TOOL_MANIFESTS)

    def _contains_multiple_repositories(self, directory: Path) -> bool:
        if not _entry_exists(directory / _GIT_ENTRY):
            return False
        nested = self.find_all_repositories(directory, self.options.nested_repo_depth)
        return len(nested) > 1


def infer_context_level(
    git_root: Path | None,
    workspace_root: Path | None,
    is_monorepo: bool,
    repo_count: int,
) -> ContextMode:
    """Pick the granularity suggested by a filesystem classification."""
    if workspace_root is not None and repo_count > 1:
        return ContextMode.WORKSPACE
    if is_monorepo:
        return ContextMode.WORKSPACE
    # A git root and no detected root both default to repository granularity.
    return ContextMode.REPOSITORY


def _ancestors(start: Path) -> Iterator[Path]:
    resolved = Path(start).expanduser().resolve()
    yield resolved
    yield from resolved.parents


def _entry_exists(path: Path) -> bool:
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def _is_declared(value: object) -> bool:
    # Empty arrays and objects still count as declared.
    if isinstance(value, (list, dict)):
        return True
    return bool(value)


def _read_json_object(path: Path) -> Optional[Dict[str, object]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


__all__ = [
    "ContextDetector",
    "DetectionOptions",
    "WorkspaceMarker",
    "infer_context_level",
]
