"""Orchestration of context detection, persistence and projection."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Dict, Iterable, Optional

from ..config import WikiSyncConfig
from ..errors import ContextNotFoundError
from ..hashing import hash_file
from ..logging import get_logger
from ..models import (
    IMPORTANCE_LEVELS,
    ArchitecturalLink,
    ContextData,
    ContextInfo,
    ContextMode,
    FileMapping,
    KeyPage,
    LinkEndpoint,
    NetworkDiagram,
    QuickContext,
    RepositoryContext,
    RepositoryEntry,
    RepositorySpec,
    SystemArchitecture,
    WorkspaceContext,
    utc_timestamp,
)
from .detection import ContextDetector, DetectionOptions
from .projector import ContextProjector
from .store import ContextStore


class ContextManager:
    """Coordinates the detector, store and projector for one anchor directory.

    The active context mode lives on the instance; keep one long-lived manager
    per process to share it between calls. Every read reloads the persisted
    documents and every mutation rewrites the whole document.
    """

    def __init__(
        self,
        current_dir: Path | str | None = None,
        *,
        detector: ContextDetector | None = None,
        store: ContextStore | None = None,
        projector: ContextProjector | None = None,
    ) -> None:
        self.detector = detector or ContextDetector(current_dir)
        self.store = store or ContextStore()
        self.projector = projector or ContextProjector()
        self.logger = get_logger("context.manager")
        self._mode = ContextMode.REPOSITORY

    @classmethod
    def from_config(cls, config: WikiSyncConfig) -> "ContextManager":
        detector = ContextDetector(
            config.anchor, options=DetectionOptions.from_config(config.detection)
        )
        return cls(detector=detector)

    @property
    def current_dir(self) -> Path:
        return self.detector.current_dir

    @property
    def mode(self) -> ContextMode:
        return self._mode

    def detect_context(self) -> ContextInfo:
        return self.detector.detect_context()

    # ------------------------------------------------------------------
    # Initialisation

    def init_repository(
        self,
        repo_root: Path | str | None = None,
        wiki_space: str | None = None,
        workspace_name: str | None = None,
    ) -> RepositoryContext:
        """Create (or overwrite) the repository context and persist it."""
        root = self._repository_root(repo_root)
        repo_name = root.name
        context = RepositoryContext(
            repo_root=str(root),
            repo_name=repo_name,
            wiki_space=wiki_space or repo_name,
            last_sync=utc_timestamp(),
            parent_workspace=workspace_name,
            quick_context=QuickContext(),
        )
        path = self.store.save_repository_context(root, context)
        self.logger.info("Initialised repository context for %s at %s", repo_name, path)
        return context

    def init_workspace(
        self,
        workspace_name: str | None = None,
        workspace_root: Path | str | None = None,
        repositories: Iterable[RepositorySpec] | None = None,
    ) -> WorkspaceContext:
        """Create (or overwrite) the workspace context and persist it.

        Without explicit ``repositories`` every repository found below the
        workspace root is registered under its directory name.
        """
        root = self._workspace_root(workspace_root)
        name = workspace_name or root.name

        entries: Dict[str, RepositoryEntry] = {}
        if repositories is not None:
            for spec in repositories:
                entries[spec.name] = RepositoryEntry(path=spec.path, wiki_space=spec.wiki_space)
        else:
            for repo_path in self.detector.find_all_repositories(root):
                entries[repo_path.name] = RepositoryEntry(
                    path=str(repo_path), wiki_space=repo_path.name
                )

        context = WorkspaceContext(
            workspace_name=name,
            workspace_root=str(root),
            last_sync=utc_timestamp(),
            repositories=entries,
            system_architecture=SystemArchitecture(wiki_space=f"{name}-architecture"),
        )
        path = self.store.save_workspace_context(root, context)
        self.logger.info(
            "Initialised workspace context %s with %d repositories at %s", name, len(entries), path
        )
        return context

    # ------------------------------------------------------------------
    # Loading and projection

    def load_repository_context(
        self, repo_root: Path | str | None = None
    ) -> Optional[RepositoryContext]:
        return self.store.load_repository_context(self._repository_root(repo_root))

    def load_workspace_context(
        self, workspace_root: Path | str | None = None
    ) -> Optional[WorkspaceContext]:
        return self.store.load_workspace_context(self._workspace_root(workspace_root))

    def get_context_for_claude(self, mode: ContextMode | str | None = None) -> ContextData:
        """Return the compact view for ``mode`` or the active mode."""
        target = ContextMode(mode) if mode else self._mode
        if target is ContextMode.REPOSITORY:
            return self.projector.repository_view(self.load_repository_context())
        return self.projector.project(target, workspace=self.load_workspace_context())

    def set_context_mode(self, mode: ContextMode | str) -> ContextMode:
        self._mode = ContextMode(mode)
        self.logger.debug("Context mode set to %s", self._mode.value)
        return self._mode

    def auto_detect_context_mode(self, request_text: str | None = None) -> ContextMode:
        """Adopt the mode hinted by ``request_text`` or, failing that, the filesystem."""
        if request_text:
            inferred = ContextDetector.infer_context_from_request(request_text)
            if inferred is not ContextMode.REPOSITORY:
                return self.set_context_mode(inferred)
        return self.set_context_mode(self.detector.detect_context().suggested_level)

    # ------------------------------------------------------------------
    # Mutations

    def add_file_mapping(
        self, file_path: Path | str, page_id: int, file_hash: str | None = None
    ) -> FileMapping:
        """Record that ``file_path`` is documented by wiki page ``page_id``.

        ``totalPages`` counts sync operations, so it grows on every call even
        when an existing mapping is updated.
        """
        context = self._require_repository_context()
        absolute, relative = self._relative_to_repo(context, file_path)
        now = utc_timestamp()
        mapping = FileMapping(
            page_id=page_id,
            hash=file_hash or hash_file(absolute),
            last_updated=now,
        )
        quick = context.quick_context
        quick.recent_files[relative] = mapping
        quick.total_files = len(quick.recent_files)
        quick.total_pages += 1
        context.last_sync = now

        self.store.save_repository_context(context.repo_root, context)
        self.logger.info("Mapped %s to page %d", relative, page_id)
        return mapping

    def add_key_page(self, path: str, page_id: int, importance: str = "medium") -> KeyPage:
        """Insert or update a key page of the repository context."""
        if importance not in IMPORTANCE_LEVELS:
            raise ValueError(
                f"Unknown importance '{importance}'; expected one of {', '.join(IMPORTANCE_LEVELS)}"
            )
        context = self._require_repository_context()
        page = KeyPage(path=path, page_id=page_id, importance=importance)
        pages = context.quick_context.key_pages
        for index, existing in enumerate(pages):
            if existing.path == path:
                pages[index] = page
                break
        else:
            pages.append(page)
        context.last_sync = utc_timestamp()
        self.store.save_repository_context(context.repo_root, context)
        self.logger.info("Key page %s (page %d, %s)", path, page_id, importance)
        return page

    def add_architectural_link(
        self,
        *,
        description: str,
        source: LinkEndpoint,
        target: LinkEndpoint,
        relationship: str,
        wiki_page_id: int | None = None,
    ) -> ArchitecturalLink:
        """Append a cross-repository link with a freshly generated id."""
        context = self._require_workspace_context()
        link = ArchitecturalLink(
            id=str(uuid.uuid4()),
            description=description,
            source=source,
            target=target,
            relationship=relationship,
            wiki_page_id=wiki_page_id,
        )
        context.system_architecture.cross_repo_mappings.append(link)
        context.last_sync = utc_timestamp()
        self.store.save_workspace_context(context.workspace_root, context)
        self.logger.info(
            "Linked %s/%s -[%s]-> %s/%s",
            source.repo,
            source.component,
            relationship,
            target.repo,
            target.component,
        )
        return link

    def add_network_diagram(self, path: str, page_id: int) -> NetworkDiagram:
        context = self._require_workspace_context()
        diagram = NetworkDiagram(path=path, page_id=page_id)
        context.system_architecture.network_diagrams.append(diagram)
        context.last_sync = utc_timestamp()
        self.store.save_workspace_context(context.workspace_root, context)
        self.logger.info("Registered network diagram %s (page %d)", path, page_id)
        return diagram

    # ------------------------------------------------------------------
    # Change tracking

    def has_file_changed(self, file_path: Path | str) -> bool:
        """Return False only when the file's digest matches the recorded one."""
        context = self.load_repository_context()
        if context is None:
            return True
        absolute, relative = self._relative_to_repo(context, file_path)
        stored = context.quick_context.recent_files.get(relative)
        if stored is None or not stored.hash:
            return True
        # An unreadable file hashes to "" and always counts as changed.
        current = hash_file(absolute)
        return not current or current != stored.hash

    def get_file_mapping(self, file_path: Path | str) -> Optional[FileMapping]:
        context = self.load_repository_context()
        if context is None:
            return None
        _, relative = self._relative_to_repo(context, file_path)
        return context.quick_context.recent_files.get(relative)

    def relative_path(self, file_path: Path | str) -> str:
        """Return ``file_path`` as recorded in the repository context."""
        context = self.load_repository_context()
        if context is None:
            return self._resolve(file_path).as_posix()
        return self._relative_to_repo(context, file_path)[1]

    # ------------------------------------------------------------------
    # Internal helpers

    def _require_repository_context(self) -> RepositoryContext:
        context = self.load_repository_context()
        if context is None:
            raise ContextNotFoundError("No repository context found")
        return context

    def _require_workspace_context(self) -> WorkspaceContext:
        context = self.load_workspace_context()
        if context is None:
            raise ContextNotFoundError("No workspace context found")
        return context

    def _repository_root(self, explicit: Path | str | None) -> Path:
        if explicit is not None:
            return self._resolve(explicit)
        return self.detector.find_git_root() or self.current_dir

    def _workspace_root(self, explicit: Path | str | None) -> Path:
        if explicit is not None:
            return self._resolve(explicit)
        return self.detector.find_workspace_root() or self.current_dir

    def _resolve(self, path: Path | str) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.current_dir / candidate
        return candidate.resolve()

    def _relative_to_repo(self, context: RepositoryContext, file_path: Path | str) -> tuple[Path, str]:
        absolute = self._resolve(file_path)
        try:
            relative = absolute.relative_to(Path(context.repo_root)).as_posix()
        except ValueError:
            relative = absolute.as_posix()
        return absolute, relative


__all__ = ["ContextManager"]
