"""Change-aware file synchronisation on top of the context manager."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from .context.manager import ContextManager
from .errors import ContextNotFoundError
from .logging import get_logger
from .models import ContextMode

logger = get_logger("sync")


class WikiService(Protocol):
    """Remote wiki capability consumed by :func:`smart_sync_file`."""

    def publish_file(self, file_path: Path, wiki_path: str) -> int:
        """Create or update the page at ``wiki_path`` and return its page id."""


@dataclass
class ExternalPublication:
    """WikiService for a page the caller already published elsewhere.

    Publishing only hands back the known page id, so the sync records the
    mapping without contacting a wiki.
    """

    page_id: int

    def publish_file(self, file_path: Path, wiki_path: str) -> int:
        return self.page_id


@dataclass
class SyncOutcome:
    """Result of a smart sync attempt."""

    file_path: str
    skipped: bool
    wiki_path: Optional[str] = None
    page_id: Optional[int] = None


def smart_sync_file(
    manager: ContextManager,
    wiki: WikiService,
    file_path: Path | str,
    *,
    force: bool = False,
    auto_path: bool = True,
) -> SyncOutcome:
    """Publish ``file_path`` unless its content is unchanged since the last sync.

    Raises :class:`ContextNotFoundError` before publishing when no repository
    context exists, since the resulting page id could not be recorded.
    """
    if manager.load_repository_context() is None:
        raise ContextNotFoundError("No repository context found")
    if not force and not manager.has_file_changed(file_path):
        logger.info("%s unchanged since last sync; skipping", file_path)
        return SyncOutcome(file_path=str(file_path), skipped=True)

    wiki_path = wiki_path_for(manager, file_path, auto_path=auto_path)
    absolute = Path(file_path)
    if not absolute.is_absolute():
        absolute = manager.current_dir / absolute
    page_id = wiki.publish_file(absolute, wiki_path)
    manager.add_file_mapping(absolute, page_id)
    logger.info("Synced %s to %s (page %d)", file_path, wiki_path, page_id)
    return SyncOutcome(file_path=str(file_path), skipped=False, wiki_path=wiki_path, page_id=page_id)


def wiki_path_for(manager: ContextManager, file_path: Path | str, *, auto_path: bool = True) -> str:
    """Derive the wiki page path for ``file_path`` from the active context."""
    if not auto_path:
        return f"/docs/{Path(file_path).stem}"

    flattened = manager.relative_path(file_path).lstrip("/").replace("/", "-")
    if manager.mode is ContextMode.REPOSITORY:
        context = manager.get_context_for_claude(ContextMode.REPOSITORY)
        return f"/{context.data['wikiSpace']}/{flattened}"
    return f"/{flattened}"


__all__ = ["ExternalPublication", "SyncOutcome", "WikiService", "smart_sync_file", "wiki_path_for"]
