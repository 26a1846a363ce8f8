"""FastAPI application exposing context operations as callable tools."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import WikiSyncConfig, load_config
from ..context.detection import ContextDetector
from ..context.manager import ContextManager
from ..context.store import (
    link_to_dict,
    repository_context_to_dict,
    workspace_context_to_dict,
)
from ..errors import ContextNotFoundError, WikiSyncError
from ..logging import get_logger
from ..models import ContextInfo, ContextMode, LinkEndpoint, RepositorySpec
from ..render import (
    render_change_status,
    render_context_data,
    render_context_info,
    render_link,
    render_repository_init,
    render_repository_status,
    render_sync_outcome,
    render_workspace_init,
    render_workspace_status,
)
from ..sync import ExternalPublication, WikiService, smart_sync_file

_T = TypeVar("_T")

logger = get_logger("service")


class DetectRequest(BaseModel):
    directory: Optional[str] = None


class InitRepositoryRequest(BaseModel):
    repo_root: Optional[str] = None
    wiki_space: Optional[str] = None
    workspace_name: Optional[str] = None


class RepositoryPayload(BaseModel):
    name: str
    path: str
    wiki_space: str


class InitWorkspaceRequest(BaseModel):
    workspace_name: Optional[str] = None
    workspace_root: Optional[str] = None
    repositories: Optional[List[RepositoryPayload]] = None


class ModeRequest(BaseModel):
    mode: ContextMode


class AutoModeRequest(BaseModel):
    request: Optional[str] = None


class ModeResponse(BaseModel):
    mode: ContextMode


class EndpointPayload(BaseModel):
    repo: str
    component: str
    page_id: Optional[int] = None


class LinkRequest(BaseModel):
    description: str
    source: EndpointPayload
    target: EndpointPayload
    relationship: str
    wiki_page_id: Optional[int] = None


class FileRequest(BaseModel):
    path: str


class FileMappingRequest(BaseModel):
    path: str
    page_id: int
    hash: Optional[str] = None


class SyncRequest(BaseModel):
    path: str
    page_id: Optional[int] = None
    force: bool = False
    auto_path: bool = True


class SyncResponse(BaseModel):
    path: str
    skipped: bool
    wiki_path: Optional[str] = None
    page_id: Optional[int] = None
    text: str


class ChangeResponse(BaseModel):
    path: str
    changed: bool
    text: str


class FileMappingResponse(BaseModel):
    path: str
    page_id: int
    hash: str
    last_updated: Optional[str] = None


class ContextResponse(BaseModel):
    mode: ContextMode
    token_count: int
    data: Dict[str, Any]
    text: str


class DocumentResponse(BaseModel):
    """Rendered text plus the structured document it describes."""

    text: str
    document: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str


def _default_manager() -> ContextManager:
    return ContextManager.from_config(load_config(Path.cwd()))


def create_app(
    manager_factory: Callable[[], ContextManager] = _default_manager,
    wiki_factory: Optional[Callable[[], WikiService]] = None,
) -> FastAPI:
    """Create the FastAPI application exposing wikisync operations.

    A single manager is created up front so the active context mode set via
    ``/context/mode`` applies to later requests. ``wiki_factory`` supplies the
    wiki used by ``/files/sync`` when a request carries no page id.
    """
    app = FastAPI(title="wikisync", version="0.1.0")
    manager = manager_factory()
    app.state.manager = manager

    async def get_manager() -> ContextManager:
        return manager

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/context/detect", response_model=DocumentResponse)
    async def detect(
        payload: DetectRequest, manager: ContextManager = Depends(get_manager)
    ) -> DocumentResponse:
        detector = manager.detector
        if payload.directory:
            detector = ContextDetector(payload.directory, options=manager.detector.options)
        info = await _run_blocking(detector.detect_context)
        return DocumentResponse(text=render_context_info(info), document=_context_info_payload(info))

    @app.post("/repository/init", response_model=DocumentResponse)
    async def init_repository(
        payload: InitRepositoryRequest, manager: ContextManager = Depends(get_manager)
    ) -> DocumentResponse:
        context = await _run_blocking(
            lambda: manager.init_repository(
                repo_root=payload.repo_root,
                wiki_space=payload.wiki_space,
                workspace_name=payload.workspace_name,
            )
        )
        return DocumentResponse(
            text=render_repository_init(context), document=repository_context_to_dict(context)
        )

    @app.post("/workspace/init", response_model=DocumentResponse)
    async def init_workspace(
        payload: InitWorkspaceRequest, manager: ContextManager = Depends(get_manager)
    ) -> DocumentResponse:
        specs = None
        if payload.repositories is not None:
            specs = [
                RepositorySpec(name=repo.name, path=repo.path, wiki_space=repo.wiki_space)
                for repo in payload.repositories
            ]
        context = await _run_blocking(
            lambda: manager.init_workspace(
                workspace_name=payload.workspace_name,
                workspace_root=payload.workspace_root,
                repositories=specs,
            )
        )
        return DocumentResponse(
            text=render_workspace_init(context), document=workspace_context_to_dict(context)
        )

    @app.post("/context/mode", response_model=ModeResponse)
    async def set_mode(
        payload: ModeRequest, manager: ContextManager = Depends(get_manager)
    ) -> ModeResponse:
        return ModeResponse(mode=manager.set_context_mode(payload.mode))

    @app.post("/context/auto-mode", response_model=ModeResponse)
    async def auto_mode(
        payload: AutoModeRequest, manager: ContextManager = Depends(get_manager)
    ) -> ModeResponse:
        mode = await _run_blocking(lambda: manager.auto_detect_context_mode(payload.request))
        return ModeResponse(mode=mode)

    @app.get("/context", response_model=ContextResponse)
    async def get_context(
        mode: Optional[ContextMode] = None, manager: ContextManager = Depends(get_manager)
    ) -> ContextResponse:
        context = await _run_blocking(lambda: manager.get_context_for_claude(mode))
        return ContextResponse(
            mode=context.mode,
            token_count=context.token_count,
            data=context.data,
            text=render_context_data(context),
        )

    @app.get("/repository/status", response_model=DocumentResponse)
    async def repository_status(manager: ContextManager = Depends(get_manager)) -> DocumentResponse:
        context = await _run_blocking(manager.load_repository_context)
        document = repository_context_to_dict(context) if context is not None else None
        return DocumentResponse(text=render_repository_status(context), document=document)

    @app.get("/workspace/status", response_model=DocumentResponse)
    async def workspace_status(manager: ContextManager = Depends(get_manager)) -> DocumentResponse:
        context = await _run_blocking(manager.load_workspace_context)
        document = workspace_context_to_dict(context) if context is not None else None
        return DocumentResponse(text=render_workspace_status(context), document=document)

    @app.post("/links", response_model=DocumentResponse)
    async def add_link(
        payload: LinkRequest, manager: ContextManager = Depends(get_manager)
    ) -> DocumentResponse:
        link = await _run_blocking(
            lambda: manager.add_architectural_link(
                description=payload.description,
                source=LinkEndpoint(**payload.source.model_dump()),
                target=LinkEndpoint(**payload.target.model_dump()),
                relationship=payload.relationship,
                wiki_page_id=payload.wiki_page_id,
            )
        )
        return DocumentResponse(text=render_link(link), document=link_to_dict(link))

    @app.post("/files/changed", response_model=ChangeResponse)
    async def file_changed(
        payload: FileRequest, manager: ContextManager = Depends(get_manager)
    ) -> ChangeResponse:
        changed = await _run_blocking(lambda: manager.has_file_changed(payload.path))
        return ChangeResponse(
            path=payload.path, changed=changed, text=render_change_status(payload.path, changed)
        )

    @app.post("/files/mapping", response_model=FileMappingResponse)
    async def add_mapping(
        payload: FileMappingRequest, manager: ContextManager = Depends(get_manager)
    ) -> FileMappingResponse:
        def _record() -> FileMappingResponse:
            mapping = manager.add_file_mapping(payload.path, payload.page_id, payload.hash)
            return FileMappingResponse(
                path=manager.relative_path(payload.path),
                page_id=mapping.page_id,
                hash=mapping.hash,
                last_updated=mapping.last_updated,
            )

        return await _run_blocking(_record)

    @app.post("/files/sync", response_model=SyncResponse)
    async def sync_file(
        payload: SyncRequest, manager: ContextManager = Depends(get_manager)
    ) -> SyncResponse:
        if payload.page_id is not None:
            wiki: WikiService = ExternalPublication(payload.page_id)
        elif wiki_factory is not None:
            wiki = wiki_factory()
        else:
            raise WikiSyncError("No wiki service configured; supply page_id")
        outcome = await _run_blocking(
            lambda: smart_sync_file(
                manager, wiki, payload.path, force=payload.force, auto_path=payload.auto_path
            )
        )
        return SyncResponse(
            path=outcome.file_path,
            skipped=outcome.skipped,
            wiki_path=outcome.wiki_path,
            page_id=outcome.page_id,
            text=render_sync_outcome(outcome),
        )

    @app.exception_handler(ContextNotFoundError)
    async def context_not_found_handler(_: Any, exc: ContextNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(WikiSyncError)
    async def wikisync_error_handler(_: Any, exc: WikiSyncError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


async def _run_blocking(func: Callable[[], _T]) -> _T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def _context_info_payload(info: ContextInfo) -> Dict[str, Any]:
    return {
        "currentDir": str(info.current_dir),
        "gitRoot": str(info.git_root) if info.git_root else None,
        "workspaceRoot": str(info.workspace_root) if info.workspace_root else None,
        "isMonorepo": info.is_monorepo,
        "detectedRepos": [str(repo) for repo in info.detected_repos],
        "suggestedLevel": info.suggested_level.value,
        "hasRepoContext": info.has_repo_context,
        "hasWorkspaceContext": info.has_workspace_context,
    }


def run_service(
    host: str = "127.0.0.1", port: int = 8000, config: WikiSyncConfig | None = None
) -> None:  # pragma: no cover - integration path
    import uvicorn

    if config is not None:
        app = create_app(lambda: ContextManager.from_config(config))
    else:
        app = create_app()
    logger.info("Serving wikisync tools on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)
