"""Human-readable summaries of context operations for the CLI and tool layer."""

from __future__ import annotations

import json
from typing import List

from .context.store import ContextStore
from .models import (
    ArchitecturalLink,
    ContextData,
    ContextInfo,
    FileMapping,
    KeyPage,
    NetworkDiagram,
    RepositoryContext,
    WorkspaceContext,
)
from .sync import SyncOutcome

_RECENT_FILES_SHOWN = 5


def render_context_info(info: ContextInfo) -> str:
    lines = [
        "Context Detection Results:",
        "",
        f"Current Directory: {info.current_dir}",
        f"Git Root: {info.git_root or 'None'}",
        f"Workspace Root: {info.workspace_root or 'None'}",
        f"Is Monorepo: {_yes_no(info.is_monorepo)}",
        f"Detected Repositories: {len(info.detected_repos)}",
        f"Suggested Context Level: {info.suggested_level.value}",
        f"Has Repository Context: {_yes_no(info.has_repo_context)}",
        f"Has Workspace Context: {_yes_no(info.has_workspace_context)}",
    ]
    if info.detected_repos:
        lines.extend(["", "Detected Repositories:"])
        lines.extend(f"- {repo}" for repo in info.detected_repos)
    return "\n".join(lines)


def render_repository_init(context: RepositoryContext) -> str:
    state_path = ContextStore.repository_state_path(context.repo_root)
    return "\n".join(
        [
            "Repository context initialized.",
            "",
            f"Repository: {context.repo_name}",
            f"Root Path: {context.repo_root}",
            f"Wiki Space: {context.wiki_space}",
            f"Context Level: {context.context_level.value}",
            f"Parent Workspace: {context.parent_workspace or 'None'}",
            f"Last Sync: {context.last_sync}",
            "",
            f"Context file created at: {state_path}",
        ]
    )


def render_workspace_init(context: WorkspaceContext) -> str:
    state_path = ContextStore.workspace_state_path(context.workspace_root)
    lines = [
        "Workspace context initialized.",
        "",
        f"Workspace: {context.workspace_name}",
        f"Root Path: {context.workspace_root}",
        f"Context Level: {context.context_level.value}",
        f"Repositories: {len(context.repositories)}",
        f"Architecture Wiki Space: {context.system_architecture.wiki_space}",
        f"Last Sync: {context.last_sync}",
    ]
    if context.repositories:
        lines.extend(["", "Repositories:"])
        lines.extend(
            f"- {name}: {entry.path} ({entry.wiki_space})"
            for name, entry in context.repositories.items()
        )
    lines.extend(["", f"Context file created at: {state_path}"])
    return "\n".join(lines)


def render_context_data(context: ContextData) -> str:
    return "\n".join(
        [
            f"Current Context ({context.mode.value.upper()}):",
            f"Token Budget: {context.token_count} tokens",
            "",
            json.dumps(context.data, indent=2, ensure_ascii=False),
        ]
    )


def render_repository_status(context: RepositoryContext | None) -> str:
    if context is None:
        return "No repository context found.\n\nInitialize one with: wikisync init-repo"

    quick = context.quick_context
    recent: List[str] = [
        f"- {path} -> Page {mapping.page_id}"
        for path, mapping in list(quick.recent_files.items())[-_RECENT_FILES_SHOWN:]
    ]
    lines = [
        "Repository Status:",
        "",
        f"Repository: {context.repo_name}",
        f"Root Path: {context.repo_root}",
        f"Wiki Space: {context.wiki_space}",
        f"Parent Workspace: {context.parent_workspace or 'None'}",
        f"Last Sync: {context.last_sync}",
        "",
        "Quick Stats:",
        f"- Total Files Tracked: {quick.total_files}",
        f"- Total Pages Created: {quick.total_pages}",
        f"- Key Pages: {len(quick.key_pages)}",
        "",
        "Recent Files:",
    ]
    lines.extend(recent or ["None tracked yet"])
    return "\n".join(lines)


def render_workspace_status(context: WorkspaceContext | None) -> str:
    if context is None:
        return "No workspace context found.\n\nInitialize one with: wikisync init-workspace"

    architecture = context.system_architecture
    lines = [
        "Workspace Status:",
        "",
        f"Workspace: {context.workspace_name}",
        f"Root Path: {context.workspace_root}",
        f"Last Sync: {context.last_sync}",
        "",
        f"Repositories ({len(context.repositories)}):",
    ]
    for name, entry in context.repositories.items():
        lines.extend(
            [
                f"- {name}",
                f"    Wiki Space: {entry.wiki_space}",
                f"    Path: {entry.path}",
                f"    Key Pages: {len(entry.key_pages)}",
            ]
        )
    lines.extend(
        [
            "",
            "System Architecture:",
            f"- Wiki Space: {architecture.wiki_space}",
            f"- Network Diagrams: {len(architecture.network_diagrams)}",
            f"- Cross-Repo Mappings: {len(architecture.cross_repo_mappings)}",
        ]
    )
    return "\n".join(lines)


def render_link(link: ArchitecturalLink) -> str:
    return "\n".join(
        [
            "Cross-repository architectural link created.",
            "",
            f"Id: {link.id}",
            f"Relationship: {link.relationship}",
            f"Description: {link.description}",
            "",
            f"From: {link.source.repo}/{link.source.component}",
            f"To: {link.target.repo}/{link.target.component}",
        ]
    )


def render_change_status(path: str, changed: bool) -> str:
    if changed:
        return f"{path} has changed since the last sync (or is not tracked yet)."
    return f"{path} is unchanged since the last sync."


def render_file_mapping(path: str, mapping: FileMapping) -> str:
    return f"Mapped {path} to page {mapping.page_id} ({mapping.hash or 'unreadable'})"


def render_key_page(page: KeyPage) -> str:
    return f"Key page {page.path} (page {page.page_id}, {page.importance})"


def render_network_diagram(diagram: NetworkDiagram) -> str:
    return f"Network diagram {diagram.path} registered (page {diagram.page_id})"


def render_sync_outcome(outcome: SyncOutcome) -> str:
    if outcome.skipped:
        return "\n".join(
            [
                f"{outcome.file_path} has not changed since the last sync; skipping update.",
                "",
                "Use --force to override this behaviour.",
            ]
        )
    return "\n".join(
        [
            f"Synced {outcome.file_path}",
            "",
            f"Wiki Path: {outcome.wiki_path}",
            f"Page Id: {outcome.page_id}",
        ]
    )


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


__all__ = [
    "render_change_status",
    "render_context_data",
    "render_context_info",
    "render_file_mapping",
    "render_key_page",
    "render_link",
    "render_network_diagram",
    "render_repository_init",
    "render_repository_status",
    "render_sync_outcome",
    "render_workspace_init",
    "render_workspace_status",
]
