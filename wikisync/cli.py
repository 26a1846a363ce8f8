"""CLI entrypoints for wikisync commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config
from .context.manager import ContextManager
from .errors import WikiSyncError
from .logging import configure_logging
from .models import ContextMode, LinkEndpoint, RepositorySpec
from .render import (
    render_change_status,
    render_context_data,
    render_context_info,
    render_file_mapping,
    render_key_page,
    render_link,
    render_network_diagram,
    render_repository_init,
    render_repository_status,
    render_sync_outcome,
    render_workspace_init,
    render_workspace_status,
)
from .sync import ExternalPublication, smart_sync_file

_MODES = [mode.value for mode in ContextMode]


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_command(
    subparsers: argparse._SubParsersAction, name: str, help_text: str
) -> argparse.ArgumentParser:
    command = subparsers.add_parser(name, help=help_text)
    _add_verbose_option(command, suppress_default=True)
    return command


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wikisync",
        description="Track which files and repositories are documented in the wiki.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-C",
        "--directory",
        default=None,
        help="Directory to operate from (defaults to REPOSITORY_ROOT or the current directory).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    _add_command(subparsers, "detect", "Detect repository and workspace context.")

    init_repo = _add_command(subparsers, "init-repo", "Initialize the repository context.")
    init_repo.add_argument("--repo-root", default=None, help="Repository root (auto-detected).")
    init_repo.add_argument("--wiki-space", default=None, help="Wiki space (defaults to repo name).")
    init_repo.add_argument("--workspace-name", default=None, help="Parent workspace name.")

    init_ws = _add_command(subparsers, "init-workspace", "Initialize the workspace context.")
    init_ws.add_argument("--workspace-name", default=None, help="Workspace name.")
    init_ws.add_argument("--workspace-root", default=None, help="Workspace root (auto-detected).")
    init_ws.add_argument(
        "--repo",
        nargs=3,
        action="append",
        metavar=("NAME", "PATH", "WIKI_SPACE"),
        default=None,
        help="Register a repository explicitly; repeat for several. Disables auto-detection.",
    )

    context = _add_command(subparsers, "context", "Print the compact context view.")
    selection = context.add_mutually_exclusive_group()
    selection.add_argument("--mode", choices=_MODES, default=None, help="Context mode to project.")
    selection.add_argument(
        "--request", default=None, help="Pick the mode from a natural-language request."
    )

    auto_mode = _add_command(subparsers, "auto-mode", "Print the context mode wikisync would pick.")
    auto_mode.add_argument("request", nargs="?", default=None, help="Optional request text.")

    link = _add_command(subparsers, "link", "Record a cross-repository architectural link.")
    link.add_argument("--description", required=True)
    link.add_argument("--from-repo", required=True)
    link.add_argument("--from-component", required=True)
    link.add_argument("--to-repo", required=True)
    link.add_argument("--to-component", required=True)
    link.add_argument(
        "--relationship", required=True, help="Relationship label (calls, depends-on, ...)."
    )
    link.add_argument("--wiki-page-id", type=int, default=None)

    changed = _add_command(subparsers, "changed", "Report whether a file changed since its last sync.")
    changed.add_argument("path")

    mapping = _add_command(subparsers, "map", "Record the wiki page documenting a file.")
    mapping.add_argument("path")
    mapping.add_argument("page_id", type=int)
    mapping.add_argument("--hash", dest="file_hash", default=None, help="Precomputed SHA-256.")

    key_page = _add_command(subparsers, "key-page", "Mark a wiki page as a key page.")
    key_page.add_argument("path")
    key_page.add_argument("page_id", type=int)
    key_page.add_argument("--importance", choices=["high", "medium", "low"], default="medium")

    diagram = _add_command(subparsers, "diagram", "Register a network diagram page.")
    diagram.add_argument("path")
    diagram.add_argument("page_id", type=int)

    sync = _add_command(
        subparsers, "sync", "Record a page published for a file unless the file is unchanged."
    )
    sync.add_argument("path")
    sync.add_argument(
        "--page-id", type=int, required=True, help="Id of the wiki page holding the file's docs."
    )
    sync.add_argument("--force", action="store_true", help="Record even when the file is unchanged.")
    sync.add_argument(
        "--no-auto-path",
        dest="auto_path",
        action="store_false",
        help="Use /docs/<stem> instead of a context-derived wiki path.",
    )

    _add_command(subparsers, "status", "Show repository documentation status.")
    _add_command(subparsers, "workspace-status", "Show workspace documentation status.")

    serve = _add_command(subparsers, "serve", "Run the HTTP tool service.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for wikisync commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    start = Path(args.directory) if args.directory else Path.cwd()
    try:
        config = load_config(start)
    except WikiSyncError as exc:
        parser.exit(1, f"{exc}\n")
    if args.directory:
        config.repository_root = start.expanduser().resolve()

    configure_logging(verbose=bool(args.verbose), level=config.log_level)

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port, config=config)
        return

    manager = ContextManager.from_config(config)
    try:
        output = _dispatch(manager, args)
    except WikiSyncError as exc:
        parser.exit(1, f"wikisync {args.command} failed: {exc}\n")
    except ValueError as exc:
        parser.exit(2, f"wikisync {args.command}: {exc}\n")
    print(output)


def _dispatch(manager: ContextManager, args: argparse.Namespace) -> str:
    command = args.command
    if command == "detect":
        return render_context_info(manager.detect_context())
    if command == "init-repo":
        return render_repository_init(
            manager.init_repository(
                repo_root=args.repo_root,
                wiki_space=args.wiki_space,
                workspace_name=args.workspace_name,
            )
        )
    if command == "init-workspace":
        specs = None
        if args.repo:
            specs = [RepositorySpec(name=name, path=path, wiki_space=space) for name, path, space in args.repo]
        return render_workspace_init(
            manager.init_workspace(
                workspace_name=args.workspace_name,
                workspace_root=args.workspace_root,
                repositories=specs,
            )
        )
    if command == "context":
        if args.request is not None:
            manager.auto_detect_context_mode(args.request)
        return render_context_data(manager.get_context_for_claude(args.mode))
    if command == "auto-mode":
        return manager.auto_detect_context_mode(args.request).value
    if command == "link":
        return render_link(
            manager.add_architectural_link(
                description=args.description,
                source=LinkEndpoint(repo=args.from_repo, component=args.from_component),
                target=LinkEndpoint(repo=args.to_repo, component=args.to_component),
                relationship=args.relationship,
                wiki_page_id=args.wiki_page_id,
            )
        )
    if command == "changed":
        return render_change_status(args.path, manager.has_file_changed(args.path))
    if command == "map":
        mapping = manager.add_file_mapping(args.path, args.page_id, args.file_hash)
        return render_file_mapping(manager.relative_path(args.path), mapping)
    if command == "key-page":
        return render_key_page(manager.add_key_page(args.path, args.page_id, args.importance))
    if command == "diagram":
        return render_network_diagram(manager.add_network_diagram(args.path, args.page_id))
    if command == "sync":
        outcome = smart_sync_file(
            manager,
            ExternalPublication(args.page_id),
            args.path,
            force=args.force,
            auto_path=args.auto_path,
        )
        return render_sync_outcome(outcome)
    if command == "status":
        return render_repository_status(manager.load_repository_context())
    if command == "workspace-status":
        return render_workspace_status(manager.load_workspace_context())
    raise ValueError(f"Unknown command {command}")  # pragma: no cover - argparse enforces choices


if __name__ == "__main__":
    main(sys.argv[1:])
