"""CLI parser and command behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tests._fixtures.workspace_builder import WorkspaceBuilder
from wikisync.cli import _build_parser, main
from wikisync.models import REPOSITORY_STATE_FILENAME, WORKSPACE_STATE_FILENAME


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "status"])
    assert args.verbose is True
    assert args.command == "status"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["status", "--verbose"])
    assert args.verbose is True
    assert args.command == "status"


def test_cli_collects_repeated_repositories() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        ["init-workspace", "--repo", "api", "/src/api", "api-docs", "--repo", "web", "/src/web", "web"]
    )
    assert args.repo == [["api", "/src/api", "api-docs"], ["web", "/src/web", "web"]]


def test_cli_rejects_unknown_mode() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["context", "--mode", "galaxy"])


def test_cli_rejects_mode_with_request() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["context", "--mode", "workspace", "--request", "architecture"])


def test_init_repo_and_status_commands(
    workspace_builder: WorkspaceBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = workspace_builder.repo("api", {"README.md": "# api\n"})

    main(["-C", str(repo), "init-repo", "--wiki-space", "api-docs"])
    main(["-C", str(repo), "map", "README.md", "9"])
    main(["-C", str(repo), "status"])

    output = capsys.readouterr().out
    assert "Repository context initialized." in output
    assert "Wiki Space: api-docs" in output
    assert "Mapped README.md to page 9" in output
    assert "- README.md -> Page 9" in output
    payload = json.loads((repo / REPOSITORY_STATE_FILENAME).read_text(encoding="utf-8"))
    assert payload["quickContext"]["totalFiles"] == 1


def test_changed_command_reports_status(
    workspace_builder: WorkspaceBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = workspace_builder.repo("api", {"README.md": "# api\n"})
    main(["-C", str(repo), "init-repo"])
    main(["-C", str(repo), "map", "README.md", "1"])
    capsys.readouterr()

    main(["-C", str(repo), "changed", "README.md"])

    assert "README.md is unchanged since the last sync." in capsys.readouterr().out


def test_context_command_prints_placeholder(
    workspace_builder: WorkspaceBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = workspace_builder.repo("api")

    main(["-C", str(repo), "context", "--mode", "architectural"])

    output = capsys.readouterr().out
    assert "Current Context (ARCHITECTURAL):" in output
    assert "Token Budget: 150 tokens" in output


def test_workspace_commands(
    workspace_builder: WorkspaceBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    root = workspace_builder.repo(".")
    workspace_builder.repo("api")
    workspace_builder.repo("web")

    main(["-C", str(root), "detect"])
    main(["-C", str(root), "init-workspace", "--workspace-name", "platform"])
    main(
        [
            "-C",
            str(root),
            "link",
            "--description",
            "web calls api",
            "--from-repo",
            "web",
            "--from-component",
            "client",
            "--to-repo",
            "api",
            "--to-component",
            "router",
            "--relationship",
            "calls",
        ]
    )
    main(["-C", str(root), "workspace-status"])

    output = capsys.readouterr().out
    assert "Suggested Context Level: workspace" in output
    assert "Architecture Wiki Space: platform-architecture" in output
    assert "From: web/client" in output
    assert "- Cross-Repo Mappings: 1" in output
    assert (root / WORKSPACE_STATE_FILENAME).exists()


def test_auto_mode_command(
    workspace_builder: WorkspaceBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = workspace_builder.repo("api")

    main(["-C", str(repo), "auto-mode", "sync docs across repos"])

    assert capsys.readouterr().out.strip() == "workspace"


def test_map_without_context_exits_with_error(
    workspace_builder: WorkspaceBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = workspace_builder.repo("api", {"README.md": "# api\n"})

    with pytest.raises(SystemExit) as excinfo:
        main(["-C", str(repo), "map", "README.md", "3"])

    assert excinfo.value.code == 1
    assert "No repository context found" in capsys.readouterr().err


def test_invalid_config_exits_with_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / ".wikisync.yml").write_text("- not a mapping\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["-C", str(tmp_path), "detect"])

    assert excinfo.value.code == 1
    assert "mapping" in capsys.readouterr().err


def test_sync_command_skips_unchanged_file(
    workspace_builder: WorkspaceBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    repo = workspace_builder.repo("api", {"README.md": "# api\n"})
    main(["-C", str(repo), "init-repo", "--wiki-space", "api"])
    capsys.readouterr()

    main(["-C", str(repo), "sync", "README.md", "--page-id", "5"])
    first = capsys.readouterr().out
    main(["-C", str(repo), "sync", "README.md", "--page-id", "5"])
    second = capsys.readouterr().out
    main(["-C", str(repo), "sync", "README.md", "--page-id", "6", "--force", "--no-auto-path"])
    forced = capsys.readouterr().out

    assert "Synced README.md" in first
    assert "Wiki Path: /api/README.md" in first
    assert "Page Id: 5" in first
    assert "has not changed since the last sync" in second
    assert "Wiki Path: /docs/README" in forced
    payload = json.loads((repo / REPOSITORY_STATE_FILENAME).read_text(encoding="utf-8"))
    assert payload["quickContext"]["recentFiles"]["README.md"]["pageId"] == 6


def test_cli_sync_requires_page_id() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["sync", "README.md"])


def test_key_page_and_diagram_commands(
    workspace_builder: WorkspaceBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    root = workspace_builder.repo(".")
    workspace_builder.repo("api")
    workspace_builder.repo("web")
    main(["-C", str(root), "init-repo"])
    main(["-C", str(root), "init-workspace"])
    capsys.readouterr()

    main(["-C", str(root), "key-page", "/ws/home", "2", "--importance", "high"])
    main(["-C", str(root), "diagram", "/platform/net", "7"])

    output = capsys.readouterr().out
    assert "Key page /ws/home (page 2, high)" in output
    assert "Network diagram /platform/net registered (page 7)" in output
