"""Tests for content hashing."""

from __future__ import annotations

import hashlib
from pathlib import Path

from wikisync.hashing import hash_file


def test_hash_file_matches_sha256(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"
    target.write_bytes(b"# Notes\n\nSome text.\n")

    assert hash_file(target) == hashlib.sha256(b"# Notes\n\nSome text.\n").hexdigest()
    assert hash_file(str(target)) == hash_file(target)


def test_hash_file_handles_empty_and_large_files(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.write_bytes(b"")
    large = tmp_path / "large.bin"
    payload = b"x" * (3 * 1024 * 1024 + 17)
    large.write_bytes(payload)

    assert hash_file(empty) == hashlib.sha256(b"").hexdigest()
    assert hash_file(large) == hashlib.sha256(payload).hexdigest()


def test_hash_file_returns_empty_string_when_unreadable(tmp_path: Path) -> None:
    assert hash_file(tmp_path / "missing.txt") == ""
    assert hash_file(tmp_path) == ""
