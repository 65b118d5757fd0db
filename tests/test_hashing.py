"""Tests for depcache.hashing -- manifest content and build directory hashing."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

from depcache.hashing import DirectoryMetaHasher, FileContentHasher, sha256_file


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestSha256File:
    def test_matches_hashlib(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "a.txt", "hello")
        assert sha256_file(path) == hashlib.sha256(b"hello").hexdigest()


class TestFileContentHasher:
    def test_single_file_digest(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "go.sum", "content")
        inner = hashlib.sha256(b"content").digest()
        expected = hashlib.sha256(inner).hexdigest()
        assert FileContentHasher(tmp_path).hash([str(path)]) == expected

    def test_same_content_same_hash(self, tmp_path: Path) -> None:
        a = _write(tmp_path / "a" / "go.sum", "same")
        b = _write(tmp_path / "b" / "go.sum", "same")
        hasher = FileContentHasher(tmp_path)
        assert hasher.hash([str(a)]) == hasher.hash([str(b)])

    def test_different_content_different_hash(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "go.sum", "one")
        hasher = FileContentHasher(tmp_path)
        first = hasher.hash([str(path)])
        path.write_text("two")
        assert hasher.hash([str(path)]) != first

    def test_relative_path_resolved_against_root(self, tmp_path: Path) -> None:
        _write(tmp_path / "go.sum", "x")
        hasher = FileContentHasher(tmp_path)
        assert hasher.hash(["go.sum"]) == hasher.hash([str(tmp_path / "go.sum")])

    def test_missing_path_hashes_to_empty(self, tmp_path: Path) -> None:
        assert FileContentHasher(tmp_path).hash([str(tmp_path / "go.sum")]) == ""

    def test_glob_without_match_hashes_to_empty(self, tmp_path: Path) -> None:
        _write(tmp_path / "go.mod", "module x")
        assert FileContentHasher(tmp_path).hash(["**/go.sum"]) == ""

    def test_glob_matches_nested_files(self, tmp_path: Path) -> None:
        _write(tmp_path / "svc" / "a" / "go.sum", "a")
        _write(tmp_path / "svc" / "b" / "go.sum", "b")
        _write(tmp_path / "svc" / "b" / "go.mod", "m")
        files = FileContentHasher(tmp_path).match_files(["svc/**/go.sum"])
        assert [p.relative_to(tmp_path).as_posix() for p in files] == [
            "svc/a/go.sum",
            "svc/b/go.sum",
        ]

    def test_newline_separated_patterns(self, tmp_path: Path) -> None:
        _write(tmp_path / "go.sum", "a")
        _write(tmp_path / "tools" / "go.sum", "b")
        hasher = FileContentHasher(tmp_path)
        combined = hasher.hash(["go.sum\ntools/go.sum"])
        separate = hasher.hash(["go.sum", "tools/go.sum"])
        assert combined == separate
        assert combined != hasher.hash(["go.sum"])

    def test_negated_glob_excludes(self, tmp_path: Path) -> None:
        _write(tmp_path / "a" / "go.sum", "a")
        _write(tmp_path / "vendor" / "go.sum", "v")
        files = FileContentHasher(tmp_path).match_files(["**/go.sum\n!vendor/**"])
        assert [p.relative_to(tmp_path).as_posix() for p in files] == ["a/go.sum"]

    def test_directory_contributes_all_files(self, tmp_path: Path) -> None:
        _write(tmp_path / "deps" / "one", "1")
        _write(tmp_path / "deps" / "nested" / "two", "2")
        files = FileContentHasher(tmp_path).match_files(["deps"])
        assert len(files) == 2

    def test_git_directory_is_pruned(self, tmp_path: Path) -> None:
        _write(tmp_path / ".git" / "go.sum", "ignored")
        _write(tmp_path / "go.sum", "kept")
        files = FileContentHasher(tmp_path).match_files(["**/go.sum"])
        assert files == [tmp_path / "go.sum"]

    def test_absolute_glob_outside_root_ignored(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        root.mkdir()
        _write(tmp_path / "other" / "go.sum", "x")
        pattern = str(tmp_path / "other" / "*.sum")
        assert FileContentHasher(root).hash([pattern]) == ""

    def test_order_of_inputs_does_not_matter(self, tmp_path: Path) -> None:
        _write(tmp_path / "a.sum", "a")
        _write(tmp_path / "b.sum", "b")
        hasher = FileContentHasher(tmp_path)
        assert hasher.hash(["a.sum", "b.sum"]) == hasher.hash(["b.sum", "a.sum"])


class TestDirectoryMetaHasher:
    def test_empty_for_missing_directory(self, tmp_path: Path) -> None:
        assert DirectoryMetaHasher().hash([str(tmp_path / "absent")]) == ""

    def test_empty_for_empty_directory(self, tmp_path: Path) -> None:
        (tmp_path / "empty").mkdir()
        assert DirectoryMetaHasher().hash([str(tmp_path / "empty")]) == ""

    def test_stable_when_untouched(self, tmp_path: Path) -> None:
        _write(tmp_path / "build" / "obj", "x")
        hasher = DirectoryMetaHasher()
        assert hasher.hash([str(tmp_path / "build")]) == hasher.hash([str(tmp_path / "build")])

    def test_changes_when_file_added(self, tmp_path: Path) -> None:
        _write(tmp_path / "build" / "obj", "x")
        hasher = DirectoryMetaHasher()
        before = hasher.hash([str(tmp_path / "build")])
        _write(tmp_path / "build" / "obj2", "y")
        assert hasher.hash([str(tmp_path / "build")]) != before

    def test_changes_when_mtime_changes(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "build" / "obj", "x")
        hasher = DirectoryMetaHasher()
        before = hasher.hash([str(tmp_path / "build")])
        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
        assert hasher.hash([str(tmp_path / "build")]) != before

    def test_independent_of_directory_location(self, tmp_path: Path) -> None:
        a = _write(tmp_path / "a" / "obj", "x")
        b = _write(tmp_path / "b" / "obj", "x")
        stat = a.stat()
        os.utime(b, ns=(stat.st_atime_ns, stat.st_mtime_ns))
        hasher = DirectoryMetaHasher()
        assert hasher.hash([str(tmp_path / "a")]) == hasher.hash([str(tmp_path / "b")])


def test_meta_hash_is_hex_sha256(tmp_path: Path) -> None:
    _write(tmp_path / "d" / "f", "x")
    digest = DirectoryMetaHasher().hash([str(tmp_path / "d")])
    assert len(digest) == 64
    int(digest, 16)
