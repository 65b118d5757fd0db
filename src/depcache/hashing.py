"""Content hashing of cache inputs.

Two :class:`HashProvider` implementations are shipped:

* :class:`FileContentHasher` hashes the *content* of the files named by a
  set of paths or gitignore-style glob patterns. It drives the primary
  cache key, so identical manifests always produce identical hashes.
* :class:`DirectoryMetaHasher` hashes file *metadata* (relative path, size,
  modification time) under whole directories. It is used for the build
  cache, which is far too large to read in full on every run.

Both return an empty string when nothing matched; callers treat that as
"no hashable content".
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Iterable, Protocol, Sequence

import pathspec

_CHUNK_SIZE = 1024 * 1024

# Directories never descended into while expanding glob patterns.
_ALWAYS_SKIP = frozenset({".git"})


class HashProvider(Protocol):
    """Anything that maps an ordered sequence of paths to a stable hash string."""

    def hash(self, paths: Sequence[str]) -> str:
        ...


def sha256_file(path: str | Path) -> str:
    """Return the hex SHA-256 of a file by streaming it."""
    hasher = hashlib.sha256()
    with Path(path).open("rb") as handle:
        while True:
            chunk = handle.read(_CHUNK_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


class FileContentHasher:
    """Hash file contents matched by paths and glob patterns.

    Each entry passed to :meth:`hash` may contain several newline-separated
    patterns. Every pattern is resolved as follows:

    * an existing file is taken as-is;
    * an existing directory contributes every file beneath it;
    * anything else is a gitignore-style glob (``**/go.sum``,
      ``!vendor/**``) matched via :mod:`pathspec` against paths relative to
      *root*.

    Matched files are hashed in sorted path order and their digests folded
    into a single SHA-256.

    Args:
        root: Base directory for relative patterns and glob expansion.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def hash(self, paths: Sequence[str]) -> str:
        files = self.match_files(paths)
        if not files:
            return ""
        outer = hashlib.sha256()
        for path in files:
            outer.update(bytes.fromhex(sha256_file(path)))
        return outer.hexdigest()

    def match_files(self, paths: Sequence[str]) -> list[Path]:
        """Expand *paths* into the sorted list of files that would be hashed."""
        matched: set[Path] = set()
        globs: list[str] = []

        for line in _split_patterns(paths):
            candidate = Path(line)
            if not candidate.is_absolute():
                candidate = self._root / candidate
            if candidate.is_file():
                matched.add(candidate)
            elif candidate.is_dir():
                matched.update(_walk_files(candidate))
            else:
                glob = self._relative_glob(line)
                if glob is not None:
                    globs.append(glob)

        if globs and self._root.is_dir():
            matcher = pathspec.PathSpec.from_lines("gitwildmatch", globs)
            for path in _walk_files(self._root):
                if matcher.match_file(path.relative_to(self._root).as_posix()):
                    matched.add(path)

        return sorted(matched)

    def _relative_glob(self, pattern: str) -> str | None:
        """Rewrite an absolute glob relative to the root; ``None`` if it lies outside."""
        negate = pattern.startswith("!")
        body = pattern[1:] if negate else pattern
        if not os.path.isabs(body):
            return pattern
        try:
            rel = Path(body).relative_to(self._root).as_posix()
        except ValueError:
            return None
        return f"!{rel}" if negate else rel


class DirectoryMetaHasher:
    """Hash the file metadata under whole directories.

    Each file contributes its path relative to the hashed directory, its size
    and its modification time in nanoseconds. Nonexistent directories
    contribute nothing.
    """

    def hash(self, paths: Sequence[str]) -> str:
        hasher = hashlib.sha256()
        seen = 0
        for directory in paths:
            root = Path(directory)
            if not root.is_dir():
                continue
            for path in _walk_files(root):
                stat = path.stat()
                rel = path.relative_to(root).as_posix()
                hasher.update(f"{rel}\0{stat.st_size}\0{stat.st_mtime_ns}\n".encode())
                seen += 1
        return hasher.hexdigest() if seen else ""


def _split_patterns(paths: Iterable[str]) -> list[str]:
    lines: list[str] = []
    for entry in paths:
        for line in entry.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                lines.append(line)
    return lines


def _walk_files(root: Path) -> list[Path]:
    """Return every regular file beneath *root*, sorted, with ``.git`` pruned."""
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(str(root)):
        dirnames[:] = sorted(d for d in dirnames if d not in _ALWAYS_SKIP)
        for fname in filenames:
            path = Path(dirpath) / fname
            if path.is_file():
                files.append(path)
    return sorted(files)
