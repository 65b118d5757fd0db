"""Disk-backed cache store.

Uses :mod:`diskcache` to persist cache archives on the local filesystem.
Each entry holds one gzipped tar archive per target path, in the order the
paths were given, so restoring with the same path list puts every archive
back where it came from.

Key matching follows the usual CI cache semantics:

* the primary key only matches an entry with exactly that key;
* each fallback key, in order, matches an entry with exactly that key, or
  else the most recently saved entry whose key continues it after a ``-``
  (``go-1.21.1`` matches ``go-1.21.1-<hash>`` but not ``go-1.21.10-<hash>``).

Entries are immutable. :meth:`DiskCacheTransport.save` uses
:meth:`diskcache.Cache.add`, so when two runs race on the same key the first
writer wins and the second is told so.
"""

from __future__ import annotations

import io
import os
import stat
import tarfile
import time
from pathlib import Path
from typing import Any, Optional, Sequence

import diskcache

from depcache.output import debug


class DiskCacheTransport:
    """Local :class:`~depcache.transport.CacheTransport` backed by :mod:`diskcache`.

    Args:
        store_dir: Root directory for the store. ``entries/`` (archives) and
            ``index/`` (save timestamps) subdirectories are created inside it.

    Example::

        from depcache.transport import DiskCacheTransport

        with DiskCacheTransport("/tmp/depcache-store") as store:
            store.save(["/home/runner/go/pkg/mod"], "setup-go-Linux-go-1.21.0-abc")
            key = store.restore(["/home/runner/go/pkg/mod"],
                                "setup-go-Linux-go-1.21.0-def",
                                ["setup-go-Linux-go-1.21.0"])
    """

    def __init__(self, store_dir: str | Path) -> None:
        self._store_dir = Path(store_dir)
        self._entries = diskcache.Cache(str(self._store_dir / "entries"))
        self._index = diskcache.Cache(str(self._store_dir / "index"))

    def __enter__(self) -> DiskCacheTransport:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def restore(
        self,
        target_paths: Sequence[str],
        primary_key: str,
        fallback_keys: Sequence[str],
    ) -> Optional[str]:
        """Extract the best matching entry into *target_paths* and return its key.

        Returns:
            The stored key that was restored, or ``None`` on a miss.
        """
        key = self.match(primary_key, fallback_keys)
        if key is None:
            return None

        archives = self._entries.get(key)
        if archives is None:
            # Index and entries disagree; treat the key as absent.
            return None
        for target, archive in zip(target_paths, archives):
            if archive is None:
                continue
            _extract(archive, Path(target))
        debug(f"restored {len(archives)} archive(s) from {key}")
        return key

    def match(self, primary_key: str, fallback_keys: Sequence[str]) -> Optional[str]:
        """Return the stored key that :meth:`restore` would use, without extracting."""
        if primary_key in self._index:
            return primary_key
        for fallback in fallback_keys:
            if fallback in self._index:
                return fallback
            newest = self._newest_with_prefix(fallback)
            if newest is not None:
                return newest
        return None

    def save(self, target_paths: Sequence[str], key: str) -> bool:
        """Archive *target_paths* under *key*.

        Paths that are not directories are recorded as empty slots so that
        positions still line up on restore.

        Returns:
            ``True`` if the entry was written, ``False`` if *key* already
            existed.
        """
        if key in self._entries:
            self._adopt(key)
            return False
        archives = [_archive(Path(p)) for p in target_paths]
        if not self._entries.add(key, archives):
            self._adopt(key)
            return False
        self._index.set(key, time.time())
        return True

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` objects."""
        self._entries.close()
        self._index.close()

    def _adopt(self, key: str) -> None:
        # An entry without an index row was left by a save that died before
        # indexing it. Entries are written whole, so it can be indexed as is.
        self._index.add(key, time.time())

    def _newest_with_prefix(self, prefix: str) -> Optional[str]:
        best: Optional[tuple[float, str]] = None
        for key in self._index:
            if not key.startswith(f"{prefix}-"):
                continue
            stamp = self._index.get(key, 0.0)
            if best is None or (stamp, key) > best:
                best = (stamp, key)
        return best[1] if best else None


def _archive(path: Path) -> Optional[bytes]:
    """Return a gzipped tar of the directory *path*, or ``None`` if it is not a directory."""
    if not path.is_dir():
        return None
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for child in sorted(path.iterdir()):
            tar.add(str(child), arcname=child.name)
    return buffer.getvalue()


def _extract(archive: bytes, target: Path) -> None:
    """Extract *archive* into *target* with the tarfile ``data`` safety filter.

    Existing content is made owner-writable first: Go leaves its module cache
    read-only, and tarfile cannot replace a read-only file or add to a
    read-only directory.
    """
    target.mkdir(parents=True, exist_ok=True)
    _make_writable(target)
    with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
        tar.extractall(str(target), filter="data")


def _make_writable(root: Path) -> None:
    """Add the owner write bit to *root* and everything beneath it (symlinks excluded)."""
    _add_owner_write(str(root))
    for dirpath, dirnames, filenames in os.walk(str(root)):
        for name in dirnames + filenames:
            _add_owner_write(os.path.join(dirpath, name))


def _add_owner_write(path: str) -> None:
    mode = os.lstat(path).st_mode
    if stat.S_ISLNK(mode) or mode & stat.S_IWUSR:
        return
    os.chmod(path, stat.S_IMODE(mode) | stat.S_IWUSR)
