"""The interface between the restore/save steps and a cache store."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence


class CacheTransport(Protocol):
    """Retrieve and store cache archives by key.

    Implementations must not translate their own failures (I/O errors,
    unavailable stores) into a miss: a miss is ``None`` from :meth:`restore`
    and nothing else.
    """

    def restore(
        self,
        target_paths: Sequence[str],
        primary_key: str,
        fallback_keys: Sequence[str],
    ) -> Optional[str]:
        """Restore the best entry into *target_paths* and return its key.

        The primary key must match exactly. Fallback keys are tried in the
        given order after it; the first one that matches wins. Returns
        ``None`` when nothing matched.
        """
        ...

    def save(self, target_paths: Sequence[str], key: str) -> bool:
        """Store *target_paths* under *key*.

        Entries are immutable: returns ``False`` without writing when *key*
        already exists.
        """
        ...
