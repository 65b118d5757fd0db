"""Primary and fallback cache key derivation.

Keys have the shape::

    [<prefix>-]<tool>-<platform>-[<image os>-]<runtime>-<version>[-<manifest hash>]

The primary key carries the manifest hash so that it is unique per exact
dependency content. The two restore keys drop the hash so that a run whose
dependencies changed still seeds from the closest earlier cache instead of
starting cold. They are ordered prefixed first, unprefixed second, and the
cache store tries them in that order.
"""

from __future__ import annotations

from typing import Optional

from depcache.models import CacheKeySet

LINUX_PLATFORM = "linux"


class KeyBuilder:
    """Compose :class:`~depcache.models.CacheKeySet` values.

    Args:
        tool_name: Leading key segment identifying the tool that owns the cache.
        runtime_name: Runtime segment placed before the version.

    Example::

        >>> KeyBuilder().build("Linux", "1.21.0", "abc", prefix="nightly",
        ...                    image_os="ubuntu22").primary_key
        'nightly-setup-go-Linux-ubuntu22-go-1.21.0-abc'
    """

    def __init__(self, tool_name: str = "setup-go", runtime_name: str = "go") -> None:
        self.tool_name = tool_name
        self.runtime_name = runtime_name

    def build(
        self,
        platform: str,
        runtime_version: str,
        manifest_hash: str,
        prefix: Optional[str] = None,
        image_os: Optional[str] = None,
    ) -> CacheKeySet:
        """Derive the primary key and the ordered restore keys.

        An empty *manifest_hash* is accepted here; callers must reject it
        before building keys.
        """
        prefix_segment = f"{prefix}-" if prefix else ""
        image_segment = self._image_segment(platform, image_os)

        base_key = (
            f"{self.tool_name}-{platform}-{image_segment}"
            f"{self.runtime_name.lower()}-{runtime_version}"
        )
        prefix_base_key = f"{prefix_segment}{base_key}"
        return CacheKeySet(
            primary_key=f"{prefix_base_key}-{manifest_hash}",
            restore_keys=(prefix_base_key, base_key),
        )

    @staticmethod
    def _image_segment(platform: str, image_os: Optional[str]) -> str:
        # Linux runner images are versioned independently of the OS name.
        if platform.lower() == LINUX_PLATFORM and image_os:
            return f"{image_os}-"
        return ""
