"""Cache archive transport.

This package defines the :class:`CacheTransport` protocol the restore and
save steps depend on, and :class:`DiskCacheTransport`, a local store backed
by :mod:`diskcache` that implements it. Any object with matching
``restore`` and ``save`` methods can stand in, e.g. a client for a remote
cache service.
"""

from depcache.transport.base import CacheTransport
from depcache.transport.disk import DiskCacheTransport

__all__ = ["CacheTransport", "DiskCacheTransport"]
