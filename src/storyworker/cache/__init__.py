"""Versioned response stores for storyworker.

This package provides :class:`CacheStorage`, the set of named stores kept
under the cache root, and :class:`CacheStore`, a single store holding
:class:`~storyworker.models.CachedResponse` values on disk via
:mod:`diskcache`.

The stores are consumed by the interception engine
(:mod:`storyworker.engine`) and pruned by the lifecycle manager
(:mod:`storyworker.lifecycle`).
"""

from storyworker.cache.store import CacheStorage, CacheStore, make_key

__all__ = ["CacheStorage", "CacheStore", "make_key"]
