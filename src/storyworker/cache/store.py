"""Named, durable response stores backed by :mod:`diskcache`.

Each store lives in its own subdirectory of the cache root and holds
:class:`~storyworker.models.CachedResponse` values keyed by request
identity.  Only GET-derived entries are ever written; a write to an
existing key overwrites it.

Cache keys are SHA-256 hashes of ``METHOD|URL|header:value...`` where the
headers are the configured key headers in sorted order, so identical
requests always resolve to the same entry.

Store names follow the ``<prefix>-<kind>-<version>`` convention from
:class:`~storyworker.models.WorkerConfig`, but any name without a path
separator is accepted.
"""

from __future__ import annotations

import hashlib
import shutil
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterable, Optional

import diskcache

from storyworker.exceptions import StoreUnavailable
from storyworker.models import CachedResponse, InterceptedRequest

_STORE_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)
_DB_FILENAME = "cache.db"


def make_key(request: InterceptedRequest, key_headers: Iterable[str] = ()) -> str:
    """Generate a cache key from method, URL, and the selected request headers."""
    headers = {k.lower(): v for k, v in request.headers.items()}
    parts = [request.method.upper(), request.url]
    for name in sorted(h.lower() for h in key_headers):
        parts.append(f"{name}:{headers.get(name, '')}")
    raw = "|".join(parts)
    return hashlib.sha256(raw.encode()).hexdigest()


class CacheStore:
    """A single named store.

    Values are dicts with ``method``, ``url`` and ``response`` keys, where
    ``response`` is the dumped :class:`CachedResponse`.

    Args:
        name: Store name.
        directory: Directory holding the store's diskcache files.
        key_headers: Request headers that take part in the key.
    """

    def __init__(
        self, name: str, directory: Path, key_headers: Iterable[str] = ()
    ) -> None:
        self.name = name
        self._directory = directory
        self._key_headers = tuple(key_headers)
        try:
            self._cache = diskcache.Cache(str(directory))
        except _STORE_ERRORS as exc:
            raise StoreUnavailable(f"Cannot open store '{name}': {exc}") from exc

    def get(self, request: InterceptedRequest) -> Optional[CachedResponse]:
        """Return the stored response for *request*, or ``None`` on a miss.

        Non-GET requests always miss.
        """
        if not request.is_get:
            return None
        key = make_key(request, self._key_headers)
        try:
            entry = self._cache.get(key)
        except _STORE_ERRORS as exc:
            raise StoreUnavailable(f"Cannot read store '{self.name}': {exc}") from exc
        if entry is None:
            return None
        return CachedResponse.model_validate(entry["response"])

    def put(self, request: InterceptedRequest, response: CachedResponse) -> None:
        """Store *response* under *request*'s key.

        Non-GET requests are silently skipped.

        Raises:
            StoreUnavailable: If the underlying write fails.
        """
        if not request.is_get:
            return
        key = make_key(request, self._key_headers)
        entry = {
            "method": request.method.upper(),
            "url": request.url,
            "response": response.model_dump(),
        }
        try:
            self._cache.set(key, entry)
        except _STORE_ERRORS as exc:
            raise StoreUnavailable(f"Cannot write store '{self.name}': {exc}") from exc

    def put_many(
        self, items: Iterable[tuple[InterceptedRequest, CachedResponse]]
    ) -> None:
        """Store several responses in one transaction: all are written or none."""
        try:
            with self._cache.transact():
                for request, response in items:
                    self.put(request, response)
        except _STORE_ERRORS as exc:
            raise StoreUnavailable(f"Cannot write store '{self.name}': {exc}") from exc

    def delete(self, request: InterceptedRequest) -> bool:
        """Remove the entry for *request*. Returns whether it existed."""
        key = make_key(request, self._key_headers)
        try:
            return bool(self._cache.delete(key))
        except _STORE_ERRORS as exc:
            raise StoreUnavailable(f"Cannot write store '{self.name}': {exc}") from exc

    def urls(self) -> list[str]:
        """Return the URLs of all stored entries, sorted."""
        try:
            return sorted(self._cache[key]["url"] for key in self._cache.iterkeys())
        except _STORE_ERRORS as exc:
            raise StoreUnavailable(f"Cannot read store '{self.name}': {exc}") from exc

    def __len__(self) -> int:
        return len(self._cache)

    def close(self) -> None:
        self._cache.close()


class CacheStorage:
    """The set of named stores under one cache root.

    Mirrors the browser's cache storage: open-or-create by name, delete by
    name, enumerate names, and match a request across several stores.

    Args:
        root: Cache root directory. One subdirectory per store.
        key_headers: Request headers that take part in every store's keys.

    Example::

        storage = CacheStorage(tmp_path)
        shell = storage.open("storymap-static-v1")
        shell.put(request, response)
        hit = storage.match(request, ["storymap-static-v1", "storymap-dynamic-v1"])
    """

    def __init__(self, root: str | Path, key_headers: Iterable[str] = ()) -> None:
        self._root = Path(root)
        self._key_headers = tuple(key_headers)
        self._open: dict[str, CacheStore] = {}
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def open(self, name: str) -> CacheStore:
        """Return the store called *name*, creating it if needed."""
        _validate_name(name)
        with self._lock:
            store = self._open.get(name)
            if store is None:
                store = CacheStore(name, self._root / name, self._key_headers)
                self._open[name] = store
        return store

    def has(self, name: str) -> bool:
        return name in self._open or (self._root / name / _DB_FILENAME).is_file()

    def keys(self) -> list[str]:
        """Enumerate the names of all existing stores."""
        names = set(self._open)
        if self._root.is_dir():
            try:
                names.update(
                    p.name
                    for p in self._root.iterdir()
                    if p.is_dir() and (p / _DB_FILENAME).is_file()
                )
            except OSError as exc:
                raise StoreUnavailable(f"Cannot list stores in {self._root}: {exc}") from exc
        return sorted(names)

    def delete(self, name: str) -> bool:
        """Delete the store called *name* and its files.

        Returns:
            ``True`` if a store was deleted, ``False`` if none existed.
        """
        _validate_name(name)
        existed = self.has(name)
        with self._lock:
            store = self._open.pop(name, None)
        if store is not None:
            store.close()
        path = self._root / name
        if path.exists():
            try:
                shutil.rmtree(path)
            except OSError as exc:
                raise StoreUnavailable(f"Cannot delete store '{name}': {exc}") from exc
        return existed

    def match(
        self, request: InterceptedRequest, names: Optional[Iterable[str]] = None
    ) -> Optional[CachedResponse]:
        """Look *request* up in each store of *names* in order.

        Stores that do not exist yet are skipped rather than created.
        When *names* is omitted, every existing store is searched.
        """
        for name in names if names is not None else self.keys():
            if not self.has(name):
                continue
            hit = self.open(name).get(request)
            if hit is not None:
                return hit
        return None

    def stats(self) -> list[dict[str, Any]]:
        """Return ``name`` / ``entries`` for each existing store."""
        return [{"name": name, "entries": len(self.open(name))} for name in self.keys()]

    def close(self) -> None:
        for store in self._open.values():
            store.close()
        self._open.clear()


def _validate_name(name: str) -> None:
    if not name or "/" in name or "\\" in name or name in (".", ".."):
        raise StoreUnavailable(f"Invalid store name: {name!r}")
