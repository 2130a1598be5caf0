"""Local record queue: writes the application made while offline.

The replay coordinator only needs two operations, captured by the
:class:`RecordQueue` protocol: read every record, and write a batch of
updated records atomically.  :class:`DiskRecordQueue` implements it on top
of :mod:`diskcache`, one cache directory per named collection, and adds
:meth:`DiskRecordQueue.add` for the application side.  Disk access runs in
a worker thread via :func:`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Iterable, Protocol

import diskcache

from storyworker.exceptions import QueueWriteFailed, StoreUnavailable
from storyworker.models import QueuedRecord

DEFAULT_COLLECTION = "favorites"

_QUEUE_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)


class RecordQueue(Protocol):
    """A named record collection the replay coordinator reads and updates."""

    async def read_all(self) -> list[QueuedRecord]: ...

    async def write_batch(self, records: list[QueuedRecord]) -> None: ...


class DiskRecordQueue:
    """Disk-backed :class:`RecordQueue`.

    Args:
        root: Directory holding one subdirectory per collection.
        collection: Collection name, ``favorites`` by default.

    Example::

        queue = DiskRecordQueue(get_data_dir() / "queue")
        await queue.add(QueuedRecord(id="story-1"))
        unsynced = [r for r in await queue.read_all() if not r.synced]
    """

    def __init__(self, root: str | Path, collection: str = DEFAULT_COLLECTION) -> None:
        self.collection = collection
        self._directory = Path(root) / collection
        try:
            self._cache = diskcache.Cache(str(self._directory))
        except _QUEUE_ERRORS as exc:
            raise StoreUnavailable(f"Cannot open queue '{collection}': {exc}") from exc

    async def read_all(self) -> list[QueuedRecord]:
        """Return every record, ordered by id."""
        try:
            values = await asyncio.to_thread(self._read_values)
        except _QUEUE_ERRORS as exc:
            raise StoreUnavailable(f"Cannot read queue '{self.collection}': {exc}") from exc
        return [QueuedRecord.model_validate(value) for value in values]

    async def write_batch(self, records: Iterable[QueuedRecord]) -> None:
        """Write *records* in one transaction.

        Raises:
            QueueWriteFailed: If the transaction fails; nothing is written.
        """
        rows = [(record.id, record.model_dump()) for record in records]
        try:
            await asyncio.to_thread(self._write_rows, rows)
        except _QUEUE_ERRORS as exc:
            raise QueueWriteFailed(
                f"Batch write to '{self.collection}' failed: {exc}"
            ) from exc

    async def add(self, record: QueuedRecord) -> None:
        """Queue *record* (or overwrite the record with the same id)."""
        await self.write_batch([record])

    def _read_values(self) -> list[dict]:
        return [self._cache[key] for key in sorted(self._cache.iterkeys())]

    def _write_rows(self, rows: list[tuple[str, dict]]) -> None:
        with self._cache.transact():
            for key, value in rows:
                self._cache.set(key, value)

    def close(self) -> None:
        self._cache.close()
