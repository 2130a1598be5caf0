"""Deferred replay of locally queued records.

When connectivity returns, a reconnect signal carrying a tag is delivered to
:meth:`ReplayCoordinator.on_sync`.  Only the configured tag
(``sync-stories`` by default) triggers a replay; any other tag is ignored.

A replay reads every queued record, hands the unsynced ones to a
:class:`RemoteSynchronizer`, marks the accepted ones ``synced`` and persists
them in one batched write.  If the batch fails the whole replay fails with
:class:`~storyworker.exceptions.QueueWriteFailed` and the signal is expected
to be retried later; there is no partial-progress bookkeeping.

The default :class:`LocalOnlySynchronizer` accepts every record without
contacting any remote system, so only the local flag advances.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from storyworker.models import QueuedRecord
from storyworker.output import get_output
from storyworker.queue import RecordQueue

DEFAULT_SYNC_TAG = "sync-stories"


class RemoteSynchronizer(Protocol):
    """Pushes queued records to the remote system."""

    async def push(self, records: list[QueuedRecord]) -> list[QueuedRecord]:
        """Return the records the remote system accepted."""
        ...


class LocalOnlySynchronizer:
    """Accepts every record without any remote call."""

    async def push(self, records: list[QueuedRecord]) -> list[QueuedRecord]:
        return list(records)


@dataclass
class ReplayResult:
    """Outcome of one replay."""

    total: int = 0
    pending: int = 0
    replayed: int = 0


class ReplayCoordinator:
    """Replays unsynced records from a :class:`RecordQueue`.

    Args:
        queue: The local record queue.
        remote: Where records are pushed before being marked synced.
        tag: The reconnect tag that triggers a replay.
    """

    def __init__(
        self,
        queue: RecordQueue,
        remote: Optional[RemoteSynchronizer] = None,
        tag: str = DEFAULT_SYNC_TAG,
    ) -> None:
        self._queue = queue
        self._remote = remote or LocalOnlySynchronizer()
        self.tag = tag

    async def on_sync(self, tag: str) -> Optional[ReplayResult]:
        """Handle a reconnect signal. Returns ``None`` for unrecognised tags."""
        get_output().debug(f"Background sync: {tag}")
        if tag != self.tag:
            return None
        return await self.replay()

    async def replay(self) -> ReplayResult:
        """Mark every unsynced record synced.

        Raises:
            QueueWriteFailed: If the batched write fails.
        """
        output = get_output()
        records = await self._queue.read_all()
        unsynced = [record for record in records if not record.synced]
        output.info(f"Found {len(unsynced)} unsynced record(s)")

        result = ReplayResult(total=len(records), pending=len(unsynced))
        if not unsynced:
            return result

        accepted = await self._remote.push(unsynced)
        if accepted:
            updated = [record.model_copy(update={"synced": True}) for record in accepted]
            await self._queue.write_batch(updated)
            result.replayed = len(updated)
        output.info(f"Sync completed: {result.replayed} record(s) synced")
        return result
