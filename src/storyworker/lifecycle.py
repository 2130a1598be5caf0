"""Versioned cache lifecycle: install the shell, prune stale stores, claim control.

A deployment goes through two steps, always in this order:

1. :meth:`LifecycleManager.install` fetches every shell resource of the
   configured version and writes them into the ``shell`` store in a single
   transaction.  If any resource cannot be fetched, or answers with a
   non-2xx status, nothing is written and
   :class:`~storyworker.exceptions.ShellPopulationFailed` is raised.
2. :meth:`LifecycleManager.activate` deletes every store whose name is not
   one of the version's ``shell`` / ``dynamic`` names, then claims control
   of the running application instances without waiting for them to close.

Both steps are idempotent for a given version.
"""

from __future__ import annotations

import asyncio

from storyworker.cache import CacheStorage
from storyworker.client import NetworkClient
from storyworker.exceptions import NetworkUnavailable, ShellPopulationFailed
from storyworker.models import CachedResponse, InterceptedRequest, WorkerConfig
from storyworker.output import get_output


class LifecycleManager:
    """Drives install and activation for the configured version.

    Attributes:
        waiting_skipped: Set once install succeeded; the new version does
            not wait for old instances to close.
        claimed: Set once activation finished; the new version controls all
            active instances.
    """

    def __init__(
        self,
        storage: CacheStorage,
        config: WorkerConfig,
        network: NetworkClient,
    ) -> None:
        self._storage = storage
        self._config = config
        self._network = network
        self.waiting_skipped = False
        self.claimed = False

    async def install(self) -> int:
        """Populate the ``shell`` store for the configured version.

        Returns:
            The number of shell resources stored.

        Raises:
            ShellPopulationFailed: If any shell resource could not be fetched.
            StoreUnavailable: If the store could not be written.
        """
        output = get_output()
        output.info(f"Installing {self._config.version}: caching app shell")

        requests = [InterceptedRequest(url=url) for url in self._config.shell_urls()]
        results = await asyncio.gather(
            *(self._network.fetch(request) for request in requests),
            return_exceptions=True,
        )

        entries: list[tuple[InterceptedRequest, CachedResponse]] = []
        for request, result in zip(requests, results):
            if isinstance(result, NetworkUnavailable):
                raise ShellPopulationFailed(
                    f"Shell resource {request.url} could not be fetched: {result}"
                ) from result
            if isinstance(result, BaseException):
                raise result
            if not result.ok:
                raise ShellPopulationFailed(
                    f"Shell resource {request.url} returned HTTP {result.status_code}"
                )
            entries.append((request, result))

        await asyncio.to_thread(self._store_shell, entries)
        self.skip_waiting()
        return len(entries)

    def _store_shell(self, entries: list[tuple[InterceptedRequest, CachedResponse]]) -> None:
        self._storage.open(self._config.static_cache_name).put_many(entries)

    def skip_waiting(self) -> None:
        self.waiting_skipped = True

    async def activate(self) -> list[str]:
        """Delete stale stores and claim control.

        Returns:
            The names of the stores that were deleted.
        """
        output = get_output()
        output.info(f"Activating {self._config.version}")

        keep = set(self._config.current_cache_names)
        deleted: list[str] = []
        for name in await asyncio.to_thread(self._storage.keys):
            if name in keep:
                continue
            output.debug(f"Deleting old store {name}")
            await asyncio.to_thread(self._storage.delete, name)
            deleted.append(name)

        self.claim()
        return deleted

    def claim(self) -> None:
        self.claimed = True

    async def activate_version(self) -> list[str]:
        """Run :meth:`install` then :meth:`activate`.

        Activation, and therefore the claim, never happens if install fails.
        """
        await self.install()
        return await self.activate()
