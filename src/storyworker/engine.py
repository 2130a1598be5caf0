"""Request interception engine -- network-first for the API, cache-first for the rest.

Every outbound GET is classified once by :func:`classify` and dispatched
through a strategy table keyed by :class:`~storyworker.models.RequestClass`:

* **API** (:meth:`InterceptionEngine.network_first`) -- fetch; on success
  copy the response into the ``dynamic`` store in the background and return
  it.  On network failure serve the stored response for the exact key, or
  the synthetic offline JSON response when there is none.  API requests
  never surface a network error.
* **STATIC** (:meth:`InterceptionEngine.cache_first`) -- serve a stored
  response without touching the network; on a miss fetch, and copy
  ``200``/``basic`` responses into the ``shell`` store in the background.
  Network failures propagate.

Non-GET requests are not intercepted: :meth:`InterceptionEngine.intercept`
returns ``None`` for them and :meth:`InterceptionEngine.fetch` sends them
straight to the network.

Store lookups and writes run in worker threads so disk I/O never blocks the
event loop.  Writes are fire-and-forget tasks.  Their failures are logged
and never reach the caller; :meth:`InterceptionEngine.drain` waits for the
ones still running.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from storyworker.cache import CacheStorage
from storyworker.client import NetworkClient
from storyworker.exceptions import NetworkUnavailable, StoreUnavailable
from storyworker.models import (
    CachedResponse,
    InterceptedRequest,
    RequestClass,
    ResponseType,
    WorkerConfig,
    origin_of,
)
from storyworker.output import get_output

logger = logging.getLogger(__name__)

Strategy = Callable[[InterceptedRequest], Awaitable[CachedResponse]]


def classify(request: InterceptedRequest, api_origin: str) -> RequestClass:
    """Return the strategy class for *request*, decided solely by its origin."""
    if request.origin == origin_of(api_origin):
        return RequestClass.API
    return RequestClass.STATIC


def is_static_cacheable(response: CachedResponse) -> bool:
    """Only same-origin ``200`` responses go into the static store."""
    return response.status_code == 200 and response.type == ResponseType.BASIC


class InterceptionEngine:
    """Answers outbound requests from the versioned stores and the network.

    Args:
        storage: The cache storage holding the current version's stores.
        config: Worker configuration (origins and store names).
        network: The network client. The engine enters and exits it when
            used as an async context manager.

    Example::

        async with InterceptionEngine(storage, config, NetworkClient(config.app_origin)) as engine:
            response = await engine.fetch(InterceptedRequest(url=url))
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
        self._pending: set[asyncio.Task[None]] = set()
        self._strategies: dict[RequestClass, Strategy] = {
            RequestClass.API: self.network_first,
            RequestClass.STATIC: self.cache_first,
        }

    async def __aenter__(self) -> InterceptionEngine:
        await self._network.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.drain()
        await self._network.__aexit__(*args)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    async def intercept(self, request: InterceptedRequest) -> Optional[CachedResponse]:
        """Apply the matching strategy to *request*.

        Returns:
            The response, or ``None`` when the request is not a GET and
            therefore not intercepted.

        Raises:
            NetworkUnavailable: For static requests that miss the cache and
                cannot be fetched.
        """
        if not request.is_get:
            return None
        request_class = classify(request, self._config.api_origin)
        get_output().debug(f"{request_class.value}: {request.url}")
        return await self._strategies[request_class](request)

    async def fetch(self, request: InterceptedRequest) -> CachedResponse:
        """Intercept *request*, or pass it straight through when it is not a GET."""
        response = await self.intercept(request)
        if response is None:
            return await self._network.fetch(request)
        return response

    # ------------------------------------------------------------------ #
    # Strategies
    # ------------------------------------------------------------------ #

    async def network_first(self, request: InterceptedRequest) -> CachedResponse:
        """Prefer the network; fall back to the dynamic store, then to the offline response."""
        try:
            response = await self._network.fetch(request)
        except NetworkUnavailable:
            cached = await self._lookup(request, [self._config.dynamic_cache_name])
            if cached is not None:
                get_output().debug(f"Offline, serving stored response for {request.url}")
                return cached
            get_output().debug(f"Offline, no stored response for {request.url}")
            return CachedResponse.offline()

        self._store_in_background(self._config.dynamic_cache_name, request, response)
        return response

    async def cache_first(self, request: InterceptedRequest) -> CachedResponse:
        """Prefer the stores; fetch only on a miss."""
        cached = await self._lookup(request, self._config.current_cache_names)
        if cached is not None:
            return cached

        response = await self._network.fetch(request)
        if is_static_cacheable(response):
            self._store_in_background(self._config.static_cache_name, request, response)
        return response

    # ------------------------------------------------------------------ #
    # Background writes
    # ------------------------------------------------------------------ #

    async def drain(self) -> None:
        """Wait for every pending store write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _lookup(
        self, request: InterceptedRequest, names: tuple[str, ...] | list[str]
    ) -> Optional[CachedResponse]:
        try:
            return await asyncio.to_thread(self._storage.match, request, names)
        except StoreUnavailable as exc:
            logger.warning("Store lookup failed for %s: %s", request.url, exc)
            return None

    def _store_in_background(
        self, name: str, request: InterceptedRequest, response: CachedResponse
    ) -> None:
        task = asyncio.create_task(self._write(name, request, response.model_copy()))
        self._pending.add(task)
        task.add_done_callback(self._write_done)

    async def _write(
        self, name: str, request: InterceptedRequest, response: CachedResponse
    ) -> None:
        try:
            await asyncio.to_thread(self._put, name, request, response)
        except StoreUnavailable as exc:
            logger.warning("Could not store %s in %s: %s", request.url, name, exc)

    def _put(self, name: str, request: InterceptedRequest, response: CachedResponse) -> None:
        self._storage.open(name).put(request, response)

    def _write_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background store write failed: %s", exc, exc_info=exc)
