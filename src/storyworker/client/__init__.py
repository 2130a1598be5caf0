"""HTTP client module for storyworker.

Provides :class:`NetworkClient`, a non-blocking client backed by
:class:`httpx.AsyncClient` that turns transport failures into
:class:`~storyworker.exceptions.NetworkUnavailable` and returns fully-read
:class:`~storyworker.models.CachedResponse` values.

Example::

    from storyworker.client import NetworkClient

    async with NetworkClient(config.app_origin, config.request) as client:
        response = await client.fetch(request)
"""

from storyworker.client.network import NetworkClient

__all__ = ["NetworkClient"]
