"""Asynchronous network client used by the interception engine.

:class:`NetworkClient` wraps :class:`httpx.AsyncClient` and performs a
single attempt per request: there is no retry and, unless a timeout is
configured, no deadline.  Request failures (DNS resolution, refused or
reset connections, timeouts when one is set, redirect loops, undecodable
content encodings) are mapped to
:class:`~storyworker.exceptions.NetworkUnavailable`; any HTTP status,
including 4xx and 5xx, is a successful fetch.

Responses are read in full and returned as immutable
:class:`~storyworker.models.CachedResponse` values.
"""

from __future__ import annotations

from typing import Optional

import httpx

from storyworker.exceptions import NetworkUnavailable
from storyworker.models import CachedResponse, InterceptedRequest, RequestConfig
from storyworker.output import get_output


class NetworkClient:
    """Single-attempt async HTTP client.

    Must be used as an async context manager so that the underlying
    transport is opened and closed.

    Args:
        app_origin: The application's own origin. Responses from it are
            marked ``basic``; all others ``cors``.
        config: Timeout and TLS verification settings.
        transport: Optional custom :mod:`httpx` transport (tests use
            :class:`httpx.MockTransport`).

    Example::

        async with NetworkClient("http://localhost:8080") as client:
            response = await client.fetch(InterceptedRequest(url=url))
    """

    def __init__(
        self,
        app_origin: str,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._app_origin = app_origin
        self._config = config or RequestConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> NetworkClient:
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def fetch(self, request: InterceptedRequest) -> CachedResponse:
        """Send *request* and return the fully-read response.

        Raises:
            NetworkUnavailable: When the request cannot complete, including
                redirect loops and bodies that fail to decode.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        output = get_output()
        output.debug(f"{request.method} {request.url}")
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
            )
        except httpx.RequestError as exc:
            output.debug(f"Network error for {request.url}: {exc}")
            raise NetworkUnavailable(f"{request.method} {request.url} failed: {exc}") from exc

        output.debug(f"HTTP {response.status_code} {request.url}")
        return CachedResponse.from_httpx(response, str(response.url), self._app_origin)
