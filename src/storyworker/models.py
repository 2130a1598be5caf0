"""Canonical Pydantic models shared across all storyworker modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`CacheConfig`, and :class:`WorkerConfig`.

**Interception models** -- produced and consumed by the engine and the
versioned cache store:
    :class:`RequestClass`, :class:`ResponseType`, :class:`InterceptedRequest`,
    and :class:`CachedResponse`.

**Event payload models** -- notifications, windows, and queued records:
    :class:`NotificationPayload`, :class:`NotificationAction`,
    :class:`NotificationOptions`, :class:`NotificationState`,
    :class:`Window`, and :class:`QueuedRecord`.

All models use Pydantic v2. Values that cross a store boundary
(:class:`CachedResponse`) are frozen so a stored copy can never be mutated
through the instance returned to a caller.
"""

from __future__ import annotations

import enum
import json
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field


DEFAULT_SHELL_ASSETS = [
    "/",
    "/index.html",
    "/style.css",
    "/main.js",
    "/favicon.png",
]
"""Resources needed to boot the application offline."""


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every network fetch."""

    timeout: Optional[float] = Field(
        default=None, description="Request timeout in seconds (None waits forever)"
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class CacheConfig(BaseModel):
    """Location of the versioned cache stores."""

    directory: Optional[str] = Field(
        default=None, description="Override for the cache root directory"
    )


class WorkerConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/storyworker/config.json``.

    Loaded and saved by :func:`~storyworker.config.load_worker_config` and
    :func:`~storyworker.config.save_worker_config`. The store names of the
    active deployment are derived from :attr:`cache_prefix` and
    :attr:`version`; every other store is considered stale.

    Example::

        WorkerConfig(version="v2", api_origin="https://story-api.dicoding.dev")
    """

    version: str = Field(default="v1", description="Active deployment version tag")
    cache_prefix: str = Field(default="storymap", description="Prefix for store names")
    api_origin: str = Field(
        default="https://story-api.dicoding.dev",
        description="Origin served network-first",
    )
    app_origin: str = Field(
        default="http://localhost:8080",
        description="Origin of the application itself",
    )
    shell_assets: list[str] = Field(default_factory=lambda: list(DEFAULT_SHELL_ASSETS))
    sync_tag: str = Field(default="sync-stories", description="Tag that triggers replay")
    key_headers: list[str] = Field(
        default_factory=list,
        description="Request headers that take part in the cache key",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @property
    def static_cache_name(self) -> str:
        """Name of the ``shell`` store for the active version."""
        return f"{self.cache_prefix}-static-{self.version}"

    @property
    def dynamic_cache_name(self) -> str:
        """Name of the ``dynamic`` store for the active version."""
        return f"{self.cache_prefix}-dynamic-{self.version}"

    @property
    def current_cache_names(self) -> tuple[str, str]:
        """The allow-list of store names kept on activation."""
        return (self.static_cache_name, self.dynamic_cache_name)

    def shell_urls(self) -> list[str]:
        """Return :attr:`shell_assets` resolved against :attr:`app_origin`."""
        base = httpx.URL(self.app_origin)
        return [str(base.join(asset)) for asset in self.shell_assets]


# --- Interception ---


class RequestClass(str, enum.Enum):
    """Strategy selector derived from a request's origin."""

    API = "api"
    STATIC = "static"


class ResponseType(str, enum.Enum):
    """Origin marker for a fetched response.

    ``BASIC`` responses came from the application's own origin and are the
    only ones eligible for the static store.
    """

    BASIC = "basic"
    CORS = "cors"
    OPAQUE = "opaque"


def origin_of(url: str | httpx.URL) -> str:
    """Return ``scheme://host[:port]`` for *url*, omitting default ports."""
    parsed = httpx.URL(url)
    origin = f"{parsed.scheme}://{parsed.host}"
    if parsed.port is not None:
        origin = f"{origin}:{parsed.port}"
    return origin


class InterceptedRequest(BaseModel):
    """An outbound request as seen by the interception engine."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)

    @property
    def origin(self) -> str:
        return origin_of(self.url)

    @property
    def is_get(self) -> bool:
        return self.method.upper() == "GET"


class CachedResponse(BaseModel):
    """A fully-read response, safe to hand out and to persist at the same time.

    The body is materialised as ``bytes`` when the response is built, so the
    copy written to a store and the value returned to the caller never share
    a consumable stream.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    url: str = ""
    type: ResponseType = ResponseType.BASIC

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)

    @classmethod
    def from_httpx(
        cls, response: httpx.Response, url: str, app_origin: str
    ) -> CachedResponse:
        """Build a :class:`CachedResponse` from a read :class:`httpx.Response`.

        The response type is ``basic`` when *url* shares *app_origin*,
        ``cors`` otherwise.
        """
        response_type = (
            ResponseType.BASIC
            if origin_of(url) == origin_of(app_origin)
            else ResponseType.CORS
        )
        return cls(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.content,
            url=url,
            type=response_type,
        )

    @classmethod
    def offline(cls) -> CachedResponse:
        """The synthetic response served for API requests with no network and no cache."""
        payload = {"error": True, "message": "Offline - Data tidak tersedia"}
        return cls(
            status_code=200,
            headers={"content-type": "application/json"},
            body=json.dumps(payload).encode("utf-8"),
            type=ResponseType.BASIC,
        )


# --- Notifications ---


DEFAULT_NOTIFICATION_TITLE = "Cerita Baru"
DEFAULT_NOTIFICATION_BODY = "Ada cerita baru yang ditambahkan!"
DEFAULT_NOTIFICATION_ICON = "/favicon.png"
DEFAULT_NOTIFICATION_TAG = "new-story"


class NotificationPayload(BaseModel):
    """Decoded push payload. Every field has a default so display never fails."""

    title: str = DEFAULT_NOTIFICATION_TITLE
    body: str = DEFAULT_NOTIFICATION_BODY
    icon: str = DEFAULT_NOTIFICATION_ICON
    badge: str = DEFAULT_NOTIFICATION_ICON
    image: Optional[str] = None
    tag: str = DEFAULT_NOTIFICATION_TAG
    data: dict[str, Any] = Field(default_factory=dict)
    require_interaction: bool = False


class NotificationAction(BaseModel):
    """A button shown on a notification."""

    action: str
    title: str
    icon: Optional[str] = None


class NotificationOptions(BaseModel):
    """Everything handed to the display surface besides the title."""

    body: str
    icon: str
    badge: str
    image: Optional[str] = None
    tag: str
    data: dict[str, Any] = Field(default_factory=dict)
    require_interaction: bool = False
    actions: list[NotificationAction] = Field(default_factory=list)
    vibrate: list[int] = Field(default_factory=lambda: [200, 100, 200])
    timestamp: int = Field(description="Epoch milliseconds")


class NotificationState(str, enum.Enum):
    """Lifecycle of a single notification."""

    RECEIVED = "received"
    DECODED = "decoded"
    DISPLAYED = "displayed"
    DISMISSED = "dismissed"
    ACTIVATED = "activated"


class Window(BaseModel):
    """An open application view reported by the window layer."""

    id: str
    url: str
    focused: bool = False


# --- Local queue ---


class QueuedRecord(BaseModel):
    """A locally queued write. Application fields are kept as extras."""

    model_config = ConfigDict(extra="allow")

    id: str
    synced: bool = False
