"""Push notification decoding, display, and interaction routing.

A notification moves through :class:`~storyworker.models.NotificationState`:
``RECEIVED`` → ``DECODED`` → ``DISPLAYED`` → ``DISMISSED`` | ``ACTIVATED``.

Decoding never fails: a payload that is not JSON is shown as a plain-text
body, while an absent payload or a JSON value other than an object yields
the default "new story" notification.  Every notification carries a
``view`` and a ``close`` action.

On interaction the notification is closed.  ``close`` ends there; ``view``
or a click on the notification body focuses an existing window of the
application (navigating it when the payload carried a URL) or opens a new
one at the target URL.

The display surface and the window layer are collaborators described by the
:class:`NotificationSurface` and :class:`WindowManager` protocols.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from storyworker.exceptions import DecodePayloadFailed
from storyworker.models import (
    DEFAULT_NOTIFICATION_ICON,
    NotificationAction,
    NotificationOptions,
    NotificationPayload,
    NotificationState,
    Window,
    origin_of,
)
from storyworker.output import get_output

PushData = Union[bytes, str, None]

VIEW_ACTION = NotificationAction(
    action="view", title="Lihat Cerita", icon=DEFAULT_NOTIFICATION_ICON
)
CLOSE_ACTION = NotificationAction(action="close", title="Tutup")


class NotificationSurface(Protocol):
    """The platform surface notifications are shown on."""

    async def show(self, title: str, options: NotificationOptions) -> None: ...

    async def close(self, tag: str) -> None: ...


class WindowManager(Protocol):
    """The application's window layer."""

    async def list_windows(self) -> list[Window]: ...

    async def focus(self, window: Window) -> Window: ...

    async def navigate(self, window: Window, url: str) -> Window: ...

    async def open_window(self, url: str) -> Optional[Window]: ...


@dataclass
class Notification:
    """A notification handed to the surface, tracked through its states."""

    title: str
    options: NotificationOptions
    state: NotificationState = NotificationState.DISPLAYED

    @property
    def tag(self) -> str:
        return self.options.tag

    @property
    def data(self) -> dict[str, Any]:
        return self.options.data


# ------------------------------------------------------------------ #
# Decoding
# ------------------------------------------------------------------ #


def _as_text(data: Union[bytes, str]) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def parse_payload(data: Union[bytes, str]) -> Any:
    """Parse *data* as JSON.

    Raises:
        DecodePayloadFailed: If *data* is not valid JSON or is JSON ``null``.
    """
    try:
        parsed = json.loads(_as_text(data))
    except (json.JSONDecodeError, TypeError) as exc:
        raise DecodePayloadFailed(f"Push payload is not JSON: {exc}") from exc
    if parsed is None:
        raise DecodePayloadFailed("Push payload is JSON null")
    return parsed


def _field(raw: dict[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if value is None or value == "":
        return None
    return str(value)


def decode_payload(data: PushData) -> NotificationPayload:
    """Turn a raw push payload into a displayable :class:`NotificationPayload`.

    Falsy or missing fields take their defaults, ``body`` falls back to
    ``message``, and the badge is always the default icon.  JSON that is
    not an object carries no fields, so it yields the defaults.
    """
    payload = NotificationPayload()
    if data is None or data == b"" or data == "":
        return payload

    try:
        parsed = parse_payload(data)
    except DecodePayloadFailed as exc:
        get_output().debug(str(exc))
        text = _as_text(data)
        if text:
            payload = payload.model_copy(update={"body": text})
        return payload

    raw = parsed if isinstance(parsed, dict) else {}
    extra = raw.get("data")
    update: dict[str, Any] = {
        "title": _field(raw, "title") or payload.title,
        "body": _field(raw, "body") or _field(raw, "message") or payload.body,
        "icon": _field(raw, "icon") or payload.icon,
        "image": _field(raw, "image"),
        "tag": _field(raw, "tag") or payload.tag,
        "data": extra if isinstance(extra, dict) else {},
    }
    return payload.model_copy(update=update)


def build_options(
    payload: NotificationPayload, timestamp: Optional[int] = None
) -> NotificationOptions:
    """Build the option set for the surface, with both actions attached."""
    return NotificationOptions(
        body=payload.body,
        icon=payload.icon,
        badge=payload.badge,
        image=payload.image,
        tag=payload.tag,
        data=payload.data,
        require_interaction=payload.require_interaction,
        actions=[VIEW_ACTION, CLOSE_ACTION],
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
    )


# ------------------------------------------------------------------ #
# Dispatcher
# ------------------------------------------------------------------ #


class NotificationDispatcher:
    """Shows pushed notifications and routes clicks to the window layer.

    Args:
        surface: Where notifications are displayed.
        windows: The window layer used on interaction.
        app_origin: The application's origin. Windows whose URL starts with
            it belong to the application; ``<app_origin>/#/`` is the
            default target.
    """

    def __init__(
        self,
        surface: NotificationSurface,
        windows: WindowManager,
        app_origin: str,
    ) -> None:
        self._surface = surface
        self._windows = windows
        self._app_origin = origin_of(app_origin)

    @property
    def home_url(self) -> str:
        return f"{self._app_origin}/#/"

    async def on_push(self, data: PushData = None) -> Notification:
        """Decode *data* and display it."""
        get_output().debug("Push notification received")
        payload = decode_payload(data)
        notification = Notification(
            title=payload.title,
            options=build_options(payload),
            state=NotificationState.DECODED,
        )
        await self._surface.show(notification.title, notification.options)
        notification.state = NotificationState.DISPLAYED
        return notification

    async def on_click(
        self, notification: Notification, action: str = ""
    ) -> Optional[Window]:
        """Handle a click on *notification* or one of its actions.

        Args:
            notification: The displayed notification.
            action: ``"close"``, ``"view"``, or empty for the body click.

        Returns:
            The window brought to the target, or ``None`` when nothing was
            focused or opened.
        """
        await self._surface.close(notification.tag)

        if action == CLOSE_ACTION.action:
            notification.state = NotificationState.DISMISSED
            return None

        notification.state = NotificationState.ACTIVATED
        carried = notification.data.get("url")
        carried_url = carried if isinstance(carried, str) and carried else None
        target = carried_url or self.home_url

        for window in await self._windows.list_windows():
            if not window.url.startswith(self._app_origin):
                continue
            focused = await self._windows.focus(window)
            if carried_url:
                return await self._windows.navigate(focused, target)
            return focused

        return await self._windows.open_window(target)
