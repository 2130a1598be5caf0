"""Tests for push payload decoding and notification click routing."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import pytest

from storyworker.exceptions import DecodePayloadFailed
from storyworker.models import NotificationOptions, NotificationState, Window
from storyworker.notifications import (
    CLOSE_ACTION,
    VIEW_ACTION,
    NotificationDispatcher,
    build_options,
    decode_payload,
    parse_payload,
)


APP = "http://localhost:8080"


class FakeSurface:
    def __init__(self) -> None:
        self.shown: list[tuple[str, NotificationOptions]] = []
        self.closed: list[str] = []

    async def show(self, title: str, options: NotificationOptions) -> None:
        self.shown.append((title, options))

    async def close(self, tag: str) -> None:
        self.closed.append(tag)


class FakeWindows:
    def __init__(self, *urls: str) -> None:
        self.windows = [Window(id=str(i), url=url) for i, url in enumerate(urls)]
        self.focused: list[str] = []
        self.navigated: list[tuple[str, str]] = []
        self.opened: list[str] = []

    async def list_windows(self) -> list[Window]:
        return list(self.windows)

    async def focus(self, window: Window) -> Window:
        self.focused.append(window.id)
        return window.model_copy(update={"focused": True})

    async def navigate(self, window: Window, url: str) -> Window:
        self.navigated.append((window.id, url))
        return window.model_copy(update={"url": url})

    async def open_window(self, url: str) -> Optional[Window]:
        self.opened.append(url)
        return Window(id="new", url=url, focused=True)


def _dispatcher(windows: Optional[FakeWindows] = None):
    surface = FakeSurface()
    windows = windows or FakeWindows()
    return NotificationDispatcher(surface, windows, APP), surface, windows


# ------------------------------------------------------------------ #
# Decoding
# ------------------------------------------------------------------ #


class TestParsePayload:
    def test_object(self) -> None:
        assert parse_payload(b'{"title": "T"}') == {"title": "T"}

    def test_invalid_json(self) -> None:
        with pytest.raises(DecodePayloadFailed):
            parse_payload("not json")

    def test_non_object_returned_as_is(self) -> None:
        assert parse_payload("[1, 2]") == [1, 2]
        assert parse_payload("5") == 5

    def test_null(self) -> None:
        with pytest.raises(DecodePayloadFailed, match="null"):
            parse_payload("null")


class TestDecodePayload:
    def test_no_payload_gives_defaults(self) -> None:
        payload = decode_payload(None)
        assert payload.title == "Cerita Baru"
        assert payload.body == "Ada cerita baru yang ditambahkan!"
        assert payload.icon == "/favicon.png"
        assert payload.badge == "/favicon.png"
        assert payload.tag == "new-story"
        assert payload.data == {}
        assert payload.image is None

    def test_empty_bytes_gives_defaults(self) -> None:
        assert decode_payload(b"") == decode_payload(None)

    def test_title_and_body(self) -> None:
        payload = decode_payload(json.dumps({"title": "T", "body": "B"}))
        assert payload.title == "T"
        assert payload.body == "B"
        assert payload.icon == "/favicon.png"
        assert payload.badge == "/favicon.png"

    def test_message_used_when_body_missing(self) -> None:
        payload = decode_payload(b'{"message": "from message"}')
        assert payload.body == "from message"

    def test_body_wins_over_message(self) -> None:
        payload = decode_payload(b'{"body": "b", "message": "m"}')
        assert payload.body == "b"

    def test_falsy_fields_take_defaults(self) -> None:
        payload = decode_payload(b'{"title": "", "body": null, "tag": ""}')
        assert payload.title == "Cerita Baru"
        assert payload.body == "Ada cerita baru yang ditambahkan!"
        assert payload.tag == "new-story"

    def test_optional_fields_carried(self) -> None:
        raw = {
            "title": "T",
            "icon": "/icon.png",
            "image": "/photo.jpg",
            "tag": "story-42",
            "data": {"url": "/#/stories/42"},
        }
        payload = decode_payload(json.dumps(raw).encode())
        assert payload.icon == "/icon.png"
        assert payload.image == "/photo.jpg"
        assert payload.tag == "story-42"
        assert payload.data == {"url": "/#/stories/42"}

    def test_badge_is_never_overridden(self) -> None:
        assert decode_payload(b'{"badge": "/other.png"}').badge == "/favicon.png"

    def test_non_object_data_dropped(self) -> None:
        assert decode_payload(b'{"data": "x"}').data == {}

    def test_text_payload_becomes_body(self) -> None:
        payload = decode_payload(b"A new story arrived")
        assert payload.title == "Cerita Baru"
        assert payload.body == "A new story arrived"

    @pytest.mark.parametrize("data", ["5", '"hi"', "[1]", "true"])
    def test_non_object_json_gives_defaults(self, data: str) -> None:
        assert decode_payload(data) == decode_payload(None)

    def test_json_null_treated_as_text(self) -> None:
        assert decode_payload(b"null").body == "null"


class TestBuildOptions:
    def test_actions_vibrate_and_timestamp(self) -> None:
        options = build_options(decode_payload(None), timestamp=1234)
        assert [a.action for a in options.actions] == ["view", "close"]
        assert options.actions[0].title == "Lihat Cerita"
        assert options.actions[0].icon == "/favicon.png"
        assert options.actions[1].title == "Tutup"
        assert options.vibrate == [200, 100, 200]
        assert options.timestamp == 1234
        assert options.require_interaction is False

    def test_timestamp_defaults_to_now_in_ms(self, monkeypatch) -> None:
        monkeypatch.setattr("storyworker.notifications.time.time", lambda: 1700000000.5)
        assert build_options(decode_payload(None)).timestamp == 1700000000500


# ------------------------------------------------------------------ #
# Display and routing
# ------------------------------------------------------------------ #


class TestOnPush:
    def test_shows_decoded_notification(self) -> None:
        dispatcher, surface, _ = _dispatcher()

        notification = asyncio.run(dispatcher.on_push(b'{"title": "T", "body": "B"}'))

        assert notification.state == NotificationState.DISPLAYED
        assert notification.title == "T"
        ((title, options),) = surface.shown
        assert title == "T"
        assert options.body == "B"
        assert options.actions == [VIEW_ACTION, CLOSE_ACTION]

    def test_no_payload_still_shown(self) -> None:
        dispatcher, surface, _ = _dispatcher()
        notification = asyncio.run(dispatcher.on_push())
        assert notification.tag == "new-story"
        assert surface.shown[0][0] == "Cerita Baru"


class TestOnClick:
    def _click(self, dispatcher, payload, action=""):
        async def scenario():
            notification = await dispatcher.on_push(payload)
            window = await dispatcher.on_click(notification, action)
            return notification, window

        return asyncio.run(scenario())

    def test_close_action_only_dismisses(self) -> None:
        windows = FakeWindows(f"{APP}/#/")
        dispatcher, surface, _ = _dispatcher(windows)

        notification, window = self._click(dispatcher, None, "close")

        assert window is None
        assert notification.state == NotificationState.DISMISSED
        assert surface.closed == ["new-story"]
        assert windows.focused == []
        assert windows.opened == []

    @pytest.mark.parametrize("action", ["view", ""])
    def test_focuses_existing_app_window(self, action) -> None:
        windows = FakeWindows("https://other.example/", f"{APP}/#/stories")
        dispatcher, surface, _ = _dispatcher(windows)

        notification, window = self._click(dispatcher, None, action)

        assert notification.state == NotificationState.ACTIVATED
        assert windows.focused == ["1"]
        assert windows.navigated == []
        assert windows.opened == []
        assert window.focused is True
        assert surface.closed == ["new-story"]

    def test_carried_url_navigates_focused_window(self) -> None:
        windows = FakeWindows(f"{APP}/#/")
        dispatcher, _, _ = _dispatcher(windows)

        _, window = self._click(dispatcher, b'{"data": {"url": "http://localhost:8080/#/s/1"}}')

        assert windows.focused == ["0"]
        assert windows.navigated == [("0", "http://localhost:8080/#/s/1")]
        assert window.url == "http://localhost:8080/#/s/1"

    def test_opens_home_when_no_app_window(self) -> None:
        windows = FakeWindows("https://other.example/")
        dispatcher, _, _ = _dispatcher(windows)

        _, window = self._click(dispatcher, None, "view")

        assert windows.opened == [f"{APP}/#/"]
        assert window.url == f"{APP}/#/"

    def test_opens_carried_url_when_no_window(self) -> None:
        dispatcher, _, windows = _dispatcher()

        self._click(dispatcher, b'{"data": {"url": "http://localhost:8080/#/s/9"}}')

        assert windows.opened == ["http://localhost:8080/#/s/9"]

    def test_home_url(self) -> None:
        dispatcher = NotificationDispatcher(FakeSurface(), FakeWindows(), "http://localhost:8080/app")
        assert dispatcher.home_url == "http://localhost:8080/#/"
