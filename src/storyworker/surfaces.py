"""Terminal and desktop implementations of the notification collaborators.

* :class:`ConsoleSurface` renders notifications on stderr through the
  global :class:`~storyworker.output.OutputManager`.
* :class:`BrowserWindows` opens application views in the system browser
  via :mod:`webbrowser`.  A browser cannot be enumerated from outside, so
  only the windows opened by this process are known.
"""

from __future__ import annotations

import asyncio
import itertools
import webbrowser
from typing import Optional

from storyworker.models import NotificationOptions, Window
from storyworker.output import get_output


class ConsoleSurface:
    """Shows notifications as panels on the terminal."""

    def __init__(self) -> None:
        self.shown: dict[str, NotificationOptions] = {}

    async def show(self, title: str, options: NotificationOptions) -> None:
        # same tag replaces the previous notification
        self.shown[options.tag] = options
        actions = " | ".join(f"[{a.action}] {a.title}" for a in options.actions)
        get_output().notification(title, options.body, actions)

    async def close(self, tag: str) -> None:
        self.shown.pop(tag, None)


class BrowserWindows:
    """Window layer backed by the system web browser."""

    def __init__(self) -> None:
        self._windows: list[Window] = []
        self._ids = itertools.count(1)

    async def list_windows(self) -> list[Window]:
        return list(self._windows)

    async def focus(self, window: Window) -> Window:
        focused = window.model_copy(update={"focused": True})
        self._replace(window, focused)
        return focused

    async def navigate(self, window: Window, url: str) -> Window:
        await asyncio.to_thread(webbrowser.open, url, 0)
        navigated = window.model_copy(update={"url": url})
        self._replace(window, navigated)
        return navigated

    async def open_window(self, url: str) -> Optional[Window]:
        opened = await asyncio.to_thread(webbrowser.open, url, 2)
        if not opened:
            get_output().warning(f"No browser available to open {url}")
            return None
        window = Window(id=str(next(self._ids)), url=url, focused=True)
        self._windows.append(window)
        return window

    def _replace(self, old: Window, new: Window) -> None:
        self._windows = [new if w.id == old.id else w for w in self._windows]
