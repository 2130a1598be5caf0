"""Tests for event dispatch through the worker object."""

from __future__ import annotations

import asyncio

import pytest

from storyworker.engine import InterceptionEngine
from storyworker.exceptions import InvalidUsageError
from storyworker.lifecycle import LifecycleManager
from storyworker.models import (
    CachedResponse,
    InterceptedRequest,
    NotificationState,
    QueuedRecord,
)
from storyworker.notifications import NotificationDispatcher
from storyworker.queue import DiskRecordQueue
from storyworker.surfaces import ConsoleSurface
from storyworker.sync import ReplayCoordinator
from storyworker.worker import (
    ActivateEvent,
    EventType,
    FetchEvent,
    InstallEvent,
    NotificationClickEvent,
    PushEvent,
    ServiceWorker,
    SyncEvent,
    WorkerComponents,
    build_worker,
)


APP = "http://localhost:8080"
STORIES = "https://story-api.dicoding.dev/v1/stories"


class NoWindows:
    def __init__(self) -> None:
        self.opened: list[str] = []

    async def list_windows(self):
        return []

    async def focus(self, window):
        return window

    async def navigate(self, window, url):
        return window

    async def open_window(self, url):
        self.opened.append(url)
        return None


class TestServiceWorker:
    def test_dispatch_to_registered_handler(self) -> None:
        worker = ServiceWorker()

        @worker.on(EventType.SYNC)
        async def handler(event: SyncEvent) -> str:
            return f"got {event.tag}"

        assert asyncio.run(worker.dispatch(SyncEvent("x"))) == "got x"
        assert worker.registered == [EventType.SYNC]

    def test_register_replaces_handler(self) -> None:
        worker = ServiceWorker()

        async def first(event):
            return 1

        async def second(event):
            return 2

        worker.register(EventType.INSTALL, first)
        worker.register(EventType.INSTALL, second)

        assert asyncio.run(worker.dispatch(InstallEvent())) == 2

    def test_unhandled_event_type(self) -> None:
        with pytest.raises(InvalidUsageError, match="activate"):
            asyncio.run(ServiceWorker().dispatch(ActivateEvent()))


@pytest.fixture
def windows() -> NoWindows:
    return NoWindows()


@pytest.fixture
def queue(tmp_path):
    q = DiskRecordQueue(tmp_path / "queue")
    yield q
    q.close()


@pytest.fixture
def components(storage, config, network, windows, queue) -> WorkerComponents:
    return WorkerComponents(
        lifecycle=LifecycleManager(storage, config, network),
        engine=InterceptionEngine(storage, config, network),
        notifications=NotificationDispatcher(ConsoleSurface(), windows, config.app_origin),
        replay=ReplayCoordinator(queue, tag=config.sync_tag),
    )


class TestBuildWorker:
    def test_every_category_registered(self, components) -> None:
        worker = build_worker(components)
        assert set(worker.registered) == set(EventType)

    def test_install_then_activate(self, components, server, storage, config) -> None:
        for url in config.shell_urls():
            server.route(url, body="x")
        storage.open("storymap-static-v0")
        worker = build_worker(components)

        async def scenario():
            async with components.engine:
                cached = await worker.dispatch(InstallEvent())
                deleted = await worker.dispatch(ActivateEvent())
                return cached, deleted

        cached, deleted = asyncio.run(scenario())

        assert cached == 5
        assert deleted == ["storymap-static-v0"]
        assert components.lifecycle.claimed is True

    def test_fetch_event(self, components, server) -> None:
        server.json_route(STORIES, {"listStory": []})
        worker = build_worker(components)

        async def scenario():
            async with components.engine:
                return await worker.dispatch(FetchEvent(InterceptedRequest(url=STORIES)))

        response = asyncio.run(scenario())
        assert isinstance(response, CachedResponse)
        assert response.json() == {"listStory": []}

    def test_fetch_event_non_get_not_handled(self, components, server) -> None:
        worker = build_worker(components)

        async def scenario():
            async with components.engine:
                return await worker.dispatch(
                    FetchEvent(InterceptedRequest(method="POST", url=STORIES))
                )

        assert asyncio.run(scenario()) is None
        assert server.calls == []

    def test_push_and_click(self, components, windows) -> None:
        worker = build_worker(components)

        async def scenario():
            notification = await worker.dispatch(PushEvent(b'{"title": "Hi"}'))
            await worker.dispatch(NotificationClickEvent(notification, "view"))
            return notification

        notification = asyncio.run(scenario())

        assert notification.title == "Hi"
        assert notification.state == NotificationState.ACTIVATED
        assert windows.opened == [f"{APP}/#/"]

    def test_sync_event(self, components, queue) -> None:
        worker = build_worker(components)
        asyncio.run(queue.add(QueuedRecord(id="a")))

        result = asyncio.run(worker.dispatch(SyncEvent("sync-stories")))
        ignored = asyncio.run(worker.dispatch(SyncEvent("other")))

        assert result.replayed == 1
        assert ignored is None
        assert asyncio.run(queue.read_all())[0].synced is True
