"""Assembles a ready-to-use worker from a :class:`~storyworker.models.WorkerConfig`.

:func:`open_runtime` creates the cache storage, the record queue, the
network client and every component, registers the default handlers on a
fresh :class:`~storyworker.worker.ServiceWorker`, and tears everything down
on exit (pending store writes are drained first).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx

from storyworker.cache import CacheStorage
from storyworker.client import NetworkClient
from storyworker.config import get_data_dir, resolve_cache_dir
from storyworker.engine import InterceptionEngine
from storyworker.lifecycle import LifecycleManager
from storyworker.models import WorkerConfig
from storyworker.notifications import NotificationDispatcher, NotificationSurface, WindowManager
from storyworker.queue import DiskRecordQueue
from storyworker.surfaces import BrowserWindows, ConsoleSurface
from storyworker.sync import RemoteSynchronizer, ReplayCoordinator
from storyworker.worker import ServiceWorker, WorkerComponents, build_worker


@dataclass
class Runtime:
    config: WorkerConfig
    worker: ServiceWorker
    components: WorkerComponents
    storage: CacheStorage
    queue: DiskRecordQueue


def default_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for the network client; ``None`` selects the httpx default."""
    return None


def queue_dir() -> Path:
    return get_data_dir() / "queue"


@asynccontextmanager
async def open_runtime(
    config: WorkerConfig,
    *,
    surface: Optional[NotificationSurface] = None,
    windows: Optional[WindowManager] = None,
    remote: Optional[RemoteSynchronizer] = None,
) -> AsyncIterator[Runtime]:
    """Yield a :class:`Runtime` wired for *config*."""
    storage = CacheStorage(resolve_cache_dir(config), config.key_headers)
    queue = DiskRecordQueue(queue_dir())
    network = NetworkClient(config.app_origin, config.request, transport=default_transport())
    engine = InterceptionEngine(storage, config, network)
    components = WorkerComponents(
        lifecycle=LifecycleManager(storage, config, network),
        engine=engine,
        notifications=NotificationDispatcher(
            surface or ConsoleSurface(),
            windows or BrowserWindows(),
            config.app_origin,
        ),
        replay=ReplayCoordinator(queue, remote, tag=config.sync_tag),
    )
    try:
        async with engine:
            yield Runtime(
                config=config,
                worker=build_worker(components),
                components=components,
                storage=storage,
                queue=queue,
            )
    finally:
        storage.close()
        queue.close()
