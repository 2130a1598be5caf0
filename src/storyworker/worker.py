"""Event dispatcher: one handler per event category on a single object.

:class:`ServiceWorker` is constructed once at process start.  Each
:class:`EventType` has at most one handler; registering again replaces it.
:func:`build_worker` wires the default handlers to the lifecycle manager,
the interception engine, the notification dispatcher, and the replay
coordinator held in a :class:`WorkerComponents`.

Example::

    worker = build_worker(components)
    response = await worker.dispatch(FetchEvent(InterceptedRequest(url=url)))
    await worker.dispatch(SyncEvent("sync-stories"))
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, Optional, Union

from storyworker.engine import InterceptionEngine
from storyworker.exceptions import InvalidUsageError
from storyworker.lifecycle import LifecycleManager
from storyworker.models import InterceptedRequest
from storyworker.notifications import Notification, NotificationDispatcher, PushData
from storyworker.sync import ReplayCoordinator


class EventType(str, enum.Enum):
    """Event categories a worker handles."""

    INSTALL = "install"
    ACTIVATE = "activate"
    FETCH = "fetch"
    PUSH = "push"
    NOTIFICATION_CLICK = "notificationclick"
    SYNC = "sync"


@dataclass
class InstallEvent:
    type: ClassVar[EventType] = EventType.INSTALL


@dataclass
class ActivateEvent:
    type: ClassVar[EventType] = EventType.ACTIVATE


@dataclass
class FetchEvent:
    request: InterceptedRequest
    type: ClassVar[EventType] = EventType.FETCH


@dataclass
class PushEvent:
    data: PushData = None
    type: ClassVar[EventType] = EventType.PUSH


@dataclass
class NotificationClickEvent:
    notification: Notification
    action: str = ""
    type: ClassVar[EventType] = EventType.NOTIFICATION_CLICK


@dataclass
class SyncEvent:
    tag: str
    type: ClassVar[EventType] = EventType.SYNC


Event = Union[
    InstallEvent, ActivateEvent, FetchEvent, PushEvent, NotificationClickEvent, SyncEvent
]
Handler = Callable[[Any], Awaitable[Any]]


class ServiceWorker:
    """Holds the handler of each event category and dispatches events to it."""

    def __init__(self) -> None:
        self._handlers: dict[EventType, Handler] = {}

    def register(self, event_type: EventType, handler: Handler) -> None:
        """Install *handler* for *event_type*, replacing any previous one."""
        self._handlers[event_type] = handler

    def on(self, event_type: EventType) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`register`."""

        def decorator(handler: Handler) -> Handler:
            self.register(event_type, handler)
            return handler

        return decorator

    @property
    def registered(self) -> list[EventType]:
        return list(self._handlers)

    async def dispatch(self, event: Event) -> Any:
        """Run the handler for *event* and return its result.

        Raises:
            InvalidUsageError: If no handler is registered for the event type.
        """
        handler = self._handlers.get(event.type)
        if handler is None:
            raise InvalidUsageError(f"No handler registered for '{event.type.value}' events")
        return await handler(event)


@dataclass
class WorkerComponents:
    """The components the default handlers delegate to."""

    lifecycle: LifecycleManager
    engine: InterceptionEngine
    notifications: NotificationDispatcher
    replay: ReplayCoordinator


def build_worker(
    components: WorkerComponents, worker: Optional[ServiceWorker] = None
) -> ServiceWorker:
    """Register the default handler of every event category."""
    worker = worker or ServiceWorker()

    @worker.on(EventType.INSTALL)
    async def _install(event: InstallEvent) -> int:
        return await components.lifecycle.install()

    @worker.on(EventType.ACTIVATE)
    async def _activate(event: ActivateEvent) -> list[str]:
        return await components.lifecycle.activate()

    @worker.on(EventType.FETCH)
    async def _fetch(event: FetchEvent) -> Any:
        return await components.engine.intercept(event.request)

    @worker.on(EventType.PUSH)
    async def _push(event: PushEvent) -> Notification:
        return await components.notifications.on_push(event.data)

    @worker.on(EventType.NOTIFICATION_CLICK)
    async def _click(event: NotificationClickEvent) -> Any:
        return await components.notifications.on_click(event.notification, event.action)

    @worker.on(EventType.SYNC)
    async def _sync(event: SyncEvent) -> Any:
        return await components.replay.on_sync(event.tag)

    return worker
