"""In-process asynchronous event bus carrying store notifications to the host."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from core.event_types import EventType
from core.events import BaseEvent

EventHandler = Callable[[BaseEvent], Awaitable[Any]]
EventFilter = Callable[[BaseEvent], bool]


@dataclass(slots=True)
class _Subscription:
    handler: EventHandler
    accepts: EventFilter | None = None


class EventBus:
    """Single-worker asyncio queue delivering events to async subscribers.

    Handlers subscribed to ``EventType.ALL`` see every event after the handlers
    registered for its concrete type. A failing handler is logged; it never
    stops delivery to the others.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[EventType, list[_Subscription]] = {}
        self._queue: asyncio.Queue[BaseEvent] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def subscribe(
        self,
        event_type: EventType,
        handler: EventHandler | None = None,
        *,
        filter: EventFilter | None = None,
    ) -> Callable[[EventHandler], EventHandler] | EventHandler:
        """Register an async handler, directly or as a decorator.

        ``filter`` is called with each event; the handler only runs when it
        returns True.
        """

        if handler is None:

            def decorator(func: EventHandler) -> EventHandler:
                self._add(event_type, func, filter)
                return func

            return decorator

        self._add(event_type, handler, filter)
        return handler

    async def publish(self, event: BaseEvent) -> None:
        await self._queue.put(event)

    async def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._consume(), name="event-bus-worker")

    async def stop(self, *, drain: bool = False) -> None:
        """Stop the worker; with ``drain`` queued events are delivered first."""

        if not self.running or self._worker is None:
            return
        if drain:
            await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def join(self) -> None:
        """Wait until every queued event, including ones queued by handlers, is delivered."""

        await self._queue.join()

    def _add(self, event_type: EventType, handler: EventHandler, accepts: EventFilter | None) -> None:
        if not inspect.iscoroutinefunction(handler):
            raise TypeError("Event handlers must be async functions")
        self._subscriptions.setdefault(event_type, []).append(_Subscription(handler, accepts))

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                targets = [
                    *self._subscriptions.get(event.event_type, []),
                    *self._subscriptions.get(EventType.ALL, []),
                ]
                await asyncio.gather(*(self._deliver(item, event) for item in targets))
            finally:
                self._queue.task_done()

    async def _deliver(self, subscription: _Subscription, event: BaseEvent) -> None:
        try:
            if subscription.accepts is not None and not subscription.accepts(event):
                return
            await subscription.handler(event)
        except Exception:  # noqa: BLE001
            self._logger.exception("Event handler failed", extra={"event_type": event.event_type})
