"""
In-process Event Bus

This module provides the publish/subscribe bus that sequences cross-component
notifications:
- Subscription registry with per-registration unsubscribe handles
- FIFO queued delivery driven by a single drain loop
- Concurrent fan-out to all handlers of one event, awaited before the next event
- Immediate synchronous fan-out that bypasses the queue
- Per-handler deadlines and a bounded queue with an explicit overflow policy

Delivery is best-effort and in-memory; nothing survives the process.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from .exceptions import EventBusClosedError, EventDroppedError, QueueOverflowError
from .types import PAYLOAD_REGISTRY, Event, EventPayload, EventPayloadRegistry, EventType

if TYPE_CHECKING:
    from ..config import DealflowSettings

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], Awaitable[Any] | None]
Unsubscribe = Callable[[], None]

# Bus whose drain loop owns the current task, if any
_dispatching_bus: ContextVar[EventBus | None] = ContextVar("dealflow_dispatching_bus", default=None)


class OverflowPolicy(str, Enum):
    """What happens when a bounded queue is full."""

    REJECT = "reject"
    DROP_OLDEST = "drop_oldest"
    BLOCK = "block"


@dataclass(eq=False)
class Subscription:
    """One registration of a handler under one event type."""

    event_type: EventType
    handler: EventHandler
    subscription_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    active: bool = True

    @property
    def handler_name(self) -> str:
        return getattr(self.handler, "__qualname__", None) or repr(self.handler)


class SubscriptionRegistry:
    """Holds, per event type, the ordered list of live subscriptions."""

    def __init__(self):
        self._subscriptions: dict[EventType, list[Subscription]] = defaultdict(list)

    def add(self, event_type: EventType, handler: EventHandler) -> Subscription:
        """Register a handler. The same handler may be registered more than once."""
        subscription = Subscription(event_type=event_type, handler=handler)
        self._subscriptions[event_type].append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> bool:
        """Deactivate and remove a subscription. Returns False if it was already gone."""
        subscription.active = False
        subscriptions = self._subscriptions.get(subscription.event_type)
        if not subscriptions or subscription not in subscriptions:
            return False
        subscriptions.remove(subscription)
        if not subscriptions:
            del self._subscriptions[subscription.event_type]
        return True

    def handlers_for(self, event_type: EventType) -> list[Subscription]:
        """Snapshot of the subscriptions for an event type, in registration order."""
        return list(self._subscriptions.get(event_type, ()))

    def count(self, event_type: EventType | None = None) -> int:
        if event_type is not None:
            return len(self._subscriptions.get(event_type, ()))
        return sum(len(subs) for subs in self._subscriptions.values())

    def clear(self) -> None:
        for subscriptions in self._subscriptions.values():
            for subscription in subscriptions:
                subscription.active = False
        self._subscriptions.clear()


@dataclass(eq=False)
class _QueuedEvent:
    event: Event
    done: asyncio.Future

    def resolve(self) -> None:
        if not self.done.done():
            self.done.set_result(self.event)

    def discard(self, error: Exception) -> None:
        if not self.done.done():
            self.done.set_exception(error)


class EventBus:
    """Publish/subscribe bus with ordered queued delivery and synchronous fan-out."""

    def __init__(
        self,
        max_queue_size: int | None = None,
        overflow_policy: OverflowPolicy = OverflowPolicy.REJECT,
        handler_timeout: float | None = None,
        payload_registry: EventPayloadRegistry = PAYLOAD_REGISTRY,
    ):
        if max_queue_size is not None and max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1")

        self._max_queue_size = max_queue_size
        self._overflow_policy = OverflowPolicy(overflow_policy)
        self._handler_timeout = handler_timeout
        self._payloads = payload_registry

        self._registry = SubscriptionRegistry()
        self._queue: deque[_QueuedEvent] = deque()
        self._space_available = asyncio.Condition()

        # Processing state
        self._draining = False
        self._drain_task: asyncio.Task | None = None
        self._background_tasks: set[asyncio.Task] = set()
        self._closed = False

        self._metrics = {
            "events_published": 0,
            "events_dispatched": 0,
            "events_dropped": 0,
            "drain_loops": 0,
            "handlers_executed": 0,
            "handler_failures": 0,
            "handler_timeouts": 0,
        }

    @classmethod
    def from_settings(cls, settings: DealflowSettings) -> EventBus:
        """Create a bus configured from application settings."""
        return cls(
            max_queue_size=settings.max_queue_size,
            overflow_policy=settings.overflow_policy,
            handler_timeout=settings.handler_timeout,
        )

    # Subscription management

    def subscribe(self, event_type: EventType | str, handler: EventHandler) -> Unsubscribe:
        """Register ``handler`` for ``event_type`` and return its unsubscribe capability."""
        self._ensure_open(event_type)
        subscription = self._registry.add(EventType(event_type), handler)
        logger.debug(f"Subscribed handler {subscription.handler_name} to {subscription.event_type.value}")

        def unsubscribe() -> None:
            if self._registry.remove(subscription):
                logger.debug(
                    f"Unsubscribed handler {subscription.handler_name} from {subscription.event_type.value}"
                )

        return unsubscribe

    def subscribe_multiple(self, event_types: Iterable[EventType | str], handler: EventHandler) -> Unsubscribe:
        """Register ``handler`` under several event types; the returned callable removes all of them."""
        normalized = [EventType(event_type) for event_type in event_types]
        for event_type in normalized:
            self._ensure_open(event_type)
        subscriptions = [self._registry.add(event_type, handler) for event_type in normalized]
        logger.debug(f"Subscribed handler to {[t.value for t in normalized]}")

        def unsubscribe() -> None:
            for subscription in subscriptions:
                self._registry.remove(subscription)

        return unsubscribe

    # Publishing

    async def publish(self, event_type: EventType | str, payload: EventPayload) -> Event:
        """Queue an event and wait until every handler for it has settled.

        When called from inside one of this bus's own handlers the event is
        queued behind the current one and the call returns without waiting,
        since the current event cannot finish before its handler does.

        Raises ``EventDroppedError`` if the event is discarded from a full
        queue, and ``EventBusClosedError`` if the bus closes before the event
        is dispatched.
        """
        self._ensure_open(event_type)
        event = Event(event_type=self._payloads.validate(event_type, payload), payload=payload)
        item = _QueuedEvent(event=event, done=asyncio.get_running_loop().create_future())

        await self._enqueue(item)
        self._metrics["events_published"] += 1

        if not self._draining:
            self._start_drain()

        if _dispatching_bus.get() is self:
            logger.debug(f"Event {event.event_id} queued from within a handler; not awaiting delivery")
            item.done.add_done_callback(_consume_result)
            return event

        await item.done
        return event

    def publish_sync(self, event_type: EventType | str, payload: EventPayload) -> Event:
        """Invoke the current handlers immediately, in registration order, bypassing the queue.

        Coroutine handlers are scheduled on the running loop and not awaited.
        """
        self._ensure_open(event_type)
        event = Event(event_type=self._payloads.validate(event_type, payload), payload=payload)
        self._metrics["events_published"] += 1

        for subscription in self._registry.handlers_for(event.event_type):
            if not subscription.active:
                continue
            try:
                result = subscription.handler(event)
            except Exception:
                self._record_failure(subscription, event)
                continue

            if inspect.isawaitable(result):
                self._schedule(subscription, result, event)
            else:
                self._metrics["handlers_executed"] += 1

        return event

    # Lifecycle

    async def close(self) -> None:
        """Drop all subscriptions, discard queued events and stop the drain loop."""
        if self._closed:
            return

        self._closed = True
        self._registry.clear()

        pending = list(self._queue)
        self._queue.clear()
        for item in pending:
            item.discard(
                EventBusClosedError(
                    f"Event bus closed before event {item.event.event_id} was dispatched",
                    event_type=item.event.event_type.value,
                )
            )
        if pending:
            logger.warning(f"Discarded {len(pending)} queued events on close")

        async with self._space_available:
            self._space_available.notify_all()

        current = asyncio.current_task()
        tasks = [
            task for task in (self._drain_task, *self._background_tasks)
            if task is not None and task is not current
        ]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("Event bus closed")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def queue_depth(self) -> int:
        return len(self._queue)

    def handler_count(self, event_type: EventType | str | None = None) -> int:
        """Number of live subscriptions, for one event type or overall."""
        return self._registry.count(EventType(event_type) if event_type is not None else None)

    def get_metrics(self) -> dict[str, Any]:
        """Get event bus metrics."""
        return self._metrics.copy()

    # Private methods

    def _start_drain(self) -> None:
        self._draining = True
        self._metrics["drain_loops"] += 1
        self._drain_task = asyncio.create_task(self._drain())

    def _ensure_open(self, event_type: EventType | str) -> None:
        if self._closed:
            raise EventBusClosedError(event_type=str(getattr(event_type, "value", event_type)))

    async def _enqueue(self, item: _QueuedEvent) -> None:
        if self._max_queue_size is None or len(self._queue) < self._max_queue_size:
            self._queue.append(item)
            return

        event_type = item.event.event_type.value
        if self._overflow_policy is OverflowPolicy.REJECT:
            raise QueueOverflowError(
                f"Event queue is full ({self._max_queue_size} events)", event_type=event_type
            )

        if self._overflow_policy is OverflowPolicy.DROP_OLDEST:
            dropped = self._queue.popleft()
            dropped.discard(
                EventDroppedError(f"Event {dropped.event.event_id} dropped from a full queue", event_type=event_type)
            )
            self._metrics["events_dropped"] += 1
            logger.warning(
                f"Event queue full, dropped oldest event {dropped.event.event_id} "
                f"({dropped.event.event_type.value})"
            )
            self._queue.append(item)
            return

        async with self._space_available:
            await self._space_available.wait_for(
                lambda: self._closed or len(self._queue) < self._max_queue_size
            )
        self._ensure_open(event_type)
        self._queue.append(item)

    async def _drain(self) -> None:
        """Consume the queue one event at a time until it is empty."""
        _dispatching_bus.set(self)
        try:
            while self._queue:
                item = self._queue.popleft()
                if self._max_queue_size is not None:
                    async with self._space_available:
                        self._space_available.notify_all()
                try:
                    await self._dispatch(item.event)
                finally:
                    item.resolve()
        finally:
            self._draining = False
            self._drain_task = None
            if self._queue and not self._closed:
                logger.warning(f"Drain loop stopped with {len(self._queue)} events queued; restarting")
                self._start_drain()

    async def _dispatch(self, event: Event) -> None:
        subscriptions = self._registry.handlers_for(event.event_type)
        if not subscriptions:
            logger.debug(f"No handlers for event type: {event.event_type.value}")
        else:
            results = await asyncio.gather(
                *(self._invoke(subscription, event) for subscription in subscriptions),
                return_exceptions=True,
            )
            # Only BaseExceptions such as a handler's own CancelledError reach here
            for subscription, result in zip(subscriptions, results):
                if isinstance(result, BaseException):
                    self._record_failure(subscription, event, result)
        self._metrics["events_dispatched"] += 1

    async def _invoke(self, subscription: Subscription, event: Event) -> None:
        # Checked at the handler's turn so an unsubscribe during fan-out takes effect
        if not subscription.active:
            return
        try:
            result = subscription.handler(event)
        except Exception:
            self._record_failure(subscription, event)
            return

        if inspect.isawaitable(result):
            await self._settle(subscription, result, event)
        else:
            self._metrics["handlers_executed"] += 1

    async def _settle(self, subscription: Subscription, awaitable: Awaitable[Any], event: Event) -> None:
        try:
            if self._handler_timeout is None:
                await awaitable
            else:
                await asyncio.wait_for(awaitable, timeout=self._handler_timeout)
        except asyncio.TimeoutError:
            self._metrics["handler_timeouts"] += 1
            self._metrics["handler_failures"] += 1
            logger.error(
                f"Handler {subscription.handler_name} timed out after {self._handler_timeout}s "
                f"processing event {event.event_id} ({event.event_type.value})"
            )
        except Exception:
            self._record_failure(subscription, event)
        else:
            self._metrics["handlers_executed"] += 1

    def _schedule(self, subscription: Subscription, awaitable: Awaitable[Any], event: Event) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.warning(
                f"No running event loop; skipped async handler {subscription.handler_name} "
                f"for event {event.event_id} ({event.event_type.value})"
            )
            return

        task = loop.create_task(self._settle(subscription, awaitable, event))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    def _record_failure(
        self, subscription: Subscription, event: Event, error: BaseException | None = None
    ) -> None:
        self._metrics["handler_failures"] += 1
        logger.error(
            f"Handler {subscription.handler_name} failed processing event {event.event_id} "
            f"({event.event_type.value})",
            exc_info=error or True,
        )


def _consume_result(future: asyncio.Future) -> None:
    # Nobody awaits events published from inside a handler
    if not future.cancelled():
        future.exception()


@asynccontextmanager
async def event_bus_context(settings: DealflowSettings | None = None, **kwargs):
    """Context manager for event bus lifecycle."""
    bus = EventBus.from_settings(settings) if settings is not None else EventBus(**kwargs)
    try:
        yield bus
    finally:
        await bus.close()
