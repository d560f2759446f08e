"""
Explicit construction and teardown of the workflow core.

Each call builds an independent bus, tracker and notification center, so
tests and multiple tenants in one process never share state.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from .config import DealflowSettings, get_settings
from .documents.tracker import DocumentTracker
from .events.event_bus import EventBus
from .events.notifications import NotificationCenter

logger = logging.getLogger(__name__)


@dataclass
class DealflowServices:
    settings: DealflowSettings
    bus: EventBus
    tracker: DocumentTracker
    notifications: NotificationCenter

    async def close(self) -> None:
        """Drop every subscription, forget tracked documents and stop the bus."""
        self.notifications.close()
        self.tracker.close()
        await self.bus.close()
        logger.info(f"{self.settings.service_name} services closed")


def create_services(settings: DealflowSettings | None = None) -> DealflowServices:
    """Build a bus with a tracker and notification center attached to it."""
    settings = settings or get_settings()
    bus = EventBus.from_settings(settings)
    services = DealflowServices(
        settings=settings,
        bus=bus,
        tracker=DocumentTracker.from_settings(settings, bus=bus),
        notifications=NotificationCenter(bus, history_limit=settings.notification_history_limit),
    )
    logger.info(f"{settings.service_name} services started ({settings.environment})")
    return services


@asynccontextmanager
async def dealflow_context(settings: DealflowSettings | None = None):
    """Context manager for the services lifecycle."""
    services = create_services(settings)
    try:
        yield services
    finally:
        await services.close()
