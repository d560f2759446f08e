"""
dealflow

Event-driven workflow core: an in-process event bus and a tracker for the
signature and verification readiness of multi-party term sheets.
"""

__version__ = "1.0.0"

from .config import DealflowSettings, get_settings
from .documents import DocumentTracker, TermSheetWorkflow
from .events import EventBus, EventType, NotificationCenter
from .exceptions import DealflowError
from .services import DealflowServices, create_services, dealflow_context

__all__ = [
    "__version__",
    "DealflowError",
    "DealflowServices",
    "DealflowSettings",
    "DocumentTracker",
    "EventBus",
    "EventType",
    "NotificationCenter",
    "TermSheetWorkflow",
    "create_services",
    "dealflow_context",
    "get_settings",
]
