"""
Eventwire - a synchronous in-process event bus.

This package provides an EventBus with multi-name and event-map
subscriptions, an "all" wildcard event, one-shot handlers, and
inversion-of-control listening between buses.
"""

from .api import ALL_EVENTS, events_api
from .bus import EventBus
from .records import HandlerRecord, ListeningRecord, unique_id

__version__ = "0.1.0"
__all__ = [
    "ALL_EVENTS",
    "EventBus",
    "HandlerRecord",
    "ListeningRecord",
    "events_api",
    "unique_id",
]
