"""Data manager: paginated record caches and the application orchestrator."""

from .shared.core.event_bus import EventBus
from .state import AppStore, ListStore, Store

__all__ = ["AppStore", "EventBus", "ListStore", "Store"]
