"""Process-wide access point to the application state.

The embedding UI reaches the AppStore through Store.get(); stores inside the
package are handed their root explicitly and never go through here.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional

from datamanager.shared.core.event_bus import EventBus
from datamanager.state.app_store import AppStore

logger = logging.getLogger(__name__)


class Store:
    """Singleton wrapper around one AppStore and its bus.

    Usage:
        Store.initialize(EventBus(), api=api, host=host, views=views, navigation=navigation)
        Store.get().app.data_store.focus_next()
    """

    _instance: Optional['Store'] = None

    def __init__(self, event_bus: EventBus, **collaborators: Any) -> None:
        # Use Store.initialize(); collaborators go straight to AppStore
        self.bus = event_bus
        self.app = AppStore(event_bus, **collaborators)

    @classmethod
    def initialize(cls, event_bus: EventBus, **collaborators: Any) -> 'Store':
        """Create the shared instance.

        Raises:
            RuntimeError: If one already exists
        """
        if cls._instance is not None:
            raise RuntimeError("Store already initialized!")

        cls._instance = cls(event_bus, **collaborators)
        return cls._instance

    @classmethod
    def get(cls) -> 'Store':
        if cls._instance is None:
            raise RuntimeError("Store not initialized! Call Store.initialize() first.")
        return cls._instance

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._instance is not None

    @classmethod
    def reset(cls) -> None:
        """Destroy the app state and forget the instance (tests, host teardown)."""
        instance, cls._instance = cls._instance, None
        if instance is not None:
            instance.app.destroy()
            instance.bus.clear()

    @classmethod
    async def shutdown(cls) -> None:
        """reset(), then close the transport if it holds connections."""
        instance = cls._instance
        cls.reset()
        if instance is None:
            return

        close = getattr(instance.app.api, "aclose", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result
        logger.debug("Transport closed")
