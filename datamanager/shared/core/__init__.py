"""
Shared Core Module
==================

Event system and configuration.
"""

# Event System
from .event_bus import ANY_TOPIC, EventBus, EventPayload
from . import events

# Configuration
from .configuration import (
    ConfigManager,
    SystemConfig,
    get_config_manager,
    get_config,
    ValidationLevel,
)

__all__ = [
    # Event System
    "ANY_TOPIC",
    "EventBus",
    "EventPayload",
    "events",
    # Configuration
    "ConfigManager",
    "SystemConfig",
    "get_config_manager",
    "get_config",
    "ValidationLevel",
]
