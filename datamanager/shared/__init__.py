"""
Data Manager Shared Kernel
==========================

Architecture:
- core: EventBus, configuration
- infrastructure: Technical adapters (backend API, preferences)
"""

__version__ = "1.0.0"

__all__ = []
