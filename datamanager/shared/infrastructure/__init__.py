"""
Shared Infrastructure Module
=============================

Technical adapters for external systems (backend API, preference storage).
"""

# API
from datamanager.shared.infrastructure.api.models import ApiResult
from datamanager.shared.infrastructure.api.api_proxy import ApiProxy

# Persistence
from datamanager.shared.infrastructure.persistence.preferences import PreferenceStore

__all__ = [
    # API
    "ApiResult",
    "ApiProxy",
    # Persistence
    "PreferenceStore",
]
