"""State management for the data manager.

Architecture:
- ListStore: paginated, mergeable record cache (TaskStore, AnnotationStore)
- AppStore: mode transitions, action dispatch, backend funnel
- Store: service locator for accessing state from any component
"""

from .models import Action, AnnotationItem, Item, Mode, Target, TaskItem, User
from .list_store import ListStore
from .data_stores import AnnotationStore, TaskStore, create_data_store
from .app_store import AppStore
from .store import Store

__all__ = [
    "Action",
    "AnnotationItem",
    "AnnotationStore",
    "AppStore",
    "Item",
    "ListStore",
    "Mode",
    "Store",
    "Target",
    "TaskItem",
    "TaskStore",
    "User",
    "create_data_store",
]
