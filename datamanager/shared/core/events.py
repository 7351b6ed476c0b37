"""Canonical event definitions for the data manager."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

from .event_bus import EventPayload

# Observer topics (EventBus)
TOPIC_LIST_UPDATED = "list.updated"
TOPIC_LIST_CLEARED = "list.cleared"
TOPIC_DATA_FETCHED = "data.fetched"
TOPIC_SELECTION_CHANGED = "selection.changed"
TOPIC_HIGHLIGHT_CHANGED = "highlight.changed"
TOPIC_ITEM_UPDATED = "item.updated"
TOPIC_MODE_CHANGED = "mode.changed"
TOPIC_PROJECT_UPDATED = "project.updated"
TOPIC_SERVER_ERROR = "server.error"
TOPIC_APP_CRASHED = "app.crashed"

# Host notifications (names the embedding host listens for)
HOST_TASK_SELECTED = "taskSelected"
HOST_DATA_FETCHED = "dataFetched"
HOST_ERROR = "error"
HOST_CRASH = "crash"
HOST_SETTINGS_CLICKED = "settingsClicked"
HOST_LABEL_STREAM_FINISHED = "labelStreamFinished"


def create_list_updated_event(target: str, total: int, length: int, reload: bool) -> EventPayload:
    """Create a list updated event (a page was merged into a store)."""
    return {
        "target": target,
        "total": total,
        "length": length,
        "reload": reload,
    }


def create_data_fetched_event(target: str, page: int, total: int) -> EventPayload:
    """Create a data fetched event."""
    return {
        "target": target,
        "page": page,
        "total": total,
    }


def create_selection_changed_event(target: str, item_id: Optional[int]) -> EventPayload:
    """Create a selection changed event."""
    return {
        "target": target,
        "id": item_id,
    }


def create_highlight_changed_event(target: str, item_id: Optional[int]) -> EventPayload:
    """Create a highlight changed event."""
    return {
        "target": target,
        "id": item_id,
    }


def create_item_updated_event(target: str, item_id: int, created: bool) -> EventPayload:
    """Create an item updated event.

    Args:
        target: Store target the item belongs to
        item_id: Id of the patched item
        created: True when the patch produced a new item
    """
    return {
        "target": target,
        "id": item_id,
        "created": created,
    }


def create_mode_changed_event(mode: str, previous: str) -> EventPayload:
    """Create a mode changed event."""
    return {
        "mode": mode,
        "previous": previous,
    }


def create_server_error_event(method: str, status: int, error: Any) -> EventPayload:
    """Create a server error event."""
    return {
        "method": method,
        "status": status,
        "error": error,
        "ts": time.time(),
    }


def create_app_crashed_event(reason: str | None = None) -> EventPayload:
    """Create an app crashed event."""
    return {
        "reason": reason,
        "ts": time.time(),
    }


def create_project_updated_event(project: Dict[str, Any], needs_data_fetch: bool) -> EventPayload:
    """Create a project updated event."""
    return {
        "project": project,
        "needs_data_fetch": needs_data_fetch,
    }
