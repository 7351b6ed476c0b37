"""Concrete data stores and the target → store registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Type

from datamanager.shared.core import events
from datamanager.shared.infrastructure.api.models import ApiResult
from datamanager.state.list_store import ListStore
from datamanager.state.models import AnnotationItem, Item, Target, TaskItem

if TYPE_CHECKING:
    from datamanager.state.app_store import AppStore

logger = logging.getLogger(__name__)

NEXT_TASK_ACTION = "next_task"


class TaskStore(ListStore):
    target = Target.TASKS
    api_method = "tasks"
    item_type = TaskItem

    def __init__(self, root: "AppStore") -> None:
        super().__init__(root)
        self.total_annotations = 0
        self.total_predictions = 0

    def post_process_data(self, result: ApiResult) -> None:
        self.total_annotations = result.get("total_annotations", self.total_annotations)
        self.total_predictions = result.get("total_predictions", self.total_predictions)

    def clear(self) -> None:
        super().clear()
        self.total_annotations = 0
        self.total_predictions = 0

    async def load_task(self, task_id: Any, select: bool = True) -> Optional[Item]:
        """Load the full record of one task and upsert it."""
        if task_id is None:
            logger.warning("Task ID must be provided")
            return None

        self.set_loading(task_id)
        try:
            result = await self.root.api_call("task", {"taskID": task_id})
        finally:
            self.finish_loading(task_id)

        if not result.ok or not isinstance(result.data, dict):
            return None

        task = self.update_item(task_id, result.data)
        if select:
            self.set_selected(task)
        return task

    async def load_next_task(self, select: bool = True) -> Optional[Item]:
        """Ask the server for the next task of the label stream."""
        self.set_loading()
        try:
            result = await self.root.invoke_action(NEXT_TASK_ACTION, reload=False)
        finally:
            self.finish_loading()

        if isinstance(result, ApiResult):
            if result.is_not_found:
                self.root.host.invoke(events.HOST_LABEL_STREAM_FINISHED)
                return None
            data = result.data if result.ok else None
        else:
            # Handled by a local callback
            data = result

        if not isinstance(data, dict) or data.get("id") is None:
            return None

        task = self.update_item(data["id"], data)
        if select:
            self.set_selected(task)
        return task


class AnnotationStore(ListStore):
    target = Target.ANNOTATIONS
    api_method = "annotations"
    item_type = AnnotationItem


DATA_STORE_TYPES: Dict[Target, Type[ListStore]] = {
    Target.TASKS: TaskStore,
    Target.ANNOTATIONS: AnnotationStore,
}


def create_data_store(target: Target | str, root: "AppStore") -> ListStore:
    return DATA_STORE_TYPES[Target(target)](root)
