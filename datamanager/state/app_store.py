"""Application orchestrator.

Owns the interaction mode, the task and annotation stores, project metadata
and the single path every backend call goes through.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import unquote

from datamanager.shared.core import events
from datamanager.shared.core.configuration import SystemConfig
from datamanager.shared.core.event_bus import EventBus
from datamanager.shared.infrastructure.api.models import ApiResult
from datamanager.shared.infrastructure.persistence.preferences import PreferenceStore
from datamanager.state.collaborators import Host, Navigation, Transport, View, ViewsStore
from datamanager.state.data_stores import NEXT_TASK_ACTION, AnnotationStore, TaskStore, create_data_store
from datamanager.state.list_store import ListStore
from datamanager.state.models import Action, Item, Mode, Target, User

logger = logging.getLogger(__name__)

# Project counters that signal the cached pages are out of date
PROJECT_COUNTERS = (
    "task_count",
    "task_number",
    "annotation_count",
    "num_tasks_with_annotations",
)


def _field(item: Union[Item, Mapping[str, Any]], name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _as_id(value: Any) -> Any:
    """History state carries ids as strings; non-numeric ones pass through."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def _record_id(value: Any) -> Optional[int]:
    """Record id from history state; None when absent or not numeric."""
    if not value:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric record id in history state: {value!r}")
        return None


class AppStore:
    """Root state of the data manager.

    Every component gets this object at construction; there is no global
    lookup of the root.
    """

    def __init__(
        self,
        bus: EventBus,
        api: Transport,
        host: Host,
        views: ViewsStore,
        navigation: Navigation,
        preferences: Optional[PreferenceStore] = None,
        config: Optional[SystemConfig] = None,
        interfaces: Optional[Mapping[str, bool]] = None,
        toolbar: str = "",
    ) -> None:
        self.bus = bus
        self.api = api
        self.host = host
        self.views = views
        self.navigation = navigation
        self.config = config or SystemConfig()
        self.preferences = preferences or PreferenceStore(self.config.storage.preferences_path)

        self.mode = Mode.EXPLORER
        self.project: Dict[str, Any] = {}
        self.loading = False
        self.loading_data = False
        self.users: List[User] = []
        self.available_actions: List[Action] = []
        self.server_error: Dict[str, Dict[str, Any]] = {}
        self.crashed = False
        self.interfaces: Dict[str, bool] = dict(interfaces or {})
        self.toolbar = toolbar

        self.needs_data_fetch = False
        self.project_fetch = False
        self._poll_task: Optional[asyncio.Task] = None

        self.task_store: Optional[TaskStore] = create_data_store(Target.TASKS, self)
        self.annotation_store: Optional[AnnotationStore] = create_data_store(Target.ANNOTATIONS, self)

    # --- Derived values ---

    @property
    def is_labeling(self) -> bool:
        data_store = self.data_store
        return (
            (data_store is not None and data_store.selected is not None)
            or self.is_label_stream_mode
            or self.mode == Mode.LABELING
        )

    @property
    def is_label_stream_mode(self) -> bool:
        return self.mode == Mode.LABEL_STREAM

    @property
    def is_explorer_mode(self) -> bool:
        return self.mode in (Mode.EXPLORER, Mode.LABELING)

    @property
    def current_view(self) -> Optional[View]:
        return self.views.selected if self.views is not None else None

    @property
    def target(self) -> str:
        view = self.current_view
        return getattr(view, "target", None) or Target.TASKS.value

    @property
    def data_store(self) -> Optional[ListStore]:
        stores = {
            Target.TASKS.value: self.task_store,
            Target.ANNOTATIONS.value: self.annotation_store,
        }
        return stores.get(self.target)

    @property
    def labeling_is_configured(self) -> bool:
        return self.project.get("config_has_control_tags") is True

    @property
    def labeling_config(self) -> Optional[str]:
        config = self.project.get("label_config_line")
        return config if config is not None else self.project.get("label_config")

    @property
    def current_selection(self) -> Optional[Dict[str, Any]]:
        view = self.current_view
        return view.selection if view is not None else None

    @property
    def current_filter(self) -> Any:
        view = self.current_view
        return view.filter_snapshot if view is not None else None

    # --- Simple setters ---

    def set_mode(self, mode: Union[Mode, str]) -> None:
        mode = Mode(mode)
        if mode == self.mode:
            return
        previous, self.mode = self.mode, mode
        self.bus.emit(
            events.TOPIC_MODE_CHANGED,
            events.create_mode_changed_event(mode.value, previous.value),
        )

    def _switch_mode(self, mode: Mode) -> None:
        self.set_mode(mode)
        self.host.set_mode(mode.value)

    def set_loading(self, value: bool) -> None:
        self.loading = value

    def set_toolbar(self, toolbar: str) -> None:
        self.toolbar = toolbar

    def add_actions(self, *actions: Union[Action, Mapping[str, Any]]) -> None:
        for action in actions:
            self.available_actions.append(Action.model_validate(action))

    def remove_action(self, action_id: str) -> None:
        self.available_actions = [a for a in self.available_actions if a.id != action_id]

    def interface_enabled(self, name: str) -> bool:
        return self.interfaces.get(name) is True

    def enable_interface(self, name: str) -> None:
        self._set_interface(name, True)

    def disable_interface(self, name: str) -> None:
        self._set_interface(name, False)

    def _set_interface(self, name: str, value: bool) -> None:
        if name not in self.interfaces:
            logger.warning(f"Unknown interface {name}")
            return
        self.interfaces[name] = value

    # --- Polling ---

    def start_polling(self) -> None:
        if self._poll_task is not None:
            return
        if not self.config.polling.enabled or getattr(self.host, "polling", True) is False:
            return

        self._poll_task = asyncio.create_task(self._poll())

    async def _poll(self) -> None:
        try:
            while not self.crashed:
                await self.fetch_project(interaction="timer")
                await asyncio.sleep(self.config.polling.interval)
        finally:
            if self._poll_task is asyncio.current_task():
                self._poll_task = None

    def stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    # --- Task selection ---

    async def set_task(
        self,
        task_id: Any = None,
        annotation_id: Any = None,
        push_state: bool = True,
    ) -> None:
        if push_state is not False:
            self.navigation.navigate({"task": task_id, "annotation": annotation_id})

        if task_id is None or self.crashed:
            return

        self.loading_data = True
        try:
            if self.mode == Mode.LABEL_STREAM:
                await self.task_store.load_next_task(
                    select=bool(task_id) and bool(annotation_id),
                )

            if annotation_id is not None:
                self.annotation_store.set_selected(annotation_id)
                return

            self.task_store.set_selected(task_id)
            await self.task_store.load_task(
                task_id,
                select=bool(task_id) and bool(annotation_id),
            )

            labeling = self.host.labeling
            if labeling is not None:
                annotation = labeling.current_annotation
                current_id = None
                if annotation is not None:
                    current_id = annotation.get("pk")
                    if current_id is None:
                        current_id = annotation.get("id")
                labeling.set_task(self.task_store.selected, current_id)
        finally:
            self.loading_data = False

    def unset_task(self, push_state: bool = True) -> None:
        try:
            self.annotation_store.unset()
            self.task_store.unset()
        except Exception:
            logger.debug("Failed to unset task selection", exc_info=True)

        if push_state is not False:
            self.navigation.navigate({"task": None, "annotation": None})

    def unset_selection(self) -> None:
        try:
            self.annotation_store.unset(with_highlight=True)
            self.task_store.unset(with_highlight=True)
        except Exception:
            logger.debug("Failed to unset selection", exc_info=True)

    # --- Mode transitions ---

    def confirm_labeling_configured(self) -> bool:
        if self.labeling_is_configured:
            return True

        self.host.confirm(
            title="You're almost there!",
            body="Before you can annotate the data, set up labeling configuration",
            ok_text="Go to setup",
            on_ok=lambda: self.host.invoke(events.HOST_SETTINGS_CLICKED),
        )
        return False

    def start_label_stream(self, push_state: bool = True) -> None:
        if not self.confirm_labeling_configured():
            return

        self._switch_mode(Mode.LABEL_STREAM)

        if push_state is not False:
            self.navigation.navigate({"labeling": 1})

    def _is_selected(self, item: Union[Item, Mapping[str, Any]]) -> bool:
        store = self.annotation_store if _field(item, "task_id") is not None else self.task_store
        return store is not None and store.selected_id is not None and store.selected_id == _field(item, "id")

    async def start_labeling(
        self,
        item: Union[Item, Mapping[str, Any], None],
        push_state: bool = True,
    ) -> None:
        """Open one record for labeling; on the current selection, close instead."""
        if not self.confirm_labeling_configured():
            return

        data_store = self.data_store
        if data_store is not None and data_store.is_loading:
            return

        self._switch_mode(Mode.LABELING)

        if item is None or self._is_selected(item):
            self.close_labeling()
            return

        task_id = _field(item, "task_id")
        if task_id is not None:
            await self.set_task(task_id=task_id, annotation_id=_field(item, "id"), push_state=push_state)
        else:
            await self.set_task(task_id=_field(item, "id"), push_state=push_state)

    def close_labeling(self, push_state: bool = True) -> None:
        self.unset_task(push_state=push_state)

        view_id = None
        tab_from_url = self.navigation.get_params().get("tab")
        view = self.current_view

        if view is not None:
            view_id = view.tab_key
        elif tab_from_url is not None:
            view_id = tab_from_url
        elif self.views is not None and self.views.views:
            view_id = self.views.views[0].tab_key

        if view_id is not None:
            self.navigation.force_navigate({"tab": view_id})

        self._switch_mode(Mode.EXPLORER)
        self.host.destroy_labeling()

    async def handle_pop_state(self, state: Optional[Mapping[str, Any]]) -> None:
        """Restore tab and labeling state after a history navigation."""
        state = state or {}
        tab = state.get("tab")
        task_id = _record_id(state.get("task"))
        annotation_id = _record_id(state.get("annotation"))
        labeling = state.get("labeling")

        if tab:
            self.views.set_selected(_as_id(tab), push_state=False, create_default=False)

        if task_id is not None:
            if annotation_id is not None:
                params = {"task_id": task_id, "id": annotation_id}
            else:
                params = {"id": task_id}
            await self.start_labeling(params, push_state=False)
        elif labeling:
            self.start_label_stream(push_state=False)
        else:
            self.close_labeling(push_state=False)

    def resolve_url_params(self) -> None:
        self.navigation.on_pop_state(self.handle_pop_state)

    # --- Loading ---

    async def fetch_project(self, force: bool = False, interaction: Optional[str] = None) -> bool:
        """Refresh project metadata.

        An exception, or an error result before any project was loaded, is
        fatal and crashes the app. Later error results (polling) and not-found
        results keep the current project; the next poll tries again.
        """
        self.project_fetch = force is True
        params = {"interaction": interaction} if interaction else None

        try:
            result = await self.api_call("project", params)
        except Exception:
            logger.exception("Project fetch raised")
            self.crash(reason="project")
            return False
        finally:
            self.project_fetch = False

        if not result.ok or not isinstance(result.data, dict):
            if result.is_not_found or len(self.project) > 0:
                logger.warning(f"Project fetch failed, keeping current project: {result.detail}")
                return False
            logger.error(f"Project fetch failed: {result.detail}")
            self.crash(reason="project")
            return False

        new_project = result.data
        if force is not True and len(self.project) > 0:
            self.needs_data_fetch = any(
                self.project.get(key) != new_project.get(key) for key in PROJECT_COUNTERS
            )
        else:
            self.needs_data_fetch = False

        if new_project != self.project:
            self.project = new_project
            self.bus.emit(
                events.TOPIC_PROJECT_UPDATED,
                events.create_project_updated_event(new_project, self.needs_data_fetch),
            )

        return True

    async def fetch_actions(self) -> None:
        result = await self.api_call("actions")
        if result.ok and isinstance(result.data, list):
            self.add_actions(*result.data)

    async def fetch_users(self) -> None:
        result = await self.api_call("users")
        if result.ok and isinstance(result.data, list):
            self.users.extend(User.model_validate(user) for user in result.data)

    async def fetch_data(self, is_label_stream: bool = False) -> bool:
        """Initial load: project, users, actions, tabs, fetched concurrently."""
        self.set_loading(True)

        params = self.navigation.get_params()
        tab = params.get("tab")

        requests = [
            self.fetch_project(),
            self.fetch_users(),
            self.views.fetch_columns(),
        ]

        if not is_label_stream:
            requests.append(self.fetch_actions())

            if not getattr(self.host, "only_virtual_tabs", False):
                requests.append(self.views.fetch_tabs(tab, params.get("task"), params.get("labeling")))
            else:
                requests.append(self.views.add_view(virtual=True, autosave=False))
        elif tab:
            try:
                query = json.loads(unquote(params.get("query") or "{}"))
            except ValueError:
                logger.warning("Ignoring malformed query parameter")
                query = {}
            requests.append(self.views.fetch_single_tab(tab, query.get("selectedItems") or {}))

        results = await asyncio.gather(*requests, return_exceptions=True)
        for outcome in results:
            if isinstance(outcome, BaseException):
                logger.error(f"Initial data request failed: {outcome!r}")

        project_fetched = results[0] is True
        if project_fetched:
            self.resolve_url_params()
            self.set_loading(False)
            self.start_polling()

        return project_fetched

    # --- Backend funnel ---

    async def api_call(
        self,
        method_name: str,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> ApiResult:
        """Call one endpoint. Never raises; errors are reported in the result."""
        try:
            transform = (getattr(self.host, "api_transform", None) or {}).get(method_name) or {}
            params_transform = transform.get("params")
            body_transform = transform.get("body")

            request_params = params_transform(params) if params_transform else None
            if request_params is None:
                request_params = params if params is not None else {}

            request_body = body_transform(body) if body_transform else None
            if request_body is None:
                request_body = body

            result = await getattr(self.api, method_name)(request_params, request_body)
        except Exception as e:
            logger.exception(f"Transport failure calling '{method_name}'")
            result = ApiResult(error=str(e) or type(e).__name__, status=0)

        if result.error and not result.is_not_found:
            if result.response is not None:
                self.server_error[method_name] = {
                    "error": "Something went wrong",
                    "response": result.response,
                }

            logger.warning(f"Error occurred when loading data ({method_name}): {result.detail}")
            try:
                self.host.invoke(events.HOST_ERROR, result)
            except Exception:
                logger.exception(f"Host failed to handle error from '{method_name}'")
            self.bus.emit(
                events.TOPIC_SERVER_ERROR,
                events.create_server_error_event(method_name, result.status, result.detail),
            )
        else:
            self.server_error.pop(method_name, None)

        return result

    # --- Actions ---

    def _action_params(self, action_id: str, view: Optional[View]) -> Dict[str, Any]:
        selection = getattr(view, "selection", None)
        params: Dict[str, Any] = {
            "ordering": getattr(view, "ordering", None),
            "selectedItems": dict(selection) if selection else {"all": False, "included": []},
            "filters": {
                "conjunction": getattr(view, "conjunction", None) or "and",
                "items": list(getattr(view, "serialized_filters", None) or []),
            },
        }

        if action_id == NEXT_TASK_ACTION:
            label_stream_mode = self.preferences.label_stream_mode

            if label_stream_mode == "all":
                del params["filters"]

                selected = params["selectedItems"]
                if selected.get("all") is False and len(selected.get("included") or []) == 0:
                    del params["selectedItems"]
                    del params["ordering"]
            elif label_stream_mode == "filtered":
                del params["selectedItems"]

        return params

    async def invoke_action(
        self,
        action_id: str,
        body: Optional[Mapping[str, Any]] = None,
        reload: bool = True,
    ) -> Any:
        """Run an action locally when the host registered a callback, otherwise remotely.

        Remote actions lock the current view until they finish.
        """
        view = self.current_view

        needs_lock = any(action.id == action_id for action in self.available_actions)
        action_callback = self.host.get_action(action_id)

        if view is not None and needs_lock and action_callback is None:
            view.lock()

        action_params = self._action_params(action_id, view)

        if callable(action_callback):
            result = action_callback(action_params, view)
            if inspect.isawaitable(result):
                result = await result
            return result

        request_params: Dict[str, Any] = {"id": action_id}
        if view is not None and view.id is not None and not view.virtual:
            request_params["tabID"] = view.id

        if body:
            action_params.update(body)

        result = await self.api_call("invokeAction", request_params, action_params)

        if result.should_reload:
            self.host.reload()
            return None

        if reload is not False and view is not None:
            await view.reload()
            await self.fetch_project()
            view.clear_selection()

        if view is not None:
            view.unlock()

        return result

    # --- Teardown ---

    def crash(self, reason: Optional[str] = None) -> None:
        """Terminal failure: release everything and tell the host."""
        self.destroy()
        self.crashed = True
        self.host.invoke(events.HOST_CRASH)
        self.bus.emit(events.TOPIC_APP_CRASHED, events.create_app_crashed_event(reason))

    def destroy(self) -> None:
        if self.task_store is not None:
            self.task_store.clear()
            self.task_store = None

        if self.annotation_store is not None:
            self.annotation_store.clear()
            self.annotation_store = None

        self.stop_polling()

