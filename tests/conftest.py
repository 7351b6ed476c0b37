"""Shared fixtures: in-memory stand-ins for the transport, host, views and navigation."""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import pytest

from datamanager.shared.core.configuration import PollingConfig, SystemConfig
from datamanager.shared.core.event_bus import EventBus
from datamanager.shared.infrastructure.api.models import ApiResult
from datamanager.shared.infrastructure.persistence.preferences import PreferenceStore
from datamanager.state.app_store import AppStore


class FakeTransport:
    """Endpoint methods resolved by name; responses are scripted per endpoint.

    A response may be an ApiResult, or a callable (params, body) returning an
    ApiResult or an awaitable of one.
    """

    def __init__(self) -> None:
        self.responses: Dict[str, Any] = {}
        self.calls: List[tuple] = []

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        async def endpoint(params=None, body=None):
            self.calls.append((name, params, body))
            response = self.responses.get(name, ApiResult(data={}))
            if callable(response):
                response = response(params, body)
            if inspect.isawaitable(response):
                response = await response
            return response

        return endpoint

    def calls_to(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]


class FakeLabelingSession:
    def __init__(self, current_annotation: Optional[dict] = None) -> None:
        self.current_annotation = current_annotation
        self.tasks: List[tuple] = []

    def set_task(self, task: Any, annotation_id: Any = None) -> None:
        self.tasks.append((task, annotation_id))


class FakeHost:
    def __init__(self) -> None:
        self.polling = True
        self.only_virtual_tabs = False
        self.api_transform: Dict[str, Dict[str, Callable]] = {}
        self.labeling: Optional[FakeLabelingSession] = FakeLabelingSession()
        self.events: List[tuple] = []
        self.modes: List[str] = []
        self.actions: Dict[str, Callable] = {}
        self.reloads = 0
        self.destroyed = 0
        self.confirms: List[dict] = []

    def invoke(self, event: str, payload: Any = None) -> None:
        self.events.append((event, payload))

    def event_names(self) -> List[str]:
        return [name for name, _ in self.events]

    def set_mode(self, mode: str) -> None:
        self.modes.append(mode)

    def destroy_labeling(self) -> None:
        self.destroyed += 1

    def get_action(self, action_id: str) -> Optional[Callable]:
        return self.actions.get(action_id)

    def reload(self) -> None:
        self.reloads += 1

    def confirm(self, title: str, body: str, ok_text: str, on_ok: Callable[[], None]) -> None:
        self.confirms.append({"title": title, "body": body, "ok_text": ok_text, "on_ok": on_ok})


@dataclass
class FakeView:
    id: Any = 1
    tab_key: Any = "tab-1"
    target: str = "tasks"
    virtual: bool = False
    query: Optional[str] = None
    ordering: Any = None
    conjunction: Optional[str] = "and"
    serialized_filters: Optional[list] = None
    selection: Optional[Dict[str, Any]] = None
    filter_snapshot: Any = None
    locked: bool = False
    lock_history: List[str] = field(default_factory=list)
    reloads: int = 0
    selection_cleared: int = 0

    def lock(self) -> None:
        self.locked = True
        self.lock_history.append("lock")

    def unlock(self) -> None:
        self.locked = False
        self.lock_history.append("unlock")

    async def reload(self) -> None:
        self.reloads += 1

    def clear_selection(self) -> None:
        self.selection_cleared += 1
        self.selection = None


class FakeViews:
    def __init__(self, selected: Optional[FakeView] = None) -> None:
        self.selected = selected
        self.views: List[FakeView] = [selected] if selected is not None else []
        self.calls: List[tuple] = []

    async def fetch_columns(self) -> None:
        self.calls.append(("fetch_columns",))

    async def fetch_tabs(self, tab, task, labeling) -> None:
        self.calls.append(("fetch_tabs", tab, task, labeling))

    async def fetch_single_tab(self, tab, selected_items) -> None:
        self.calls.append(("fetch_single_tab", tab, selected_items))

    async def add_view(self, virtual: bool = True, autosave: bool = False) -> None:
        self.calls.append(("add_view", virtual, autosave))

    def set_selected(self, view_id, push_state: bool = True, create_default: bool = True) -> None:
        self.calls.append(("set_selected", view_id, push_state, create_default))


class FakeNavigation:
    def __init__(self) -> None:
        self.params: Dict[str, Any] = {}
        self.navigated: List[dict] = []
        self.forced: List[dict] = []
        self.pop_handler = None

    def navigate(self, state: Dict[str, Any]) -> None:
        self.navigated.append(state)

    def force_navigate(self, state: Dict[str, Any]) -> None:
        self.forced.append(state)

    def get_params(self) -> Dict[str, Any]:
        return dict(self.params)

    def on_pop_state(self, handler) -> None:
        self.pop_handler = handler


async def wait_for(predicate: Callable[[], bool], attempts: int = 100, delay: float = 0) -> None:
    """Yield to the loop until predicate holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(delay)
    raise AssertionError("condition not reached")


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def view():
    return FakeView()


@pytest.fixture
def views(view):
    return FakeViews(view)


@pytest.fixture
def navigation():
    return FakeNavigation()


@pytest.fixture
def config():
    return SystemConfig(polling=PollingConfig(interval=0.01))


@pytest.fixture
def app(bus, transport, host, views, navigation, config):
    store = AppStore(
        bus,
        api=transport,
        host=host,
        views=views,
        navigation=navigation,
        preferences=PreferenceStore(),
        config=config,
        interfaces={"toolbar": True, "import": False},
    )
    yield store
    store.destroy()


@pytest.fixture
def configured_app(app):
    app.project = {"config_has_control_tags": True, "task_count": 3}
    return app
