"""Interfaces of the collaborators the stores depend on.

The embedding application supplies concrete objects for these; the stores
only rely on the members listed here.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Sequence

from datamanager.shared.infrastructure.api.models import ApiResult

PopStateHandler = Callable[[Dict[str, Any]], Awaitable[None]]
ActionCallback = Callable[[Dict[str, Any], Any], Any]


class Transport(Protocol):
    """Backend access. Endpoints are looked up by name with ``getattr``
    and called as ``await transport.<name>(params, body)``."""

    def __getattr__(self, name: str) -> Callable[..., Awaitable[ApiResult]]: ...


class View(Protocol):
    """A tab: the filter/query/selection context a fetch targets."""

    id: Any
    tab_key: Any
    target: str
    virtual: bool
    query: Optional[str]
    ordering: Any
    conjunction: Optional[str]
    serialized_filters: Optional[list]
    # {"all": bool, "included": [...], "excluded": [...]} or None
    selection: Optional[Dict[str, Any]]
    filter_snapshot: Any

    def lock(self) -> None: ...

    def unlock(self) -> None: ...

    async def reload(self) -> None: ...

    def clear_selection(self) -> None: ...


class ViewsStore(Protocol):
    selected: Optional[View]
    views: Sequence[View]

    async def fetch_columns(self) -> None: ...

    async def fetch_tabs(self, tab: Any, task: Any, labeling: Any) -> None: ...

    async def fetch_single_tab(self, tab: Any, selected_items: Dict[str, Any]) -> None: ...

    async def add_view(self, virtual: bool = True, autosave: bool = False) -> None: ...

    def set_selected(self, view_id: Any, push_state: bool = True, create_default: bool = True) -> None: ...


class Navigation(Protocol):
    """Browser-history style navigation state."""

    def navigate(self, state: Dict[str, Any]) -> None: ...

    def force_navigate(self, state: Dict[str, Any]) -> None: ...

    def get_params(self) -> Dict[str, Any]: ...

    def on_pop_state(self, handler: PopStateHandler) -> None: ...


class LabelingSession(Protocol):
    """Rendering host's active annotation session."""

    current_annotation: Optional[Mapping[str, Any]]

    def set_task(self, task: Any, annotation_id: Any = None) -> None: ...


class Host(Protocol):
    """Embedding application."""

    polling: bool
    only_virtual_tabs: bool
    # method name -> {"params": callable, "body": callable}
    api_transform: Mapping[str, Mapping[str, Callable[[Any], Any]]]
    labeling: Optional[LabelingSession]

    def invoke(self, event: str, payload: Any = None) -> None: ...

    def set_mode(self, mode: str) -> None: ...

    def destroy_labeling(self) -> None: ...

    def get_action(self, action_id: str) -> Optional[ActionCallback]: ...

    def reload(self) -> None: ...

    def confirm(
        self,
        title: str,
        body: str,
        ok_text: str,
        on_ok: Callable[[], None],
    ) -> None: ...
