"""Paginated, mergeable cache of records for one target collection.

Selection and highlight are kept by id, so replacing an item on a merge
does not lose them. Every fetch mints a new request token; a response whose
token is no longer current is dropped without touching the store.
"""

from __future__ import annotations

import logging
import math
import uuid
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Set, Type, Union

from datamanager.shared.core import events
from datamanager.shared.infrastructure.api.models import ApiResult
from datamanager.state.models import Item, Target

if TYPE_CHECKING:
    from datamanager.state.app_store import AppStore

logger = logging.getLogger(__name__)


def new_request_token() -> str:
    return uuid.uuid4().hex


class ListStore:
    """Base class for the concrete data stores.

    Subclasses set ``target``, ``api_method`` (the endpoint returning a page,
    whose records sit under the same key in the response) and ``item_type``.
    """

    target: ClassVar[Target]
    api_method: ClassVar[str]
    item_type: ClassVar[Type[Item]] = Item

    def __init__(self, root: "AppStore") -> None:
        self.root = root

        self.page = 0
        self.page_size = root.preferences.get_page_size(
            self.target.value,
            root.config.storage.default_page_size,
        )
        self.total = 0

        self.list: List[Item] = []
        self.selected_id: Optional[int] = None
        self.highlighted_id: Optional[int] = None

        self.loading = False
        self.loading_item = False
        self.loading_items: Set[int] = set()

        self.request_id: Optional[str] = None

    # --- Derived values ---

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size)

    @property
    def has_next_page(self) -> bool:
        return self.page != self.total_pages

    @property
    def is_loading(self) -> bool:
        return self.loading_item or len(self.loading_items) > 0

    @property
    def length(self) -> int:
        return len(self.list)

    @property
    def selected(self) -> Optional[Item]:
        return self.find(self.selected_id)

    @property
    def highlighted(self) -> Optional[Item]:
        return self.find(self.highlighted_id)

    def item_is_loading(self, item_id: int) -> bool:
        return item_id in self.loading_items

    def find(self, item_id: Any) -> Optional[Item]:
        if item_id is None:
            return None
        return next((item for item in self.list if item.id == item_id), None)

    def has_record(self, item_id: Any) -> bool:
        try:
            item_id = int(item_id)
        except (TypeError, ValueError):
            return False
        return any(item.id == item_id for item in self.list)

    def _index_of(self, item_id: Optional[int]) -> int:
        for index, item in enumerate(self.list):
            if item.id == item_id:
                return index
        return -1

    # --- Notifications ---

    def _emit(self, topic: str, payload: Dict[str, Any]) -> None:
        self.root.bus.emit(topic, payload)

    def _set_highlighted_id(self, item_id: Optional[int]) -> None:
        if item_id == self.highlighted_id:
            return
        self.highlighted_id = item_id
        self._emit(
            events.TOPIC_HIGHLIGHT_CHANGED,
            events.create_highlight_changed_event(self.target.value, item_id),
        )

    # --- Fetching ---

    async def fetch(
        self,
        id: Any = None,
        query: Optional[str] = None,
        page_number: Optional[int] = None,
        reload: bool = False,
        interaction: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> None:
        """Fetch a page for the given view, or for the selected one.

        Without a resolvable view id, or once the app has crashed, this returns
        before changing anything.
        """
        if self.root.crashed:
            return

        if id is not None:
            view_id, view_query = id, query
        else:
            view = self.root.current_view
            view_id = getattr(view, "id", None)
            view_query = view.query if view is not None and view.virtual else None

        if view_id is None:
            return

        request_id = self.request_id = new_request_token()
        self.loading = True

        explicit_page = page_number is not None
        if reload or explicit_page:
            self.page = page_number if explicit_page else 1
        else:
            self.page += 1

        if page_size:
            self.set_page_size(page_size)

        params: Dict[str, Any] = {
            "page": self.page,
            "page_size": self.page_size,
        }
        if view_query:
            params["query"] = view_query
        else:
            params["view"] = view_id
        if interaction:
            params["interaction"] = interaction

        result = await self.root.api_call(self.api_method, params)

        if request_id != self.request_id:
            logger.info(f"Request {request_id} was cancelled by another request")
            return

        highlighted_id = self.highlighted_id

        try:
            records = result.get(self.api_method)
            if records is not None:
                self.set_list(
                    records,
                    total=result.get("total", self.total),
                    reload=reload or explicit_page,
                )

            if highlighted_id is not None and not self.has_record(highlighted_id):
                self._set_highlighted_id(None)

            self.post_process_data(result)
        finally:
            self.loading = False

        self.root.host.invoke(events.HOST_DATA_FETCHED, self)
        self._emit(
            events.TOPIC_DATA_FETCHED,
            events.create_data_fetched_event(self.target.value, self.page, self.total),
        )

    async def reload(
        self,
        id: Any = None,
        query: Optional[str] = None,
        interaction: Optional[str] = None,
    ) -> None:
        await self.fetch(id=id, query=query, reload=True, interaction=interaction)

    def post_process_data(self, result: ApiResult) -> None:
        """Hook for subclasses to read extra fields off a page response."""

    def set_page_size(self, page_size: int) -> None:
        self.page_size = int(page_size)
        self.root.preferences.set_page_size(self.target.value, self.page_size)

    # --- Mutations ---

    def set_list(self, records: Iterable[Mapping[str, Any]], total: int, reload: bool = False) -> None:
        """Merge a page of raw records.

        An incoming record replaces any cached item with the same id. With
        ``reload`` the list becomes exactly the incoming page, otherwise the
        page is appended.
        """
        incoming: Dict[int, Item] = {}
        for record in records:
            item = self.item_type.from_record(record)
            # Last occurrence wins, and takes the later position
            incoming.pop(item.id, None)
            incoming[item.id] = item

        self.total = total

        if reload:
            self.list = list(incoming.values())
        else:
            self.list = [item for item in self.list if item.id not in incoming]
            self.list.extend(incoming.values())

        self._emit(
            events.TOPIC_LIST_UPDATED,
            events.create_list_updated_event(self.target.value, self.total, len(self.list), reload),
        )

    def update_item(self, item_id: int, patch: Mapping[str, Any]) -> Item:
        """Patch an item in place, or append it when it is not cached."""
        item = self.find(item_id)
        created = item is None

        if item is not None:
            item.update(patch)
        else:
            item = self.item_type.from_record({**patch, "id": item_id})
            self.list.append(item)

        self._emit(
            events.TOPIC_ITEM_UPDATED,
            events.create_item_updated_event(self.target.value, item.id, created),
        )
        return item

    def set_selected(self, value: Union[int, Item, None]) -> None:
        if isinstance(value, Item):
            selected: Optional[Item] = value
        else:
            selected = self.find(value)

        if selected is None or selected.id == self.selected_id:
            return

        self.selected_id = selected.id
        self._set_highlighted_id(selected.id)

        self.root.host.invoke(events.HOST_TASK_SELECTED)
        self._emit(
            events.TOPIC_SELECTION_CHANGED,
            events.create_selection_changed_event(self.target.value, selected.id),
        )

    def unset(self, with_highlight: bool = False) -> None:
        had_selection = self.selected_id is not None
        self.selected_id = None
        if with_highlight:
            self._set_highlighted_id(None)

        if had_selection:
            self._emit(
                events.TOPIC_SELECTION_CHANGED,
                events.create_selection_changed_event(self.target.value, None),
            )

    def set_loading(self, item_id: Optional[int] = None) -> None:
        if item_id is not None:
            self.loading_items.add(item_id)
        else:
            self.loading_item = True

    def finish_loading(self, item_id: Optional[int] = None) -> None:
        if item_id is not None:
            self.loading_items.discard(item_id)
        else:
            self.loading_item = False

    def focus_prev(self) -> None:
        if not self.list:
            return
        index = max(0, self._index_of(self.highlighted_id) - 1)
        self._set_highlighted_id(self.list[index].id)

    def focus_next(self) -> None:
        if not self.list:
            return
        index = min(len(self.list) - 1, self._index_of(self.highlighted_id) + 1)
        self._set_highlighted_id(self.list[index].id)

    def clear(self) -> None:
        """Empty the store. Keeps the page size, drops any in-flight fetch."""
        self._set_highlighted_id(None)
        self.list = []
        self.page = 0
        self.total = 0
        self.loading = False
        self.request_id = None

        self._emit(events.TOPIC_LIST_CLEARED, {"target": self.target.value})
