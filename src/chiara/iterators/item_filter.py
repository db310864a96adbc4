"""Lazily paginated access to the items of a Podio app or view.

ItemFilterIterator turns the ``/item/app/{app_id}/filter`` endpoint, which
returns one bounded page per call plus the total number of matches, into a
collection that can be iterated, counted and indexed by view id.

Nothing is fetched until data is needed. The iterator keeps a single window
(the last fetched page) and a cursor over the whole result set; when the
cursor moves past the end of the window the next page is requested from the
offset where the previous one ended.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field, ValidationError

from chiara.app.app_models import PodioApp, PodioView
from chiara.errors import RemoteCallError, UnsupportedOperation, ViewResolutionError
from chiara.items.item_models import PodioItem
from chiara.remote.transport import PodioRemote, get_remote
from chiara.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 30


class FilterWindow(BaseModel):
    """One page of a filter response."""

    filtered: int = Field(ge=0)  # matches in the whole result set, not just this page
    items: List[Dict[str, Any]] = Field(default_factory=list)


class ItemFilterIterator:
    """Filtered items of an app, optionally restricted to one of its views.

    Supports three kinds of access:

    - sequential: ``for item in items`` (or the explicit ``rewind`` /
      ``valid`` / ``current`` / ``advance`` / ``key`` protocol)
    - size: ``len(items)`` / ``items.count()``
    - view derivation: ``items[view_id]`` returns a **new** iterator over
      that view's items, not an element. ``view_id in items`` tells whether
      the key is a usable view id.

    An instance is a single cursor; do not share it between threads. Derived
    view iterators have their own state.
    """

    def __init__(
        self,
        app: PodioApp,
        view: Optional[PodioView] = None,
        *,
        remote: Optional[PodioRemote] = None,
        factory: Optional[Callable[[Dict[str, Any]], Any]] = None,
        limit: int = DEFAULT_LIMIT,
    ):
        self.app = app
        self.view = view
        self._remote = remote
        self._factory = factory or PodioItem.factory
        self._limit = 0
        self.set_limit(limit)

        self._cursor = 0
        self._offset = 0
        self._items: List[Dict[str, Any]] = []
        self._total_count: Optional[int] = None
        self._loaded = False
        self._exhausted = False

    def set_limit(self, limit: int) -> "ItemFilterIterator":
        """
        Set the page size for subsequent fetches.

        A window that is already loaded is kept as is; the new size applies
        from the next fetch on. Zero leaves the page size to the server.

        Args:
            limit: Non-negative page size

        Returns:
            self, so configuration can be chained

        Raises:
            ValueError: If limit is negative or not an integer
        """
        if isinstance(limit, bool) or (isinstance(limit, float) and not limit.is_integer()):
            raise ValueError(f"limit must be an integer, got {limit!r}")
        value = int(limit)
        if value < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        self._limit = value
        return self

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def total_count(self) -> Optional[int]:
        """Total reported by the last fetch, None before the first one."""
        return self._total_count

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def path(self) -> str:
        path = f"/item/app/{self.app.app_id}/filter"
        if self.view is not None:
            path += f"/{self.view.view_id}"
        return path

    def query_params(self) -> Dict[str, int]:
        """Request body for the next fetch; zero values are omitted."""
        params: Dict[str, int] = {}
        if self._limit:
            params["limit"] = self._limit
        if self._offset:
            params["offset"] = self._offset
        return params

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load_window()

    def _load_window(self) -> None:
        if self._remote is None:
            self._remote = get_remote()
        params = self.query_params()
        logger.debug(f"Fetching {self.path} with {params}")

        # Failures propagate and leave the iterator unloaded
        body = self._remote.post(self.path, params, app_id=self.app.app_id)
        try:
            window = FilterWindow.model_validate(body)
        except ValidationError as e:
            raise RemoteCallError(f"Malformed filter response from {self.path}: {e}", path=self.path) from e

        if not window.items and window.filtered > self._offset:
            logger.warning(
                f"{self.path} returned no items at offset {self._offset} "
                f"but reports {window.filtered} matches; ending the pass"
            )
            self._exhausted = True

        self._items = window.items
        self._total_count = window.filtered
        self._loaded = True

    def current(self) -> Optional[Any]:
        """
        Item at the cursor, converted with the record factory.

        Returns:
            The item, or None if the result set is empty or exhausted
        """
        self._ensure_loaded()
        index = self._cursor - self._offset
        if not self._items or index >= len(self._items):
            return None
        return self._factory(self._items[index])

    def advance(self) -> None:
        """Move the cursor forward, scheduling a fetch when it leaves the window."""
        self._ensure_loaded()
        if self._exhausted or self._cursor >= self._total_count:
            self._exhausted = True
            return
        self._cursor += 1
        if self._cursor >= self._total_count:
            self._exhausted = True
            return
        window_end = self._offset + len(self._items)
        if self._cursor >= window_end:
            self._offset = window_end
            self._items = []
            self._loaded = False

    def rewind(self) -> None:
        """Start a new pass from the first item. Always fetches immediately."""
        self._cursor = 0
        self._offset = 0
        self._exhausted = False
        self._items = []
        self._loaded = False
        self._load_window()

    def valid(self) -> bool:
        """
        Whether the cursor points into the result set.

        A fresh pass is valid at position 0 even when the result set is
        empty, so a single ``current() is None`` can be observed.
        """
        if self._exhausted:
            return False
        if self._cursor == 0:
            return True
        return self._total_count is not None and self._cursor < self._total_count

    def key(self) -> int:
        return self._cursor

    def count(self) -> int:
        self._ensure_loaded()
        return self._total_count

    def __len__(self) -> int:
        return self.count()

    def __iter__(self) -> Iterator[Any]:
        # Drives this instance's cursor; starting a new loop restarts the pass.
        # A first window loaded by len() and not yet consumed is reused.
        fresh = self._loaded and self._cursor == 0 and self._offset == 0 and not self._exhausted
        if not fresh:
            self.rewind()
        while self.valid():
            item = self.current()
            if item is None:
                break
            yield item
            self.advance()

    def view(self, key: Any) -> "ItemFilterIterator":
        """
        Iterator over the items of view ``key`` of the same app.

        Returns a new collection (with this iterator's remote, factory and
        limit), never an element.

        Raises:
            ViewResolutionError: If key is not a valid view id
        """
        view = PodioView.from_key(self.app.app_id, key)
        return ItemFilterIterator(
            self.app,
            view,
            remote=self._remote,
            factory=self._factory,
            limit=self._limit,
        )

    def has_view(self, key: Any) -> bool:
        try:
            PodioView.from_key(self.app.app_id, key)
        except ViewResolutionError:
            return False
        return True

    def __getitem__(self, key: Any) -> "ItemFilterIterator":
        return self.view(key)

    def __contains__(self, key: Any) -> bool:
        return self.has_view(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        # TODO: create a view from a filter definition via POST /view/app/{app_id}/
        raise UnsupportedOperation("Cannot assign to ItemFilterIterator; defining views is not supported")

    def __delitem__(self, key: Any) -> None:
        # TODO: delete the view via DELETE /view/{view_id}
        raise UnsupportedOperation("Cannot remove from ItemFilterIterator; deleting views is not supported")

    def __repr__(self) -> str:
        view_id = self.view.view_id if self.view is not None else None
        return (
            f"ItemFilterIterator(app_id={self.app.app_id}, view_id={view_id}, "
            f"cursor={self._cursor}, offset={self._offset}, total_count={self._total_count})"
        )
