"""App and view references."""

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from chiara.app.fields import AppField
from chiara.errors import ViewResolutionError
from chiara.remote.transport import PodioRemote, get_remote

if TYPE_CHECKING:
    from chiara.iterators.item_filter import ItemFilterIterator


class PodioApp(BaseModel):
    """Identifies a Podio app (the container items are queried from)."""

    model_config = ConfigDict(frozen=True)

    app_id: int
    space_id: Optional[int] = None
    name: Optional[str] = None
    fields: List[Dict[str, Any]] = Field(default_factory=list)  # raw field dicts from the API

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "PodioApp":
        """Build from a ``GET /app/{app_id}`` response body."""
        return cls(
            app_id=raw["app_id"],
            space_id=raw.get("space_id"),
            name=(raw.get("config") or {}).get("name"),
            fields=raw.get("fields") or [],
        )

    @property
    def field_descriptors(self) -> List[AppField]:
        return [AppField.from_info(info) for info in self.fields]

    def items(self, limit: int = 30, remote: Optional[PodioRemote] = None) -> "ItemFilterIterator":
        """
        Lazily paginated collection of this app's items.

        Indexing the result by a view id gives the items of that view:
        ``app.items()[42]``.
        """
        from chiara.iterators.item_filter import ItemFilterIterator

        return ItemFilterIterator(self, remote=remote, limit=limit)


class PodioView(BaseModel):
    """A saved filter ("view") belonging to exactly one app."""

    model_config = ConfigDict(frozen=True)

    view_id: int
    app_id: int
    name: Optional[str] = None

    @classmethod
    def from_key(cls, app_id: int, key: Any) -> "PodioView":
        """
        Resolve a collection index key to a view of ``app_id``.

        Args:
            app_id: App the view belongs to
            key: View id as an int or a string of digits

        Returns:
            PodioView for the key

        Raises:
            ViewResolutionError: If the key is not a positive view id
        """
        if isinstance(key, PodioView):
            if key.app_id != app_id:
                raise ViewResolutionError(f"View {key.view_id} belongs to app {key.app_id}, not app {app_id}")
            return key
        if isinstance(key, bool):
            raise ViewResolutionError(f"Invalid view key: {key!r}")
        if isinstance(key, int):
            view_id = key
        elif isinstance(key, str) and key.strip().isascii() and key.strip().isdecimal():
            view_id = int(key.strip())
        else:
            raise ViewResolutionError(f"Invalid view key: {key!r}")
        if view_id <= 0:
            raise ViewResolutionError(f"View id must be positive, got {view_id}")
        return cls(view_id=view_id, app_id=app_id)


def fetch_app(app_id: int, remote: Optional[PodioRemote] = None) -> PodioApp:
    """Fetch an app's definition (including its fields) from the API."""
    if remote is None:
        remote = get_remote()
    return PodioApp.from_api(remote.get(f"/app/{int(app_id)}", app_id=app_id))
