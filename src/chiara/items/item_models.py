from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class ItemFieldValue(BaseModel):
    """Values of one field on an item, as returned by the API."""

    field_id: int
    external_id: Optional[str] = None
    type: Optional[str] = None
    label: Optional[str] = None
    values: List[Any] = Field(default_factory=list)


class PodioItem(BaseModel):
    """A record in a Podio app."""

    item_id: int
    app_item_id: Optional[int] = None
    title: Optional[str] = None
    link: Optional[str] = None
    fields: List[ItemFieldValue] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)  # Full original record

    @classmethod
    def factory(cls, raw: Dict[str, Any]) -> "PodioItem":
        """Convert one raw item from a filter response. Pure, no I/O."""
        return cls(
            item_id=raw["item_id"],
            app_item_id=raw.get("app_item_id"),
            title=raw.get("title"),
            link=raw.get("link"),
            fields=[ItemFieldValue(**f) for f in raw.get("fields") or []],
            raw=raw,
        )

    def field(self, key: Union[str, int]) -> Optional[ItemFieldValue]:
        """Look up a field by external id or field id."""
        for value in self.fields:
            if value.external_id == key or value.field_id == key:
                return value
        return None
