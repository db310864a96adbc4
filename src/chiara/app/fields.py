"""Typed field descriptors for Podio app fields."""

import copy
from typing import Any, Dict, List, Optional, Type

CONTACT_TYPES = ("space_users", "all_users", "space_contacts", "space_users_and_contacts")


class AppField:
    """Metadata for one field of a Podio app.

    Wraps the field dict returned by the API (``field_id``, ``external_id``,
    ``type``, ``label`` and ``config.settings``). Subclasses expose the
    settings that matter for their type.
    """

    type_name: Optional[str] = None

    def __init__(self, info: Optional[Dict[str, Any]] = None):
        self.info: Dict[str, Any] = copy.deepcopy(info) if info else {}
        if self.type_name and "type" not in self.info:
            self.info["type"] = self.type_name
        config = self.info.setdefault("config", {}) or {}
        self.info["config"] = config
        if config.get("settings") is None:
            config["settings"] = {}

    @property
    def id(self) -> Optional[int]:
        return self.info.get("field_id")

    @property
    def external_id(self) -> Optional[str]:
        return self.info.get("external_id")

    @property
    def type(self) -> Optional[str]:
        return self.info.get("type")

    @property
    def label(self) -> Optional[str]:
        return self.info["config"].get("label") or self.info.get("label")

    @property
    def settings(self) -> Dict[str, Any]:
        return self.info["config"]["settings"]

    @classmethod
    def from_info(cls, info: Dict[str, Any]) -> "AppField":
        """Build the descriptor subclass matching ``info['type']``."""
        field_cls = FIELD_TYPES.get(info.get("type"), AppField)
        return field_cls(info)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r}, external_id={self.external_id!r}, type={self.type!r})"


class MoneyField(AppField):
    type_name = "money"

    def __init__(self, info: Optional[Dict[str, Any]] = None):
        super().__init__(info)
        self.settings.setdefault("allowed_currencies", [])

    @property
    def allowed_currencies(self) -> List[str]:
        return self.settings["allowed_currencies"]


class ContactField(AppField):
    type_name = "contact"

    def __init__(self, info: Optional[Dict[str, Any]] = None):
        super().__init__(info)
        # Blank descriptors default to space members
        if not info:
            self.settings["type"] = "space_users"

    @property
    def contact_type(self) -> Optional[str]:
        return self.settings.get("type")


class CategoryField(AppField):
    type_name = "category"

    @property
    def options(self) -> List[Dict[str, Any]]:
        return self.settings.get("options", [])

    @property
    def multiple(self) -> bool:
        return bool(self.settings.get("multiple", False))


class QuestionField(CategoryField):
    type_name = "question"


class AppReferenceField(AppField):
    type_name = "app"

    @property
    def referenceable_types(self) -> List[int]:
        return self.settings.get("referenceable_types", [])


class StateField(AppField):
    """Legacy field type."""

    type_name = "state"

    @property
    def allowed_values(self) -> List[str]:
        return self.settings.get("allowed_values", [])


FIELD_TYPES: Dict[Optional[str], Type[AppField]] = {
    "money": MoneyField,
    "contact": ContactField,
    "category": CategoryField,
    "question": QuestionField,
    "app": AppReferenceField,
    "state": StateField,
}
