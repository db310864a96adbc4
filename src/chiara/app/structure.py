"""Offline application structures.

An ApplicationStructure records, for each field of a Podio app, its type and
configuration, keyed both by external id (name) and by field id. This lets
item values be validated and retrieved without asking the API for the app
definition. Declare a structure by subclassing::

    class Leads(ApplicationStructure):
        APPNAME = "leads"
        STRUCTURE = {...}  # e.g. pasted from dump_structure()

or build one at runtime with the ``add_*_field`` helpers, or translate a
fetched app with ``structure_from_app``.
"""

import copy
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, Union

import yaml

from chiara.app.app_models import PodioApp
from chiara.app.fields import CONTACT_TYPES
from chiara.errors import StructureError, UnknownFieldError

FieldKey = Union[str, int]


class ApplicationStructure:
    APPNAME: ClassVar[str] = ""
    STRUCTURE: ClassVar[Dict[FieldKey, Dict[str, Any]]] = {}

    # appname -> (structure, declaring class)
    _structures: ClassVar[Dict[str, Tuple[Dict[FieldKey, Dict[str, Any]], Type["ApplicationStructure"]]]] = {}

    def __init__(self):
        self.structure: Dict[FieldKey, Dict[str, Any]] = copy.deepcopy(self.STRUCTURE)
        if self.structure:
            if not self.APPNAME:
                raise StructureError(
                    f"{self.__class__.__name__} declares a structure but does not set APPNAME"
                )
            ApplicationStructure._structures[self.APPNAME] = (self.structure, self.__class__)
        elif self.APPNAME and self.APPNAME in ApplicationStructure._structures:
            self.structure = ApplicationStructure._structures[self.APPNAME][0]

    def dump_structure(self) -> str:
        """Serialize the structure, handy when declaring an app offline."""
        return yaml.safe_dump(self.structure, sort_keys=False)

    def add_text_field(self, name: str, id: int) -> None:
        self.add_field("text", name, id)

    def add_number_field(self, name: str, id: int) -> None:
        self.add_field("number", name, id)

    def add_image_field(self, name: str, id: int) -> None:
        self.add_field("image", name, id)

    def add_date_field(self, name: str, id: int) -> None:
        self.add_field("date", name, id)

    def add_app_field(self, name: str, id: int, referenceable_types: List[int]) -> None:
        self.add_field("app", name, id, list(referenceable_types))

    def add_money_field(self, name: str, id: int, allowed_currencies: List[str]) -> None:
        self.add_field("money", name, id, list(allowed_currencies))

    def add_progress_field(self, name: str, id: int) -> None:
        self.add_field("progress", name, id)

    def add_location_field(self, name: str, id: int) -> None:
        self.add_field("location", name, id)

    def add_duration_field(self, name: str, id: int) -> None:
        self.add_field("duration", name, id)

    def add_contact_field(self, name: str, id: int, contact_type: str) -> None:
        if contact_type not in CONTACT_TYPES:
            raise StructureError(
                f'Invalid type "{contact_type}" for contact field "{name}" in app {self.APPNAME}'
            )
        self.add_field("contact", name, id, contact_type)

    def add_calculation_field(self, name: str, id: int) -> None:
        self.add_field("calculation", name, id)

    def add_embed_field(self, name: str, id: int) -> None:
        self.add_field("embed", name, id)

    def add_question_field(self, name: str, id: int, options: List[Any], multiple: bool) -> None:
        self.add_field("question", name, id, {"options": list(options), "multiple": bool(multiple)})

    def add_category_field(self, name: str, id: int, options: List[Any], multiple: bool) -> None:
        self.add_field("category", name, id, {"options": list(options), "multiple": bool(multiple)})

    def add_file_field(self, name: str, id: int) -> None:
        """The "file" field type only exists in legacy Podio apps."""
        self.add_field("file", name, id)

    def add_video_field(self, name: str, id: int) -> None:
        """The "video" field type only exists in legacy Podio apps."""
        self.add_field("video", name, id)

    def add_state_field(self, name: str, id: int, allowed_values: List[str]) -> None:
        """The "state" field type only exists in legacy Podio apps."""
        self.add_field("state", name, id, list(allowed_values))

    def add_media_field(self, name: str, id: int) -> None:
        """The "media" field type only exists in legacy Podio apps."""
        self.add_field("media", name, id)

    def add_field(self, type: str, name: str, id: int, config: Any = None) -> None:
        entry = {"type": type, "name": name, "id": id, "config": config}
        self.structure[name] = entry
        self.structure[id] = copy.deepcopy(entry)

    def structure_from_app(self, app: PodioApp) -> None:
        """
        Translate a Podio app downloaded from the API into this structure.

        The result is registered under ``"{space_id}/{app_id}"``.
        """
        for field in app.field_descriptors:
            name, field_id, field_type = field.external_id, field.id, field.type
            if field_type == "state":
                self.add_state_field(name, field_id, field.allowed_values)
            elif field_type == "app":
                self.add_app_field(name, field_id, field.referenceable_types)
            elif field_type == "money":
                self.add_money_field(name, field_id, field.allowed_currencies)
            elif field_type == "contact":
                self.add_contact_field(name, field_id, field.contact_type or "space_users")
            elif field_type == "question":
                self.add_question_field(name, field_id, field.options, field.multiple)
            elif field_type == "category":
                self.add_category_field(name, field_id, field.options, field.multiple)
            else:
                self.add_field(field_type, name, field_id)
        ApplicationStructure._structures[f"{app.space_id}/{app.app_id}"] = (self.structure, self.__class__)

    @classmethod
    def get_structure(cls, appname: str, strict: bool = False) -> "ApplicationStructure":
        """
        Look up a registered structure.

        Args:
            appname: APPNAME of a declared structure, or "space_id/app_id"
            strict: Raise instead of returning a blank structure

        Raises:
            StructureError: If strict and nothing is registered under appname
        """
        if appname not in ApplicationStructure._structures:
            if strict:
                raise StructureError(f'No structure found for app "{appname}"')
            return ApplicationStructure()
        structure, klass = ApplicationStructure._structures[appname]
        # Bypass __init__ so the declared STRUCTURE does not replace the registered one
        instance = klass.__new__(klass)
        instance.structure = structure
        return instance

    @classmethod
    def clear_registry(cls) -> None:
        ApplicationStructure._structures.clear()

    def get_type(self, field: FieldKey) -> str:
        return self._lookup(field, "type")["type"]

    def get_config(self, field: FieldKey) -> Optional[Any]:
        return self._lookup(field, "configuration")["config"]

    def _lookup(self, field: FieldKey, what: str) -> Dict[str, Any]:
        if field in self.structure:
            return self.structure[field]
        raise UnknownFieldError(f'Unknown field: "{field}" {what} requested for app {self.APPNAME}')
