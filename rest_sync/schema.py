"""Static schema store: object name to URL path, response envelope and default fields."""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from rest_sync.errors import UnknownObjectError
from rest_sync.extractor import Envelope


@dataclass(frozen=True)
class ObjectSchema:
    name: str
    path: str
    # Response key as stored in the provider's metadata: "" for a root array, "a.b" for a nested array
    response_key: str = ""
    # Set explicitly for envelopes a response key cannot express, such as single-object responses
    envelope: Optional[Envelope] = None
    fields: Tuple[str, ...] = ("id",)
    display_name: str = ""
    primary_key: str = "id"

    def resolved_envelope(self) -> Envelope:
        return self.envelope if self.envelope is not None else Envelope.parse(self.response_key)


class StaticSchemaProvider:
    def __init__(self, objects: Iterable[ObjectSchema]):
        self._objects = {obj.name: obj for obj in objects}

    def object_names(self) -> List[str]:
        return list(self._objects)

    def has(self, object_name: str) -> bool:
        return object_name in self._objects

    def lookup(self, object_name: str) -> ObjectSchema:
        try:
            return self._objects[object_name]
        except KeyError:
            raise UnknownObjectError(object_name) from None

    def lookup_url_path(self, object_name: str) -> str:
        return self.lookup(object_name).path

    def lookup_envelope(self, object_name: str) -> Envelope:
        return self.lookup(object_name).resolved_envelope()

    def default_fields(self, object_name: str) -> Tuple[str, ...]:
        return self.lookup(object_name).fields
