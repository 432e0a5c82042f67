"""
Provider capability record and object metadata.

A provider is described by data, not by subclassing: its schema table, the objects it can read, write
and delete, and factories producing the handler callbacks bound to a base URL. The generic reader,
writer and deleter run those callbacks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional

# For catching transport failures while resolving custom fields
import requests

# For enabling Logs in your connector code
from fivetran_connector_sdk import Logging as log

from rest_sync.errors import ConnectorError
from rest_sync.reader import HTTPReader, ReadHandlers
from rest_sync.schema import StaticSchemaProvider
from rest_sync.transport import HTTPTransport
from rest_sync.writer import DeleteHandlers, HTTPDeleter, HTTPWriter, WriteHandlers


class ValueType(Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOLEAN = "boolean"
    SINGLE_SELECT = "singleSelect"
    MULTI_SELECT = "multiSelect"
    OTHER = "other"


@dataclass
class FieldValue:
    value: str
    display_value: str


@dataclass
class FieldMetadata:
    display_name: str
    value_type: ValueType = ValueType.OTHER
    provider_type: str = ""
    values: Optional[List[FieldValue]] = None


@dataclass
class ObjectMetadata:
    display_name: str
    fields: Dict[str, FieldMetadata] = field(default_factory=dict)


@dataclass
class ListObjectMetadataResult:
    result: Dict[str, ObjectMetadata] = field(default_factory=dict)
    errors: Dict[str, Exception] = field(default_factory=dict)


CustomFieldsFunc = Callable[[HTTPTransport, str, str], Dict[str, FieldMetadata]]


@dataclass
class Provider:
    name: str
    schema: StaticSchemaProvider
    auth_scheme: str
    read_handlers: Callable[[str], ReadHandlers]
    write_handlers: Callable[[str], WriteHandlers]
    delete_handlers: Callable[[str], DeleteHandlers]
    write_support: FrozenSet[str] = frozenset()
    delete_support: FrozenSet[str] = frozenset()
    default_base_url: str = ""
    custom_fields: Optional[CustomFieldsFunc] = None

    def auth_headers(self, api_token: str) -> Dict[str, str]:
        return {"Authorization": f"{self.auth_scheme} {api_token}"}

    def reader(self, transport: HTTPTransport, base_url: str) -> HTTPReader:
        return HTTPReader(transport, frozenset(self.schema.object_names()), self.read_handlers(base_url))

    def writer(self, transport: HTTPTransport, base_url: str) -> HTTPWriter:
        return HTTPWriter(transport, self.write_support, self.write_handlers(base_url))

    def deleter(self, transport: HTTPTransport, base_url: str) -> HTTPDeleter:
        return HTTPDeleter(transport, self.delete_support, self.delete_handlers(base_url))


def join_url(base_url: str, *parts: Any) -> str:
    """Join a base URL and path segments with single slashes."""
    url = base_url.rstrip("/")
    for part in parts:
        segment = str(part).strip("/")
        if segment:
            url = f"{url}/{segment}"
    return url


def list_object_metadata(
    provider: Provider, transport: HTTPTransport, base_url: str, object_names: List[str]
) -> ListObjectMetadataResult:
    """
    Describe the requested objects: the schema's default fields plus any custom fields the provider
    exposes. A failure for one object is recorded in the result's errors and does not stop the others.
    """
    metadata = ListObjectMetadataResult()

    for object_name in object_names:
        try:
            object_schema = provider.schema.lookup(object_name)
        except ConnectorError as e:
            metadata.errors[object_name] = e
            continue

        object_metadata = ObjectMetadata(display_name=object_schema.display_name or object_name)
        for field_name in object_schema.fields:
            object_metadata.fields[field_name] = FieldMetadata(display_name=field_name)

        if provider.custom_fields is not None:
            try:
                custom = provider.custom_fields(transport, base_url, object_name)
            except (ConnectorError, requests.RequestException) as e:
                log.warning(f"Could not resolve custom fields of '{object_name}': {e}")
                metadata.errors[object_name] = e
                continue
            object_metadata.fields.update(custom)

        metadata.result[object_name] = object_metadata

    return metadata
