"""
Record extraction from JSON response envelopes.

Providers wrap the list of records in different ways. Four shapes are supported:
- ROOT: the document itself is an array of records.
- KEY: the array sits one level down, under a single key (e.g. "domains").
- PATH: the array sits at an arbitrary depth, addressed with a dotted path (e.g. "data.conversations").
- SINGLE: the document is one object, optionally wrapped under a conventional key such as "data",
  and is returned as a one-record page.

Extraction never mutates the document, so the same document can be read again for pagination metadata.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List

from rest_sync.errors import KeyNotFoundError, NotArrayError, NotObjectError

RecordsFunc = Callable[[Any], List[Any]]

PATH_SEPARATOR = "."
DEFAULT_SINGLE_WRAPPER_KEY = "data"


class EnvelopeKind(Enum):
    ROOT = "root"
    KEY = "key"
    PATH = "path"
    SINGLE = "single"


@dataclass(frozen=True)
class Envelope:
    """Static description of where an object's records live in a response."""

    kind: EnvelopeKind
    key: str = ""

    @classmethod
    def parse(cls, descriptor: str) -> "Envelope":
        """
        Build an envelope from the response key stored in a schema table.
        An empty string means a root array, a dotted string means a nested path.
        """
        if not descriptor:
            return cls(EnvelopeKind.ROOT)
        if PATH_SEPARATOR in descriptor:
            return cls(EnvelopeKind.PATH, descriptor)
        return cls(EnvelopeKind.KEY, descriptor)

    @classmethod
    def root(cls) -> "Envelope":
        return cls(EnvelopeKind.ROOT)

    @classmethod
    def single(cls, wrapper_key: str = DEFAULT_SINGLE_WRAPPER_KEY) -> "Envelope":
        return cls(EnvelopeKind.SINGLE, wrapper_key)

    @property
    def path(self) -> List[str]:
        return self.key.split(PATH_SEPARATOR) if self.key else []


def extract_records(document: Any, envelope: Envelope) -> List[Any]:
    """
    Return the record nodes contained in a decoded JSON document.
    Args:
        document: the decoded response body.
        envelope: where the records live in the document.
    Returns:
        A new list holding the record nodes, in document order.
    Raises:
        ShapeError: if the document does not have the shape the envelope describes.
    """
    if envelope.kind == EnvelopeKind.ROOT:
        return _as_array(document, "<root>")

    if envelope.kind == EnvelopeKind.SINGLE:
        return _single_object_as_array(document, envelope.key)

    if envelope.kind == EnvelopeKind.KEY:
        return _array_under_key(document, envelope.key)

    return _nested_records(document, envelope.path)


def make_records_func(envelope: Envelope) -> RecordsFunc:
    """Bind an envelope into the one-argument extractor the read orchestrator expects."""

    def records(document: Any) -> List[Any]:
        return extract_records(document, envelope)

    return records


def _as_array(value: Any, location: str) -> List[Any]:
    if not isinstance(value, list):
        raise NotArrayError(f"Expected an array at {location}, got {type(value).__name__}")
    return list(value)


def _single_object_as_array(document: Any, wrapper_key: str) -> List[Any]:
    if not isinstance(document, dict):
        raise NotObjectError(f"Expected a single object, got {type(document).__name__}")

    # Responses such as {"data": {...}, "success": true} carry the object under the wrapper key
    wrapped = document.get(wrapper_key) if wrapper_key else None
    if isinstance(wrapped, dict):
        return [wrapped]

    return [document]


def _array_under_key(node: Any, key: str) -> List[Any]:
    if not isinstance(node, dict):
        raise NotObjectError(f"Expected an object holding '{key}', got {type(node).__name__}")
    if key not in node:
        raise KeyNotFoundError(key)
    return _as_array(node[key], key)


def _nested_records(document: Any, path: List[str]) -> List[Any]:
    current = document
    for depth, part in enumerate(path[:-1]):
        if not isinstance(current, dict):
            location = PATH_SEPARATOR.join(path[:depth]) or "<root>"
            raise NotObjectError(f"Expected an object at {location}, got {type(current).__name__}")
        if part not in current:
            raise KeyNotFoundError(PATH_SEPARATOR.join(path[: depth + 1]))
        current = current[part]

    if not isinstance(current, dict):
        location = PATH_SEPARATOR.join(path[:-1])
        raise NotObjectError(f"Expected an object at {location}, got {type(current).__name__}")

    last = path[-1]
    if last not in current:
        raise KeyNotFoundError(PATH_SEPARATOR.join(path))
    return _as_array(current[last], PATH_SEPARATOR.join(path))
