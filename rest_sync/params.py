"""Parameter and result records exchanged between callers and the pipelines."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class FilterPolicy(Enum):
    """Who restricts records to the requested time window."""

    PROVIDER_SIDE = "provider_side"
    CONNECTOR_SIDE = "connector_side"
    NONE = "none"


class Ordering(Enum):
    """Order in which the provider returns records, by timestamp."""

    CHRONOLOGICAL = "chronological"
    REVERSE_CHRONOLOGICAL = "reverse_chronological"
    UNORDERED = "unordered"


@dataclass
class ReadParams:
    """Describes one page request of a logical sync."""

    object_name: str = ""
    fields: Sequence[str] = ()
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    page_size: int = 0
    next_page: str = ""


@dataclass
class ReadResultRow:
    fields: Dict[str, Any]
    raw: Dict[str, Any]


@dataclass
class ReadResult:
    rows: int = 0
    data: List[ReadResultRow] = field(default_factory=list)
    next_page: str = ""
    done: bool = True


@dataclass
class WriteParams:
    object_name: str = ""
    record_id: str = ""
    record_data: Optional[Dict[str, Any]] = None

    def is_update(self) -> bool:
        return self.record_id != ""


@dataclass
class WriteResult:
    success: bool
    record_id: str = ""
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DeleteParams:
    object_name: str = ""
    record_id: str = ""


@dataclass
class DeleteResult:
    success: bool


def page_size_with_default(params: ReadParams, default: int, maximum: Optional[int] = None) -> int:
    """Return the caller's page size, or the default when none was given, capped at maximum."""
    size = params.page_size if params.page_size > 0 else default
    if maximum is not None:
        size = min(size, maximum)
    return size
