"""Provider-agnostic REST read, write and delete pipelines with incremental filtering."""

from .config import SyncConfig, parse_configuration, validate_configuration
from .extractor import Envelope, EnvelopeKind, extract_records, make_records_func
from .incremental import FilterOutcome, IncrementalSettings, TimeWindow, make_filter, parse_timestamp
from .pagination import make_link_next_page, make_offset_next_page, next_offset_url
from .params import (
    DeleteParams,
    DeleteResult,
    FilterPolicy,
    Ordering,
    ReadParams,
    ReadResult,
    ReadResultRow,
    WriteParams,
    WriteResult,
)
from .provider import Provider, list_object_metadata
from .providers import get_provider
from .reader import HTTPReader, ReadHandlers, parse_result_filtered
from .transport import HTTPTransport, JSONHTTPResponse

__all__ = [
    "DeleteParams",
    "DeleteResult",
    "Envelope",
    "EnvelopeKind",
    "FilterOutcome",
    "FilterPolicy",
    "HTTPReader",
    "HTTPTransport",
    "IncrementalSettings",
    "JSONHTTPResponse",
    "Ordering",
    "Provider",
    "ReadHandlers",
    "ReadParams",
    "ReadResult",
    "ReadResultRow",
    "SyncConfig",
    "TimeWindow",
    "WriteParams",
    "WriteResult",
    "extract_records",
    "get_provider",
    "list_object_metadata",
    "make_filter",
    "make_link_next_page",
    "make_offset_next_page",
    "make_records_func",
    "next_offset_url",
    "parse_configuration",
    "parse_result_filtered",
    "parse_timestamp",
    "validate_configuration",
]
