"""
Generic read orchestrator.

A read of one page goes through these steps:
1. Validate the request (object name, fields, object known to the provider).
2. Build the HTTP request with the provider's callback, or resume from the caller's next page URL.
3. Execute it with the transport. Transport exceptions propagate unchanged; unsuccessful statuses
   are handed to the provider's error handler.
4. Parse the response: extract records from the envelope, apply the incremental filter, project the
   requested fields.
5. Decide pagination: the page is the last one if the filter asked to stop or no next page exists.

Providers supply the three callbacks in a ReadHandlers record; the helpers in this module are the
building blocks they compose in their parse callback.
"""

import copy
from dataclasses import dataclass
from typing import Any, Callable, Container, Dict, List, Optional, Sequence

# For building HTTP requests handed to the transport
import requests

# For enabling Logs in your connector code
from fivetran_connector_sdk import Logging as log

from rest_sync.errors import MissingFieldsError, MissingObjectError, UnknownObjectError
from rest_sync.extractor import RecordsFunc
from rest_sync.incremental import FilterFunc
from rest_sync.pagination import NextPageFunc
from rest_sync.params import ReadParams, ReadResult, ReadResultRow
from rest_sync.transport import HTTPTransport, JSONHTTPResponse, interpret_error

RecordTransformer = Callable[[Dict[str, Any]], Dict[str, Any]]
MarshalFunc = Callable[[List[Any], Sequence[str]], List[ReadResultRow]]


@dataclass
class ReadHandlers:
    build_request: Callable[[ReadParams], requests.Request]
    parse_response: Callable[[ReadParams, requests.Request, JSONHTTPResponse], ReadResult]
    error_handler: Callable[[JSONHTTPResponse], None] = interpret_error


class HTTPReader:
    """Runs one page of a read through the provider's handlers."""

    def __init__(self, transport: HTTPTransport, supported_objects: Container[str], handlers: ReadHandlers):
        self.transport = transport
        self.supported_objects = supported_objects
        self.handlers = handlers

    def read(self, params: ReadParams) -> ReadResult:
        validate_read_params(params, self.supported_objects)

        request = self.handlers.build_request(params)
        response = self.transport.execute(request)
        if response.status_code >= 400:
            self.handlers.error_handler(response)

        result = self.handlers.parse_response(params, request, response)
        log.info(
            f"Read page of '{params.object_name}': {result.rows} row(s), done={result.done}"
        )
        return result


def validate_read_params(params: ReadParams, supported_objects: Container[str]) -> None:
    """
    Raises:
        MissingObjectError: if no object name was given.
        MissingFieldsError: if no fields were requested, whatever the object.
        UnknownObjectError: if the provider cannot read the object.
    """
    if not params.object_name:
        raise MissingObjectError("Object name is required")

    if not params.fields:
        raise MissingFieldsError(f"At least one field must be requested for '{params.object_name}'")

    if params.object_name not in supported_objects:
        raise UnknownObjectError(params.object_name)


def project_fields(raw: Dict[str, Any], fields: Sequence[str]) -> Dict[str, Any]:
    """
    Copy the requested fields out of a record. Matching ignores case and the output keys are
    lowercase. Fields missing from the record are left out rather than set to None.
    """
    by_lowercase = {key.lower(): key for key in raw}
    projected = {}
    for name in fields:
        lowered = name.lower()
        if lowered in by_lowercase:
            projected[lowered] = raw[by_lowercase[lowered]]
    return projected


def make_marshaled_data_func(transformer: Optional[RecordTransformer] = None) -> MarshalFunc:
    """Turn records into rows, optionally reshaping each record first (e.g. flattening nested profiles)."""

    def marshal(records: List[Any], fields: Sequence[str]) -> List[ReadResultRow]:
        rows = []
        for record in records:
            raw = copy.deepcopy(record)
            if transformer is not None:
                raw = transformer(raw)
            rows.append(ReadResultRow(fields=project_fields(raw, fields), raw=raw))
        return rows

    return marshal


def parse_result_filtered(
    params: ReadParams,
    response: JSONHTTPResponse,
    records_func: RecordsFunc,
    filter_func: FilterFunc,
    next_page_func: NextPageFunc,
    marshal_func: MarshalFunc,
) -> ReadResult:
    """
    Compose extraction, filtering, projection and pagination for one page.
    Any error raised by a step aborts the page, so no partial list of rows is ever returned.
    """
    if not response.has_body():
        return ReadResult(rows=0, data=[], next_page="", done=True)

    document = response.body
    records = records_func(document)
    outcome = filter_func(records)
    rows = marshal_func(outcome.records, params.fields)

    if outcome.stop:
        # Later pages can only hold records further outside the window
        log.warning(f"Stopping pagination of '{params.object_name}': records are past the requested time window")
        next_page = ""
    else:
        next_page = next_page_func(document)

    return ReadResult(rows=len(rows), data=rows, next_page=next_page, done=next_page == "")
