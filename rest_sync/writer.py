"""Write (create/update) and delete pipelines."""

from dataclasses import dataclass
from typing import Callable, Container

# For building HTTP requests handed to the transport
import requests

# For enabling Logs in your connector code
from fivetran_connector_sdk import Logging as log

from rest_sync.errors import (
    MissingObjectError,
    MissingRecordDataError,
    MissingRecordIDError,
    OperationNotSupportedError,
)
from rest_sync.params import DeleteParams, DeleteResult, WriteParams, WriteResult
from rest_sync.transport import HTTPTransport, JSONHTTPResponse, interpret_error


@dataclass
class WriteHandlers:
    build_request: Callable[[WriteParams], requests.Request]
    parse_response: Callable[[WriteParams, requests.Request, JSONHTTPResponse], WriteResult]
    error_handler: Callable[[JSONHTTPResponse], None] = interpret_error


@dataclass
class DeleteHandlers:
    build_request: Callable[[DeleteParams], requests.Request]
    parse_response: Callable[[DeleteParams, requests.Request, JSONHTTPResponse], DeleteResult]
    error_handler: Callable[[JSONHTTPResponse], None] = interpret_error


class HTTPWriter:
    def __init__(self, transport: HTTPTransport, supported_objects: Container[str], handlers: WriteHandlers):
        self.transport = transport
        self.supported_objects = supported_objects
        self.handlers = handlers

    def write(self, params: WriteParams) -> WriteResult:
        if not params.object_name:
            raise MissingObjectError("Object name is required")
        if not params.record_data:
            raise MissingRecordDataError(f"Record data is required to write '{params.object_name}'")
        if params.object_name not in self.supported_objects:
            raise OperationNotSupportedError("write", params.object_name)

        request = self.handlers.build_request(params)
        response = self.transport.execute(request)
        if response.status_code >= 400:
            self.handlers.error_handler(response)

        result = self.handlers.parse_response(params, request, response)
        action = "Updated" if params.is_update() else "Created"
        log.info(f"{action} '{params.object_name}' record {result.record_id or '(no id returned)'}")
        return result


class HTTPDeleter:
    def __init__(self, transport: HTTPTransport, supported_objects: Container[str], handlers: DeleteHandlers):
        self.transport = transport
        self.supported_objects = supported_objects
        self.handlers = handlers

    def delete(self, params: DeleteParams) -> DeleteResult:
        if not params.object_name:
            raise MissingObjectError("Object name is required")
        if not params.record_id:
            raise MissingRecordIDError(f"Record id is required to delete '{params.object_name}'")
        if params.object_name not in self.supported_objects:
            raise OperationNotSupportedError("delete", params.object_name)

        request = self.handlers.build_request(params)
        response = self.transport.execute(request)
        if response.status_code >= 400:
            self.handlers.error_handler(response)

        result = self.handlers.parse_response(params, request, response)
        log.info(f"Deleted '{params.object_name}' record {params.record_id}")
        return result
