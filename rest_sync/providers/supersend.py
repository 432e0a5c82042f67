"""
SuperSend API.
API documentation: https://documenter.getpostman.com/view/19579115/2sA3kSo3FD

SuperSend uses offset pagination with limit/offset query parameters and reports pagination.has_more in
the body. It has no native time filtering, so incremental reads are filtered by the connector on
updatedAt (RFC 3339, e.g. "2024-01-15T10:00:00.000Z"). Records come back in no guaranteed order.
Write and delete endpoints live on different paths than the list endpoints.
"""

import json
from dataclasses import dataclass

# For building HTTP requests handed to the transport
import requests

from rest_sync.errors import NotObjectError, OperationNotSupportedError, RequestFailedError
from rest_sync.extractor import Envelope, make_records_func
from rest_sync.incremental import RFC3339, IncrementalSettings, TimeWindow, make_filter_for
from rest_sync.pagination import LIMIT_PARAM, make_offset_next_page, require_absolute_url
from rest_sync.params import (
    DeleteParams,
    DeleteResult,
    FilterPolicy,
    Ordering,
    ReadParams,
    ReadResult,
    WriteParams,
    WriteResult,
    page_size_with_default,
)
from rest_sync.provider import Provider, join_url
from rest_sync.reader import ReadHandlers, make_marshaled_data_func, parse_result_filtered
from rest_sync.schema import ObjectSchema, StaticSchemaProvider
from rest_sync.transport import JSONHTTPResponse, interpret_error
from rest_sync.writer import DeleteHandlers, WriteHandlers

DEFAULT_BASE_URL = "https://api.supersend.io"
PAGE_LIMIT = 100  # SuperSend maximum per page
UPDATED_AT_FIELD = "updatedAt"
DATA_KEY = "data"


@dataclass(frozen=True)
class WritePathConfig:
    create_path: str = ""
    update_path: str = ""  # record id is appended
    delete_path: str = ""  # record id is appended
    uses_patch: bool = False


OBJECT_WRITE_PATHS = {
    "labels": WritePathConfig("/v1/labels", "/v1/labels", "/v1/labels"),
    "senders": WritePathConfig("/v1/sender", "/v1/sender"),
    "teams": WritePathConfig("/v2/teams"),
    "campaigns": WritePathConfig("/v1/auto/campaign", "/v1/campaign", "/v1/auto/campaign"),
    "contacts": WritePathConfig("/v2/contacts", "/v2/contacts", "/v2/contacts", uses_patch=True),
    "sender-profiles": WritePathConfig("/v1/sender-profile", "/v1/sender-profile", "/v1/sender-profile"),
}

WRITE_SUPPORT = frozenset(name for name, config in OBJECT_WRITE_PATHS.items() if config.create_path or config.update_path)
DELETE_SUPPORT = frozenset(name for name, config in OBJECT_WRITE_PATHS.items() if config.delete_path)

SCHEMA = StaticSchemaProvider(
    [
        ObjectSchema("teams", "/v1/teams", DATA_KEY, fields=("id", "name", "domain", "isDefault", "updatedAt")),
        ObjectSchema("senders", "/v1/senders", DATA_KEY, fields=("id", "email", "warm", "max_per_day", "updatedAt")),
        ObjectSchema("sender-profiles", "/v1/sender-profiles", DATA_KEY, fields=("id", "name", "type", "status", "updatedAt")),
        ObjectSchema("labels", "/v1/labels", DATA_KEY, fields=("id", "name", "color", "deleted", "updatedAt")),
        ObjectSchema(
            "contact/all",
            "/v1/contact/all",
            DATA_KEY,
            fields=("id", "email", "first_name", "last_name", "status", "updatedAt"),
            display_name="Contacts",
        ),
        ObjectSchema(
            "campaigns/overview",
            "/v1/campaigns/overview",
            DATA_KEY,
            fields=("id", "name", "status", "contactedCount", "updatedAt"),
            display_name="Campaigns",
        ),
        ObjectSchema("org", "/v1/org", envelope=Envelope.single(DATA_KEY), fields=("id", "name", "current_plan", "domain")),
        ObjectSchema("managed-domains", "/v1/managed-domains", DATA_KEY, fields=("id", "name", "status", "computed_status", "updatedAt")),
        ObjectSchema(
            "managed-mailboxes",
            "/v1/managed-mailboxes",
            DATA_KEY,
            fields=("id", "email", "firstName", "lastName", "status", "updatedAt"),
        ),
        ObjectSchema("placement-tests", "/v1/placement-tests", DATA_KEY, fields=("id", "name", "status", "score", "updatedAt")),
        ObjectSchema(
            "auto/identitys",
            "/v1/auto/identitys",
            DATA_KEY,
            fields=("id", "username", "type", "status", "updatedAt"),
            display_name="Identities",
        ),
        ObjectSchema(
            "conversation/latest-by-profile",
            "/v1/conversation/latest-by-profile",
            "data.conversations",
            fields=("id", "title", "is_unread", "platform_type", "updatedAt"),
            display_name="Conversations",
        ),
    ]
)

# The organization is a single settings object without updatedAt
OBJECTS_WITHOUT_TIMESTAMP = frozenset({"org"})


def incremental_settings(object_name: str) -> IncrementalSettings:
    if object_name in OBJECTS_WITHOUT_TIMESTAMP:
        return IncrementalSettings(FilterPolicy.NONE)
    return IncrementalSettings(FilterPolicy.CONNECTOR_SIDE, Ordering.UNORDERED, UPDATED_AT_FIELD, RFC3339)


def make_read_handlers(base_url: str) -> ReadHandlers:
    def build_read_request(params: ReadParams) -> requests.Request:
        if params.next_page:
            return requests.Request("GET", require_absolute_url(params.next_page))

        url = join_url(base_url, SCHEMA.lookup_url_path(params.object_name))
        query = {LIMIT_PARAM: str(page_size_with_default(params, PAGE_LIMIT, PAGE_LIMIT))}
        return requests.Request("GET", url, params=query)

    def parse_read_response(
        params: ReadParams, request: requests.Request, response: JSONHTTPResponse
    ) -> ReadResult:
        window = TimeWindow(params.since, params.until)
        # The offset of the next page is derived from the exact URL that produced this one
        request_url = request.prepare().url

        return parse_result_filtered(
            params,
            response,
            make_records_func(SCHEMA.lookup_envelope(params.object_name)),
            make_filter_for(incremental_settings(params.object_name), window),
            make_offset_next_page(request_url, PAGE_LIMIT),
            make_marshaled_data_func(),
        )

    return ReadHandlers(build_read_request, parse_read_response, interpret_error)


def make_write_handlers(base_url: str) -> WriteHandlers:
    def build_write_request(params: WriteParams) -> requests.Request:
        config = OBJECT_WRITE_PATHS.get(params.object_name)
        if config is None:
            raise OperationNotSupportedError("write", params.object_name)

        if params.is_update():
            if not config.update_path:
                raise OperationNotSupportedError("update", params.object_name)
            url = join_url(base_url, config.update_path, params.record_id)
            method = "PATCH" if config.uses_patch else "PUT"
        else:
            if not config.create_path:
                raise OperationNotSupportedError("create", params.object_name)
            url = join_url(base_url, config.create_path)
            method = "POST"

        return requests.Request(
            method,
            url,
            data=json.dumps(params.record_data),
            headers={"Content-Type": "application/json"},
        )

    def parse_write_response(
        params: WriteParams, request: requests.Request, response: JSONHTTPResponse
    ) -> WriteResult:
        if not response.has_body():
            return WriteResult(success=True, record_id=params.record_id)

        body = response.body
        if not isinstance(body, dict):
            raise NotObjectError(f"Expected the written record, got {type(body).__name__}")

        # Responses look like {"success": true, "data": {...}}
        record = body.get(DATA_KEY) if isinstance(body.get(DATA_KEY), dict) else body
        record_id = record.get("id")
        return WriteResult(success=True, record_id=str(record_id) if record_id is not None else "", data=record)

    return WriteHandlers(build_write_request, parse_write_response, interpret_error)


def make_delete_handlers(base_url: str) -> DeleteHandlers:
    def build_delete_request(params: DeleteParams) -> requests.Request:
        config = OBJECT_WRITE_PATHS.get(params.object_name)
        if config is None or not config.delete_path:
            raise OperationNotSupportedError("delete", params.object_name)
        return requests.Request("DELETE", join_url(base_url, config.delete_path, params.record_id))

    def parse_delete_response(
        params: DeleteParams, request: requests.Request, response: JSONHTTPResponse
    ) -> DeleteResult:
        if response.status_code not in (200, 204):
            raise RequestFailedError(response.status_code, f"failed to delete record {params.record_id}")
        return DeleteResult(success=True)

    return DeleteHandlers(build_delete_request, parse_delete_response, interpret_error)


def build_provider() -> Provider:
    return Provider(
        name="supersend",
        schema=SCHEMA,
        auth_scheme="Bearer",
        read_handlers=make_read_handlers,
        write_handlers=make_write_handlers,
        delete_handlers=make_delete_handlers,
        write_support=WRITE_SUPPORT,
        delete_support=DELETE_SUPPORT,
        default_base_url=DEFAULT_BASE_URL,
    )
