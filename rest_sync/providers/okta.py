"""
Okta Management API.
API documentation: https://developer.okta.com/docs/api/

- Most list endpoints return a JSON array at the document root; /api/v1/domains wraps it under "domains".
- Pagination is cursor based: the next page URL comes in the Link header with rel="next".
- Users, groups and apps accept a `filter=lastUpdated gt "<timestamp>"` expression, the system log accepts
  `since`/`until`. Other objects carrying lastUpdated are filtered by the connector.
- Users and groups keep their attributes, including custom ones, in a nested "profile" object.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# For building HTTP requests handed to the transport
import requests

from rest_sync.errors import CustomFieldsError, HTTPStatusError, NotObjectError
from rest_sync.extractor import make_records_func
from rest_sync.incremental import (
    RFC3339,
    IncrementalSettings,
    TimeWindow,
    format_rfc3339,
    make_filter_for,
)
from rest_sync.pagination import make_link_next_page, require_absolute_url
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
from rest_sync.provider import FieldMetadata, FieldValue, Provider, ValueType, join_url
from rest_sync.reader import ReadHandlers, make_marshaled_data_func, parse_result_filtered
from rest_sync.schema import ObjectSchema, StaticSchemaProvider
from rest_sync.transport import HTTPTransport, JSONHTTPResponse, interpret_error
from rest_sync.writer import DeleteHandlers, WriteHandlers

PAGE_LIMIT = 200  # Okta maximum per page
LIMIT_KEY = "limit"
FILTER_KEY = "filter"
SINCE_KEY = "since"
UNTIL_KEY = "until"
LAST_UPDATED_FIELD = "lastUpdated"
LOGS_OBJECT = "logs"

# Objects accepting the lastUpdated filter expression.
# https://developer.okta.com/docs/reference/api/users/#list-users-with-a-filter
OBJECTS_WITH_PROVIDER_SIDE_FILTER = frozenset({"users", "groups", "apps"})

# Objects carrying lastUpdated whose list endpoints cannot filter on it.
OBJECTS_WITH_CONNECTOR_SIDE_FILTER = frozenset(
    {
        "devices",
        "idps",
        "authorizationServers",
        "trustedOrigins",
        "zones",
        "authenticators",
        "policies",
        "eventHooks",
    }
)

# Objects with customizable profile schemas.
# https://developer.okta.com/docs/reference/api/schemas
OBJECTS_WITH_CUSTOM_FIELDS = frozenset({"users", "groups"})

SCHEMA_ENDPOINTS = {
    "users": "/api/v1/meta/schemas/user/default",
    "groups": "/api/v1/meta/schemas/group/default",
}

WRITE_SUPPORT = frozenset({"users", "groups", "trustedOrigins", "zones", "eventHooks", "authorizationServers"})
DELETE_SUPPORT = WRITE_SUPPORT

SCHEMA = StaticSchemaProvider(
    [
        ObjectSchema("users", "/api/v1/users", fields=("id", "status", "created", "lastUpdated", "profile")),
        ObjectSchema("groups", "/api/v1/groups", fields=("id", "type", "created", "lastUpdated", "profile")),
        ObjectSchema("apps", "/api/v1/apps", fields=("id", "name", "label", "status", "signOnMode", "lastUpdated")),
        ObjectSchema(
            "logs",
            "/api/v1/logs",
            fields=("uuid", "published", "eventType", "severity", "displayMessage", "actor"),
            display_name="System Log",
            primary_key="uuid",
        ),
        ObjectSchema("devices", "/api/v1/devices", fields=("id", "status", "created", "lastUpdated", "profile")),
        ObjectSchema("idps", "/api/v1/idps", fields=("id", "type", "name", "status", "lastUpdated")),
        ObjectSchema(
            "authorizationServers",
            "/api/v1/authorizationServers",
            fields=("id", "name", "description", "audiences", "status", "lastUpdated"),
            display_name="Authorization Servers",
        ),
        ObjectSchema(
            "trustedOrigins",
            "/api/v1/trustedOrigins",
            fields=("id", "name", "origin", "scopes", "status", "lastUpdated"),
            display_name="Trusted Origins",
        ),
        ObjectSchema("zones", "/api/v1/zones", fields=("id", "type", "name", "status", "usage", "lastUpdated")),
        ObjectSchema("authenticators", "/api/v1/authenticators", fields=("id", "key", "name", "status", "lastUpdated")),
        ObjectSchema("policies", "/api/v1/policies", fields=("id", "type", "name", "status", "priority", "lastUpdated")),
        ObjectSchema(
            "eventHooks",
            "/api/v1/eventHooks",
            fields=("id", "name", "status", "verificationStatus", "events", "lastUpdated"),
            display_name="Event Hooks",
        ),
        ObjectSchema("domains", "/api/v1/domains", response_key="domains", fields=("id", "domain", "validationStatus")),
    ]
)


def incremental_settings(object_name: str) -> IncrementalSettings:
    if object_name in OBJECTS_WITH_PROVIDER_SIDE_FILTER or object_name == LOGS_OBJECT:
        return IncrementalSettings(FilterPolicy.PROVIDER_SIDE)

    if object_name in OBJECTS_WITH_CONNECTOR_SIDE_FILTER:
        return IncrementalSettings(FilterPolicy.CONNECTOR_SIDE, Ordering.CHRONOLOGICAL, LAST_UPDATED_FIELD, RFC3339)

    return IncrementalSettings(FilterPolicy.NONE)


def time_query_params(params: ReadParams) -> Dict[str, str]:
    """Query parameters restricting the page to the time window, for provider-side filtered objects."""
    query = {}
    if params.object_name == LOGS_OBJECT:
        # https://developer.okta.com/docs/reference/api/system-log/#request-parameters
        if params.since is not None:
            query[SINCE_KEY] = format_rfc3339(params.since)
        if params.until is not None:
            query[UNTIL_KEY] = format_rfc3339(params.until)
    elif params.object_name in OBJECTS_WITH_PROVIDER_SIDE_FILTER and params.since is not None:
        query[FILTER_KEY] = f'{LAST_UPDATED_FIELD} gt "{format_rfc3339(params.since)}"'
    return query


def flatten_profile_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    """Copy the attributes of the nested profile object to the record root, so custom fields can be requested by name."""
    profile = record.get("profile")
    if profile is None:
        return record
    if not isinstance(profile, dict):
        raise NotObjectError(f"Expected 'profile' to be an object, got {type(profile).__name__}")

    record.update(profile)
    return record


def make_read_handlers(base_url: str) -> ReadHandlers:
    def build_read_request(params: ReadParams) -> requests.Request:
        # The Link header already carries the complete next request
        if params.next_page:
            return requests.Request("GET", require_absolute_url(params.next_page))

        url = join_url(base_url, SCHEMA.lookup_url_path(params.object_name))
        query = {LIMIT_KEY: str(page_size_with_default(params, PAGE_LIMIT, PAGE_LIMIT))}
        query.update(time_query_params(params))
        return requests.Request("GET", url, params=query)

    def parse_read_response(
        params: ReadParams, request: requests.Request, response: JSONHTTPResponse
    ) -> ReadResult:
        transformer = flatten_profile_fields if params.object_name in OBJECTS_WITH_CUSTOM_FIELDS else None
        window = TimeWindow(params.since, params.until)

        return parse_result_filtered(
            params,
            response,
            make_records_func(SCHEMA.lookup_envelope(params.object_name)),
            make_filter_for(incremental_settings(params.object_name), window),
            make_link_next_page(response.headers),
            make_marshaled_data_func(transformer),
        )

    return ReadHandlers(build_read_request, parse_read_response, interpret_error)


def make_write_handlers(base_url: str) -> WriteHandlers:
    def build_write_request(params: WriteParams) -> requests.Request:
        url = join_url(base_url, SCHEMA.lookup_url_path(params.object_name))
        method = "POST"

        if params.is_update():
            url = join_url(url, params.record_id)
            # Users are partially updated with POST, the other objects are replaced with PUT
            if params.object_name != "users":
                method = "PUT"

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

        record_id = body.get("id", params.record_id)
        return WriteResult(success=True, record_id=str(record_id) if record_id else "", data=body)

    return WriteHandlers(build_write_request, parse_write_response, interpret_error)


def make_delete_handlers(base_url: str) -> DeleteHandlers:
    def build_delete_request(params: DeleteParams) -> requests.Request:
        url = join_url(base_url, SCHEMA.lookup_url_path(params.object_name), params.record_id)
        return requests.Request("DELETE", url)

    def parse_delete_response(
        params: DeleteParams, request: requests.Request, response: JSONHTTPResponse
    ) -> DeleteResult:
        return DeleteResult(success=True)

    return DeleteHandlers(build_delete_request, parse_delete_response, interpret_error)


@dataclass
class CustomFieldDefinition:
    name: str
    title: str = ""
    description: str = ""
    type: str = ""
    required: bool = False
    enum: List[str] = field(default_factory=list)
    one_of: List[Dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_property(cls, name: str, prop: Dict[str, Any]) -> "CustomFieldDefinition":
        return cls(
            name=name,
            title=prop.get("title") or "",
            description=prop.get("description") or "",
            type=prop.get("type") or "",
            required=bool(prop.get("required", False)),
            enum=list(prop.get("enum") or []),
            one_of=list(prop.get("oneOf") or []),
        )

    def value_type(self) -> ValueType:
        if self.type == "string":
            if self.enum or self.one_of:
                return ValueType.SINGLE_SELECT
            return ValueType.STRING
        if self.type == "integer":
            return ValueType.INT
        if self.type == "number":
            return ValueType.FLOAT
        if self.type == "boolean":
            return ValueType.BOOLEAN
        if self.type == "array":
            return ValueType.MULTI_SELECT
        return ValueType.OTHER

    def values(self) -> Optional[List[FieldValue]]:
        # oneOf carries display titles, so it wins over the bare enum
        if self.one_of:
            return [FieldValue(value=option.get("const", ""), display_value=option.get("title", "")) for option in self.one_of]
        if self.enum:
            return [FieldValue(value=option, display_value=option) for option in self.enum]
        return None

    def to_field_metadata(self) -> FieldMetadata:
        return FieldMetadata(
            display_name=self.title or self.name,
            value_type=self.value_type(),
            provider_type=self.type,
            values=self.values(),
        )


def request_custom_fields(transport: HTTPTransport, base_url: str, object_name: str) -> Dict[str, FieldMetadata]:
    """
    Fetch the custom attributes of a user or group profile from the Schema API.
    Objects without a customizable profile have no custom fields.
    Raises:
        CustomFieldsError: if the schema cannot be fetched or decoded.
    """
    schema_path = SCHEMA_ENDPOINTS.get(object_name)
    if object_name not in OBJECTS_WITH_CUSTOM_FIELDS or schema_path is None:
        return {}

    try:
        response = transport.get(join_url(base_url, schema_path))
        if response.status_code >= 400:
            interpret_error(response)
    except (HTTPStatusError, requests.RequestException) as e:
        raise CustomFieldsError(f"Cannot fetch the profile schema of '{object_name}': {e}") from e

    if not isinstance(response.body, dict):
        raise CustomFieldsError(f"Empty or malformed profile schema for '{object_name}'")

    custom = response.body.get("definitions", {}).get("custom", {})
    properties = custom.get("properties") or {}

    return {
        name: CustomFieldDefinition.from_property(name, prop).to_field_metadata()
        for name, prop in properties.items()
    }


def build_provider() -> Provider:
    return Provider(
        name="okta",
        schema=SCHEMA,
        auth_scheme="SSWS",
        read_handlers=make_read_handlers,
        write_handlers=make_write_handlers,
        delete_handlers=make_delete_handlers,
        write_support=WRITE_SUPPORT,
        delete_support=DELETE_SUPPORT,
        custom_fields=request_custom_fields,
    )
