"""Tests for the Okta provider: request building, Link pagination, profile flattening, writes and custom fields."""

import json
from datetime import datetime, timezone

import pytest

from rest_sync.errors import (
    CallerError,
    CustomFieldsError,
    NotObjectError,
    OperationNotSupportedError,
    UnknownObjectError,
    URLError,
)
from rest_sync.params import DeleteParams, ReadParams, WriteParams
from rest_sync.provider import ValueType, list_object_metadata
from rest_sync.providers import okta

BASE_URL = "https://trial.okta.com"
NEXT_USERS = "https://trial.okta.com/api/v1/users?limit=200&after=00u2"
SINCE = datetime(2024, 1, 1, tzinfo=timezone.utc)
UNTIL = datetime(2024, 2, 1, tzinfo=timezone.utc)

USERS_PAGE = [
    {
        "id": "00u1",
        "status": "ACTIVE",
        "lastUpdated": "2024-01-10T08:00:00.000Z",
        "profile": {"email": "ada@example.com", "login": "ada@example.com", "costCenter": "R&D"},
    },
    {
        "id": "00u2",
        "status": "SUSPENDED",
        "lastUpdated": "2024-01-11T08:00:00.000Z",
        "profile": {"email": "grace@example.com", "login": "grace@example.com"},
    },
]


@pytest.fixture
def provider():
    return okta.build_provider()


def link_header(url, rel="next"):
    return {"link": f'<{url}>; rel="{rel}"'}


class TestRead:
    def test_first_page_request(self, provider, make_transport, respond):
        transport = make_transport(respond(USERS_PAGE))
        provider.reader(transport, BASE_URL).read(ReadParams(object_name="users", fields=["id"]))

        assert transport.urls == ["https://trial.okta.com/api/v1/users?limit=200"]

    def test_page_size_is_capped(self, provider, make_transport, respond):
        transport = make_transport(respond([]))
        provider.reader(transport, BASE_URL).read(ReadParams(object_name="groups", fields=["id"], page_size=500))

        assert transport.requests[0].params["limit"] == "200"

    def test_smaller_page_size_is_kept(self, provider, make_transport, respond):
        transport = make_transport(respond([]))
        provider.reader(transport, BASE_URL).read(ReadParams(object_name="apps", fields=["id"], page_size=50))

        assert transport.requests[0].params["limit"] == "50"

    def test_profile_fields_are_flattened(self, provider, make_transport, respond):
        transport = make_transport(respond(USERS_PAGE))
        result = provider.reader(transport, BASE_URL).read(
            ReadParams(object_name="users", fields=["id", "email", "costCenter"])
        )

        assert result.rows == 2
        assert result.data[0].fields == {"id": "00u1", "email": "ada@example.com", "costcenter": "R&D"}
        assert result.data[1].fields == {"id": "00u2", "email": "grace@example.com"}
        assert result.data[0].raw["login"] == "ada@example.com"

    def test_profile_must_be_an_object(self, provider, make_transport, respond):
        transport = make_transport(respond([{"id": "00u1", "profile": "broken"}]))
        with pytest.raises(NotObjectError):
            provider.reader(transport, BASE_URL).read(ReadParams(object_name="users", fields=["id"]))

    def test_next_page_from_link_header(self, provider, make_transport, respond):
        headers = {
            "link": f'<{BASE_URL}/api/v1/users?limit=200>; rel="self", <{NEXT_USERS}>; rel="next"'
        }
        transport = make_transport(respond(USERS_PAGE, headers=headers))
        result = provider.reader(transport, BASE_URL).read(ReadParams(object_name="users", fields=["id"]))

        assert result.next_page == NEXT_USERS
        assert result.done is False

    def test_resume_uses_the_token_verbatim(self, provider, make_transport, respond):
        transport = make_transport(respond(USERS_PAGE[1:]))
        result = provider.reader(transport, BASE_URL).read(
            ReadParams(object_name="users", fields=["id"], since=SINCE, next_page=NEXT_USERS)
        )

        assert transport.urls == [NEXT_USERS]
        assert result.done is True

    def test_malformed_resume_token(self, provider, make_transport):
        transport = make_transport()
        with pytest.raises(URLError):
            provider.reader(transport, BASE_URL).read(
                ReadParams(object_name="users", fields=["id"], next_page="after=00u2")
            )
        assert transport.requests == []

    def test_users_filter_on_last_updated(self, provider, make_transport, respond):
        transport = make_transport(respond(USERS_PAGE))
        result = provider.reader(transport, BASE_URL).read(
            ReadParams(object_name="users", fields=["id"], since=SINCE, until=UNTIL)
        )

        assert transport.requests[0].params["filter"] == 'lastUpdated gt "2024-01-01T00:00:00Z"'
        assert "since" not in transport.requests[0].params
        assert result.rows == 2

    def test_logs_use_since_and_until(self, provider, make_transport, respond):
        page = [{"uuid": "e1", "published": "2024-01-05T00:00:00.000Z", "eventType": "user.session.start"}]
        transport = make_transport(respond(page))
        result = provider.reader(transport, BASE_URL).read(
            ReadParams(object_name="logs", fields=["uuid", "eventType"], since=SINCE, until=UNTIL)
        )

        params = transport.requests[0].params
        assert params["since"] == "2024-01-01T00:00:00Z"
        assert params["until"] == "2024-02-01T00:00:00Z"
        assert result.data[0].fields == {"uuid": "e1", "eventtype": "user.session.start"}

    def test_no_time_parameters_without_window(self, provider, make_transport, respond):
        transport = make_transport(respond([]))
        provider.reader(transport, BASE_URL).read(ReadParams(object_name="logs", fields=["uuid"]))

        assert transport.requests[0].params == {"limit": "200"}

    def test_devices_stop_past_the_window(self, provider, make_transport, respond):
        page = [
            {"id": "d1", "lastUpdated": "2024-01-15T00:00:00.000Z"},
            {"id": "d2", "lastUpdated": "2024-02-15T00:00:00.000Z"},
            {"id": "d3", "lastUpdated": "2024-01-20T00:00:00.000Z"},
        ]
        transport = make_transport(respond(page, headers=link_header(f"{BASE_URL}/api/v1/devices?after=d3")))
        result = provider.reader(transport, BASE_URL).read(
            ReadParams(object_name="devices", fields=["id"], since=SINCE, until=UNTIL)
        )

        assert [row.fields["id"] for row in result.data] == ["d1"]
        assert result.next_page == ""
        assert result.done is True

    def test_devices_within_window_follow_link(self, provider, make_transport, respond):
        page = [{"id": "d1", "lastUpdated": "2024-01-15T00:00:00.000Z"}]
        next_url = f"{BASE_URL}/api/v1/devices?after=d1"
        transport = make_transport(respond(page, headers=link_header(next_url)))
        result = provider.reader(transport, BASE_URL).read(
            ReadParams(object_name="devices", fields=["id"], since=SINCE, until=UNTIL)
        )

        assert result.next_page == next_url
        assert result.done is False

    def test_domains_envelope(self, provider, make_transport, respond):
        body = {"domains": [{"id": "OcD1", "domain": "login.example.com", "validationStatus": "VERIFIED"}]}
        transport = make_transport(respond(body))
        result = provider.reader(transport, BASE_URL).read(
            ReadParams(object_name="domains", fields=["domain", "validationStatus"])
        )

        assert result.data[0].fields == {"domain": "login.example.com", "validationstatus": "VERIFIED"}
        assert result.done is True

    def test_error_response(self, provider, make_transport, respond):
        body = {"errorCode": "E0000031", "errorSummary": "Invalid search criteria."}
        transport = make_transport(respond(body, status_code=400))

        with pytest.raises(CallerError) as excinfo:
            provider.reader(transport, BASE_URL).read(ReadParams(object_name="users", fields=["id"]))
        assert excinfo.value.status_code == 400
        assert "Invalid search criteria." in str(excinfo.value)

    def test_unknown_object(self, provider, make_transport):
        with pytest.raises(UnknownObjectError):
            provider.reader(make_transport(), BASE_URL).read(ReadParams(object_name="widgets", fields=["id"]))


class TestWrite:
    def test_create_posts_to_the_collection(self, provider, make_transport, respond):
        transport = make_transport(respond({"id": "00g9", "profile": {"name": "Engineering"}}))
        result = provider.writer(transport, BASE_URL).write(
            WriteParams(object_name="groups", record_data={"profile": {"name": "Engineering"}})
        )

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url == "https://trial.okta.com/api/v1/groups"
        assert json.loads(request.data) == {"profile": {"name": "Engineering"}}
        assert result.success is True
        assert result.record_id == "00g9"

    def test_user_update_uses_post(self, provider, make_transport, respond):
        transport = make_transport(respond({"id": "00u1"}))
        provider.writer(transport, BASE_URL).write(
            WriteParams(object_name="users", record_id="00u1", record_data={"profile": {"nickName": "ada"}})
        )

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url == "https://trial.okta.com/api/v1/users/00u1"

    def test_group_update_uses_put(self, provider, make_transport, respond):
        transport = make_transport(respond(None, status_code=204))
        result = provider.writer(transport, BASE_URL).write(
            WriteParams(object_name="groups", record_id="00g1", record_data={"profile": {"name": "Ops"}})
        )

        assert transport.requests[0].method == "PUT"
        assert transport.requests[0].url == "https://trial.okta.com/api/v1/groups/00g1"
        assert result.record_id == "00g1"

    def test_read_only_object(self, provider, make_transport):
        with pytest.raises(OperationNotSupportedError):
            provider.writer(make_transport(), BASE_URL).write(WriteParams(object_name="logs", record_data={"a": 1}))

    def test_delete(self, provider, make_transport, respond):
        transport = make_transport(respond(None, status_code=204))
        result = provider.deleter(transport, BASE_URL).delete(DeleteParams(object_name="zones", record_id="nzo1"))

        assert transport.requests[0].method == "DELETE"
        assert transport.requests[0].url == "https://trial.okta.com/api/v1/zones/nzo1"
        assert result.success is True

    def test_delete_not_found(self, provider, make_transport, respond):
        transport = make_transport(respond({"errorSummary": "Not found: Resource not found: nzo1"}, status_code=404))
        with pytest.raises(CallerError):
            provider.deleter(transport, BASE_URL).delete(DeleteParams(object_name="zones", record_id="nzo1"))


USER_SCHEMA = {
    "definitions": {
        "base": {"properties": {"login": {"title": "Username", "type": "string"}}},
        "custom": {
            "properties": {
                "costCenter": {"title": "Cost center", "type": "string"},
                "level": {
                    "title": "Level",
                    "type": "string",
                    "enum": ["1", "2"],
                    "oneOf": [{"const": "1", "title": "Junior"}, {"const": "2", "title": "Senior"}],
                },
                "region": {"title": "Region", "type": "string", "enum": ["EU", "US"]},
                "badges": {"type": "array"},
                "age": {"title": "Age", "type": "integer"},
            }
        },
    }
}


class TestCustomFields:
    def test_definitions_are_converted(self, make_transport, respond):
        transport = make_transport(respond(USER_SCHEMA))
        fields = okta.request_custom_fields(transport, BASE_URL, "users")

        assert transport.urls == ["https://trial.okta.com/api/v1/meta/schemas/user/default"]
        assert set(fields) == {"costCenter", "level", "region", "badges", "age"}
        assert fields["costCenter"].display_name == "Cost center"
        assert fields["costCenter"].value_type == ValueType.STRING
        assert fields["badges"].display_name == "badges"
        assert fields["badges"].value_type == ValueType.MULTI_SELECT
        assert fields["age"].value_type == ValueType.INT

    def test_one_of_wins_over_enum(self, make_transport, respond):
        fields = okta.request_custom_fields(make_transport(respond(USER_SCHEMA)), BASE_URL, "users")

        assert fields["level"].value_type == ValueType.SINGLE_SELECT
        assert [(v.value, v.display_value) for v in fields["level"].values] == [("1", "Junior"), ("2", "Senior")]
        assert [(v.value, v.display_value) for v in fields["region"].values] == [("EU", "EU"), ("US", "US")]

    def test_objects_without_profile_schema(self, make_transport):
        transport = make_transport()
        assert okta.request_custom_fields(transport, BASE_URL, "devices") == {}
        assert transport.requests == []

    def test_fetch_failure(self, make_transport, respond):
        transport = make_transport(respond({"errorSummary": "Forbidden"}, status_code=403))
        with pytest.raises(CustomFieldsError):
            okta.request_custom_fields(transport, BASE_URL, "groups")


class TestListObjectMetadata:
    def test_default_and_custom_fields(self, provider, make_transport, respond):
        transport = make_transport(respond(USER_SCHEMA))
        metadata = list_object_metadata(provider, transport, BASE_URL, ["users", "domains"])

        assert metadata.errors == {}
        users = metadata.result["users"]
        assert "id" in users.fields
        assert "costCenter" in users.fields
        assert metadata.result["domains"].fields.keys() == {"id", "domain", "validationStatus"}

    def test_errors_are_collected_per_object(self, provider, make_transport, respond):
        transport = make_transport(respond({"errorSummary": "boom"}, status_code=500))
        metadata = list_object_metadata(provider, transport, BASE_URL, ["users", "widgets", "zones"])

        assert isinstance(metadata.errors["users"], CustomFieldsError)
        assert isinstance(metadata.errors["widgets"], UnknownObjectError)
        assert metadata.result["zones"].display_name == "zones"
        assert "users" not in metadata.result

    def test_auth_header(self, provider):
        assert provider.auth_headers("00abc") == {"Authorization": "SSWS 00abc"}
