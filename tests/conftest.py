"""Shared fixtures: SDK log level and an in-memory transport replaying canned responses."""

from typing import Any, Dict, List, Optional

import pytest

# For building the requests recorded by the fake transport
import requests

from fivetran_connector_sdk import Logging

from rest_sync.transport import JSONHTTPResponse


@pytest.fixture(autouse=True)
def sdk_log_level():
    """The SDK only sets its log level when a connector runs, so tests set it explicitly."""
    previous = Logging.LOG_LEVEL
    Logging.LOG_LEVEL = Logging.Level.INFO
    yield
    Logging.LOG_LEVEL = previous


class FakeTransport:
    """Records every request and answers with the queued responses, in order."""

    def __init__(self, responses: List[JSONHTTPResponse]):
        self.responses = list(responses)
        self.requests: List[requests.Request] = []
        self.closed = False

    def execute(self, request: requests.Request) -> JSONHTTPResponse:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url: str) -> JSONHTTPResponse:
        return self.execute(requests.Request("GET", url))

    def close(self):
        self.closed = True

    @property
    def urls(self) -> List[str]:
        return [request.prepare().url for request in self.requests]


def json_response(
    body: Any = None, status_code: int = 200, headers: Optional[Dict[str, str]] = None
) -> JSONHTTPResponse:
    return JSONHTTPResponse(status_code=status_code, headers=headers or {}, body=body)


@pytest.fixture
def make_transport():
    def factory(*responses) -> FakeTransport:
        return FakeTransport(list(responses))

    return factory


@pytest.fixture
def respond():
    return json_response
