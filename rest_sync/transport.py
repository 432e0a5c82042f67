"""HTTP transport shared by the read, write and delete pipelines."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

# For making HTTP requests to the provider APIs
import requests

# For enabling Logs in your connector code
from fivetran_connector_sdk import Logging as log

from rest_sync.errors import CallerError, HTTPStatusError, ServerError, ShapeError

DEFAULT_TIMEOUT_SECONDS = 30
ERROR_MESSAGE_KEYS = ("errorSummary", "error_description", "error", "message", "detail")


@dataclass
class JSONHTTPResponse:
    """Status, headers and decoded JSON body of one HTTP exchange."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    url: str = ""
    text: str = ""

    @classmethod
    def from_response(cls, response: requests.Response) -> "JSONHTTPResponse":
        """
        Decode a requests response. An empty body decodes to None.
        Raises:
            ShapeError: if a successful response carries a body that is not JSON.
        """
        body = None
        if response.content and response.content.strip():
            try:
                body = response.json()
            except ValueError as e:
                if response.status_code < 400:
                    raise ShapeError(f"Response from {response.url} is not JSON") from e

        return cls(
            status_code=response.status_code,
            headers=response.headers,
            body=body,
            url=response.url,
            text=response.text,
        )

    def has_body(self) -> bool:
        return self.body is not None


class HTTPTransport:
    """
    Executes fully built requests with a shared requests.Session.
    The transport adds the static authorization headers and a timeout.
    It does not retry, and exceptions raised by requests propagate unchanged.
    """

    def __init__(
        self,
        headers: Optional[Dict[str, str]] = None,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if headers:
            self.session.headers.update(headers)
        self.timeout = timeout

    def execute(self, request: requests.Request) -> JSONHTTPResponse:
        prepared = self.session.prepare_request(request)
        log.fine(f"{prepared.method} {prepared.url}")
        response = self.session.send(prepared, timeout=self.timeout)
        return JSONHTTPResponse.from_response(response)

    def get(self, url: str) -> JSONHTTPResponse:
        return self.execute(requests.Request("GET", url))

    def close(self):
        self.session.close()


def extract_error_message(response: JSONHTTPResponse) -> str:
    """Pick the most descriptive message from an error response."""
    payload = response.body
    if isinstance(payload, dict):
        for key in ERROR_MESSAGE_KEYS:
            value = payload.get(key)
            if isinstance(value, dict):
                value = value.get("message", value)
            if value:
                return str(value)
        return str(payload)
    if payload is not None:
        return str(payload)
    return response.text or "no response body"


def interpret_error(response: JSONHTTPResponse) -> None:
    """
    Default error handler: turn an unsuccessful status into a typed error.
    Raises:
        CallerError: for 4xx responses.
        ServerError: for 5xx responses.
        HTTPStatusError: for any other unsuccessful status.
    """
    message = extract_error_message(response)
    if 400 <= response.status_code < 500:
        raise CallerError(response.status_code, message)
    if response.status_code >= 500:
        raise ServerError(response.status_code, message)
    raise HTTPStatusError(response.status_code, message)
