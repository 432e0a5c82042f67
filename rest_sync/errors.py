"""Error types raised by the read, write and delete pipelines."""


class ConnectorError(Exception):
    """Base class for every error raised by rest_sync."""


class MissingObjectError(ConnectorError):
    """No object name was given."""


class MissingFieldsError(ConnectorError):
    """A read was requested without any field names."""


class MissingRecordDataError(ConnectorError):
    """A write was requested without a record payload."""


class MissingRecordIDError(ConnectorError):
    """A delete was requested without a record id."""


class UnknownObjectError(ConnectorError):
    """The schema has no mapping for the object name."""

    def __init__(self, object_name: str):
        super().__init__(f"Unknown object: {object_name}")
        self.object_name = object_name


class OperationNotSupportedError(ConnectorError):
    """The provider does not support this operation for the object."""

    def __init__(self, operation: str, object_name: str):
        super().__init__(f"Operation '{operation}' is not supported for object '{object_name}'")
        self.operation = operation
        self.object_name = object_name


class ShapeError(ConnectorError):
    """The response envelope did not match the configured descriptor."""


class KeyNotFoundError(ShapeError):
    """A key of the envelope path is missing from the document."""

    def __init__(self, key: str):
        super().__init__(f"Key not found: {key}")
        self.key = key


class NotArrayError(ShapeError):
    """The value expected to hold the records is not a JSON array."""


class NotObjectError(ShapeError):
    """The value expected to be a JSON object is something else."""


class TimestampParseError(ConnectorError):
    """A record carries a timestamp that cannot be parsed with the declared format."""

    def __init__(self, field: str, value, timestamp_format: str):
        super().__init__(
            f"Cannot parse value {value!r} of field '{field}' using format '{timestamp_format}'"
        )
        self.field = field
        self.value = value
        self.timestamp_format = timestamp_format


class URLError(ConnectorError):
    """The next page URL could not be built."""


class HTTPStatusError(ConnectorError):
    """The provider answered with an unsuccessful status code."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class CallerError(HTTPStatusError):
    """4xx response: the request itself is wrong and must not be retried."""


class ServerError(HTTPStatusError):
    """5xx response from the provider."""


class RequestFailedError(HTTPStatusError):
    """The provider answered with a status the operation does not accept."""


class CustomFieldsError(ConnectorError):
    """Custom field metadata could not be resolved."""
