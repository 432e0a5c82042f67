"""This connector syncs objects from REST APIs (Okta, SuperSend) through a provider-agnostic read pipeline.
Each configured object is read page by page, filtered to the incremental time window, and upserted to a
destination table. The next page URL and the time window are checkpointed after every page so an
interrupted sync resumes where it stopped.
See the Technical Reference documentation (https://fivetran.com/docs/connectors/connector-sdk/technical-reference)
and the Best Practices documentation (https://fivetran.com/docs/connectors/connector-sdk/best-practices) for details
"""

# For reading configuration from a JSON file and serializing nested values
import json

# For regular expressions used to derive table names
import re

# For tracking the time window of each sync
from datetime import datetime, timezone

# For type hints
from typing import Any, Dict, Optional

# Import required classes from fivetran_connector_sdk
from fivetran_connector_sdk import Connector

# For enabling Logs in your connector code
from fivetran_connector_sdk import Logging as log

# For supporting Data operations like upsert(), update(), delete() and checkpoint()
from fivetran_connector_sdk import Operations as op

# Read pipeline, provider tables and configuration handling
from rest_sync.config import SyncConfig, parse_configuration, validate_configuration
from rest_sync.incremental import parse_timestamp
from rest_sync.params import ReadParams
from rest_sync.provider import Provider, ValueType, list_object_metadata
from rest_sync.providers import get_provider
from rest_sync.reader import HTTPReader
from rest_sync.transport import HTTPTransport

__COLUMN_TYPES = {
    ValueType.STRING: "STRING",
    ValueType.SINGLE_SELECT: "STRING",
    ValueType.INT: "LONG",
    ValueType.FLOAT: "DOUBLE",
    ValueType.BOOLEAN: "BOOLEAN",
    ValueType.MULTI_SELECT: "JSON",
}


def table_name(object_name: str) -> str:
    """Destination table for an object, e.g. authorizationServers -> authorization_servers, contact/all -> contact_all."""
    snake = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", object_name).lower()
    return re.sub(r"[^0-9a-z_]+", "_", snake).strip("_")


def schema(configuration: dict):
    """
    Define the schema function which lets you configure the schema your connector delivers.
    See the technical reference documentation for more details on the schema function:
    https://fivetran.com/docs/connectors/connector-sdk/technical-reference#schema
    Only primary keys and provider custom fields are declared; other column types are inferred from the data.
    Args:
        configuration: a dictionary that holds the configuration settings for the connector.
    """
    validate_configuration(configuration=configuration)
    config = parse_configuration(configuration)
    provider = get_provider(config.provider)

    custom_columns: Dict[str, Dict[str, str]] = {}
    if provider.custom_fields is not None:
        transport = HTTPTransport(provider.auth_headers(config.api_token), config.request_timeout_seconds)
        try:
            metadata = list_object_metadata(provider, transport, config.base_url, config.objects)
        finally:
            transport.close()

        for object_name, object_metadata in metadata.result.items():
            custom_columns[object_name] = {
                name: __COLUMN_TYPES[field.value_type]
                for name, field in object_metadata.fields.items()
                if field.value_type in __COLUMN_TYPES
            }

    tables = []
    for object_name in config.objects:
        table = {
            "table": table_name(object_name),
            "primary_key": [provider.schema.lookup(object_name).primary_key],
        }
        if custom_columns.get(object_name):
            table["columns"] = custom_columns[object_name]
        tables.append(table)
    return tables


def update(configuration: dict, state: dict):
    """
     Define the update function, which is a required function, and is called by Fivetran during each sync.
    See the technical reference documentation for more details on the update function
    https://fivetran.com/docs/connectors/connector-sdk/technical-reference#update
    Args:
        configuration: A dictionary containing connection details
        state: A dictionary containing state information from previous runs
        The state dictionary is empty for the first sync or for any full re-sync
    """
    # Validate the configuration to ensure it contains all required values.
    validate_configuration(configuration=configuration)
    config = parse_configuration(configuration)
    provider = get_provider(config.provider)

    log.info(f"Syncing {len(config.objects)} {config.provider} object(s): {', '.join(config.objects)}")

    transport = HTTPTransport(provider.auth_headers(config.api_token), config.request_timeout_seconds)
    reader = provider.reader(transport, config.base_url)
    new_state = dict(state) if state else {}
    sync_started_at = datetime.now(timezone.utc)

    try:
        for object_name in config.objects:
            sync_object(reader, provider, config, object_name, new_state, sync_started_at)
    except Exception as e:
        log.severe(f"Failed to sync data from {config.provider}", e)
        # In case of an exception, raise a runtime error
        raise RuntimeError(f"Failed to sync data: {str(e)}") from e
    finally:
        transport.close()


def sync_object(
    reader: HTTPReader,
    provider: Provider,
    config: SyncConfig,
    object_name: str,
    state: Dict[str, Any],
    sync_started_at: datetime,
) -> int:
    """
    Read every page of one object and upsert its records.
    The state of an object holds either a finished sync's cursor, or the next page URL together with the
    time window of the sync in progress, which must be reused unchanged when resuming.
    Args:
        reader: the provider's read pipeline.
        provider: the provider the object belongs to.
        config: the parsed connector configuration.
        object_name: the object to sync.
        state: the connector state, updated in place and checkpointed after every page.
        sync_started_at: upper bound of the time window for incremental syncs.
    Returns:
        The number of records upserted.
    """
    object_state = dict(state.get(object_name) or {})
    cursor = object_state.get("cursor")
    next_page = object_state.get("next_page", "")

    if next_page:
        since = _state_time(object_state.get("since"))
        window_end = _state_time(object_state.get("window_end")) or sync_started_at
        log.info(f"Resuming '{object_name}' from {next_page}")
    else:
        since = _state_time(cursor) or config.initial_sync_start
        window_end = sync_started_at

    # Every sync is bounded by the end of its window, a full sync only lacks the lower bound
    until = window_end

    table = table_name(object_name)
    fields = list(provider.schema.default_fields(object_name))
    upserted = 0

    # Pagination loop: every page is requested from the token computed on the previous one
    while True:
        result = reader.read(
            ReadParams(
                object_name=object_name,
                fields=fields,
                since=since,
                until=until,
                page_size=config.page_size,
                next_page=next_page,
            )
        )

        for row in result.data:
            # The 'upsert' operation is used to insert or update data in the destination table.
            # The first argument is the name of the destination table.
            # The second argument is a dictionary containing the record to be upserted.
            op.upsert(table=table, data=to_destination_row(row.raw))
        upserted += result.rows

        if result.done:
            object_state = {"cursor": window_end.isoformat()}
        else:
            object_state = {
                "cursor": cursor,
                "next_page": result.next_page,
                "since": since.isoformat() if since else None,
                "window_end": window_end.isoformat(),
            }
        state[object_name] = object_state

        # Save the progress by checkpointing the state. This is important for ensuring that the sync process can resume
        # from the correct position in case of next sync or interruptions.
        # Learn more about how and where to checkpoint by reading our best practices documentation
        # (https://fivetran.com/docs/connectors/connector-sdk/best-practices#largedatasetrecommendation).
        op.checkpoint(state=state)

        if result.done:
            break
        next_page = result.next_page

    log.info(f"Synced {upserted} record(s) of '{object_name}' into table '{table}'")
    return upserted


def to_destination_row(record: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize nested lists and objects to JSON strings so every value maps to a destination column."""
    row = {}
    for key, value in record.items():
        if isinstance(value, (dict, list)):
            row[key] = json.dumps(value)
        else:
            row[key] = value
    return row


def _state_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return parse_timestamp(value, field="state")


# Create the connector object using the schema and update functions
connector = Connector(update=update, schema=schema)

# Check if the script is being run as the main module.
# This is Python's standard entry method allowing your script to be run directly from the command line or IDE 'run' button.
# This is useful for debugging while you write your code. Note this method is not called by Fivetran when executing your connector in production.
# Please test using the Fivetran debug command prior to finalizing and deploying your connector.
if __name__ == "__main__":
    # Open the configuration.json file and load its contents
    with open("configuration.json", "r") as f:
        configuration = json.load(f)

    # Test the connector locally
    connector.debug(configuration=configuration)
