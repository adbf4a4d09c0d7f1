"""MongoDB destination adapter.

Persists batches of loosely-typed records into a MongoDB collection under one
of three policies: plain insert, upsert by filter fields, or upsert by a
single unique key.
"""

from mongo_destination.config import DestinationConfig
from mongo_destination.contracts import Destination, Source
from mongo_destination.destination import MongoDestination
from mongo_destination.durations import parse_duration
from mongo_destination.errors import (
    ConfigurationError,
    ConnectivityError,
    DestinationConnectionError,
    DestinationError,
    IndexCreationError,
    InitializationError,
    InsertError,
    MissingFilterFieldError,
    PersistTimeoutError,
    SerializationError,
    UninitializedError,
    UpsertError,
    WriteError,
)
from mongo_destination.policy import (
    IndexSpec,
    InsertPolicy,
    PersistencePolicy,
    UpsertByFilter,
    UpsertByKey,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ConnectivityError",
    "Destination",
    "DestinationConfig",
    "DestinationConnectionError",
    "DestinationError",
    "IndexCreationError",
    "IndexSpec",
    "InitializationError",
    "InsertError",
    "InsertPolicy",
    "MissingFilterFieldError",
    "MongoDestination",
    "PersistTimeoutError",
    "PersistencePolicy",
    "SerializationError",
    "Source",
    "UninitializedError",
    "UpsertByFilter",
    "UpsertByKey",
    "UpsertError",
    "WriteError",
    "parse_duration",
]
