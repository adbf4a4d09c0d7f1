"""Destination configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from mongo_destination.errors import ConfigurationError
from mongo_destination.policy import InsertPolicy, PersistencePolicy, UpsertByFilter, UpsertByKey


@dataclass(frozen=True, slots=True)
class DestinationConfig:
    """Configuration for MongoDestination.

    Durations are kept as text and parsed during initialize(), so an invalid
    expression is reported by initialize() rather than at construction.

    Attributes:
        uri: MongoDB connection URI.
        database_name: Target database.
        collection_name: Target collection.
        connection_timeout: Bound for opening the connection (e.g. "10s").
        query_timeout: Bound for ping, index creation and each persisted batch.
        policy: Persistence policy (default: plain insert).
        app_name: Application name reported to the server.
    """

    uri: str
    database_name: str
    collection_name: str
    connection_timeout: str = "10s"
    query_timeout: str = "10s"
    policy: PersistencePolicy = field(default_factory=InsertPolicy)
    app_name: str = "mongo-destination"

    def __post_init__(self) -> None:
        if not self.uri:
            raise ConfigurationError("Connection URI is required")
        if not self.database_name:
            raise ConfigurationError("Database name is required")
        if not self.collection_name:
            raise ConfigurationError("Collection name is required")
        if not isinstance(self.policy, (InsertPolicy, UpsertByFilter, UpsertByKey)):
            raise ConfigurationError(
                f"Unsupported persistence policy {type(self.policy).__name__}"
            )

    @classmethod
    def from_env(
        cls,
        policy: PersistencePolicy | None = None,
        uri: str | None = None,
        database_name: str | None = None,
        collection_name: str | None = None,
        connection_timeout: str | None = None,
        query_timeout: str | None = None,
        app_name: str | None = None,
    ) -> DestinationConfig:
        """Build a configuration from environment variables.

        Explicit arguments take precedence over the environment.

        Environment:
            MONGO_DESTINATION_URI (default "mongodb://localhost:27017")
            MONGO_DESTINATION_DATABASE
            MONGO_DESTINATION_COLLECTION
            MONGO_DESTINATION_CONNECTION_TIMEOUT (default "10s")
            MONGO_DESTINATION_QUERY_TIMEOUT (default "10s")
            MONGO_DESTINATION_APP_NAME (default "mongo-destination")
        """
        return cls(
            uri=uri or os.getenv("MONGO_DESTINATION_URI", "mongodb://localhost:27017"),
            database_name=database_name or os.getenv("MONGO_DESTINATION_DATABASE", ""),
            collection_name=collection_name or os.getenv("MONGO_DESTINATION_COLLECTION", ""),
            connection_timeout=connection_timeout
            or os.getenv("MONGO_DESTINATION_CONNECTION_TIMEOUT", "10s"),
            query_timeout=query_timeout or os.getenv("MONGO_DESTINATION_QUERY_TIMEOUT", "10s"),
            policy=policy or InsertPolicy(),
            app_name=app_name or os.getenv("MONGO_DESTINATION_APP_NAME", "mongo-destination"),
        )
