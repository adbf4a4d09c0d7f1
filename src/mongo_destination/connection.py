"""Connection lifecycle for the destination: connect, ping, bind collection."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pymongo import AsyncMongoClient, ReadPreference
from pymongo.errors import PyMongoError

from mongo_destination.config import DestinationConfig
from mongo_destination.errors import ConnectivityError, DestinationConnectionError

ClientFactory = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class ConnectionHandle:
    """Live client and resolved collection, shared read-only by all persist calls.

    Attributes:
        client: The async MongoDB client.
        collection: Collection bound to the configured database and collection names.
    """

    client: Any
    collection: Any

    async def close(self) -> None:
        """Close the underlying client and release its connection pool."""
        await self.client.close()


async def open_connection(
    config: DestinationConfig,
    connection_timeout: float,
    query_timeout: float,
    client_factory: ClientFactory = AsyncMongoClient,
) -> ConnectionHandle:
    """Open and verify a connection, then bind the target collection.

    The connect and ping steps are bounded separately, so the call may take
    up to connection_timeout + query_timeout. The client is closed if either
    step fails or the call is cancelled.

    Args:
        config: Destination configuration.
        connection_timeout: Seconds allowed for establishing the connection.
        query_timeout: Seconds allowed for the liveness ping.
        client_factory: Callable building the client; AsyncMongoClient by default.

    Returns:
        A ConnectionHandle ready for index provisioning and writes.

    Raises:
        DestinationConnectionError: If the connection is refused or times out.
        ConnectivityError: If the primary does not answer the ping in time.
    """
    timeout_ms = max(1, int(connection_timeout * 1000))
    try:
        client = client_factory(
            config.uri,
            appname=config.app_name,
            connectTimeoutMS=timeout_ms,
            serverSelectionTimeoutMS=timeout_ms,
        )
    except (PyMongoError, ValueError, TypeError) as exc:
        raise DestinationConnectionError(
            "Failed to create MongoDB client", details=str(exc)
        ) from exc

    try:
        await _connect(client, connection_timeout)
        await _ping(client, query_timeout)
    except BaseException:
        # Cancellation included: never leave a half-open client behind.
        await client.close()
        raise

    # Local binding only; no round trip.
    collection = client[config.database_name][config.collection_name]
    return ConnectionHandle(client=client, collection=collection)


async def _connect(client: Any, timeout: float) -> None:
    try:
        await asyncio.wait_for(client.aconnect(), timeout=timeout)
    except TimeoutError as exc:
        raise DestinationConnectionError(f"Timed out connecting to MongoDB after {timeout}s") from exc
    except PyMongoError as exc:
        raise DestinationConnectionError("Failed to connect to MongoDB", details=str(exc)) from exc


async def _ping(client: Any, timeout: float) -> None:
    try:
        await asyncio.wait_for(
            client.admin.command("ping", read_preference=ReadPreference.PRIMARY),
            timeout=timeout,
        )
    except TimeoutError as exc:
        raise ConnectivityError(f"Primary did not answer ping within {timeout}s") from exc
    except PyMongoError as exc:
        raise ConnectivityError("Ping against the primary failed", details=str(exc)) from exc
