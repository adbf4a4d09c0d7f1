"""MongoDB destination: connection lifecycle and policy-driven persistence."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Self

from pymongo import AsyncMongoClient
from pymongo.errors import BulkWriteError, PyMongoError

from mongo_destination.config import DestinationConfig
from mongo_destination.connection import ClientFactory, ConnectionHandle, open_connection
from mongo_destination.documents import Record, build_filter, build_update, to_documents
from mongo_destination.durations import parse_timeout
from mongo_destination.errors import (
    DestinationError,
    InsertError,
    PersistTimeoutError,
    UninitializedError,
    UpsertError,
)
from mongo_destination.indexes import provision_indexes
from mongo_destination.policy import InsertPolicy, PersistencePolicy


@dataclass(slots=True)
class BatchProgress:
    """Progress of one persist() call.

    Attributes:
        size: Number of records in the batch.
        applied: Records acknowledged by the store so far.
    """

    size: int
    applied: int = 0


class MongoDestination:
    """Destination that persists batches of records into a MongoDB collection.

    The destination is configured with one persistence policy, initialized
    once, then receives batches through persist(). Concurrent persist() calls
    share one connection handle; nothing serializes them, so two upserts
    racing on the same key are resolved by the store.

    Args:
        config: Destination configuration.
        client_factory: Callable building the driver client. Defaults to
            pymongo.AsyncMongoClient.

    Example:
        ```python
        config = DestinationConfig(
            uri="mongodb://localhost:27017",
            database_name="warehouse",
            collection_name="customers",
            policy=UpsertByKey("customer_id"),
        )
        async with MongoDestination(config) as destination:
            await destination.persist([{"customer_id": 7, "name": "Ada"}])
        ```
    """

    def __init__(
        self,
        config: DestinationConfig,
        client_factory: ClientFactory = AsyncMongoClient,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._handle: ConnectionHandle | None = None
        self._query_timeout: float | None = None
        self._logger = logging.getLogger(
            f"mongo_destination.{config.database_name}.{config.collection_name}"
        )

    async def __aenter__(self) -> Self:
        """Initialize the destination on context entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the destination on context exit."""
        await self.close()

    @property
    def config(self) -> DestinationConfig:
        """Destination configuration."""
        return self._config

    @property
    def policy(self) -> PersistencePolicy:
        """Configured persistence policy."""
        return self._config.policy

    @property
    def is_initialized(self) -> bool:
        """Check if initialize() completed and the destination accepts writes."""
        return self._handle is not None

    @property
    def query_timeout(self) -> float:
        """Query timeout in seconds, available after initialize()."""
        if self._query_timeout is None:
            raise UninitializedError("Destination not initialized. Call initialize() first.")
        return self._query_timeout

    @property
    def client(self) -> Any:
        """The live driver client."""
        return self._require_handle().client

    @property
    def collection(self) -> Any:
        """The bound target collection."""
        return self._require_handle().collection

    def _require_handle(self) -> ConnectionHandle:
        if self._handle is None:
            raise UninitializedError("Destination not initialized. Call initialize() first.")
        return self._handle

    def _log_event(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        """Log a lifecycle event as structured JSON."""
        if not self._logger.isEnabledFor(level):
            return
        log_entry = {
            "event": event,
            "database": self._config.database_name,
            "collection": self._config.collection_name,
            "policy": self._config.policy.name,
            "timestamp": datetime.now(UTC).isoformat(),
            **fields,
        }
        self._logger.log(level, json.dumps(log_entry, default=str))

    async def initialize(self) -> None:
        """Parse timeouts, connect, ping the primary, bind the collection and create indexes.

        The destination accepts writes only if every step succeeds; on any
        failure or cancellation the new client is closed. Calling initialize()
        again closes the previous connection and replaces it.

        Each step has its own bound: connecting uses the connection timeout,
        while the ping and index creation each use the query timeout. The call
        can therefore take up to connection_timeout + 2 * query_timeout.

        Raises:
            ConfigurationError: If a timeout is not a valid positive duration.
            DestinationConnectionError: If the store cannot be reached.
            ConnectivityError: If the primary does not answer the ping.
            IndexCreationError: If the policy's indexes cannot be created.
        """
        connection_timeout = parse_timeout(self._config.connection_timeout, "connection timeout")
        query_timeout = parse_timeout(self._config.query_timeout, "query timeout")

        if self._handle is not None:
            previous, self._handle = self._handle, None
            self._log_event("destination_reinitialized", logging.WARNING)
            await previous.close()

        handle = await open_connection(
            self._config,
            connection_timeout=connection_timeout,
            query_timeout=query_timeout,
            client_factory=self._client_factory,
        )
        try:
            index_names = await provision_indexes(handle.collection, self._config.policy, query_timeout)
        except BaseException:
            await handle.close()
            raise

        if index_names:
            self._log_event("indexes_provisioned", indexes=index_names)

        self._query_timeout = query_timeout
        self._handle = handle
        self._log_event(
            "destination_initialized",
            connection_timeout_s=connection_timeout,
            query_timeout_s=query_timeout,
        )

    async def persist(self, batch: Sequence[Record]) -> int:
        """Persist a batch of records under the configured policy.

        All documents, and filters for upsert policies, are built before the
        first write, so a record that cannot be converted aborts the batch
        with nothing written. The whole batch shares one query timeout.
        Writes acknowledged before a failure or timeout stay in the store.

        Upsert policies write through $set, which reads a dotted key such as
        "a.b" as a nested path; InsertPolicy stores the same key literally.

        Args:
            batch: Records to persist, in order.

        Returns:
            Number of records inserted or upserted.

        Raises:
            UninitializedError: If initialize() has not completed.
            SerializationError: If a record cannot be converted or lacks a filter field.
            InsertError: If the store rejects the insert.
            UpsertError: If the store rejects an upsert; earlier records stand.
            PersistTimeoutError: If the batch exceeds the query timeout.
        """
        handle = self._require_handle()
        if not batch:
            return 0

        policy = self._config.policy
        documents = to_documents(batch)
        operations: list[tuple[dict[str, Any], dict[str, Any]]] | None = None
        if not isinstance(policy, InsertPolicy):
            operations = [
                (build_filter(document, policy.fields, position), build_update(document))
                for position, document in enumerate(documents)
            ]

        progress = BatchProgress(size=len(documents))
        try:
            if operations is None:
                await asyncio.wait_for(
                    self._insert(handle.collection, documents, progress),
                    timeout=self.query_timeout,
                )
            else:
                await asyncio.wait_for(
                    self._upsert(handle.collection, operations, progress),
                    timeout=self.query_timeout,
                )
        except DestinationError as exc:
            self._log_event(
                "batch_failed",
                logging.WARNING,
                size=progress.size,
                applied=progress.applied,
                error=exc.message,
            )
            raise
        except TimeoutError as exc:
            self._log_event(
                "batch_failed",
                logging.WARNING,
                size=progress.size,
                applied=progress.applied,
                error="timeout",
            )
            raise PersistTimeoutError(
                f"Batch of {progress.size} records exceeded the query timeout "
                f"of {self.query_timeout}s",
                applied_count=progress.applied,
            ) from exc

        self._log_event("batch_persisted", logging.DEBUG, size=progress.size, applied=progress.applied)
        return progress.applied

    async def _insert(
        self,
        collection: Any,
        documents: list[dict[str, Any]],
        progress: BatchProgress,
    ) -> None:
        try:
            result = await collection.insert_many(documents, ordered=True)
        except BulkWriteError as exc:
            progress.applied = exc.details.get("nInserted", 0)
            raise InsertError(details=_describe(exc), inserted_count=progress.applied) from exc
        except PyMongoError as exc:
            if exc.timeout:
                raise PersistTimeoutError(details=str(exc)) from exc
            raise InsertError(details=str(exc)) from exc
        progress.applied = len(result.inserted_ids)

    async def _upsert(
        self,
        collection: Any,
        operations: list[tuple[dict[str, Any], dict[str, Any]]],
        progress: BatchProgress,
    ) -> None:
        """Apply upserts one round trip at a time, in input order, stopping at the first failure."""
        for position, (query, update) in enumerate(operations):
            try:
                await collection.update_one(query, update, upsert=True)
            except PyMongoError as exc:
                if exc.timeout:
                    raise PersistTimeoutError(details=str(exc), applied_count=position) from exc
                raise UpsertError(position, details=_describe(exc)) from exc
            progress.applied = position + 1

    async def close(self) -> None:
        """Close the connection. persist() raises UninitializedError afterwards."""
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        await handle.close()
        self._log_event("destination_closed")


def _describe(exc: PyMongoError) -> str:
    """Summarize a driver error, leading with the server error code."""
    if isinstance(exc, BulkWriteError):
        write_errors = exc.details.get("writeErrors", [])
        if write_errors:
            first = write_errors[0]
            return f"code={first.get('code')} index={first.get('index')} errmsg={first.get('errmsg')}"
    code = getattr(exc, "code", None)
    if code is not None:
        return f"code={code} {exc}"
    return str(exc)
