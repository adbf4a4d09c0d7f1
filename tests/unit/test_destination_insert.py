"""Tests for the plain insert policy."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from fake_mongo import FakeCollection, FakeMongoServer
from pymongo.errors import NetworkTimeout, OperationFailure

from mongo_destination import (
    IndexSpec,
    InsertError,
    MongoDestination,
    PersistTimeoutError,
    SerializationError,
)


def strip_ids(documents: list[dict]) -> list[dict]:
    return [{k: v for k, v in document.items() if k != "_id"} for document in documents]


class TestInsertPolicy:
    """Test cases for persisting with InsertPolicy."""

    @pytest.mark.asyncio
    async def test_inserts_every_record(
        self,
        make_destination: Callable[..., MongoDestination],
        fake_collection: FakeCollection,
    ) -> None:
        """N records yield N documents equal to their sources, ignoring the store id."""
        records = [
            {"name": "Ada", "langs": ["en", "fr"]},
            {"name": "Grace", "meta": {"navy": True}},
            {"count": 3},
        ]
        destination = make_destination()
        await destination.initialize()

        applied = await destination.persist(records)

        assert applied == 3
        assert strip_ids(fake_collection.documents) == records
        assert all("_id" in document for document in fake_collection.documents)

    @pytest.mark.asyncio
    async def test_records_not_mutated(
        self,
        make_destination: Callable[..., MongoDestination],
    ) -> None:
        """The store-assigned id lands on the document, never on the caller's record."""
        record = {"name": "Ada"}
        destination = make_destination()
        await destination.initialize()

        await destination.persist([record])

        assert record == {"name": "Ada"}

    @pytest.mark.asyncio
    async def test_repeated_persist_appends(
        self,
        make_destination: Callable[..., MongoDestination],
        fake_collection: FakeCollection,
    ) -> None:
        destination = make_destination()
        await destination.initialize()

        await destination.persist([{"a": 1}])
        await destination.persist([{"a": 1}])

        assert len(fake_collection.documents) == 2

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(
        self,
        make_destination: Callable[..., MongoDestination],
        fake_collection: FakeCollection,
    ) -> None:
        destination = make_destination()
        await destination.initialize()

        assert await destination.persist([]) == 0
        assert fake_collection.documents == []

    @pytest.mark.asyncio
    async def test_conversion_failure_writes_nothing(
        self,
        make_destination: Callable[..., MongoDestination],
        fake_collection: FakeCollection,
    ) -> None:
        destination = make_destination()
        await destination.initialize()

        with pytest.raises(SerializationError) as exc_info:
            await destination.persist([{"a": 1}, {"b": 2}, {"c": object()}])

        assert exc_info.value.position == 2
        assert fake_collection.documents == []

    @pytest.mark.asyncio
    async def test_store_rejection_reports_partial_insert(
        self,
        make_destination: Callable[..., MongoDestination],
        fake_collection: FakeCollection,
    ) -> None:
        """Ordered insert stops at the violating document; earlier ones stay committed."""
        fake_collection.indexes["email_1"] = IndexSpec(keys=(("email", 1),), unique=True).to_index_model().document
        destination = make_destination()
        await destination.initialize()

        with pytest.raises(InsertError) as exc_info:
            await destination.persist(
                [{"email": "a@example.com"}, {"email": "b@example.com"}, {"email": "a@example.com"}]
            )

        assert exc_info.value.inserted_count == 2
        assert "code=11000" in str(exc_info.value)
        assert strip_ids(fake_collection.documents) == [{"email": "a@example.com"}, {"email": "b@example.com"}]

    @pytest.mark.asyncio
    async def test_driver_failure_is_insert_error(
        self,
        make_destination: Callable[..., MongoDestination],
    ) -> None:
        destination = make_destination()
        await destination.initialize()
        destination.collection.insert_many = AsyncMock(side_effect=OperationFailure("not primary", 10107))

        with pytest.raises(InsertError):
            await destination.persist([{"a": 1}])

    @pytest.mark.asyncio
    async def test_driver_timeout_is_timeout_error(
        self,
        make_destination: Callable[..., MongoDestination],
    ) -> None:
        destination = make_destination()
        await destination.initialize()
        destination.collection.insert_many = AsyncMock(side_effect=NetworkTimeout("timed out"))

        with pytest.raises(PersistTimeoutError):
            await destination.persist([{"a": 1}])

    @pytest.mark.asyncio
    async def test_batch_exceeding_query_timeout(
        self,
        make_destination: Callable[..., MongoDestination],
        fake_server: FakeMongoServer,
        fake_collection: FakeCollection,
    ) -> None:
        destination = make_destination(query_timeout="50ms")
        await destination.initialize()
        fake_server.op_delay = 1.0

        with pytest.raises(TimeoutError) as exc_info:
            await destination.persist([{"a": 1}])

        assert isinstance(exc_info.value, PersistTimeoutError)
        assert fake_collection.documents == []
