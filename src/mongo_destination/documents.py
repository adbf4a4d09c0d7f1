"""Pure conversion from loosely-typed records to store documents."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import bson
from bson.errors import BSONError

from mongo_destination.errors import MissingFilterFieldError, SerializationError

Record = Mapping[str, Any]


def to_document(record: Record, position: int | None = None) -> dict[str, Any]:
    """Convert a record into a store-native document.

    The record is encoded to BSON and decoded back, so the result holds only
    values the store can represent and shares no references with the caller's
    record.

    Args:
        record: Mapping of field name to value.
        position: Index of the record within its batch, used in errors.

    Returns:
        A new document.

    Raises:
        SerializationError: If the record is not a mapping, has non-text keys,
            or holds a value that cannot be encoded.
    """
    if not isinstance(record, Mapping):
        raise SerializationError(
            f"Record must be a mapping, got {type(record).__name__}", position=position
        )
    try:
        return bson.decode(bson.encode(record))
    except (BSONError, OverflowError, TypeError, ValueError) as exc:
        raise SerializationError(
            "Record cannot be encoded as a document", details=str(exc), position=position
        ) from exc


def to_documents(batch: Sequence[Record]) -> list[dict[str, Any]]:
    """Convert every record in a batch, failing on the first that cannot be converted."""
    return [to_document(record, position) for position, record in enumerate(batch)]


def build_filter(
    document: Mapping[str, Any],
    fields: Sequence[str],
    position: int | None = None,
) -> dict[str, Any]:
    """Build an equality filter from the document's values for the given fields.

    Each value is wrapped in $eq, so a value that is itself a mapping with
    operator-shaped keys (e.g. {"$gt": 0}) is compared literally rather than
    interpreted as a query operator.

    Raises:
        MissingFilterFieldError: If the document lacks any of the fields.
    """
    query: dict[str, Any] = {}
    for name in fields:
        if name not in document:
            raise MissingFilterFieldError(name, position=position)
        query[name] = {"$eq": document[name]}
    return query


def build_update(document: Mapping[str, Any]) -> dict[str, Any]:
    """Build a set-style update: fields absent from the document are left untouched.

    $set treats a dotted key such as "a.b" as a path into an embedded
    document, whereas an insert stores it as a literal field name.
    """
    return {"$set": dict(document)}
