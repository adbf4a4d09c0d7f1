"""Index provisioning for each persistence policy."""

from __future__ import annotations

import asyncio
from typing import Any

from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from mongo_destination.errors import IndexCreationError
from mongo_destination.policy import InsertPolicy, PersistencePolicy, UpsertByFilter, UpsertByKey


async def provision_indexes(
    collection: Any,
    policy: PersistencePolicy,
    timeout: float,
) -> list[str]:
    """Create the indexes the policy needs.

    UpsertByKey gets exactly one ascending unique index on its key field.
    UpsertByFilter gets its declared indexes in a single call, or nothing when
    none are declared. InsertPolicy needs none.

    Args:
        collection: Target collection.
        policy: The destination's persistence policy.
        timeout: Seconds allowed for index creation.

    Returns:
        Names of the created indexes.

    Raises:
        IndexCreationError: If the store rejects an index (for example, existing
            duplicates violate uniqueness) or creation times out.
    """
    if isinstance(policy, InsertPolicy):
        return []

    try:
        if isinstance(policy, UpsertByKey):
            name = await asyncio.wait_for(
                collection.create_index([(policy.field, ASCENDING)], unique=True),
                timeout=timeout,
            )
            return [name]

        if isinstance(policy, UpsertByFilter):
            if not policy.indexes:
                return []
            models = [spec.to_index_model() for spec in policy.indexes]
            return list(await asyncio.wait_for(collection.create_indexes(models), timeout=timeout))
    except TimeoutError as exc:
        raise IndexCreationError(f"Index creation exceeded {timeout}s") from exc
    except PyMongoError as exc:
        raise IndexCreationError(
            f"Failed to create indexes for policy '{policy.name}'", details=str(exc)
        ) from exc

    raise IndexCreationError(f"Unsupported persistence policy {type(policy).__name__}")
