"""Protocols for the source/destination contract driven by an upstream mover."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from mongo_destination.documents import Record


@runtime_checkable
class Source(Protocol):
    """Protocol for components that produce batches of records.

    An empty batch signals the source is exhausted.
    """

    async def initialize(self) -> None:
        """Prepare the source for reading."""
        ...

    async def get_data(self) -> list[Record]:
        """Return the next batch of records."""
        ...


@runtime_checkable
class Destination(Protocol):
    """Protocol for components that persist batches of records.

    Example:
        >>> from mongo_destination import Destination, MongoDestination
        >>> issubclass(MongoDestination, Destination)
        True
    """

    async def initialize(self) -> None:
        """Prepare the destination; must complete before persist() is called."""
        ...

    async def persist(self, batch: Sequence[Record]) -> int:
        """Persist a batch. Returns the number of records applied."""
        ...
