"""Persistence policies and index declarations.

A destination is parameterized by exactly one policy, selected at construction:

- InsertPolicy: every record becomes a new document.
- UpsertByFilter: records are merged onto the document matching the values of
  a fixed set of filter fields.
- UpsertByKey: records are merged onto the document sharing a single unique
  identifier field, enforced by a managed unique index.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pymongo import ASCENDING, DESCENDING, GEO2D, GEOSPHERE, HASHED, TEXT, IndexModel

from mongo_destination.errors import ConfigurationError

_KEY_TYPES = (ASCENDING, DESCENDING, HASHED, TEXT, GEOSPHERE, GEO2D)
_RESERVED_OPTIONS = frozenset({"unique", "sparse", "name"})


@dataclass(frozen=True, slots=True)
class IndexSpec:
    """Declaration of an index to create during initialization.

    Attributes:
        keys: Ordered (field, type) pairs; type is ASCENDING, DESCENDING,
            HASHED, TEXT, GEOSPHERE or GEO2D.
        unique: Whether the index enforces uniqueness.
        name: Optional index name; the store derives one when omitted.
        sparse: Whether documents lacking the indexed fields are skipped.
        options: Further createIndexes options passed through to the store,
            e.g. expireAfterSeconds or partialFilterExpression.
    """

    keys: tuple[tuple[str, int | str], ...]
    unique: bool = False
    name: str | None = None
    sparse: bool = False
    options: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "keys", tuple(tuple(key) for key in self.keys))
        object.__setattr__(self, "options", dict(self.options))
        if not self.keys:
            raise ConfigurationError("IndexSpec requires at least one key")
        for key in self.keys:
            if len(key) != 2:
                raise ConfigurationError(f"Index key {key!r} must be a (field, direction) pair")
            key_field, direction = key
            if not isinstance(key_field, str) or not key_field:
                raise ConfigurationError(f"Invalid index field {key_field!r}")
            if isinstance(direction, bool) or direction not in _KEY_TYPES:
                raise ConfigurationError(
                    f"Invalid direction {direction!r} for index field '{key_field}'",
                    details="Use pymongo.ASCENDING, DESCENDING, HASHED, TEXT, GEOSPHERE or GEO2D",
                )
        for option in self.options:
            if not isinstance(option, str) or not option:
                raise ConfigurationError(f"Invalid index option {option!r}")
            if option in _RESERVED_OPTIONS:
                raise ConfigurationError(
                    f"Index option '{option}' must be set through its own attribute"
                )

    def to_index_model(self) -> IndexModel:
        """Build the driver index model for this declaration."""
        options: dict[str, Any] = dict(self.options)
        if self.unique:
            options["unique"] = True
        if self.sparse:
            options["sparse"] = True
        if self.name is not None:
            options["name"] = self.name
        return IndexModel(list(self.keys), **options)


@dataclass(frozen=True, slots=True)
class InsertPolicy:
    """Plain multi-document insert, no managed indexes."""

    @property
    def name(self) -> str:
        return "insert"


@dataclass(frozen=True, slots=True)
class UpsertByFilter:
    """Upsert keyed on the values of several filter fields.

    Attributes:
        fields: Field names that jointly identify at most one document.
        indexes: Index declarations created during initialization (may be empty).
    """

    fields: tuple[str, ...]
    indexes: tuple[IndexSpec, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable of names but store an immutable tuple.
        if isinstance(self.fields, str):
            raise ConfigurationError("UpsertByFilter fields must be a sequence of names, not a string")
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "indexes", tuple(self.indexes))

        if not self.fields:
            raise ConfigurationError("UpsertByFilter requires at least one filter field")
        for name in self.fields:
            if not isinstance(name, str) or not name:
                raise ConfigurationError(f"Invalid filter field {name!r}")
        if len(set(self.fields)) != len(self.fields):
            raise ConfigurationError(f"Duplicate filter fields in {list(self.fields)}")
        for spec in self.indexes:
            if not isinstance(spec, IndexSpec):
                raise ConfigurationError(f"Index declarations must be IndexSpec, got {type(spec).__name__}")

    @property
    def name(self) -> str:
        return "upsert_by_filter"


@dataclass(frozen=True, slots=True)
class UpsertByKey:
    """Upsert keyed on a single identifier field backed by a unique index.

    Attributes:
        field: The identifier field name.
    """

    field: str

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field:
            raise ConfigurationError(f"Invalid unique key field {self.field!r}")

    @property
    def name(self) -> str:
        return "upsert_by_key"

    @property
    def fields(self) -> tuple[str, ...]:
        """Filter fields for the key, as a one-element tuple."""
        return (self.field,)


PersistencePolicy = InsertPolicy | UpsertByFilter | UpsertByKey
