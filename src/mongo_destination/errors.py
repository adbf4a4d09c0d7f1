"""Error taxonomy for the MongoDB destination.

Every failure surfaced by the destination derives from DestinationError so the
caller's error handler can catch them with a single except clause while still
telling connection trouble apart from bad data.
"""

from __future__ import annotations


class DestinationError(Exception):
    """Base exception for all destination errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context about the error (optional).
    """

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}\nDetails: {self.details}"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(DestinationError):
    """Raised when destination configuration is invalid (bad durations, policy parameters)."""

    pass


class InitializationError(DestinationError):
    """Base exception for failures raised while initializing the destination.

    Attributes:
        stage: Lifecycle stage that failed ("connect", "ping" or "index").
    """

    stage = "initialize"


class DestinationConnectionError(InitializationError):
    """Raised when the store cannot be reached or the connection times out."""

    stage = "connect"


class ConnectivityError(InitializationError):
    """Raised when the liveness ping against the primary fails."""

    stage = "ping"


class IndexCreationError(InitializationError):
    """Raised when the indexes a policy requires cannot be created."""

    stage = "index"


class UninitializedError(DestinationError):
    """Raised when persist() is called before a successful initialize()."""

    pass


class SerializationError(DestinationError):
    """Raised when a record cannot be converted into a store document.

    Attributes:
        position: Index of the offending record within its batch, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        details: str | None = None,
        position: int | None = None,
    ) -> None:
        if position is not None:
            message = f"{message} (record {position})"
        super().__init__(message, details=details)
        self.position = position


class MissingFilterFieldError(SerializationError):
    """Raised when a record lacks a field the upsert filter is built from."""

    def __init__(self, field: str, *, position: int | None = None) -> None:
        super().__init__(f"Record is missing filter field '{field}'", position=position)
        self.field = field


class WriteError(DestinationError):
    """Base exception for writes the store rejected."""

    pass


class InsertError(WriteError):
    """Raised when the store rejects a multi-document insert.

    Attributes:
        inserted_count: Documents the store reported as committed before the failure.
    """

    def __init__(
        self,
        message: str = "Insert rejected by the store",
        *,
        details: str | None = None,
        inserted_count: int = 0,
    ) -> None:
        super().__init__(message, details=details)
        self.inserted_count = inserted_count


class UpsertError(WriteError):
    """Raised when the store rejects an upsert; earlier records in the batch stand.

    Attributes:
        position: Index of the record whose upsert failed.
        applied_count: Records upserted before the failure.
    """

    def __init__(self, position: int, *, details: str | None = None) -> None:
        super().__init__(f"Upsert rejected by the store at record {position}", details=details)
        self.position = position
        self.applied_count = position


class PersistTimeoutError(DestinationError, TimeoutError):
    """Raised when a batch exceeds the query timeout.

    Writes acknowledged before the deadline remain in the store.

    Attributes:
        applied_count: Records known to be applied before the deadline.
    """

    def __init__(
        self,
        message: str = "Batch exceeded the query timeout",
        *,
        details: str | None = None,
        applied_count: int = 0,
    ) -> None:
        super().__init__(message, details=details)
        self.applied_count = applied_count
