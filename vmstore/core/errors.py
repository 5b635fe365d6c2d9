class VmstoreError(Exception):
    """Base class for every error raised by the repository layer."""


class ConflictError(VmstoreError):
    """
    Optimistic-lock violation.

    Raised when a create targets an id that already exists, or when an
    update carries a version that no longer matches the persisted one
    (or its conditional transaction was aborted by the store). It is always
    safe to retry after re-reading the current record.
    """

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Concurrent modification of '{key}': {reason}")
        self.key = key
        self.reason = reason


class NotConnectedError(VmstoreError):
    """The repository was used before connect() or after disconnect()."""


class SerializationError(VmstoreError):
    """A stored payload could not be decoded, or a value could not be encoded."""


class StoreError(VmstoreError):
    """Failure reported by the underlying key-value store."""


class InvalidIntentError(VmstoreError):
    """commit() was called on a record with no declared action."""
