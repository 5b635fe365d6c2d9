from typing import Protocol, Any


class Serializer(Protocol):
    """
    Defines the interface for encoding/decoding record payloads stored
    in the key-value store.

    Implementations must be:
    - pure (no side effects)
    - lossless for plain strings and datetime values (a date may come back
      as the datetime of its midnight)
    - safe against malformed input: decoding failures are reported as
      SerializationError, never as a partially decoded value
    """

    def serialize(self, message: Any) -> bytes:
        """Encode a Python object into bytes suitable for storage."""

    def deserialize(self, data: bytes) -> Any:
        """Decode bytes read from the store into a Python object."""
