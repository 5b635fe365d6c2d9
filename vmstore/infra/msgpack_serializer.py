import msgpack
from datetime import date, datetime
from typing import Any

from vmstore.core.errors import SerializationError
from vmstore.core.ports.serializer import Serializer


class MsgPackSerializer(Serializer):
    """
    MsgPack-based implementation of the Serializer interface.

    - compact binary encoding
    - fast
    - date and datetime values are kept as extension types holding their
      ISO-8601 text, so they decode back to the same Python type
    """
    DATETIME_EXT = 1
    DATE_EXT = 2

    def serialize(self, message: Any) -> bytes:
        try:
            return msgpack.packb(message, use_bin_type=True, default=self._default)
        except (TypeError, ValueError, OverflowError) as ex:
            raise SerializationError(f"Cannot encode value as msgpack: {ex}") from ex

    def deserialize(self, data: bytes) -> Any:
        try:
            return msgpack.unpackb(data, raw=False, ext_hook=self._ext_hook)
        except (ValueError, TypeError, msgpack.UnpackException) as ex:
            raise SerializationError(f"Cannot decode msgpack payload: {ex}") from ex

    @classmethod
    def _default(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return msgpack.ExtType(cls.DATETIME_EXT, value.isoformat().encode())
        if isinstance(value, date):
            return msgpack.ExtType(cls.DATE_EXT, value.isoformat().encode())
        raise TypeError(f"Object of type {type(value).__name__} is not msgpack serializable")

    @classmethod
    def _ext_hook(cls, code: int, data: bytes) -> Any:
        if code == cls.DATETIME_EXT:
            return datetime.fromisoformat(data.decode())
        if code == cls.DATE_EXT:
            return date.fromisoformat(data.decode())
        return msgpack.ExtType(code, data)
