import json
import re
from datetime import date, datetime, time
from typing import Any

from vmstore.core.errors import SerializationError
from vmstore.core.ports.serializer import Serializer

_DATETIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})?$"
)


class JsonDateSerializer(Serializer):
    """
    UTF-8 JSON implementation of the Serializer interface.

    - datetime values are written as ISO-8601 timestamps; a date is
      written as the timestamp of its midnight and reads back as a datetime
    - any string shaped like a full ISO-8601 timestamp is read back as a
      datetime, at any nesting depth. Bare date strings stay text.
    - human readable, so records can be inspected with any store client
    """

    def serialize(self, message: Any) -> bytes:
        try:
            return json.dumps(
                message,
                default=self._encode_default,
                separators=(",", ":"),
                ensure_ascii=False,
            ).encode("utf-8")
        except (TypeError, ValueError) as ex:
            raise SerializationError(f"Cannot encode value as JSON: {ex}") from ex

    def deserialize(self, data: bytes) -> Any:
        try:
            decoded = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as ex:
            raise SerializationError(f"Cannot decode JSON payload: {ex}") from ex
        return self._revive(decoded)

    @staticmethod
    def _encode_default(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, date):
            return datetime.combine(value, time()).isoformat()
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    @classmethod
    def _revive(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: cls._revive(v) for k, v in value.items()}
        if isinstance(value, list):
            return [cls._revive(v) for v in value]
        if isinstance(value, str):
            return cls._parse_temporal(value)
        return value

    @staticmethod
    def _parse_temporal(value: str) -> Any:
        if not _DATETIME_RE.match(value):
            return value
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            # Looks like a timestamp but is not one (e.g. month 13): keep the text.
            return value
