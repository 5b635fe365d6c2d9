import asyncio
import logging
from typing import Any

from vmstore.core.errors import SerializationError
from vmstore.core.models.record import Action, Record
from vmstore.core.ports.serializer import Serializer
from vmstore.core.ports.store import KeyValueStore
from vmstore.core.repository.keys import KeyCodec
from vmstore.core.repository.scanner import KeyspaceScanner


class RecordReader:
    """
    Loads records from the store and wraps them with their persisted state.

    A record read from the store carries the version it was persisted with
    and the `update` action, so the caller can mutate it and commit it back
    as a conditional write. A missing key yields a placeholder record with
    the `none` action: the caller must explicitly declare `create` before
    committing it.
    """

    def __init__(
        self,
        store: KeyValueStore,
        serializer: Serializer,
        scanner: KeyspaceScanner,
    ) -> None:
        self._store = store
        self._serializer = serializer
        self._scanner = scanner
        self._logger = logging.getLogger("core.repository.reader")

    async def read(self, collection: str, record_id: str) -> Record:
        record = await self.load(KeyCodec.record_key(collection, record_id))
        if record is None:
            return Record(id=record_id, action=Action.none)
        return record

    async def load(self, key: str) -> Record | None:
        data = await self._store.get(key)
        if data is None:
            return None
        return self._decode(key, data)

    async def find_all(
        self,
        collection: str,
        skip: int | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        """
        Return every record of the collection, in unspecified order.

        When both `skip` and `limit` are given, only the keys in the window
        [skip, skip + limit) of the scan order are read. Keys removed
        between the scan and the read are skipped.
        """
        if (skip is not None and skip < 0) or (limit is not None and limit < 0):
            raise ValueError(f"skip and limit must not be negative, got {skip} and {limit}")

        keys = await self._scanner.keys(KeyCodec.collection_pattern(collection))

        if skip is not None and limit is not None:
            keys = keys[skip:skip + limit]

        records = await asyncio.gather(*(self.load(key) for key in keys))
        found = [record for record in records if record is not None]

        if len(found) != len(keys):
            vanished = [
                KeyCodec.parse_record_key(collection, key)
                for key, record in zip(keys, records)
                if record is None
            ]
            self._logger.debug(f"Records {vanished} of {collection} vanished during find")

        return found

    async def find_one(self, collection: str) -> Record | None:
        key = await self._scanner.first(KeyCodec.collection_pattern(collection))
        if key is None:
            return None
        return await self.load(key)

    def _decode(self, key: str, data: bytes) -> Record:
        payload: Any = self._serializer.deserialize(data)
        if not isinstance(payload, dict) or Record.ID_FIELD not in payload:
            raise SerializationError(f"Stored value of '{key}' is not a record")
        return Record.from_payload(payload, action=Action.update)
