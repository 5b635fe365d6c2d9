import logging
import uuid

from vmstore.core.errors import ConflictError, InvalidIntentError, SerializationError
from vmstore.core.models.record import Action, Record
from vmstore.core.ports.serializer import Serializer
from vmstore.core.ports.store import KeyValueStore, Transaction
from vmstore.core.repository.keys import KeyCodec
from vmstore.core.repository.reader import RecordReader


class CommitProtocol:
    """
    Applies the intent declared on a record to the store using optimistic
    concurrency control.

    The store offers no multi-row transactions. Conflicts are detected with
    a per-record version token and the store's watch/conditional-execute
    primitive:

    - create: watch the key, fail if it already exists, then write inside
      the conditional transaction. A concurrent create landing between the
      existence check and the write aborts the transaction.
    - update: watch the key, re-read the persisted version and fail if it
      differs from the version the caller loaded. The write is then
      submitted as a conditional transaction which the store aborts if the
      key was modified after the watch was registered.
    - delete: unconditional, no conflict detection.

    Every conflict is reported as ConflictError. No operation is retried.
    """

    def __init__(
        self,
        store: KeyValueStore,
        serializer: Serializer,
        reader: RecordReader,
    ) -> None:
        self._store = store
        self._serializer = serializer
        self._reader = reader
        self._logger = logging.getLogger("core.repository.commit")

    async def commit(self, collection: str, record: Record) -> Record:
        key = KeyCodec.record_key(collection, record.id)

        match record.action:
            case Action.delete:
                await self._delete(key, record)
            case Action.create:
                await self._create(collection, key, record)
            case Action.update:
                await self._update(collection, key, record)
            case _:
                raise InvalidIntentError(
                    f"Cannot commit '{key}' with action '{record.action}'. "
                    "Declare create, update or delete first."
                )

        return record

    async def _delete(self, key: str, record: Record) -> None:
        await self._store.delete(key)
        record.version = None
        record.action = Action.none
        self._logger.debug(f"Deleted {key}")

    async def _create(self, collection: str, key: str, record: Record) -> None:
        async with self._store.watch(key) as tx:
            if await self._store.exists(key):
                await tx.unwatch()
                self._logger.info(f"Create conflict on {key}: key already exists")
                raise ConflictError(key, "record already exists")

            await self._check_version(collection, key, record, tx)
            await self._write(key, record, tx)

        self._logger.debug(f"Created {key} at version {record.version}")

    async def _update(self, collection: str, key: str, record: Record) -> None:
        async with self._store.watch(key) as tx:
            await self._check_version(collection, key, record, tx)
            await self._write(key, record, tx)

        self._logger.debug(f"Updated {key} to version {record.version}")

    async def _check_version(
        self,
        collection: str,
        key: str,
        record: Record,
        tx: Transaction,
    ) -> None:
        saved = await self._reader.read(collection, record.id)
        if saved.version and record.version and saved.version != record.version:
            await tx.unwatch()
            self._logger.info(
                f"Version conflict on {key}: "
                f"expected {record.version}, found {saved.version}"
            )
            raise ConflictError(key, "record was modified by another writer")

    async def _write(self, key: str, record: Record, tx: Transaction) -> None:
        previous = record.version
        record.version = uuid.uuid4().hex

        try:
            data = self._serializer.serialize(record.to_payload())
        except SerializationError:
            record.version = previous
            await tx.unwatch()
            raise

        replies = await tx.execute([("set", key, data)])
        if not replies or replies[0] is not True:
            record.version = previous
            self._logger.info(f"Conditional write on {key} aborted by the store")
            raise ConflictError(key, "watched key changed before commit")

        record.action = Action.update
