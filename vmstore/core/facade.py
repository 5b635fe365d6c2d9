import asyncio
import logging

from vmstore.core.errors import NotConnectedError
from vmstore.core.models.record import Record
from vmstore.core.ports.serializer import Serializer
from vmstore.core.ports.store import KeyValueStore
from vmstore.core.repository.allocator import IdAllocator
from vmstore.core.repository.commit import CommitProtocol
from vmstore.core.repository.reader import RecordReader
from vmstore.core.repository.registry import CollectionCleaner, CollectionRegistry
from vmstore.core.repository.scanner import KeyspaceScanner


class ViewRepository:
    """
    Entry point of the projection store.

    Owns the store connection and wires the components working on top of
    it. Records are accessed through per-collection handles returned by
    collection(); every handle shares this repository's connection and
    collection registry.
    """

    def __init__(
        self,
        store: KeyValueStore,
        serializer: Serializer,
        registry: CollectionRegistry | None = None,
        scan_count: int | None = None,
    ) -> None:
        self._store = store
        self.registry = CollectionRegistry() if registry is None else registry
        self.connected = asyncio.Event()

        self.allocator = IdAllocator(store)
        self.scanner = KeyspaceScanner(store, count=scan_count)
        self.reader = RecordReader(store, serializer, self.scanner)
        self.committer = CommitProtocol(store, serializer, self.reader)
        self.cleaner = CollectionCleaner(store, self.allocator, self.registry)

        self._logger = logging.getLogger("core.facade")

    async def __aenter__(self) -> "ViewRepository":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        if self.connected.is_set():
            return

        await self._store.connect()
        self.connected.set()
        self._logger.info("Connected to the key-value store")

    async def disconnect(self) -> None:
        if not self.connected.is_set():
            return

        self.connected.clear()
        await self._store.close()
        self._logger.info("Disconnected from the key-value store")

    def collection(self, name: str) -> "CollectionRepository":
        if not name:
            raise ValueError("Collection name must not be empty")
        return CollectionRepository(self, name)

    async def clear_all(self) -> None:
        self.check_connection()
        await self.cleaner.clear_all()

    def check_connection(self, collection: str | None = None) -> None:
        if collection is not None and self.registry.register(collection):
            self._logger.debug(f"Registered collection {collection}")

        if not self.connected.is_set():
            raise NotConnectedError("Repository is not connected, call connect() first")


class CollectionRepository:
    """Operations on the records of a single collection."""

    def __init__(self, repository: ViewRepository, name: str) -> None:
        self._repository = repository
        self.name = name

    async def next_id(self) -> str:
        self._repository.check_connection(self.name)
        return await self._repository.allocator.allocate(self.name)

    async def get(self, record_id: str | None = None) -> Record:
        """
        Load the record `record_id`.

        Without an id (None or empty), a new id is allocated first (which
        increments the collection counter in the store) and an empty
        placeholder is returned.
        """
        self._repository.check_connection(self.name)
        if not record_id:
            record_id = await self._repository.allocator.allocate(self.name)
        return await self._repository.reader.read(self.name, record_id)

    async def find(self, skip: int | None = None, limit: int | None = None) -> list[Record]:
        self._repository.check_connection(self.name)
        return await self._repository.reader.find_all(self.name, skip=skip, limit=limit)

    async def find_one(self) -> Record | None:
        self._repository.check_connection(self.name)
        return await self._repository.reader.find_one(self.name)

    async def commit(self, record: Record) -> Record:
        self._repository.check_connection(self.name)
        return await self._repository.committer.commit(self.name, record)

    async def clear(self) -> int:
        self._repository.check_connection(self.name)
        return await self._repository.cleaner.clear(self.name)
