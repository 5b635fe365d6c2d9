import logging

from vmstore.core.ports.store import KeyValueStore
from vmstore.core.repository.keys import KeyCodec


class IdAllocator:
    """
    Issues monotonically increasing identifiers per collection.

    Each call atomically increments the counter stored under
    `nextItemId:<collection>`, so concurrent callers (in this process or
    any other client of the same store) never receive the same id.
    Store errors are propagated unchanged and never retried.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._logger = logging.getLogger("core.repository.allocator")

    async def allocate(self, collection: str) -> str:
        value = await self._store.incr(KeyCodec.counter_key(collection))
        self._logger.debug(f"Allocated id {value} in collection {collection}")
        return str(value)

    async def reset(self, collection: str) -> None:
        await self._store.delete(KeyCodec.counter_key(collection))
