import asyncio
import logging

from vmstore.core.ports.store import KeyValueStore
from vmstore.core.repository.allocator import IdAllocator
from vmstore.core.repository.keys import KeyCodec


class CollectionRegistry:
    """
    Append-only set of the collection names touched through a repository.

    A registry is an explicit value: each ViewRepository creates its own
    unless one is injected. Passing the same registry to several
    repositories makes clear_all() on any of them cover every collection
    used by all of them, for as long as the registry object lives.
    """

    def __init__(self) -> None:
        self._collections: dict[str, None] = {}

    def __contains__(self, collection: object) -> bool:
        return collection in self._collections

    def __iter__(self):
        return iter(list(self._collections))

    def __len__(self) -> int:
        return len(self._collections)

    def register(self, collection: str) -> bool:
        """Record `collection`. Returns True the first time it is seen."""
        if collection in self._collections:
            return False
        self._collections[collection] = None
        return True


class CollectionCleaner:
    """
    Bulk deletion of collections.

    Keys are enumerated with a single non-paginated listing call rather
    than the cursor scan. The store answers only once it has walked the
    whole keyspace, which is acceptable for modest collections but may
    block the store for a long time on large ones.
    """

    def __init__(
        self,
        store: KeyValueStore,
        allocator: IdAllocator,
        registry: CollectionRegistry,
    ) -> None:
        self._store = store
        self._allocator = allocator
        self._registry = registry
        self._logger = logging.getLogger("core.repository.registry")

    async def clear(self, collection: str) -> int:
        keys = await self._store.keys(KeyCodec.collection_pattern(collection))
        if not keys:
            return 0

        deleted = sum(await asyncio.gather(*(self._store.delete(key) for key in keys)))
        self._logger.info(f"Cleared {deleted} record(s) from {collection}")
        return deleted

    async def clear_all(self) -> None:
        """Reset the id counter and delete every record of each known collection."""
        collections = list(self._registry)
        await asyncio.gather(*(self._reset(c) for c in collections))
        self._logger.info(f"Cleared {len(collections)} collection(s)")

    async def _reset(self, collection: str) -> None:
        await asyncio.gather(
            self._allocator.reset(collection),
            self.clear(collection),
        )
