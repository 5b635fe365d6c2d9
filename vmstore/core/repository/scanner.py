import logging
from typing import AsyncGenerator

from vmstore.core.ports.store import KeyValueStore


class KeyspaceScanner:
    """
    Walks the keys matching a glob pattern with the store's cursor scan.

    Pages are requested one at a time: the next scan call is issued only
    once the consumer asks for the next batch, so a slow consumer (e.g. one
    that fetches every value of a batch) never has more than one request
    outstanding against the store. The scan is best-effort over a keyspace
    that may change concurrently: keys can appear in more than one batch.
    """
    START_CURSOR = "0"
    END_CURSOR = "0"

    def __init__(self, store: KeyValueStore, count: int | None = None) -> None:
        self._store = store
        self._count = count
        self._logger = logging.getLogger("core.repository.scanner")

    async def batches(self, pattern: str) -> AsyncGenerator[list[str], None]:
        """
        Yield every non-empty batch of keys matching `pattern`.

        Each call starts a fresh scan from the initial cursor. Any error
        raised by the store aborts the iteration and reaches the consumer.
        """
        cursor = self.START_CURSOR
        pages = 0

        while True:
            cursor, keys = await self._store.scan(cursor, pattern, self._count)
            pages += 1

            if keys:
                yield keys

            if cursor == self.END_CURSOR:
                break

        self._logger.debug(f"Scan of {pattern} completed after {pages} page(s)")

    async def keys(self, pattern: str) -> list[str]:
        found: list[str] = []
        async for batch in self.batches(pattern):
            found.extend(batch)
        return found

    async def first(self, pattern: str) -> str | None:
        """
        Return the first key of the first non-empty batch, or None.

        This is whatever the store happens to report first; it is neither
        the oldest nor the lowest key.
        """
        batches = self.batches(pattern)
        try:
            async for batch in batches:
                return batch[0]
        finally:
            await batches.aclose()
        return None
