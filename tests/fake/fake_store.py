import asyncio
import fnmatch
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable

from vmstore.core.ports.store import Command, KeyValueStore, Transaction


class FakeTransaction(Transaction):
    def __init__(self, store: "FakeKeyValueStore", key: str) -> None:
        self._store = store
        self._key = key
        self._rev = store.revision(key)
        self.unwatched = False

    async def unwatch(self) -> None:
        self.unwatched = True

    async def execute(self, commands: list[Command]) -> list[Any] | None:
        if self._store.before_execute is not None:
            hook, self._store.before_execute = self._store.before_execute, None
            await hook()

        if self._store.abort_transactions or self._store.revision(self._key) != self._rev:
            return None

        replies: list[Any] = []
        for name, *args in commands:
            if name == "set":
                self._store.put(*args)
                replies.append(True)
            elif name == "delete":
                replies.append(self._store.remove(*args))
        return replies


class FakeKeyValueStore(KeyValueStore):
    """
    A simple in-memory store for testing.
    It mimics the Redis semantics the repository relies on: counters,
    cursor scans over the whole keyspace (pages may be empty), and
    watch-based transactions that abort when the watched key changed.
    """

    def __init__(self, page_size: int = 2) -> None:
        self._data: dict[str, bytes] = {}
        self._revs: dict[str, int] = {}
        self.page_size = page_size
        self.connected = False
        self.scan_calls = 0
        self.keys_calls = 0
        self.scan_error: Exception | None = None
        self.abort_transactions = False
        self.before_execute: Callable[[], Awaitable[None]] | None = None
        self.transactions: list[FakeTransaction] = []

    def revision(self, key: str) -> int:
        return self._revs.get(key, 0)

    def put(self, key: str, value: bytes) -> None:
        self._data[key] = value
        self._revs[key] = self.revision(key) + 1

    def remove(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                self._revs[key] = self.revision(key) + 1
                removed += 1
        return removed

    def dump(self) -> dict[str, bytes]:
        return dict(self._data)

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def get(self, key: str) -> bytes | None:
        await asyncio.sleep(0)
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self.put(key, value)

    async def delete(self, *keys: str) -> int:
        return self.remove(*keys)

    async def exists(self, key: str) -> bool:
        return key in self._data

    async def incr(self, key: str) -> int:
        await asyncio.sleep(0)
        value = int(self._data.get(key, b"0")) + 1
        self.put(key, str(value).encode())
        return value

    async def scan(
        self,
        cursor: str,
        match: str,
        count: int | None = None,
    ) -> tuple[str, list[str]]:
        self.scan_calls += 1
        if self.scan_error is not None:
            raise self.scan_error

        keys = sorted(self._data)
        offset = int(cursor)
        page = keys[offset:offset + self.page_size]
        next_offset = offset + self.page_size
        next_cursor = "0" if next_offset >= len(keys) else str(next_offset)
        return next_cursor, [k for k in page if fnmatch.fnmatchcase(k, match)]

    async def keys(self, pattern: str) -> list[str]:
        self.keys_calls += 1
        return [k for k in self._data if fnmatch.fnmatchcase(k, pattern)]

    @asynccontextmanager
    async def watch(self, key: str) -> AsyncIterator[Transaction]:
        tx = FakeTransaction(self, key)
        self.transactions.append(tx)
        yield tx
