import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, TypeVar

import lmdb

from vmstore.core.errors import NotConnectedError, StoreError
from vmstore.core.ports.store import Command, Transaction
from vmstore.infra.lmdb_store.backend import LMDBBackend

T = TypeVar("T")


class LMDBTransaction(Transaction):
    def __init__(self, store: "LMDBStore", watched: dict[bytes, int]) -> None:
        self._store = store
        self._watched = watched
        self._done = False

    async def unwatch(self) -> None:
        self._done = True

    async def execute(self, commands: list[Command]) -> list[Any] | None:
        if self._done:
            raise RuntimeError("Transaction already executed or unwatched")
        self._done = True

        encoded = [
            (name, *(self._store.encode_arg(arg) for arg in args))
            for name, *args in commands
        ]
        return await self._store.run_write(
            self._store.backend.commit, self._watched, encoded
        )


class LMDBStore:
    """
    Embedded KeyValueStore on top of LMDB.

    Blocking LMDB calls run on dedicated thread pools: several readers and
    a single writer, which serializes every write transaction. The store
    has no native watch primitive; watch() snapshots the key's modification
    counter and execute() re-checks it inside the write transaction that
    applies the commands (see LMDBBackend.commit).

    Scan cursors are the hex encoding of the next key to examine, "0"
    marking both the start and the end of an iteration.
    """
    DEFAULT_SCAN_COUNT = 10

    def __init__(
        self,
        path: Path | str,
        map_size: int = 1 << 30,
        readahead: bool = True,
        writemap: bool = False,
        sync: bool = True,
        lock: bool = True,
        max_readers: int = 4,
    ) -> None:
        self._path = Path(path)
        self._map_size = map_size
        self._readahead = readahead
        self._writemap = writemap
        self._sync = sync
        self._lock = lock
        self._max_readers = max_readers

        self._backend: LMDBBackend | None = None
        self._read_pool: ThreadPoolExecutor | None = None
        self._write_pool: ThreadPoolExecutor | None = None
        self._logger = logging.getLogger("infra.lmdb_store")

    @property
    def backend(self) -> LMDBBackend:
        if self._backend is None:
            raise NotConnectedError("LMDB store is not open")
        return self._backend

    async def connect(self) -> None:
        if self._backend is not None:
            return

        def open_backend() -> LMDBBackend:
            self._path.mkdir(parents=True, exist_ok=True)
            return LMDBBackend(
                path=str(self._path),
                map_size=self._map_size,
                readahead=self._readahead,
                writemap=self._writemap,
                sync=self._sync,
                lock=self._lock,
            )

        try:
            self._backend = await asyncio.to_thread(open_backend)
        except lmdb.Error as ex:
            raise StoreError(f"Cannot open LMDB environment at {self._path}: {ex}") from ex

        self._read_pool = ThreadPoolExecutor(max_workers=self._max_readers)
        self._write_pool = ThreadPoolExecutor(max_workers=1)
        self._logger.info(f"Opened LMDB store at {self._path}")

    async def close(self) -> None:
        if self._backend is None:
            return

        backend, self._backend = self._backend, None
        read_pool, write_pool = self._read_pool, self._write_pool
        self._read_pool = self._write_pool = None

        def shutdown() -> None:
            read_pool.shutdown(wait=True)
            write_pool.shutdown(wait=True)
            backend.close()

        await asyncio.to_thread(shutdown)
        self._logger.info(f"Closed LMDB store at {self._path}")

    async def get(self, key: str) -> bytes | None:
        return await self.run_read(self.backend.get, key.encode())

    async def set(self, key: str, value: bytes) -> None:
        await self.run_write(self.backend.set, key.encode(), value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.run_write(self.backend.delete, [k.encode() for k in keys])

    async def exists(self, key: str) -> bool:
        return await self.run_read(self.backend.exists, key.encode())

    async def incr(self, key: str) -> int:
        return await self.run_write(self.backend.incr, key.encode())

    async def scan(
        self,
        cursor: str,
        match: str,
        count: int | None = None,
    ) -> tuple[str, list[str]]:
        start = None if cursor == "0" else bytes.fromhex(cursor)
        keys, next_start = await self.run_read(
            self.backend.scan, match, start, count or self.DEFAULT_SCAN_COUNT
        )
        next_cursor = "0" if next_start is None else next_start.hex()
        return next_cursor, [k.decode("utf-8") for k in keys]

    async def keys(self, pattern: str) -> list[str]:
        keys = await self.run_read(self.backend.keys, pattern)
        return [k.decode("utf-8") for k in keys]

    @asynccontextmanager
    async def watch(self, key: str) -> AsyncIterator[Transaction]:
        encoded = key.encode()
        rev = await self.run_read(self.backend.revision, encoded)
        tx = LMDBTransaction(self, {encoded: rev})
        try:
            yield tx
        finally:
            await tx.unwatch()

    async def run_read(self, func: Callable[..., T], *args: Any) -> T:
        return await self._run(self._read_pool, func, *args)

    async def run_write(self, func: Callable[..., T], *args: Any) -> T:
        return await self._run(self._write_pool, func, *args)

    @staticmethod
    def encode_arg(arg: Any) -> Any:
        return arg.encode() if isinstance(arg, str) else arg

    async def _run(
        self,
        pool: ThreadPoolExecutor | None,
        func: Callable[..., T],
        *args: Any,
    ) -> T:
        if pool is None:
            raise NotConnectedError("LMDB store is not open")

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(pool, func, *args)
        except (lmdb.Error, ValueError) as ex:
            raise StoreError(f"LMDB {func.__name__} failed: {ex}") from ex
