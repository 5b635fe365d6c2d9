import functools
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import RedisError, WatchError

from vmstore.core.errors import NotConnectedError, StoreError
from vmstore.core.ports.store import Command, Transaction


def translate_errors(func):
    """Re-raise redis client failures as StoreError, keeping the cause."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except RedisError as ex:
            raise StoreError(f"Redis {func.__name__} failed: {ex}") from ex

    return wrapper


class RedisTransaction(Transaction):
    _COMMANDS = frozenset({"set", "delete"})

    def __init__(self, pipe: Pipeline) -> None:
        self._pipe = pipe

    @translate_errors
    async def unwatch(self) -> None:
        await self._pipe.unwatch()

    async def execute(self, commands: list[Command]) -> list[Any] | None:
        for name, *_ in commands:
            if name not in self._COMMANDS:
                raise ValueError(f"Unsupported transaction command '{name}'")

        self._pipe.multi()
        for name, *args in commands:
            getattr(self._pipe, name)(*args)

        try:
            return await self._pipe.execute()
        except WatchError:
            return None
        except RedisError as ex:
            raise StoreError(f"Redis transaction failed: {ex}") from ex


class RedisStore:
    """
    KeyValueStore backed by a Redis server through redis-py's asyncio client.

    The client keeps a connection pool: plain commands share pooled
    connections while each watch() holds a dedicated connection until its
    transaction completes, so concurrent commits do not see each other's
    WATCH state. Reconnection is handled by the client itself.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        username: str | None = None,
        password: str | None = None,
        socket_path: str | None = None,
        **client_options: Any,
    ) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._username = username
        self._password = password
        self._socket_path = socket_path
        self._client_options = client_options
        self._client: Redis | None = None
        self._logger = logging.getLogger("infra.redis_store")

    @property
    def client(self) -> Redis:
        if self._client is None:
            raise NotConnectedError("Redis store is not connected")
        return self._client

    @translate_errors
    async def connect(self) -> None:
        if self._client is not None:
            return

        client = self._create_client()
        try:
            await client.ping()
        except RedisError:
            await client.aclose()
            raise

        self._client = client
        self._logger.info(f"Connected to Redis at {self._describe()}")

    async def close(self) -> None:
        if self._client is None:
            return

        client, self._client = self._client, None
        await client.aclose()
        self._logger.info(f"Closed Redis connection to {self._describe()}")

    @translate_errors
    async def get(self, key: str) -> bytes | None:
        return await self.client.get(key)

    @translate_errors
    async def set(self, key: str, value: bytes) -> None:
        await self.client.set(key, value)

    @translate_errors
    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.client.delete(*keys)

    @translate_errors
    async def exists(self, key: str) -> bool:
        return await self.client.exists(key) > 0

    @translate_errors
    async def incr(self, key: str) -> int:
        return await self.client.incr(key)

    @translate_errors
    async def scan(
        self,
        cursor: str,
        match: str,
        count: int | None = None,
    ) -> tuple[str, list[str]]:
        next_cursor, keys = await self.client.scan(
            cursor=int(cursor), match=match, count=count
        )
        return str(next_cursor), [self._decode_key(k) for k in keys]

    @translate_errors
    async def keys(self, pattern: str) -> list[str]:
        return [self._decode_key(k) for k in await self.client.keys(pattern)]

    @asynccontextmanager
    async def watch(self, key: str) -> AsyncIterator[Transaction]:
        async with self.client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(key)
            except RedisError as ex:
                raise StoreError(f"Redis watch failed: {ex}") from ex
            yield RedisTransaction(pipe)

    def _create_client(self) -> Redis:
        if self._socket_path:
            return Redis(
                unix_socket_path=self._socket_path,
                db=self._db,
                username=self._username,
                password=self._password,
                **self._client_options,
            )

        return Redis(
            host=self._host,
            port=self._port,
            db=self._db,
            username=self._username,
            password=self._password,
            **self._client_options,
        )

    def _describe(self) -> str:
        if self._socket_path:
            return f"{self._socket_path} (db {self._db})"
        return f"{self._host}:{self._port} (db {self._db})"

    @staticmethod
    def _decode_key(key: bytes | str) -> str:
        return key.decode("utf-8") if isinstance(key, bytes) else key
