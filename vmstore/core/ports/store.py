from typing import Any, AsyncContextManager, Protocol

Command = tuple[Any, ...]


class Transaction(Protocol):
    """
    A conditional transaction bound to one watched key.

    The transaction is obtained from KeyValueStore.watch(). Reads issued
    while it is open do not cancel the watch. If anybody modifies the
    watched key before execute() runs, the store must refuse to apply the
    queued commands.
    """

    async def unwatch(self) -> None:
        """
        Abandon the transaction. After this call execute() must not be
        used. Unwatching an already finished transaction is a no-op.
        """

    async def execute(self, commands: list[Command]) -> list[Any] | None:
        """
        Atomically apply `commands` if the watched key was not modified
        since the watch was registered.

        Each command is a tuple whose first item is the command name
        ("set" or "delete") followed by its arguments, e.g.
        ("set", "users:1", b"..."). Returns the list of per-command
        replies on success, or None when the transaction was aborted.
        """


class KeyValueStore(Protocol):
    """
    Minimal asynchronous interface of the key-value store used by the
    repository layer.

    Keys are strings, values are opaque bytes. The interface mirrors the
    primitives exposed by Redis: atomic counters, cursor-based scans,
    a blocking key listing and watch-based conditional transactions.
    Implementations may provide stronger guarantees, but callers must not
    rely on anything beyond the behavior described here.
    """

    async def connect(self) -> None:
        """
        Establish the connection and verify the server answers.
        Calling connect() on an already connected store is a no-op.
        """

    async def close(self) -> None:
        """
        Release all underlying resources (sockets, file handles, thread
        pools). After calling close(), the instance must not be used again
        until connect() is called.
        """

    async def get(self, key: str) -> bytes | None:
        """
        Retrieve the value stored under `key`. Returns None if the key
        does not exist. Implementations must not raise for missing keys.
        """

    async def set(self, key: str, value: bytes) -> None:
        """Store `value` under `key`, replacing any previous value."""

    async def delete(self, *keys: str) -> int:
        """
        Remove the given keys and return how many of them existed.
        Missing keys are ignored silently.
        """

    async def exists(self, key: str) -> bool:
        """Return True if `key` currently holds a value."""

    async def incr(self, key: str) -> int:
        """
        Atomically increment the integer counter stored under `key` and
        return the new value. A missing counter starts from 0.
        """

    async def scan(
        self,
        cursor: str,
        match: str,
        count: int | None = None,
    ) -> tuple[str, list[str]]:
        """
        Return one page of keys matching the glob-style `match` pattern.

        The first call uses cursor "0". Each call returns the cursor of the
        next page; the cursor "0" signals that the iteration is complete.
        A page may be empty while the cursor is not terminal. `count` is
        a hint for the amount of work done per call, not a page size.
        Keys may be reported more than once if the keyspace changes during
        the iteration.
        """

    async def keys(self, pattern: str) -> list[str]:
        """
        Return every key matching `pattern` in a single call.

        This walks the whole keyspace before answering and may block the
        store for a long time on large datasets.
        """

    def watch(self, key: str) -> AsyncContextManager[Transaction]:
        """
        Register a watch on `key` and return a context manager yielding
        the Transaction. Leaving the context releases the watch.
        """
