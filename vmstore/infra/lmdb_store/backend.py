import fnmatch
from typing import Any

import lmdb


class LMDBBackend:
    """
    Synchronous LMDB engine behind LMDBStore.

    Two named databases are used:
    - `data`: user key -> value (counters are stored as ASCII integers)
    - `rev`: user key -> modification counter (8 bytes, big endian)

    Every write bumps the modification counter of the keys it touches,
    including deletions. A watched key is considered unchanged as long as
    its counter still holds the value observed when the watch was taken,
    which lets commit() implement watch/conditional-execute on top of a
    single LMDB write transaction.
    """
    DATA_DB = b"data"
    REV_DB = b"rev"
    REV_SIZE = 8

    def __init__(
        self,
        path: str,
        map_size: int = 1 << 30,
        readahead: bool = True,
        writemap: bool = False,
        sync: bool = True,
        lock: bool = True,
    ) -> None:
        self._env = lmdb.open(
            path,
            map_size=map_size,
            max_dbs=2,
            lock=lock,
            writemap=writemap,
            sync=sync,
            readahead=readahead,
        )
        # Opened once up front: open_db cannot run inside another write transaction.
        self._dbis = {
            name: self._env.open_db(name) for name in (self.DATA_DB, self.REV_DB)
        }

    def get(self, key: bytes) -> bytes | None:
        with self._env.begin(db=self._get_dbi(self.DATA_DB), write=False) as txn:
            return txn.get(key)

    def exists(self, key: bytes) -> bool:
        return self.get(key) is not None

    def revision(self, key: bytes) -> int:
        with self._env.begin(db=self._get_dbi(self.REV_DB), write=False) as txn:
            return self._read_rev(txn, key)

    def set(self, key: bytes, value: bytes) -> bool:
        with self._env.begin(write=True) as txn:
            return self._apply_set(txn, key, value)

    def delete(self, keys: list[bytes]) -> int:
        with self._env.begin(write=True) as txn:
            return sum(self._apply_delete(txn, key) for key in keys)

    def incr(self, key: bytes) -> int:
        data = self._get_dbi(self.DATA_DB)
        with self._env.begin(write=True) as txn:
            raw = txn.get(key, db=data)
            try:
                value = int(raw) + 1 if raw is not None else 1
            except ValueError:
                raise ValueError(f"Value of {key!r} is not an integer") from None
            self._apply_set(txn, key, str(value).encode())
            return value

    def commit(
        self,
        watched: dict[bytes, int],
        commands: list[tuple[Any, ...]],
    ) -> list[Any] | None:
        """
        Apply `commands` if none of the watched keys changed.

        `watched` maps each key to the modification counter observed when
        the watch was registered. The check and the writes happen inside
        the same write transaction, so no other writer can slip in between.
        Returns the per-command replies, or None if a watched key changed.
        """
        with self._env.begin(write=True) as txn:
            for key, rev in watched.items():
                if self._read_rev(txn, key) != rev:
                    return None

            replies: list[Any] = []
            for name, *args in commands:
                if name == "set":
                    key, value = args
                    replies.append(self._apply_set(txn, key, value))
                elif name == "delete":
                    replies.append(sum(self._apply_delete(txn, k) for k in args))
                else:
                    raise ValueError(f"Unsupported transaction command '{name}'")
            return replies

    def scan(
        self,
        pattern: str,
        start: bytes | None = None,
        count: int = 10,
    ) -> tuple[list[bytes], bytes | None]:
        """
        Examine up to `count` keys in lexicographic order and return the
        ones matching the glob `pattern`.

        Parameters
        ----------
        pattern : str
            Glob-style pattern (`*`, `?`, `[...]`). Its literal prefix
            bounds the range of keys visited.

        start : bytes | None
            First key to examine. None starts at the literal prefix.

        count : int
            Number of keys examined per call. The returned list may hold
            fewer keys, possibly none.

        Returns
        -------
        (matched_keys, next_start)
            next_start is None once the range is exhausted.
        """
        prefix = self.literal_prefix(pattern).encode()
        matched: list[bytes] = []
        examined = 0

        with self._env.begin(write=False) as txn:
            with txn.cursor(db=self._get_dbi(self.DATA_DB)) as cursor:
                if not self._position(cursor, start if start is not None else prefix):
                    return matched, None

                while True:
                    key = cursor.key()
                    if not key.startswith(prefix):
                        return matched, None

                    if examined >= count:
                        return matched, key

                    examined += 1
                    if self.match(key, pattern):
                        matched.append(key)

                    if not cursor.next():
                        return matched, None

    def keys(self, pattern: str) -> list[bytes]:
        prefix = self.literal_prefix(pattern).encode()
        found: list[bytes] = []

        with self._env.begin(write=False) as txn:
            with txn.cursor(db=self._get_dbi(self.DATA_DB)) as cursor:
                if not self._position(cursor, prefix):
                    return found

                for key in cursor.iternext(keys=True, values=False):
                    if not key.startswith(prefix):
                        break
                    if self.match(key, pattern):
                        found.append(key)

        return found

    def close(self) -> None:
        self._dbis.clear()
        self._env.close()

    @staticmethod
    def literal_prefix(pattern: str) -> str:
        for i, char in enumerate(pattern):
            if char in "*?[\\":
                return pattern[:i]
        return pattern

    @staticmethod
    def match(key: bytes, pattern: str) -> bool:
        return fnmatch.fnmatchcase(key.decode("utf-8", errors="replace"), pattern)

    @staticmethod
    def _position(cursor: lmdb.Cursor, key: bytes) -> bool:
        if not key:
            return cursor.first()
        return cursor.set_range(key)

    def _apply_set(self, txn: lmdb.Transaction, key: bytes, value: bytes) -> bool:
        txn.put(key, value, db=self._get_dbi(self.DATA_DB))
        self._bump_rev(txn, key)
        return True

    def _apply_delete(self, txn: lmdb.Transaction, key: bytes) -> int:
        if not txn.delete(key, db=self._get_dbi(self.DATA_DB)):
            return 0
        self._bump_rev(txn, key)
        return 1

    def _bump_rev(self, txn: lmdb.Transaction, key: bytes) -> None:
        rev = self._read_rev(txn, key) + 1
        txn.put(key, rev.to_bytes(self.REV_SIZE, "big"), db=self._get_dbi(self.REV_DB))

    def _read_rev(self, txn: lmdb.Transaction, key: bytes) -> int:
        raw = txn.get(key, db=self._get_dbi(self.REV_DB))
        if raw is None:
            return 0
        return int.from_bytes(raw, "big")

    def _get_dbi(self, name: bytes) -> Any:
        return self._dbis[name]
