"""Ordered, byte keyed key/value stores backing the registry.

The registry only needs point reads and writes, ordered prefix iteration and
a way to group a set of writes atomically. `SqliteKeyValueStore` persists the
data in a single table of a SQLite database file, and `InMemoryKeyValueStore`
keeps it in a dictionary for tests.
"""

from abc import ABC, abstractmethod
from collections.abc import Generator
import contextlib
import logging
from pathlib import Path
import sqlite3

from apm.exceptions import StorageError

__all__ = [
    "KeyValueStore",
    "SqliteKeyValueStore",
    "InMemoryKeyValueStore",
]

_LOGGER = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key BLOB PRIMARY KEY NOT NULL,
    value BLOB NOT NULL
) WITHOUT ROWID
"""


def prefix_upper_bound(prefix: bytes) -> bytes | None:
    """Return the smallest key greater than every key starting with prefix."""
    trimmed = prefix.rstrip(b"\xff")
    if not trimmed:
        return None
    return trimmed[:-1] + bytes([trimmed[-1] + 1])


class KeyValueStore(ABC):
    """An ordered key/value store with atomic write groups."""

    @abstractmethod
    def get(self, key: bytes) -> bytes | None:
        """Return the value for the key, or None if it does not exist."""

    @abstractmethod
    def put(self, key: bytes, value: bytes) -> None:
        """Write the value for the key."""

    @abstractmethod
    def delete(self, key: bytes) -> None:
        """Delete the key. Deleting a missing key is not an error."""

    @abstractmethod
    def has(self, key: bytes) -> bool:
        """Return True if the key exists."""

    @abstractmethod
    def iterate(self, prefix: bytes = b"") -> list[tuple[bytes, bytes]]:
        """Return a snapshot of all entries starting with prefix in key order."""

    @abstractmethod
    def transaction(self) -> contextlib.AbstractContextManager[None]:
        """Group all writes in the context so they are applied atomically.

        Writes are visible to reads made inside the context. If the context
        exits with an exception, none of the writes are applied. Nested
        transactions join the outermost one.
        """

    def close(self) -> None:
        """Release any resources held by the store."""


class SqliteKeyValueStore(KeyValueStore):
    """Key/value store persisted in a SQLite database file."""

    def __init__(self, path: Path) -> None:
        """Open (creating if needed) the database at the given path."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(path), isolation_level=None)
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA synchronous = NORMAL")
            self._conn.execute(_SCHEMA)
        except (OSError, sqlite3.Error) as err:
            raise StorageError(f"Failed to open database {path}: {err}") from err
        self._path = path
        self._depth = 0
        _LOGGER.debug("Opened database %s", path)

    def get(self, key: bytes) -> bytes | None:
        try:
            row = self._conn.execute(
                "SELECT value FROM kv WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as err:
            raise StorageError(f"Failed to read {key!r}: {err}") from err
        return bytes(row[0]) if row is not None else None

    def put(self, key: bytes, value: bytes) -> None:
        try:
            self._conn.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
            )
        except sqlite3.Error as err:
            raise StorageError(f"Failed to write {key!r}: {err}") from err

    def delete(self, key: bytes) -> None:
        try:
            self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as err:
            raise StorageError(f"Failed to delete {key!r}: {err}") from err

    def has(self, key: bytes) -> bool:
        try:
            row = self._conn.execute(
                "SELECT 1 FROM kv WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as err:
            raise StorageError(f"Failed to read {key!r}: {err}") from err
        return row is not None

    def iterate(self, prefix: bytes = b"") -> list[tuple[bytes, bytes]]:
        # BLOB comparison in SQLite is memcmp, so this is byte order.
        query = "SELECT key, value FROM kv WHERE key >= ?"
        params: tuple[bytes, ...] = (prefix,)
        if (upper := prefix_upper_bound(prefix)) is not None:
            query += " AND key < ?"
            params = (prefix, upper)
        query += " ORDER BY key"
        try:
            rows = self._conn.execute(query, params).fetchall()
        except sqlite3.Error as err:
            raise StorageError(f"Failed to iterate {prefix!r}: {err}") from err
        return [(bytes(key), bytes(value)) for key, value in rows]

    @contextlib.contextmanager
    def transaction(self) -> Generator[None, None, None]:
        if self._depth > 0:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        try:
            self._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as err:
            raise StorageError(f"Failed to start transaction: {err}") from err
        self._depth = 1
        try:
            yield
        except BaseException:
            self._depth = 0
            self._conn.execute("ROLLBACK")
            raise
        self._depth = 0
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error as err:
            self._conn.execute("ROLLBACK")
            raise StorageError(f"Failed to commit transaction: {err}") from err

    def close(self) -> None:
        _LOGGER.debug("Closing database %s", self._path)
        self._conn.close()


class InMemoryKeyValueStore(KeyValueStore):
    """Key/value store held in memory."""

    def __init__(self) -> None:
        self._data: dict[bytes, bytes] = {}
        self._snapshot: dict[bytes, bytes] | None = None

    def get(self, key: bytes) -> bytes | None:
        return self._data.get(key)

    def put(self, key: bytes, value: bytes) -> None:
        self._data[key] = bytes(value)

    def delete(self, key: bytes) -> None:
        self._data.pop(key, None)

    def has(self, key: bytes) -> bool:
        return key in self._data

    def iterate(self, prefix: bytes = b"") -> list[tuple[bytes, bytes]]:
        return [
            (key, self._data[key])
            for key in sorted(self._data)
            if key.startswith(prefix)
        ]

    @contextlib.contextmanager
    def transaction(self) -> Generator[None, None, None]:
        if self._snapshot is not None:
            yield
            return
        self._snapshot = dict(self._data)
        try:
            yield
        except BaseException:
            self._data = self._snapshot
            raise
        finally:
            self._snapshot = None
