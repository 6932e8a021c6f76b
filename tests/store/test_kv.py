"""Tests for the key/value stores."""

from pathlib import Path

import pytest

from apm.store import InMemoryKeyValueStore, KeyValueStore, SqliteKeyValueStore
from apm.store.kv import prefix_upper_bound


@pytest.fixture(name="store", params=["sqlite", "memory"])
def store_fixture(request: pytest.FixtureRequest, tmp_path: Path) -> KeyValueStore:
    """Create each key/value store implementation."""
    if request.param == "sqlite":
        store = SqliteKeyValueStore(tmp_path / "db" / "apm.db")
        request.addfinalizer(store.close)
        return store
    return InMemoryKeyValueStore()


def test_get_put_delete(store: KeyValueStore) -> None:
    """Test point reads and writes."""
    assert store.get(b"a") is None
    assert not store.has(b"a")

    store.put(b"a", b"1")
    assert store.get(b"a") == b"1"
    assert store.has(b"a")

    store.put(b"a", b"2")
    assert store.get(b"a") == b"2"

    store.delete(b"a")
    assert store.get(b"a") is None
    store.delete(b"a")


def test_iterate_prefix_in_key_order(store: KeyValueStore) -> None:
    """Test iteration only returns keys under the prefix, in byte order."""
    store.put(b"sources/b", b"2")
    store.put(b"sources/a", b"1")
    store.put(b"sources0", b"x")
    store.put(b"installed/a", b"y")
    store.put(b"sources/\xff", b"3")

    assert store.iterate(b"sources/") == [
        (b"sources/a", b"1"),
        (b"sources/b", b"2"),
        (b"sources/\xff", b"3"),
    ]
    assert [key for key, _ in store.iterate()] == [
        b"installed/a",
        b"sources/a",
        b"sources/b",
        b"sources/\xff",
        b"sources0",
    ]


def test_iterate_is_a_snapshot(store: KeyValueStore) -> None:
    """Test the store may be modified while consuming an iteration."""
    store.put(b"k/1", b"1")
    store.put(b"k/2", b"2")
    for key, _ in store.iterate(b"k/"):
        store.delete(key)
        store.put(b"k/3", b"3")
    assert store.iterate(b"k/") == [(b"k/3", b"3")]


def test_transaction_commit(store: KeyValueStore) -> None:
    """Test writes in a transaction are visible inside and after it."""
    with store.transaction():
        store.put(b"a", b"1")
        assert store.get(b"a") == b"1"
        with store.transaction():
            store.put(b"b", b"2")
    assert store.get(b"a") == b"1"
    assert store.get(b"b") == b"2"


def test_transaction_rollback(store: KeyValueStore) -> None:
    """Test no write in a failed transaction is applied."""
    store.put(b"a", b"1")
    with pytest.raises(RuntimeError, match="boom"):
        with store.transaction():
            store.put(b"a", b"2")
            store.delete(b"a")
            store.put(b"b", b"2")
            with store.transaction():
                store.put(b"c", b"3")
            raise RuntimeError("boom")

    assert store.get(b"a") == b"1"
    assert store.get(b"b") is None
    assert store.get(b"c") is None

    # The store remains usable after a rollback.
    with store.transaction():
        store.put(b"b", b"2")
    assert store.get(b"b") == b"2"


def test_sqlite_persists(tmp_path: Path) -> None:
    """Test data is still present when the database is reopened."""
    path = tmp_path / "apm.db"
    store = SqliteKeyValueStore(path)
    with store.transaction():
        store.put(b"sources/a", b"1")
    store.close()

    store = SqliteKeyValueStore(path)
    try:
        assert store.get(b"sources/a") == b"1"
    finally:
        store.close()


@pytest.mark.parametrize(
    ("prefix", "expected"),
    [
        (b"a/", b"a0"),
        (b"a\xff", b"b"),
        (b"\xff\xff", None),
        (b"", None),
    ],
)
def test_prefix_upper_bound(prefix: bytes, expected: bytes | None) -> None:
    """Test the exclusive upper bound of a prefix range."""
    assert prefix_upper_bound(prefix) == expected
