"""Typed storage over a prefix of the key/value store."""

from collections.abc import Iterator
from dataclasses import dataclass
import logging
from typing import Generic, TypeVar

from mashumaro.codecs.yaml import yaml_decode, yaml_encode
import yaml

from apm.exceptions import NotFoundError, StorageError

from .kv import KeyValueStore

__all__ = [
    "Storage",
    "StorageIterator",
    "Entry",
]

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Key = bytes | str

# Errors raised by PyYAML or mashumaro when the stored bytes don't match the
# record type.
_DECODE_ERRORS = (
    yaml.YAMLError,
    UnicodeDecodeError,
    LookupError,
    ValueError,
    TypeError,
    AttributeError,
)


def _key_bytes(key: Key) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    return key


class Storage(Generic[T]):
    """Type-safe access to records of a single type stored under a key prefix.

    Records are serialized as YAML. Keys passed to and returned from a
    `Storage` never include the prefix.
    """

    def __init__(self, kv: KeyValueStore, prefix: bytes, cls: type[T]) -> None:
        self._kv = kv
        self._prefix = prefix
        self._cls = cls

    @property
    def prefix(self) -> bytes:
        return self._prefix

    def _decode(self, key: bytes, raw: bytes) -> T:
        try:
            return yaml_decode(raw.decode("utf-8"), self._cls)
        except _DECODE_ERRORS as err:
            raise StorageError(
                f"Failed to decode {self._cls.__name__} {key!r}: {err}"
            ) from err

    def get(self, key: Key) -> T:
        """Return the record for the key.

        Raises:
            NotFoundError: If the key does not exist.
            StorageError: If the record can't be read or decoded.
        """
        key = _key_bytes(key)
        if (raw := self._kv.get(self._prefix + key)) is None:
            raise NotFoundError(
                f"{self._cls.__name__} {key.decode('utf-8', 'replace')} not found"
            )
        return self._decode(key, raw)

    def put(self, key: Key, value: T) -> None:
        """Write the record for the key."""
        key = _key_bytes(key)
        try:
            raw = yaml_encode(value, self._cls)
        except _DECODE_ERRORS as err:
            raise StorageError(
                f"Failed to encode {self._cls.__name__} {key!r}: {err}"
            ) from err
        _LOGGER.debug("Writing %s %s", self._cls.__name__, key)
        self._kv.put(self._prefix + key, raw.encode("utf-8"))

    def delete(self, key: Key) -> None:
        """Delete the record for the key, if any."""
        key = _key_bytes(key)
        _LOGGER.debug("Deleting %s %s", self._cls.__name__, key)
        self._kv.delete(self._prefix + key)

    def has(self, key: Key) -> bool:
        """Return True if a record exists for the key."""
        return self._kv.has(self._prefix + _key_bytes(key))

    def iterator(self) -> "StorageIterator[T]":
        """Return a new iterator over the records in key order."""
        return StorageIterator(self)

    def keys(self) -> list[bytes]:
        """Return a snapshot of all keys in key order."""
        return [entry.key for entry in self.iterator()]

    def _entries(self) -> list[tuple[bytes, bytes]]:
        offset = len(self._prefix)
        return [(key[offset:], raw) for key, raw in self._kv.iterate(self._prefix)]


@dataclass
class Entry(Generic[T]):
    """A record in a `Storage`, decoded on access."""

    key: bytes
    raw: bytes
    storage: Storage[T]

    @property
    def name(self) -> str:
        return self.key.decode("utf-8")

    def value(self) -> T:
        """Decode the record.

        Raises:
            StorageError: If the record can't be decoded.
        """
        return self.storage._decode(self.key, self.raw)


class StorageIterator(Generic[T]):
    """An ordered cursor over the records of a `Storage`.

    The entries are read when iteration starts, so the storage may be
    modified while iterating.
    """

    def __init__(self, storage: Storage[T]) -> None:
        self._storage = storage

    def __iter__(self) -> Iterator[Entry[T]]:
        for key, raw in self._storage._entries():
            yield Entry(key=key, raw=raw, storage=self._storage)

    def values(self) -> Iterator[T]:
        """Iterate over the decoded records."""
        for entry in self:
            yield entry.value()
