"""
The store module provides the persistent registry used by apm.

- `KeyValueStore` is an ordered, byte keyed store with atomic transactions.
- `Storage` is a typed view over a key prefix, with records serialized as YAML.
- `RepositoryFactory` derives the namespaced stores for the tracked
  repositories and the global sources, installed and alias index stores.
"""

from .kv import KeyValueStore, SqliteKeyValueStore, InMemoryKeyValueStore
from .namespace import Repository, RepositoryFactory
from .records import (
    Definition,
    InstallInfo,
    RepoList,
    SourceInfo,
    SubnetDefinition,
    VMDefinition,
)
from .store import Entry, Storage, StorageIterator

__all__ = [
    "KeyValueStore",
    "SqliteKeyValueStore",
    "InMemoryKeyValueStore",
    "Repository",
    "RepositoryFactory",
    "Definition",
    "InstallInfo",
    "RepoList",
    "SourceInfo",
    "SubnetDefinition",
    "VMDefinition",
    "Entry",
    "Storage",
    "StorageIterator",
]
