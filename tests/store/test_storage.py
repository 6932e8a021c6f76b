"""Tests for the typed registry storage."""

import pytest

from apm.constants import ZERO_HASH
from apm.definition import VM, SemanticVersion
from apm.exceptions import NotFoundError, StorageError
from apm.store import (
    InMemoryKeyValueStore,
    InstallInfo,
    RepoList,
    RepositoryFactory,
    SourceInfo,
    Storage,
    VMDefinition,
)


def test_put_and_get(kv: InMemoryKeyValueStore) -> None:
    """Test a record is serialized under the prefix and read back."""
    storage = Storage(kv, b"sources/", SourceInfo)
    info = SourceInfo(alias="acme/plugins", url="https://example.com", branch="refs/heads/main")
    storage.put("acme/plugins", info)

    assert kv.has(b"sources/acme/plugins")
    assert storage.get("acme/plugins") == info
    assert storage.get(b"acme/plugins") == info
    assert storage.get("acme/plugins").commit == ZERO_HASH
    assert not storage.get("acme/plugins").synced


def test_get_missing(kv: InMemoryKeyValueStore) -> None:
    """Test reading a missing record."""
    storage = Storage(kv, b"registry/", RepoList)
    with pytest.raises(NotFoundError, match="RepoList foo not found"):
        storage.get("foo")
    assert not storage.has("foo")


def test_iterator_strips_prefix(kv: InMemoryKeyValueStore) -> None:
    """Test entries are returned in key order without the prefix."""
    storage = Storage(kv, b"registry/", RepoList)
    storage.put("b", RepoList(repositories=["acme/plugins"]))
    storage.put("a", RepoList(repositories=["acme/plugins", "other/plugins"]))
    kv.put(b"registry0", b"not a record")

    assert storage.keys() == [b"a", b"b"]
    assert [entry.name for entry in storage.iterator()] == ["a", "b"]
    assert list(storage.iterator().values()) == [
        RepoList(repositories=["acme/plugins", "other/plugins"]),
        RepoList(repositories=["acme/plugins"]),
    ]


def test_iterator_decodes_lazily(kv: InMemoryKeyValueStore) -> None:
    """Test a corrupt record only fails when its value is read."""
    storage = Storage(kv, b"installed/", InstallInfo)
    storage.put(
        "acme/plugins:foo",
        InstallInfo(id="foo-id", version=SemanticVersion(1, 2, 3), commit="a" * 40),
    )
    kv.put(b"installed/acme/plugins:zzz", b"- not\n- a mapping\n")

    entries = list(storage.iterator())
    assert [entry.name for entry in entries] == ["acme/plugins:foo", "acme/plugins:zzz"]
    assert entries[0].value().version == SemanticVersion(1, 2, 3)
    with pytest.raises(StorageError, match="Failed to decode InstallInfo"):
        entries[1].value()
    with pytest.raises(StorageError):
        storage.get("acme/plugins:zzz")


def test_delete(kv: InMemoryKeyValueStore) -> None:
    """Test deleting records, including missing ones."""
    storage = Storage(kv, b"registry/", RepoList)
    storage.put("foo", RepoList(repositories=["acme/plugins"]))
    storage.delete("foo")
    storage.delete("foo")
    assert not storage.has("foo")
    assert storage.keys() == []


def test_definition_round_trip(factory: RepositoryFactory) -> None:
    """Test a VM definition keeps its fields and commit in the registry."""
    repository = factory.get_repository("acme/plugins")
    vm = VM(
        id="foo-id",
        alias="foo",
        install_script="scripts/build.sh",
        binary_path="build/foo",
        url="https://example.com/foo.tar.gz",
        version=SemanticVersion(1, 0, 0),
    )
    repository.vms.put("foo", VMDefinition(definition=vm, commit="deadbeef"))

    stored = repository.vms.get("foo")
    assert stored.commit == "deadbeef"
    assert stored.definition == vm
    assert stored.definition.install_script == "scripts/build.sh"


def test_repository_namespaces_are_isolated(factory: RepositoryFactory) -> None:
    """Test an alias that is a prefix of another does not see its records."""
    vm = VM(id="foo-id", alias="foo", binary_path="foo")
    factory.get_repository("acme/plugins-extra").vms.put(
        "foo", VMDefinition(definition=vm, commit="1" * 40)
    )
    factory.get_repository("acme/plugins").vms.put(
        "bar", VMDefinition(definition=vm, commit="2" * 40)
    )

    assert factory.get_repository("acme/plugins").vms.keys() == [b"bar"]
    assert factory.get_repository("acme/plugins-extra").vms.keys() == [b"foo"]
    assert factory.get_repository("acme/plugins").subnets.keys() == []
    assert factory.sources.keys() == []
    assert factory.installed.keys() == []
