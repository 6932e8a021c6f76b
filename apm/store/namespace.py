"""Namespaced views of the registry.

Every store lives under its own key prefix:

- `sources/<alias>`: the tracked repositories (`SourceInfo`)
- `installed/<alias>:<plugin>`: the installed VMs (`InstallInfo`)
- `registry/<plugin>`: the repositories providing a plugin name (`RepoList`)
- `repositories/<len>:<alias>/vms/<plugin>` and `.../subnets/<plugin>`: the
  definitions published by a repository.

The alias is length prefixed so that no repository namespace is a prefix of
another one.
"""

from dataclasses import dataclass

from .kv import KeyValueStore
from .records import InstallInfo, RepoList, SourceInfo, SubnetDefinition, VMDefinition
from .store import Storage

__all__ = [
    "Repository",
    "RepositoryFactory",
]

SOURCES_PREFIX = b"sources/"
INSTALLED_PREFIX = b"installed/"
REGISTRY_PREFIX = b"registry/"
REPOSITORIES_PREFIX = b"repositories/"
VMS_PREFIX = b"vms/"
SUBNETS_PREFIX = b"subnets/"


def repository_prefix(alias: str) -> bytes:
    """Return the key prefix holding the definitions of a repository."""
    encoded = alias.encode("utf-8")
    return REPOSITORIES_PREFIX + str(len(encoded)).encode() + b":" + encoded + b"/"


@dataclass
class Repository:
    """The definitions published by a single plugin repository."""

    alias: str
    vms: Storage[VMDefinition]
    subnets: Storage[SubnetDefinition]


class RepositoryFactory:
    """Factory for the stores of the registry."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv
        self.sources: Storage[SourceInfo] = Storage(kv, SOURCES_PREFIX, SourceInfo)
        self.installed: Storage[InstallInfo] = Storage(
            kv, INSTALLED_PREFIX, InstallInfo
        )
        self.registry: Storage[RepoList] = Storage(kv, REGISTRY_PREFIX, RepoList)

    @property
    def kv(self) -> KeyValueStore:
        return self._kv

    def get_repository(self, alias: str) -> Repository:
        """Return the definition stores for the repository alias."""
        prefix = repository_prefix(alias)
        return Repository(
            alias=alias,
            vms=Storage(self._kv, prefix + VMS_PREFIX, VMDefinition),
            subnets=Storage(self._kv, prefix + SUBNETS_PREFIX, SubnetDefinition),
        )
