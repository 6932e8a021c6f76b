"""Records persisted in the registry."""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from mashumaro import DataClassDictMixin
from mashumaro.config import BaseConfig

from apm.constants import ZERO_HASH
from apm.definition import VM, BaseDefinition, SemanticVersion, Subnet

__all__ = [
    "SourceInfo",
    "RepoList",
    "InstallInfo",
    "Definition",
    "VMDefinition",
    "SubnetDefinition",
]

T = TypeVar("T", bound=BaseDefinition)


@dataclass
class SourceInfo(DataClassDictMixin):
    """A repository, its source, and the last synced commit."""

    alias: str
    url: str
    branch: str
    """Full reference name of the tracked branch e.g. `refs/heads/main`."""

    commit: str = ZERO_HASH
    """Last synchronized commit, or `ZERO_HASH` if never synchronized."""

    @property
    def synced(self) -> bool:
        return self.commit != ZERO_HASH


@dataclass
class RepoList(DataClassDictMixin):
    """The repositories that provide a single plugin name.

    e.g. foo/plugins:bar, baz/plugins:bar => bar: [foo/plugins, baz/plugins]
    """

    repositories: list[str] = field(default_factory=list)


@dataclass
class InstallInfo(DataClassDictMixin):
    """An installed VM, keyed by its qualified name."""

    id: str
    version: SemanticVersion
    commit: str = ZERO_HASH
    """Commit of the definition the installed artifact was built from."""

    digest: str | None = None
    """sha256 of the definition the installed artifact was built from."""

    class Config(BaseConfig):
        omit_none = True


@dataclass
class Definition(Generic[T]):
    """A plugin definition and the repository commit it was read at.

    Concrete subclasses bind the definition type so they can be serialized.
    """

    definition: T
    commit: str


@dataclass
class VMDefinition(Definition[VM], DataClassDictMixin):
    """A VM definition stored in a repository namespace."""


@dataclass
class SubnetDefinition(Definition[Subnet], DataClassDictMixin):
    """A Subnet definition stored in a repository namespace."""
