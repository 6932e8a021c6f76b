"""Workflows that add and remove tracked repositories."""

from dataclasses import dataclass
import logging
from pathlib import Path
import shutil

from apm.constants import CORE_ALIAS, ZERO_HASH
from apm.exceptions import AlreadyExistsError, NotFoundError, ValidationError
from apm.names import valid_alias
from apm.source_controller import branch_reference_name, remove_from_index
from apm.store import RepositoryFactory, SourceInfo

from .executor import Workflow

__all__ = [
    "AddRepository",
    "RemoveRepository",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class AddRepository(Workflow):
    """Start tracking a plugin repository.

    The repository is recorded as unsynced and is fetched by the next update.
    """

    factory: RepositoryFactory
    alias: str
    url: str
    branch: str

    def execute(self) -> None:
        if not valid_alias(self.alias):
            raise ValidationError(
                f"{self.alias} is not a valid alias (must be in the form of organization/repository)"
            )
        if not self.url:
            raise ValidationError(f"A url is required to add {self.alias}")
        if self.factory.sources.has(self.alias):
            raise AlreadyExistsError(f"{self.alias} is already registered as a repository")

        unsynced = SourceInfo(
            alias=self.alias,
            url=self.url,
            branch=branch_reference_name(self.branch),
            commit=ZERO_HASH,
        )
        self.factory.sources.put(self.alias, unsynced)
        _LOGGER.info("Added repository %s (%s@%s)", self.alias, self.url, unsynced.branch)


@dataclass
class RemoveRepository(Workflow):
    """Stop tracking a plugin repository.

    Every definition published by the repository and its alias index entries
    are deleted along with the local checkout. Installed plugins are kept.
    """

    factory: RepositoryFactory
    alias: str
    repository_path: Path

    def execute(self) -> None:
        if self.alias == CORE_ALIAS:
            raise ValidationError(f"Can't remove {CORE_ALIAS} (required repository)")
        if not self.factory.sources.has(self.alias):
            raise NotFoundError(f"{self.alias} is not a registered repository")

        repository = self.factory.get_repository(self.alias)
        with self.factory.kv.transaction():
            for store in (repository.vms, repository.subnets):
                for entry in store.iterator():
                    store.delete(entry.key)
                    remove_from_index(self.factory, self.alias, entry.name)
            self.factory.sources.delete(self.alias)

        shutil.rmtree(self.repository_path, ignore_errors=True)
        _LOGGER.info("Removed repository %s", self.alias)
