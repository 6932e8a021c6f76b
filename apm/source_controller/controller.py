"""Registry reconciler.

This controller brings the local registry in line with the latest commit of
every tracked plugin repository.

For each `SourceInfo` the controller asks the `Synchronizer` for the head of
the tracked branch. If it moved, the definition files that changed since the
last synchronized commit are decoded and applied to the repository namespace
and the alias index, and the new commit is recorded. All writes for a single
repository happen in one key/value transaction, so a failure never leaves
definitions that reference a commit newer than the recorded one.

Key Concepts:
    - SourceInfo: A tracked repository and its last synchronized commit
    - Definition: A VM or Subnet published by a repository
    - RepoList: The alias index from plugin name to the repositories providing it
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path

from apm.config import Credentials
from apm.definition import (
    VM,
    DefinitionKind,
    DefinitionPath,
    Subnet,
    parse_definition,
    parse_definition_path,
)
from apm.exceptions import ApmException, InvalidDefinitionError, SyncError
from apm.names import parse_alias
from apm.store import (
    RepoList,
    Repository,
    RepositoryFactory,
    SourceInfo,
    SubnetDefinition,
    VMDefinition,
)

from .git import DefinitionChanges, Synchronizer

__all__ = [
    "RegistryReconciler",
    "SyncResult",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of reconciling a single repository."""

    alias: str
    previous: str
    latest: str
    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.previous != self.latest


class RegistryReconciler:
    """Applies the changes of tracked plugin repositories to the registry."""

    def __init__(
        self,
        factory: RepositoryFactory,
        synchronizer: Synchronizer,
        repositories_path: Path,
        auth: Credentials | None = None,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            factory: The stores of the registry
            synchronizer: Fetches repositories and reports changed files
            repositories_path: Root of the local repository checkouts
            auth: Optional credentials used when fetching
        """
        self._factory = factory
        self._synchronizer = synchronizer
        self._repositories_path = repositories_path
        self._auth = auth

    def repository_path(self, alias: str) -> Path:
        """Return the local checkout path of a repository."""
        organization, repo = parse_alias(alias)
        return self._repositories_path / organization / repo

    def sync_all(self) -> list[SyncResult]:
        """Reconcile every tracked repository in alias order.

        A failure of one repository does not stop the others. Once every
        repository was attempted, a `SyncError` naming the failed aliases is
        raised.
        """
        results: list[SyncResult] = []
        failures: dict[str, str] = {}
        for entry in self._factory.sources.iterator():
            alias = entry.name
            try:
                source_info = entry.value()
                results.append(self.sync_one(source_info))
            except ApmException as err:
                _LOGGER.error("Failed to sync %s: %s", alias, err)
                failures[alias] = str(err)

        if failures:
            details = "; ".join(f"{alias}: {err}" for alias, err in failures.items())
            raise SyncError(
                f"Failed to sync {len(failures)} repositories: {details}", failures
            )
        return results

    def sync_one(self, source_info: SourceInfo) -> SyncResult:
        """Reconcile a single repository with the head of its branch."""
        alias = source_info.alias
        previous = source_info.commit
        local_path = self.repository_path(alias)
        latest = self._synchronizer.sync(
            source_info.url, local_path, source_info.branch, self._auth
        )
        result = SyncResult(alias=alias, previous=previous, latest=latest)

        if latest == previous:
            _LOGGER.info("Already at latest for %s@%s", alias, latest)
            return result

        if source_info.synced and self._synchronizer.is_ancestor(
            local_path, latest, previous
        ):
            _LOGGER.warning(
                "Remote head %s of %s is behind synced commit %s, skipping",
                latest,
                alias,
                previous,
            )
            result.latest = previous
            return result

        _LOGGER.info("Updating %s from %s to %s", alias, previous, latest)
        changes = self._synchronizer.diff(local_path, previous, latest)
        self._apply(source_info, local_path, latest, changes, result)
        _LOGGER.info(
            "Finished updating %s: %d added, %d modified, %d removed",
            alias,
            len(result.added),
            len(result.modified),
            len(result.removed),
        )
        return result

    def _decode(
        self, local_path: Path, commit: str, paths: list[DefinitionPath]
    ) -> list[tuple[DefinitionPath, VM | Subnet]]:
        decoded = []
        for path in paths:
            content = self._synchronizer.read(local_path, commit, path.path)
            try:
                definition = parse_definition(path, content)
            except InvalidDefinitionError as err:
                raise InvalidDefinitionError(
                    f"Invalid definition {path.path} at {commit}: {err}"
                ) from err
            decoded.append((path, definition))
        return decoded

    def _apply(
        self,
        source_info: SourceInfo,
        local_path: Path,
        latest: str,
        changes: DefinitionChanges,
        result: SyncResult,
    ) -> None:
        removed = _definition_paths(changes.removed)
        # Decode everything up front so a malformed definition fails the
        # repository before any write.
        added = self._decode(local_path, latest, _definition_paths(changes.added))
        modified = self._decode(
            local_path, latest, _definition_paths(changes.modified)
        )

        alias = source_info.alias
        repository = self._factory.get_repository(alias)
        with self._factory.kv.transaction():
            # Removals go first so a rename does not briefly index both names.
            for path in removed:
                self._remove(repository, path)
                result.removed.append(str(path))
            for path, definition in added:
                self._put(repository, path, definition, latest)
                result.added.append(str(path))
            for path, definition in modified:
                self._put(repository, path, definition, latest)
                result.modified.append(str(path))
            self._restamp(repository, latest)

            self._factory.sources.put(
                alias,
                SourceInfo(
                    alias=alias,
                    url=source_info.url,
                    branch=source_info.branch,
                    commit=latest,
                ),
            )

    def _put(
        self,
        repository: Repository,
        path: DefinitionPath,
        definition: VM | Subnet,
        commit: str,
    ) -> None:
        if isinstance(definition, VM):
            repository.vms.put(
                path.name, VMDefinition(definition=definition, commit=commit)
            )
        else:
            repository.subnets.put(
                path.name, SubnetDefinition(definition=definition, commit=commit)
            )
        self._add_to_index(repository.alias, path.name)

    def _restamp(self, repository: Repository, commit: str) -> None:
        """Move definitions unchanged by the diff to the synced commit."""
        for storage in (repository.vms, repository.subnets):
            for entry in storage.iterator():
                record = entry.value()
                if record.commit != commit:
                    record.commit = commit
                    storage.put(entry.name, record)

    def _remove(self, repository: Repository, path: DefinitionPath) -> None:
        if path.kind == DefinitionKind.VM:
            repository.vms.delete(path.name)
            still_provided = repository.subnets.has(path.name)
        else:
            repository.subnets.delete(path.name)
            still_provided = repository.vms.has(path.name)
        if not still_provided:
            remove_from_index(self._factory, repository.alias, path.name)

    def _add_to_index(self, alias: str, name: str) -> None:
        registry = self._factory.registry
        repo_list = registry.get(name) if registry.has(name) else RepoList()
        if alias in repo_list.repositories:
            return
        repo_list.repositories.append(alias)
        registry.put(name, repo_list)


def remove_from_index(factory: RepositoryFactory, alias: str, name: str) -> None:
    """Remove the alias from the index entry of the plugin name.

    The entry is deleted when no repository provides the name anymore.
    """
    registry = factory.registry
    if not registry.has(name):
        return
    repo_list = registry.get(name)
    if alias not in repo_list.repositories:
        return
    repo_list.repositories.remove(alias)
    if repo_list.repositories:
        registry.put(name, repo_list)
    else:
        registry.delete(name)


def _definition_paths(paths: list[str]) -> list[DefinitionPath]:
    result = []
    for path in paths:
        if (parsed := parse_definition_path(path)) is None:
            _LOGGER.debug("Ignoring non-definition file %s", path)
            continue
        result.append(parsed)
    return result
