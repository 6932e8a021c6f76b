"""Git synchronization of plugin repositories."""

from abc import ABC, abstractmethod
import base64
from dataclasses import dataclass, field
import logging
from pathlib import Path

import git

from apm.config import Credentials
from apm.constants import ZERO_HASH
from apm.exceptions import SyncError

__all__ = [
    "DefinitionChanges",
    "Synchronizer",
    "GitSynchronizer",
    "branch_reference_name",
]

_LOGGER = logging.getLogger(__name__)

BRANCH_REF_PREFIX = "refs/heads/"
TRACKING_REF_PREFIX = "refs/remotes/apm/"


def branch_reference_name(branch: str) -> str:
    """Return the full reference name for a branch e.g. `refs/heads/main`."""
    if branch.startswith(BRANCH_REF_PREFIX):
        return branch
    return f"{BRANCH_REF_PREFIX}{branch}"


@dataclass
class DefinitionChanges:
    """Files that changed between two commits of a repository.

    A renamed file is reported as removed from its old path and added at its
    new path.
    """

    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.added or self.modified or self.removed)


class Synchronizer(ABC):
    """Fetches plugin repositories and reports changes between commits."""

    @abstractmethod
    def sync(
        self, url: str, local_path: Path, branch: str, auth: Credentials | None
    ) -> str:
        """Fetch the latest state of the branch into local_path.

        Returns:
            The commit id of the head of the branch.

        Raises:
            SyncError: If the repository can't be fetched.
        """

    @abstractmethod
    def diff(self, local_path: Path, previous: str, latest: str) -> DefinitionChanges:
        """Return the files that changed from previous to latest.

        If previous is `ZERO_HASH` every file at latest is reported as added.
        """

    @abstractmethod
    def read(self, local_path: Path, commit: str, path: str) -> bytes:
        """Return the contents of the file at path as of the commit."""

    @abstractmethod
    def is_ancestor(self, local_path: Path, ancestor: str, descendant: str) -> bool:
        """Return True if ancestor is reachable from descendant."""


class GitSynchronizer(Synchronizer):
    """Synchronizer backed by a local git checkout per repository."""

    def sync(
        self, url: str, local_path: Path, branch: str, auth: Credentials | None
    ) -> str:
        ref = branch_reference_name(branch)
        short_name = ref.removeprefix(BRANCH_REF_PREFIX)
        tracking_ref = f"{TRACKING_REF_PREFIX}{short_name}"
        try:
            if (local_path / ".git").exists():
                repo = git.Repo(str(local_path))
            else:
                _LOGGER.info("Initializing repository %s at %s", url, local_path)
                local_path.mkdir(parents=True, exist_ok=True)
                repo = git.Repo.init(str(local_path))

            _LOGGER.info("Fetching %s from %s", ref, url)
            cmd = repo.git
            if auth is not None:
                # Credentials are passed per command so they are never written
                # to the repository config.
                token = base64.b64encode(
                    f"{auth.username}:{auth.password}".encode("utf-8")
                ).decode("ascii")
                cmd = cmd(c=f"http.extraHeader=Authorization: Basic {token}")
            cmd.fetch("--force", url, f"+{ref}:{tracking_ref}")

            commit = repo.commit(tracking_ref)
            repo.git.checkout("--force", "-B", short_name, commit.hexsha)
        except git.exc.GitCommandError as err:
            raise SyncError(f"Failed to fetch {ref} from {url}: {err}") from err
        except (git.exc.GitError, ValueError, OSError) as err:
            raise SyncError(f"Failed to sync repository {url}: {err}") from err
        _LOGGER.debug("Head of %s at %s is %s", url, ref, commit.hexsha)
        return commit.hexsha

    def _repo(self, local_path: Path) -> git.Repo:
        try:
            return git.Repo(str(local_path))
        except git.exc.GitError as err:
            raise SyncError(f"No repository checked out at {local_path}: {err}") from err

    def _commit(self, repo: git.Repo, commit: str) -> git.Commit:
        try:
            return repo.commit(commit)
        except (git.exc.BadName, ValueError) as err:
            raise SyncError(f"Unknown commit {commit}: {err}") from err

    def diff(self, local_path: Path, previous: str, latest: str) -> DefinitionChanges:
        repo = self._repo(local_path)
        latest_commit = self._commit(repo, latest)
        changes = DefinitionChanges()

        if previous == ZERO_HASH:
            for item in latest_commit.tree.traverse():
                if item.type == "blob":
                    changes.added.append(item.path)
            return changes

        previous_commit = self._commit(repo, previous)
        for change in previous_commit.diff(latest_commit):
            match change.change_type:
                case "A" | "C":
                    changes.added.append(change.b_path)
                case "D":
                    changes.removed.append(change.a_path)
                case "R":
                    changes.removed.append(change.a_path)
                    changes.added.append(change.b_path)
                case _:
                    changes.modified.append(change.b_path or change.a_path)
        return changes

    def read(self, local_path: Path, commit: str, path: str) -> bytes:
        repo = self._repo(local_path)
        try:
            blob = self._commit(repo, commit).tree / path
        except KeyError as err:
            raise SyncError(f"File {path} does not exist at {commit}") from err
        return blob.data_stream.read()

    def is_ancestor(self, local_path: Path, ancestor: str, descendant: str) -> bool:
        repo = self._repo(local_path)
        try:
            return repo.is_ancestor(ancestor, descendant)
        except git.exc.GitCommandError as err:
            raise SyncError(
                f"Unable to compare commits {ancestor} and {descendant}: {err}"
            ) from err
