"""Workflows that upgrade installed VMs to their latest synced definition."""

from dataclasses import dataclass, field
import logging
from pathlib import Path

from apm.admin import Notifier
from apm.exceptions import ApmException, NotFoundError, NotifierUnavailable, UpgradeError
from apm.installer import Installer
from apm.names import parse_qualified_name
from apm.store import RepositoryFactory

from .executor import Executor, Workflow
from .install import Install, Uninstall

__all__ = [
    "UpgradeReport",
    "UpgradeVM",
    "Upgrade",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class UpgradeReport:
    """Outcome of upgrading a set of installed VMs."""

    upgraded: list[str] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


@dataclass
class UpgradeVM(Workflow):
    """Reinstall a VM if its definition changed since it was installed.

    The installed VM is considered outdated when its registered definition no
    longer matches the digest recorded at install time. A sync that leaves the
    definition unchanged only moves its commit, which is not an upgrade.
    """

    name: str
    factory: RepositoryFactory
    installer: Installer
    plugin_path: Path
    executor: Executor
    upgraded: bool = False

    def execute(self) -> None:
        alias, plugin = parse_qualified_name(self.name)
        if not self.factory.installed.has(self.name):
            raise NotFoundError(f"VM {self.name} is not installed")
        install_info = self.factory.installed.get(self.name)

        repository = self.factory.get_repository(alias)
        try:
            definition = repository.vms.get(plugin)
        except NotFoundError as err:
            raise NotFoundError(
                f"VM {self.name} is no longer published by {alias}"
            ) from err

        if definition.definition.digest() == install_info.digest:
            _LOGGER.info("VM %s is already up to date", self.name)
            return

        _LOGGER.info(
            "Upgrading %s from %s to %s",
            self.name,
            install_info.version,
            definition.definition.version,
        )
        self.executor.execute(
            Uninstall(self.name, self.factory, self.installer, self.plugin_path)
        )
        self.executor.execute(
            Install(self.name, self.factory, self.installer, self.plugin_path)
        )
        self.upgraded = True


@dataclass
class Upgrade(Workflow):
    """Upgrade every installed VM, continuing past individual failures."""

    factory: RepositoryFactory
    installer: Installer
    plugin_path: Path
    executor: Executor
    notifier: Notifier
    report: UpgradeReport = field(default_factory=UpgradeReport)

    def execute(self) -> None:
        self.report = UpgradeReport()
        # Snapshot the names since upgrading rewrites the installed records.
        names = [entry.name for entry in self.factory.installed.iterator()]
        for name in names:
            workflow = UpgradeVM(
                name, self.factory, self.installer, self.plugin_path, self.executor
            )
            try:
                self.executor.execute(workflow)
            except ApmException as err:
                _LOGGER.error("Failed to upgrade %s: %s", name, err)
                self.report.failed[name] = str(err)
                continue
            if workflow.upgraded:
                self.report.upgraded.append(name)
            else:
                self.report.up_to_date.append(name)

        if self.report.upgraded:
            reload_plugins(self.notifier)
        if self.report.failed:
            raise UpgradeError(self.report)
        _LOGGER.info(
            "Upgraded %d VMs (%d already up to date)",
            len(self.report.upgraded),
            len(self.report.up_to_date),
        )


def reload_plugins(notifier: Notifier) -> None:
    """Ask the node to reload its VMs, only warning if it is offline."""
    try:
        notifier.reload_plugins()
    except NotifierUnavailable as err:
        _LOGGER.warning(
            "Node was offline. Virtual machines will be available upon node startup (%s)",
            err,
        )
