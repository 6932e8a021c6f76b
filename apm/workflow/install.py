"""Workflows that install and uninstall a VM.

The install record and the binary in the plugin directory are kept in lock
step. Install writes the record only after the binary is in place, and
Uninstall removes the binary before the record. An interrupted Uninstall
leaves a record for a missing binary, which is fixed by running it again.
"""

from dataclasses import dataclass
import logging
from pathlib import Path

from apm.exceptions import NotFoundError
from apm.installer import Installer
from apm.names import parse_qualified_name
from apm.store import InstallInfo, RepositoryFactory

from .executor import Workflow

__all__ = [
    "Install",
    "Uninstall",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class Install(Workflow):
    """Install a VM by its qualified name, doing nothing if already installed."""

    name: str
    factory: RepositoryFactory
    installer: Installer
    plugin_path: Path

    def execute(self) -> None:
        if self.factory.installed.has(self.name):
            _LOGGER.info("VM %s is already installed. Skipping.", self.name)
            return

        alias, plugin = parse_qualified_name(self.name)
        repository = self.factory.get_repository(alias)
        try:
            definition = repository.vms.get(plugin)
        except NotFoundError as err:
            raise NotFoundError(f"No VM definition found for {self.name}") from err

        vm = definition.definition
        _LOGGER.info("Installing %s %s", self.name, vm.version)
        self.installer.install(vm, self.plugin_path / vm.id)
        self.factory.installed.put(
            self.name,
            InstallInfo(
                id=vm.id,
                version=vm.version,
                commit=definition.commit,
                digest=vm.digest(),
            ),
        )
        _LOGGER.info("Successfully installed %s@%s", self.name, vm.version)


@dataclass
class Uninstall(Workflow):
    """Uninstall a VM by its qualified name, doing nothing if not installed."""

    name: str
    factory: RepositoryFactory
    installer: Installer
    plugin_path: Path

    def execute(self) -> None:
        parse_qualified_name(self.name)
        if not self.factory.installed.has(self.name):
            _LOGGER.info("VM %s is not installed. Skipping.", self.name)
            return

        install_info = self.factory.installed.get(self.name)
        self.installer.remove(self.plugin_path / install_info.id)
        self.factory.installed.delete(self.name)
        _LOGGER.info("Successfully uninstalled %s", self.name)
