"""Workflow that installs every VM of a subnet and registers it with the node."""

from dataclasses import dataclass
import logging
from pathlib import Path

from apm.admin import Notifier
from apm.exceptions import NotFoundError, NotifierUnavailable
from apm.installer import Installer
from apm.names import parse_qualified_name, qualified_name
from apm.store import RepositoryFactory

from .executor import Executor, Workflow
from .install import Install
from .upgrade import reload_plugins

__all__ = [
    "JoinSubnet",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class JoinSubnet(Workflow):
    """Install the VMs of a subnet, then notify the node.

    Installation stops at the first VM that fails. An offline node is only
    reported as a warning since it picks up the VMs when it starts.
    """

    name: str
    factory: RepositoryFactory
    installer: Installer
    plugin_path: Path
    executor: Executor
    notifier: Notifier

    def execute(self) -> None:
        alias, plugin = parse_qualified_name(self.name)
        repository = self.factory.get_repository(alias)
        try:
            subnet = repository.subnets.get(plugin).definition
        except NotFoundError as err:
            raise NotFoundError(f"No subnet definition found for {self.name}") from err

        _LOGGER.info("Installing virtual machines for subnet %s", subnet.get_id())
        for vm in subnet.vms:
            self.executor.execute(
                Install(
                    qualified_name(alias, vm),
                    self.factory,
                    self.installer,
                    self.plugin_path,
                )
            )

        _LOGGER.info("Updating virtual machines...")
        reload_plugins(self.notifier)

        _LOGGER.info("Whitelisting subnet %s...", subnet.get_id())
        try:
            self.notifier.register_subnet(subnet.get_id())
        except NotifierUnavailable as err:
            _LOGGER.warning(
                "Node was offline. You'll need to whitelist subnet %s upon node restart (%s)",
                subnet.get_id(),
                err,
            )

        _LOGGER.info("Finished installing virtual machines for subnet %s", subnet.get_id())
