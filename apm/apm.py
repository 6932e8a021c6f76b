"""The apm library entry point.

`APM` owns the registry and the collaborators, builds a workflow for each
operation and runs it with the executor.

Example usage:

```python
from apm.apm import APM
from apm.config import ApmConfig

with APM(ApmConfig.from_env()) as a:
    a.bootstrap()
    a.add_repository("acme/plugins", "https://github.com/acme/plugins.git", "main")
    a.update()
    a.install("acme/plugins:foovm")
```
"""

from dataclasses import dataclass
import logging
from types import TracebackType

from .admin import AdminClient, Notifier
from .config import ApmConfig
from .constants import CORE_ALIAS, CORE_BRANCH, CORE_URL
from .exceptions import NotFoundError
from .installer import Installer, VMInstaller
from .names import parse_qualified_name, resolve
from .source_controller import GitSynchronizer, RegistryReconciler, Synchronizer, SyncResult
from .store import (
    InstallInfo,
    KeyValueStore,
    RepositoryFactory,
    SourceInfo,
    SqliteKeyValueStore,
    SubnetDefinition,
    VMDefinition,
)
from .workflow import (
    AddRepository,
    Executor,
    Install,
    JoinSubnet,
    RemoveRepository,
    Uninstall,
    Update,
    Upgrade,
    UpgradeReport,
    UpgradeVM,
)
from .workflow.upgrade import reload_plugins

__all__ = [
    "APM",
    "PluginInfo",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class PluginInfo:
    """Everything the registry knows about a plugin name."""

    name: str
    vm: VMDefinition | None = None
    subnet: SubnetDefinition | None = None
    installed: InstallInfo | None = None


class APM:
    """Manages plugin repositories and the VMs installed from them."""

    def __init__(
        self,
        config: ApmConfig,
        kv: KeyValueStore | None = None,
        synchronizer: Synchronizer | None = None,
        installer: Installer | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        """
        Initialize apm. Collaborators default to the production implementations.

        Args:
            config: Paths and endpoints used by apm
            kv: The key/value store holding the registry
            synchronizer: Fetches plugin repositories
            installer: Materializes VM binaries
            notifier: Notifies the running node
        """
        self._config = config
        self._owned: list[VMInstaller | AdminClient | KeyValueStore] = []

        if kv is None:
            kv = SqliteKeyValueStore(config.db_path)
            self._owned.append(kv)
        if installer is None:
            installer = VMInstaller(config.tmp_path)
            self._owned.append(installer)
        if notifier is None:
            notifier = AdminClient(config.admin_api_endpoint)
            self._owned.append(notifier)

        self._kv = kv
        self._factory = RepositoryFactory(kv)
        self._installer = installer
        self._notifier = notifier
        self._executor = Executor()
        self._reconciler = RegistryReconciler(
            self._factory,
            synchronizer or GitSynchronizer(),
            config.repositories_path,
            config.auth,
        )
        config.repositories_path.mkdir(parents=True, exist_ok=True)

    @property
    def factory(self) -> RepositoryFactory:
        return self._factory

    def close(self) -> None:
        """Release the database and HTTP clients owned by this instance."""
        for resource in self._owned:
            resource.close()
        self._owned = []

    def __enter__(self) -> "APM":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def bootstrap(self) -> bool:
        """Make sure the core repository is tracked and synchronized.

        Returns True if a bootstrap sync was performed.
        """
        if not self._factory.sources.has(CORE_ALIAS):
            self.add_repository(CORE_ALIAS, CORE_URL, CORE_BRANCH)

        if self._factory.sources.get(CORE_ALIAS).synced:
            return False

        _LOGGER.info("Bootstrap not detected. Bootstrapping...")
        self.update()
        _LOGGER.info("Finished bootstrapping.")
        return True

    def resolve(self, name: str) -> str:
        """Return the qualified name for a possibly bare plugin name."""
        return resolve(self._factory.registry, name)

    def add_repository(self, alias: str, url: str, branch: str) -> None:
        self._executor.execute(AddRepository(self._factory, alias, url, branch))

    def remove_repository(self, alias: str) -> None:
        self._executor.execute(
            RemoveRepository(
                self._factory, alias, self._reconciler.repository_path(alias)
            )
        )

    def list_repositories(self) -> list[SourceInfo]:
        return list(self._factory.sources.iterator().values())

    def list_installed(self) -> dict[str, InstallInfo]:
        return {
            entry.name: entry.value() for entry in self._factory.installed.iterator()
        }

    def update(self) -> list[SyncResult]:
        workflow = Update(self._reconciler)
        self._executor.execute(workflow)
        return workflow.results

    def install(self, name: str) -> str:
        """Install a VM, returning its qualified name."""
        full_name = self.resolve(name)
        self._executor.execute(
            Install(full_name, self._factory, self._installer, self._config.plugin_dir)
        )
        return full_name

    def uninstall(self, name: str) -> str:
        """Uninstall a VM, returning its qualified name."""
        full_name = self._resolve_installed(name)
        self._executor.execute(
            Uninstall(
                full_name, self._factory, self._installer, self._config.plugin_dir
            )
        )
        return full_name

    def upgrade(self, name: str | None = None) -> UpgradeReport:
        """Upgrade one VM, or every installed VM when no name is given."""
        if name is None:
            workflow = Upgrade(
                self._factory,
                self._installer,
                self._config.plugin_dir,
                self._executor,
                self._notifier,
            )
            self._executor.execute(workflow)
            return workflow.report

        full_name = self._resolve_installed(name)
        upgrade_vm = UpgradeVM(
            full_name,
            self._factory,
            self._installer,
            self._config.plugin_dir,
            self._executor,
        )
        self._executor.execute(upgrade_vm)
        report = UpgradeReport()
        if upgrade_vm.upgraded:
            report.upgraded.append(full_name)
            reload_plugins(self._notifier)
        else:
            report.up_to_date.append(full_name)
        return report

    def join_subnet(self, name: str) -> str:
        """Install the VMs of a subnet and register it, returning its qualified name."""
        full_name = self.resolve(name)
        self._executor.execute(
            JoinSubnet(
                full_name,
                self._factory,
                self._installer,
                self._config.plugin_dir,
                self._executor,
                self._notifier,
            )
        )
        return full_name

    def info(self, name: str) -> PluginInfo:
        """Return the definitions and install state of a plugin."""
        full_name = self.resolve(name)
        alias, plugin = parse_qualified_name(full_name)
        repository = self._factory.get_repository(alias)
        info = PluginInfo(name=full_name)
        if repository.vms.has(plugin):
            info.vm = repository.vms.get(plugin)
        if repository.subnets.has(plugin):
            info.subnet = repository.subnets.get(plugin)
        if self._factory.installed.has(full_name):
            info.installed = self._factory.installed.get(full_name)
        if info.vm is None and info.subnet is None and info.installed is None:
            raise NotFoundError(f"{full_name} is not published by {alias}")
        return info

    def _resolve_installed(self, name: str) -> str:
        """Resolve a name, falling back to installed VMs for bare names.

        A VM stays installed after its repository stops publishing it, so a
        bare name may only be known from the install records.
        """
        try:
            return self.resolve(name)
        except NotFoundError:
            matches = [
                installed
                for installed in self._factory.installed.keys()
                if installed.decode("utf-8").endswith(f":{name}")
            ]
            if len(matches) == 1:
                return matches[0].decode("utf-8")
            raise
