"""Fixtures shared by the apm tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from apm.apm import APM
from apm.config import ApmConfig
from apm.source_controller import RegistryReconciler
from apm.store import InMemoryKeyValueStore, RepositoryFactory
from apm.workflow import Executor

from fakes import FakeInstaller, FakeNotifier, FakeSynchronizer


@pytest.fixture(name="kv")
def kv_fixture() -> InMemoryKeyValueStore:
    """Create an empty in memory key/value store."""
    return InMemoryKeyValueStore()


@pytest.fixture(name="factory")
def factory_fixture(kv: InMemoryKeyValueStore) -> RepositoryFactory:
    """Create the registry stores over the key/value store."""
    return RepositoryFactory(kv)


@pytest.fixture(name="synchronizer")
def synchronizer_fixture() -> FakeSynchronizer:
    """Create a synchronizer serving repositories from memory."""
    return FakeSynchronizer()


@pytest.fixture(name="installer")
def installer_fixture() -> FakeInstaller:
    """Create an installer that writes placeholder binaries."""
    return FakeInstaller()


@pytest.fixture(name="notifier")
def notifier_fixture() -> FakeNotifier:
    """Create a notifier standing in for a running node."""
    return FakeNotifier()


@pytest.fixture(name="plugin_path")
def plugin_path_fixture(tmp_path: Path) -> Path:
    """Directory VM binaries are installed into."""
    path = tmp_path / "plugins"
    path.mkdir()
    return path


@pytest.fixture(name="executor")
def executor_fixture() -> Executor:
    return Executor()


@pytest.fixture(name="reconciler")
def reconciler_fixture(
    factory: RepositoryFactory, synchronizer: FakeSynchronizer, tmp_path: Path
) -> RegistryReconciler:
    """Create a reconciler over the fake synchronizer."""
    return RegistryReconciler(factory, synchronizer, tmp_path / "repositories")


@pytest.fixture(name="config")
def config_fixture(tmp_path: Path, plugin_path: Path) -> ApmConfig:
    """Create a config rooted in the test directory."""
    return ApmConfig(directory=tmp_path / "apm", plugin_dir=plugin_path)


@pytest.fixture(name="apm")
def apm_fixture(
    config: ApmConfig,
    kv: InMemoryKeyValueStore,
    synchronizer: FakeSynchronizer,
    installer: FakeInstaller,
    notifier: FakeNotifier,
) -> Generator[APM, None, None]:
    """Create an APM instance wired to the fakes."""
    with APM(
        config,
        kv=kv,
        synchronizer=synchronizer,
        installer=installer,
        notifier=notifier,
    ) as apm:
        yield apm
