"""Materializes VM binaries in the plugin directory.

Installing a VM downloads the archive at `vm.url` into a staging directory,
verifies its sha256 checksum, extracts it, runs the optional install script
and finally moves the built binary at `vm.binary_path` to the destination.
"""

from abc import ABC, abstractmethod
import hashlib
import logging
from pathlib import Path
import shutil
import tarfile

import httpx
from slugify import slugify

from .command import Command, run
from .definition import VM
from .exceptions import InstallError

__all__ = [
    "Installer",
    "VMInstaller",
]

_LOGGER = logging.getLogger(__name__)

ARCHIVE_NAME = "archive.tar.gz"
EXTRACT_DIR = "src"
BINARY_MODE = 0o755
_CHUNK_SIZE = 64 * 1024
_TIMEOUT = 60.0


class Installer(ABC):
    """Creates and removes the artifact of an installed VM."""

    @abstractmethod
    def install(self, vm: VM, destination: Path) -> None:
        """Materialize the VM binary at destination.

        A failure must not leave a partial file at destination.

        Raises:
            InstallError: If the binary could not be installed.
        """

    @abstractmethod
    def remove(self, destination: Path) -> None:
        """Remove the VM binary at destination. A missing file is not an error."""


class VMInstaller(Installer):
    """Installer that builds VMs from a downloaded source archive."""

    def __init__(self, tmp_path: Path, client: httpx.Client | None = None) -> None:
        """
        Initialize the installer.

        Args:
            tmp_path: Directory used to stage downloads
            client: HTTP client used for downloads
        """
        self._tmp_path = tmp_path
        self._client = client or httpx.Client(timeout=_TIMEOUT, follow_redirects=True)

    def close(self) -> None:
        self._client.close()

    def install(self, vm: VM, destination: Path) -> None:
        if not vm.url:
            raise InstallError(f"VM {vm.alias or vm.id} does not have a download url")
        workdir = self._tmp_path / slugify(f"{vm.alias}-{vm.id}-{vm.version}")
        shutil.rmtree(workdir, ignore_errors=True)
        try:
            workdir.mkdir(parents=True)
            archive = workdir / ARCHIVE_NAME
            self._download(vm.url, archive)
            if vm.sha256:
                _verify(archive, vm.sha256)
            else:
                _LOGGER.warning("No checksum published for %s, skipping verification", vm.alias)
            root = _extract(archive, workdir / EXTRACT_DIR)
            if vm.install_script:
                _LOGGER.info("Running install script %s for %s", vm.install_script, vm.alias)
                run(Command(["bash", vm.install_script], cwd=root))
            self._place(root / vm.binary_path, destination)
        except OSError as err:
            raise InstallError(f"Failed to install {vm.alias}: {err}") from err
        finally:
            shutil.rmtree(workdir, ignore_errors=True)
        _LOGGER.info("Installed %s %s to %s", vm.alias, vm.version, destination)

    def remove(self, destination: Path) -> None:
        try:
            destination.unlink(missing_ok=True)
        except OSError as err:
            raise InstallError(f"Failed to remove {destination}: {err}") from err
        _LOGGER.info("Removed %s", destination)

    def _download(self, url: str, target: Path) -> None:
        _LOGGER.info("Downloading %s", url)
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                with target.open("wb") as fd:
                    for chunk in response.iter_bytes(_CHUNK_SIZE):
                        fd.write(chunk)
        except httpx.HTTPError as err:
            raise InstallError(f"Failed to download {url}: {err}") from err

    def _place(self, binary: Path, destination: Path) -> None:
        if not binary.is_file():
            raise InstallError(f"Expected binary {binary.name} was not built")
        destination.parent.mkdir(parents=True, exist_ok=True)
        staged = destination.with_name(f".{destination.name}.partial")
        try:
            shutil.copyfile(binary, staged)
            staged.chmod(BINARY_MODE)
            staged.replace(destination)
        except OSError:
            staged.unlink(missing_ok=True)
            raise


def _verify(archive: Path, expected: str) -> None:
    digest = hashlib.sha256()
    with archive.open("rb") as fd:
        while chunk := fd.read(_CHUNK_SIZE):
            digest.update(chunk)
    if digest.hexdigest() != expected.lower():
        raise InstallError(
            f"Checksum mismatch for {archive.name}: expected {expected}, got {digest.hexdigest()}"
        )


def _extract(archive: Path, target: Path) -> Path:
    """Extract the archive and return the directory holding its contents.

    Source archives usually wrap everything in a single top level directory,
    which is then used as the root.
    """
    try:
        with tarfile.open(archive) as tar:
            tar.extractall(target, filter="data")
    except tarfile.TarError as err:
        raise InstallError(f"Failed to extract {archive.name}: {err}") from err
    entries = list(target.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return target
