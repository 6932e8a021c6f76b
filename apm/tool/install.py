"""apm actions that install, upgrade and inspect plugins."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import Any, cast

from apm.apm import APM, PluginInfo

from .format import YamlFormatter

_LOGGER = logging.getLogger(__name__)


def _add_name_argument(args: ArgumentParser, help: str) -> None:
    args.add_argument(
        "name",
        help=f"{help}, either organization/repository:name or a bare name",
    )


class InstallAction:
    """Install a VM into the plugin directory."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "install",
                help="Install a VM",
                description="Download and install a VM from its plugin repository.",
            ),
        )
        _add_name_argument(args, "Name of the VM")
        args.set_defaults(cls=cls)
        return args

    def run(  # type: ignore[no-untyped-def]
        self,
        apm: APM,
        name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Action implementation."""
        full_name = apm.install(name)
        print(f"Installed {full_name}.")


class UninstallAction:
    """Remove an installed VM from the plugin directory."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "uninstall",
                help="Uninstall a VM",
                description="Remove an installed VM binary and its install record.",
            ),
        )
        _add_name_argument(args, "Name of the VM")
        args.set_defaults(cls=cls)
        return args

    def run(  # type: ignore[no-untyped-def]
        self,
        apm: APM,
        name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Action implementation."""
        full_name = apm.uninstall(name)
        print(f"Uninstalled {full_name}.")


class UpgradeAction:
    """Upgrade installed VMs whose definition changed."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "upgrade",
                help="Upgrade installed VMs",
                description=(
                    "Reinstall VMs whose definition changed since they were "
                    "installed. All installed VMs are upgraded when no name is given."
                ),
            ),
        )
        args.add_argument(
            "name",
            nargs="?",
            help="Name of a single VM to upgrade",
        )
        args.set_defaults(cls=cls)
        return args

    def run(  # type: ignore[no-untyped-def]
        self,
        apm: APM,
        name: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Action implementation."""
        report = apm.upgrade(name)
        for upgraded in report.upgraded:
            print(f"Upgraded {upgraded}.")
        for up_to_date in report.up_to_date:
            print(f"{up_to_date} is already up to date.")
        if not report.upgraded and not report.up_to_date:
            print("No VMs are installed.")


class JoinSubnetAction:
    """Install the VMs of a subnet and whitelist it on the node."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "join-subnet",
                help="Join a subnet",
                description=(
                    "Install every VM the subnet requires and register the "
                    "subnet with the node."
                ),
            ),
        )
        _add_name_argument(args, "Name of the subnet")
        args.set_defaults(cls=cls)
        return args

    def run(  # type: ignore[no-untyped-def]
        self,
        apm: APM,
        name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Action implementation."""
        full_name = apm.join_subnet(name)
        print(f"Joined subnet {full_name}.")


def _info_document(info: PluginInfo) -> dict[str, Any]:
    doc: dict[str, Any] = {"name": info.name}
    if info.vm is not None:
        doc["vm"] = info.vm.definition.to_dict()
        doc["vm"]["version"] = str(info.vm.definition.version)
        doc["vm"]["commit"] = info.vm.commit
    if info.subnet is not None:
        doc["subnet"] = info.subnet.definition.to_dict()
        doc["subnet"]["commit"] = info.subnet.commit
    if info.installed is not None:
        doc["installed"] = {
            "id": info.installed.id,
            "version": str(info.installed.version),
            "commit": info.installed.commit,
        }
    return doc


class InfoAction:
    """Print what the registry knows about a plugin."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "info",
                help="Show plugin details",
                description="Print the definitions and install state of a plugin.",
            ),
        )
        _add_name_argument(args, "Name of the VM or subnet")
        args.set_defaults(cls=cls)
        return args

    def run(  # type: ignore[no-untyped-def]
        self,
        apm: APM,
        name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Action implementation."""
        YamlFormatter().print(_info_document(apm.info(name)))
