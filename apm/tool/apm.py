"""Command line tool for managing plugin repositories and the VMs they publish."""

import argparse
import logging
import os
from pathlib import Path
import sys
import traceback

from apm.apm import APM
from apm.config import (
    APM_ADMIN_API_ENDPOINT_ENV,
    APM_CREDENTIALS_FILE_ENV,
    APM_HOME_ENV,
    APM_PLUGIN_PATH_ENV,
    DEFAULT_ADMIN_API_ENDPOINT,
    DEFAULT_APM_PATH,
    DEFAULT_PLUGIN_PATH,
    ApmConfig,
    load_credentials,
)
from apm.constants import APP_NAME
from apm.exceptions import ApmException
from . import install, repository, update

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Command line utility for installing virtual machine plugins.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )
    parser.add_argument(
        "--apm-path",
        type=Path,
        default=Path(os.environ.get(APM_HOME_ENV, DEFAULT_APM_PATH)),
        help="Directory holding the apm database and repository checkouts",
    )
    parser.add_argument(
        "--plugin-path",
        type=Path,
        default=Path(os.environ.get(APM_PLUGIN_PATH_ENV, DEFAULT_PLUGIN_PATH)),
        help="Directory VM binaries are installed into",
    )
    parser.add_argument(
        "--admin-api-endpoint",
        default=os.environ.get(APM_ADMIN_API_ENDPOINT_ENV, DEFAULT_ADMIN_API_ENDPOINT),
        help="host:port of the node admin API",
    )
    parser.add_argument(
        "--credentials-file",
        type=Path,
        default=os.environ.get(APM_CREDENTIALS_FILE_ENV),
        help="YAML file with a username and password for private repositories",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    repository.AddRepositoryAction.register(subparsers)
    repository.RemoveRepositoryAction.register(subparsers)
    repository.ListRepositoriesAction.register(subparsers)
    update.UpdateAction.register(subparsers)
    install.InstallAction.register(subparsers)
    install.UninstallAction.register(subparsers)
    install.UpgradeAction.register(subparsers)
    install.JoinSubnetAction.register(subparsers)
    install.InfoAction.register(subparsers)
    return parser


def _make_config(args: argparse.Namespace) -> ApmConfig:
    config = ApmConfig(
        directory=Path(args.apm_path).expanduser(),
        plugin_dir=Path(args.plugin_path).expanduser(),
        admin_api_endpoint=args.admin_api_endpoint,
    )
    if args.credentials_file:
        config.auth = load_credentials(Path(args.credentials_file).expanduser())
    return config


def main(argv: list[str] | None = None) -> None:
    """apm command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        with APM(_make_config(args)) as apm:
            apm.bootstrap()
            action.run(apm=apm, **vars(args))
    except ApmException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print(f"apm error: {err}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
