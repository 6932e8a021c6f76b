"""apm repository actions."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from apm.apm import APM

from .format import PrintFormatter

_LOGGER = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


class AddRepositoryAction:
    """Start tracking a plugin repository."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "add-repository",
                help="Add a plugin repository",
                description="Track a plugin repository. It is fetched on the next update.",
            ),
        )
        args.add_argument(
            "alias", help="Alias of the repository as organization/repository"
        )
        args.add_argument("url", help="Git url of the repository")
        args.add_argument(
            "--branch",
            default=DEFAULT_BRANCH,
            help="Branch of the repository to track",
        )
        args.set_defaults(cls=cls)
        return args

    def run(  # type: ignore[no-untyped-def]
        self,
        apm: APM,
        alias: str,
        url: str,
        branch: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Action implementation."""
        apm.add_repository(alias, url, branch)
        print(f"Added repository {alias}. Run `apm update` to fetch it.")


class RemoveRepositoryAction:
    """Stop tracking a plugin repository."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "remove-repository",
                help="Remove a plugin repository",
                description="Stop tracking a plugin repository and forget its definitions.",
            ),
        )
        args.add_argument(
            "alias", help="Alias of the repository as organization/repository"
        )
        args.set_defaults(cls=cls)
        return args

    def run(  # type: ignore[no-untyped-def]
        self,
        apm: APM,
        alias: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Action implementation."""
        apm.remove_repository(alias)
        print(f"Removed repository {alias}.")


class ListRepositoriesAction:
    """List the tracked plugin repositories."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "list-repositories",
                help="List plugin repositories",
                description="Print the tracked plugin repositories and their synced commit.",
            ),
        )
        args.set_defaults(cls=cls)
        return args

    def run(  # type: ignore[no-untyped-def]
        self,
        apm: APM,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Action implementation."""
        results = [
            {
                "alias": source.alias,
                "url": source.url,
                "branch": source.branch,
                "commit": source.commit[:12] if source.synced else "<unsynced>",
            }
            for source in apm.list_repositories()
        ]
        PrintFormatter(["alias", "url", "branch", "commit"]).print(results)
