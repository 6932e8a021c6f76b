"""apm update action."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from apm.apm import APM

_LOGGER = logging.getLogger(__name__)


class UpdateAction:
    """Synchronize every tracked plugin repository."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "update",
                aliases=["sync"],
                help="Update plugin definitions",
                description="Fetch every plugin repository and update the plugin definitions.",
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
        for result in apm.update():
            if not result.changed:
                print(f"Already at latest for {result.alias}@{result.latest[:12]}.")
                continue
            print(
                f"Updated {result.alias} to {result.latest[:12]} "
                f"({len(result.added)} added, {len(result.modified)} modified, "
                f"{len(result.removed)} removed)."
            )
