"""Config-sync fetch action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import cast

from config_sync.source import fetch_source

from . import common

_LOGGER = logging.getLogger(__name__)


class FetchAction:
    """Fetch the source of a ConfigSync into a local directory."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "fetch",
                help="Fetch the source of a ConfigSync",
                description="""Fetch the git repository or ConfigMap declared
                    by a ConfigSync object and print the resolved snapshot.
                    The snapshot directory is left in place.""",
            ),
        )
        args.add_argument(
            "sync_file",
            type=pathlib.Path,
            help="Path to a yaml file containing a ConfigSync object",
        )
        common.add_cluster_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        sync_file: pathlib.Path,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config_sync = await common.read_config_sync(sync_file)
        client = common.build_client(**kwargs)
        snapshot = await fetch_source(config_sync.source, client)
        print(snapshot.yaml(), end="")
