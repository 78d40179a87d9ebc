"""Config-sync apply action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import cast

from config_sync.apply import apply_target
from config_sync.exceptions import DecodeError, ResourceError
from config_sync.manifest import TargetRef

from . import common

_LOGGER = logging.getLogger(__name__)


class ApplyAction:
    """Apply a local directory of manifests."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "apply",
                help="Apply a directory of manifests to the cluster",
                description="""Apply every .yaml and .yml file directly inside
                    a directory with server-side apply. Subdirectories are
                    not read.""",
            ),
        )
        args.add_argument(
            "path", type=pathlib.Path, help="Directory containing manifests"
        )
        args.add_argument(
            "--namespace",
            "-n",
            type=str,
            default=None,
            help="Override the namespace of every namespaced manifest",
        )
        common.add_cluster_flags(args)
        common.add_apply_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        namespace: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        client = common.build_client(**kwargs)
        config = common.build_config(**kwargs)
        try:
            results = await apply_target(
                client, path, TargetRef(namespace=namespace), config
            )
        except (ResourceError, DecodeError) as err:
            common.print_results(err.results)
            raise
        common.print_results(results)
