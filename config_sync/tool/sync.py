"""Config-sync sync action."""

from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from shutil import rmtree
from typing import cast

from config_sync.apply import apply_target
from config_sync.exceptions import DecodeError, ResourceError
from config_sync.manifest import SourceKind
from config_sync.source import fetch_source

from . import common

_LOGGER = logging.getLogger(__name__)


class SyncAction:
    """Fetch the source of a ConfigSync and apply it to the cluster."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "sync",
                help="Fetch and apply a ConfigSync once",
                description="""Run a single sync of a ConfigSync object: fetch
                    its source and apply the manifests to its target.""",
            ),
        )
        args.add_argument(
            "sync_file",
            type=pathlib.Path,
            help="Path to a yaml file containing a ConfigSync object",
        )
        args.add_argument(
            "--keep-snapshot",
            type=bool,
            action=BooleanOptionalAction,
            default=False,
            help="Keep the temporary directory created for ConfigMap sources",
        )
        common.add_cluster_flags(args)
        common.add_apply_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        sync_file: pathlib.Path,
        keep_snapshot: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config_sync = await common.read_config_sync(sync_file)
        client = common.build_client(**kwargs)
        config = common.build_config(**kwargs)

        snapshot = await fetch_source(config_sync.source, client)
        _LOGGER.info(
            "Syncing %s at %s (%s)",
            config_sync.name,
            snapshot.identity,
            snapshot.description,
        )
        try:
            results = await apply_target(
                client, pathlib.Path(snapshot.local_path), config_sync.target, config
            )
        except (ResourceError, DecodeError) as err:
            common.print_results(err.results)
            raise
        finally:
            # Git snapshots live in the clone cache and are reused
            is_config_map = config_sync.source.kind == SourceKind.CONFIG_OBJECT
            if is_config_map and not keep_snapshot:
                rmtree(snapshot.local_path, ignore_errors=True)
        common.print_results(results)
        print(f"Synced {config_sync.name} at {snapshot.identity}")
