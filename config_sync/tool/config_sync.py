"""Command line tool for fetching and applying config-sync sources."""

import argparse
import asyncio
import logging
import sys
import traceback

from config_sync.exceptions import SyncException
from . import apply, fetch, sync

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for syncing manifests onto a cluster.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    fetch.FetchAction.register(subparsers)
    apply.ApplyAction.register(subparsers)
    sync.SyncAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Config-sync command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except SyncException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("config-sync error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
