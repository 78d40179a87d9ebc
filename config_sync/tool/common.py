"""Flags and helpers shared by config-sync actions."""

from argparse import ArgumentParser, BooleanOptionalAction
import pathlib
import sys
from typing import Any, TextIO

import aiofiles
import yaml

from config_sync.client import KubectlClient
from config_sync.config import FIELD_MANAGER, SyncConfig
from config_sync.exceptions import InputException
from config_sync.manifest import ApplyResult, ConfigSync


def add_cluster_flags(args: ArgumentParser) -> None:
    """Add flags that select the cluster to talk to."""
    args.add_argument(
        "--kubeconfig",
        type=str,
        default=None,
        help="Path to the kubeconfig file used by kubectl",
    )
    args.add_argument(
        "--context",
        type=str,
        default=None,
        help="The kubeconfig context to use",
    )


def add_apply_flags(args: ArgumentParser) -> None:
    """Add flags that control how manifests are applied."""
    args.add_argument(
        "--dry-run",
        type=bool,
        action=BooleanOptionalAction,
        default=True,
        help="Validate each manifest with a server-side dry-run before applying",
    )
    args.add_argument(
        "--field-manager",
        type=str,
        default=FIELD_MANAGER,
        help="Field manager that owns the applied fields",
    )


def build_client(
    kubeconfig: str | None = None, context: str | None = None, **kwargs: Any
) -> KubectlClient:
    """Build a client from the cluster flags."""
    return KubectlClient(kubeconfig=kubeconfig, context=context)


def build_config(
    dry_run: bool = True, field_manager: str = FIELD_MANAGER, **kwargs: Any
) -> SyncConfig:
    """Build the apply configuration from the apply flags."""
    return SyncConfig(dry_run=dry_run, field_manager=field_manager)


async def read_config_sync(path: pathlib.Path) -> ConfigSync:
    """Read a ConfigSync object from a yaml file."""
    try:
        async with aiofiles.open(path, encoding="utf-8") as sync_file:
            content = await sync_file.read()
    except OSError as err:
        raise InputException(f"Failed to read {path}: {err}") from err
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise InputException(f"Invalid yaml in {path}: {err}") from err
    if not isinstance(doc, dict):
        raise InputException(f"Expected a ConfigSync object in {path}")
    return ConfigSync.parse_doc(doc)


def print_results(results: list[ApplyResult], file: TextIO | None = None) -> None:
    """Print one line per applied document, to stdout unless a file is given."""
    out = file or sys.stdout
    for result in results:
        line = f"{result.outcome.value} {result.resource} ({result.source_file})"
        if result.error:
            line += f": {result.error}"
        print(line, file=out)
