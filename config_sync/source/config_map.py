"""ConfigMap fetcher.

Every key of the ConfigMap is written as a file with the value as its content
into a fresh temporary directory. The identity is a sha256 over the sorted
entries so it only changes when the contents change.
"""

import base64
import binascii
import hashlib
import logging
from pathlib import Path
import tempfile

import aiofiles

from config_sync.client import Client
from config_sync.exceptions import BundleNotFoundError, CommandException, InputException
from config_sync.manifest import ConfigMap, ObjectRef, ResolvedSnapshot

from .errors import classify_error

_LOGGER = logging.getLogger(__name__)

DESCRIPTION = "configmap"
SNAPSHOT_PREFIX = "config-sync-"


def content_identity(config_map: ConfigMap) -> str:
    """Return a 64 character hex digest of the ConfigMap contents."""
    entries = {**(config_map.data or {}), **(config_map.binary_data or {})}
    digest = hashlib.sha256()
    for key, value in sorted(entries.items()):
        digest.update(key.encode("utf-8"))
        digest.update(b"\0")
        digest.update(value.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


def _check_key(ref: ObjectRef, key: str) -> None:
    if not key or key in (".", "..") or "/" in key or "\\" in key:
        raise InputException(f"ConfigMap {ref} key {key!r} is not a valid file name")


async def _write(path: Path, content: bytes) -> None:
    async with aiofiles.open(path, mode="wb") as out:
        await out.write(content)


async def fetch_config_map(client: Client, ref: ObjectRef) -> ResolvedSnapshot:
    """Materialize a ConfigMap as a directory of files.

    The returned directory is new on every call and owned by the caller.
    """
    try:
        config_map = await client.get_config_map(ref.namespace, ref.name)
    except CommandException as err:
        raise classify_error(
            str(err), f"Failed to read ConfigMap {ref}: {err}"
        ) from err
    if config_map is None:
        raise BundleNotFoundError(f"ConfigMap {ref} not found")

    files: dict[str, bytes] = {}
    for key, value in (config_map.data or {}).items():
        _check_key(ref, key)
        files[key] = value.encode("utf-8")
    for key, value in (config_map.binary_data or {}).items():
        _check_key(ref, key)
        try:
            files[key] = base64.b64decode(value, validate=True)
        except binascii.Error as err:
            raise InputException(
                f"ConfigMap {ref} binaryData key {key!r} is not base64: {err}"
            ) from err

    local_path = Path(tempfile.mkdtemp(prefix=SNAPSHOT_PREFIX))
    _LOGGER.debug("Writing ConfigMap %s to %s", ref, local_path)
    for key, content in files.items():
        await _write(local_path / key, content)

    identity = content_identity(config_map)
    _LOGGER.info("Fetched ConfigMap %s with identity %s", ref, identity)
    return ResolvedSnapshot(
        identity=identity, local_path=str(local_path), description=DESCRIPTION
    )
