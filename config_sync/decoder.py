"""Library for reading kubernetes manifests from a snapshot directory.

A snapshot directory is a flat directory of `.yaml` or `.yml` files, each of
which may hold multiple documents separated by `---` lines. Subdirectories
are not descended into.

This example prints every object in a directory:
```python
from config_sync import decoder

async for doc in decoder.read_manifests(Path('/path/to/snapshot')):
    print(f"Found object {doc.api_version} {doc.kind} in {doc.source_file}")
```
"""

from collections.abc import AsyncGenerator, Iterator
import logging
import os
from pathlib import Path
import re

import aiofiles
import yaml

from .exceptions import DecodeError, InputException
from .manifest import ManifestDocument

__all__ = [
    "MANIFEST_SUFFIXES",
    "find_manifest_files",
    "split_documents",
    "decode",
    "read_manifests",
]

_LOGGER = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml")

_SEPARATOR = re.compile(r"^---[ \t]*(?:#[^\r\n]*)?\r?$", re.MULTILINE)


def find_manifest_files(path: Path) -> list[Path]:
    """Return the manifest files directly inside a directory.

    Files are returned in directory listing order, which is not sorted.
    """
    try:
        with os.scandir(path) as entries:
            return [
                Path(entry.path)
                for entry in entries
                if entry.is_file()
                and Path(entry.name).suffix.lower() in MANIFEST_SUFFIXES
            ]
    except OSError as err:
        raise InputException(f"Failed to list source directory {path}: {err}") from err


def split_documents(content: str) -> Iterator[tuple[int, str]]:
    """Split content on document separator lines.

    Yields the ordinal of each segment with its trimmed text, skipping
    segments that are empty.
    """
    for index, segment in enumerate(_SEPARATOR.split(content)):
        if segment := segment.strip():
            yield index, segment


def decode(content: str | bytes, path: str) -> Iterator[ManifestDocument]:
    """Lazily decode every document in the content of a manifest file.

    Raises a DecodeError naming the file and document ordinal on the first
    document that is not valid yaml or not a kubernetes object.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as err:
            raise DecodeError(path, 0, f"not utf-8 text: {err}") from err
    for index, segment in split_documents(content):
        try:
            doc = yaml.safe_load(segment)
        except yaml.YAMLError as err:
            raise DecodeError(path, index, f"invalid yaml: {err}") from err
        if doc is None:
            # Only comments
            continue
        try:
            yield ManifestDocument.parse_doc(doc, source_file=path, index=index)
        except InputException as err:
            raise DecodeError(path, index, str(err)) from err


async def read_manifests(path: Path) -> AsyncGenerator[ManifestDocument, None]:
    """Yield every document of every manifest file in a directory in order."""
    for file in find_manifest_files(path):
        _LOGGER.debug("Reading manifest file %s", file)
        try:
            async with aiofiles.open(file, mode="rb") as manifest_file:
                content = await manifest_file.read()
        except OSError as err:
            raise InputException(f"Failed to read file {file}: {err}") from err
        for doc in decode(content, str(file)):
            yield doc
