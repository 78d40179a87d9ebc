"""Library for applying a snapshot directory of manifests to a cluster.

Every document is submitted with server-side apply under a single field
manager with forced ownership, so applying the same snapshot twice is a no-op.
When dry-run is enabled each document is first validated with a server-side
dry-run and the run aborts before anything from that document is committed.

Documents are applied one at a time in file order, then document order. The
first failure aborts the run; the error carries the results so far.

This example applies a directory to the `default` namespace:
```python
from config_sync import apply
from config_sync.client import KubectlClient
from config_sync.manifest import TargetRef

results = await apply.apply_target(
    KubectlClient(), Path('/path/to/snapshot'), TargetRef(namespace='default')
)
```
"""

import logging
from pathlib import Path

from .client import Client
from .config import SyncConfig
from .context import trace_context
from .decoder import read_manifests
from .exceptions import (
    ApplyError,
    DecodeError,
    SyncException,
    ValidationError,
)
from .manifest import (
    ApplyOutcome,
    ApplyResult,
    ManifestDocument,
    TargetRef,
)
from .sanitize import sanitize

__all__ = [
    "ApplyEngine",
    "apply_target",
]

_LOGGER = logging.getLogger(__name__)


class ApplyEngine:
    """Applies manifests from a local directory to a cluster."""

    def __init__(self, client: Client, config: SyncConfig | None = None) -> None:
        """Initialize ApplyEngine."""
        self._client = client
        self._config = config or SyncConfig()

    async def apply_all(
        self, source_path: Path, target: TargetRef
    ) -> list[ApplyResult]:
        """Apply every manifest in the directory, returning per document results.

        Raises on the first failure with the results so far attached as
        `results`.
        """
        results: list[ApplyResult] = []
        with trace_context(f"Apply '{source_path}'"):
            try:
                async for doc in read_manifests(source_path):
                    results.append(await self.apply_document(doc, target))
            except DecodeError as err:
                err.results = results
                raise
            except (ValidationError, ApplyError) as err:
                err.results = results + err.results
                raise
        _LOGGER.info("Applied %d manifests from %s", len(results), source_path)
        return results

    async def apply_document(
        self, doc: ManifestDocument, target: TargetRef
    ) -> ApplyResult:
        """Override the namespace, sanitize, validate and apply a single document."""
        if target.namespace and await self._client.is_namespaced(
            doc.api_version, doc.kind
        ):
            doc.namespace = target.namespace
        sanitize(doc.raw)

        resource = doc.resource
        if self._config.dry_run:
            _LOGGER.debug("Performing dry-run apply of %s", resource)
            try:
                await self._client.apply(
                    doc.raw,
                    dry_run=True,
                    force=True,
                    field_manager=self._config.field_manager,
                )
            except SyncException as err:
                result = ApplyResult(
                    ApplyOutcome.DRY_RUN_FAILED, resource, doc.source_file, str(err)
                )
                raise ValidationError(
                    f"Dry-run failed for {resource} from {doc.source_file}: {err}",
                    resource,
                    doc.source_file,
                    [result],
                ) from err

        try:
            await self._client.apply(
                doc.raw,
                dry_run=False,
                force=True,
                field_manager=self._config.field_manager,
            )
        except SyncException as err:
            result = ApplyResult(
                ApplyOutcome.APPLY_FAILED, resource, doc.source_file, str(err)
            )
            raise ApplyError(
                f"Failed to apply {resource} from {doc.source_file}: {err}",
                resource,
                doc.source_file,
                [result],
            ) from err

        _LOGGER.info(
            "Applied manifest kind=%s name=%s namespace=%s file=%s",
            resource.kind,
            resource.name,
            resource.namespace,
            doc.source_file,
        )
        return ApplyResult(ApplyOutcome.APPLIED, resource, doc.source_file)


async def apply_target(
    client: Client,
    source_path: Path,
    target: TargetRef,
    config: SyncConfig | None = None,
) -> list[ApplyResult]:
    """Apply a snapshot directory to the cluster."""
    return await ApplyEngine(client, config).apply_all(Path(source_path), target)
