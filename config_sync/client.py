"""Clients for submitting declarative mutations to a cluster.

The apply engine only needs a small slice of the kubernetes API: server-side
apply with dry-run and forced ownership, reading a ConfigMap or Secret, and
knowing whether a kind is namespaced. `Client` describes that slice and
`KubectlClient` implements it on top of the `kubectl` command line tool.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any

import yaml

from .command import Command, run
from .exceptions import KubectlException
from .manifest import ConfigMap, Secret

__all__ = [
    "Client",
    "KubectlClient",
    "CLUSTER_SCOPED_KINDS",
]

_LOGGER = logging.getLogger(__name__)

KUBECTL_BIN = "kubectl"

# Built-in kinds that are not namespaced, used when the cluster is not asked
CLUSTER_SCOPED_KINDS = frozenset(
    {
        "APIService",
        "CertificateSigningRequest",
        "ClusterRole",
        "ClusterRoleBinding",
        "ComponentStatus",
        "CSIDriver",
        "CSINode",
        "CustomResourceDefinition",
        "IngressClass",
        "MutatingWebhookConfiguration",
        "Namespace",
        "Node",
        "PersistentVolume",
        "PriorityClass",
        "PriorityLevelConfiguration",
        "FlowSchema",
        "RuntimeClass",
        "StorageClass",
        "ValidatingAdmissionPolicy",
        "ValidatingAdmissionPolicyBinding",
        "ValidatingWebhookConfiguration",
        "VolumeAttachment",
    }
)


class Client(ABC):
    """A declarative mutation client for a cluster."""

    @abstractmethod
    async def apply(
        self,
        obj: dict[str, Any],
        *,
        dry_run: bool,
        force: bool,
        field_manager: str,
    ) -> dict[str, Any]:
        """Server-side apply an object, returning the object the server holds.

        With `dry_run` the server validates and runs admission without
        persisting anything. With `force` the field manager takes ownership of
        conflicting fields instead of failing.
        """

    @abstractmethod
    async def get_config_map(self, namespace: str, name: str) -> ConfigMap | None:
        """Return the ConfigMap or None if it does not exist."""

    @abstractmethod
    async def get_secret(self, namespace: str, name: str) -> Secret | None:
        """Return the Secret or None if it does not exist."""

    async def is_namespaced(self, api_version: str, kind: str) -> bool:
        """Return True if objects of this kind live in a namespace."""
        return kind not in CLUSTER_SCOPED_KINDS


class KubectlClient(Client):
    """Client that shells out to kubectl."""

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        kubectl_bin: str = KUBECTL_BIN,
    ) -> None:
        """Initialize KubectlClient."""
        self._kubeconfig = kubeconfig
        self._context = context
        self._kubectl_bin = kubectl_bin
        self._namespaced: dict[str, bool] = {}

    def _command(self, args: list[str]) -> Command:
        cmd = [self._kubectl_bin]
        if self._kubeconfig:
            cmd.append(f"--kubeconfig={self._kubeconfig}")
        if self._context:
            cmd.append(f"--context={self._context}")
        return Command(cmd + args, exc=KubectlException)

    async def apply(
        self,
        obj: dict[str, Any],
        *,
        dry_run: bool,
        force: bool,
        field_manager: str,
    ) -> dict[str, Any]:
        args = [
            "apply",
            "--server-side",
            f"--field-manager={field_manager}",
            "--output=yaml",
        ]
        if force:
            args.append("--force-conflicts")
        if dry_run:
            args.append("--dry-run=server")
        args.extend(["-f", "-"])
        content = yaml.safe_dump(obj, sort_keys=False)
        out = await run(self._command(args), stdin=content.encode("utf-8"))
        return yaml.safe_load(out) or {}

    async def _get(self, kind: str, namespace: str, name: str) -> dict[str, Any] | None:
        out = await run(
            self._command(
                [
                    "get",
                    kind,
                    name,
                    f"--namespace={namespace}",
                    "--ignore-not-found",
                    "--output=yaml",
                ]
            )
        )
        if not out.strip():
            return None
        return yaml.safe_load(out)

    async def get_config_map(self, namespace: str, name: str) -> ConfigMap | None:
        if (doc := await self._get("configmap", namespace, name)) is None:
            return None
        return ConfigMap.parse_doc(doc)

    async def get_secret(self, namespace: str, name: str) -> Secret | None:
        if (doc := await self._get("secret", namespace, name)) is None:
            return None
        return Secret.parse_doc(doc)

    async def _discover(self) -> None:
        out = await run(self._command(["api-resources", "--no-headers"]))
        # NAMESPACED and KIND are always the last columns, SHORTNAMES may be blank
        for line in out.splitlines():
            if len(columns := line.split()) < 3:
                continue
            self._namespaced[columns[-1]] = columns[-2] == "true"
        _LOGGER.debug("Discovered %d resource kinds", len(self._namespaced))

    async def is_namespaced(self, api_version: str, kind: str) -> bool:
        """Return the scope reported by the cluster.

        Discovery runs again the first time an unknown kind is seen, so kinds
        from CustomResourceDefinitions applied earlier in the run are found.
        """
        if kind not in self._namespaced:
            await self._discover()
        if (namespaced := self._namespaced.get(kind)) is None:
            # Not served yet, e.g. the CRD is not established
            return await super().is_namespaced(api_version, kind)
        return namespaced
