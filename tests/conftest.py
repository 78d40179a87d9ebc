"""Test fixtures for config-sync."""

import copy
from collections.abc import Callable
from typing import Any

import pytest

from config_sync.client import Client
from config_sync.exceptions import KubectlException
from config_sync.manifest import ConfigMap, Secret

ObjectKey = tuple[str, str, str | None, str]


def _merge(current: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Merge desired fields over the current object."""
    result = copy.deepcopy(current)
    for key, value in desired.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class FakeClient(Client):
    """In memory cluster that emulates server-side apply.

    Objects are merged on apply. A rejection hook emulates admission failures
    for both dry-run and committed requests.
    """

    def __init__(self) -> None:
        self.objects: dict[ObjectKey, dict[str, Any]] = {}
        self.requests: list[tuple[bool, dict[str, Any]]] = []
        self.reject: Callable[[dict[str, Any]], str | None] = lambda obj: None
        self.reject_commit_only = False

    @property
    def commits(self) -> list[dict[str, Any]]:
        return [obj for dry_run, obj in self.requests if not dry_run]

    def add(self, obj: dict[str, Any]) -> None:
        metadata = obj["metadata"]
        key = (
            obj["apiVersion"], obj["kind"], metadata.get("namespace"), metadata["name"]
        )
        self.objects[key] = copy.deepcopy(obj)

    def get(
        self, api_version: str, kind: str, namespace: str | None, name: str
    ) -> dict[str, Any] | None:
        return self.objects.get((api_version, kind, namespace, name))

    async def apply(
        self,
        obj: dict[str, Any],
        *,
        dry_run: bool,
        force: bool,
        field_manager: str,
    ) -> dict[str, Any]:
        assert force
        assert field_manager
        for field in ("managedFields", "resourceVersion", "uid"):
            if field in obj.get("metadata", {}):
                raise KubectlException(f"metadata.{field} must be nil")
        self.requests.append((dry_run, copy.deepcopy(obj)))
        if error := self.reject(obj):
            if not (dry_run and self.reject_commit_only):
                raise KubectlException(error)

        metadata = obj["metadata"]
        namespace = metadata.get("namespace")
        if namespace is None and await self.is_namespaced(
            obj["apiVersion"], obj["kind"]
        ):
            namespace = "default"
        key = (obj["apiVersion"], obj["kind"], namespace, metadata["name"])
        merged = _merge(self.objects.get(key, {}), obj)
        if namespace is not None:
            merged["metadata"]["namespace"] = namespace
        if not dry_run:
            self.objects[key] = merged
        return copy.deepcopy(merged)

    async def get_config_map(self, namespace: str, name: str) -> ConfigMap | None:
        if (obj := self.get("v1", "ConfigMap", namespace, name)) is None:
            return None
        return ConfigMap.parse_doc(obj)

    async def get_secret(self, namespace: str, name: str) -> Secret | None:
        if (obj := self.get("v1", "Secret", namespace, name)) is None:
            return None
        return Secret.parse_doc(obj)


@pytest.fixture(name="client")
def client_fixture() -> FakeClient:
    """Create an empty fake cluster."""
    return FakeClient()
