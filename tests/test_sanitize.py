"""Tests for the sanitize library."""

import copy
from typing import Any

import yaml

from config_sync.sanitize import sanitize

SERVER_OUTPUT = """
apiVersion: apps/v1
kind: Deployment
metadata:
  name: podinfo
  namespace: podinfo
  uid: 3b5c6a2e-0a0c-4a0f-9a51-1b4a0d6b1c9e
  resourceVersion: "123456"
  generation: 4
  creationTimestamp: "2024-01-02T03:04:05Z"
  selfLink: /apis/apps/v1/namespaces/podinfo/deployments/podinfo
  labels:
    app: podinfo
  managedFields:
  - manager: kubectl
    operation: Apply
spec:
  replicas: 2
  template:
    metadata:
      creationTimestamp: null
      labels:
        app: podinfo
    spec:
      containers:
      - name: podinfo
        image: ghcr.io/stefanprodan/podinfo:6.5.4
status:
  readyReplicas: 2
"""


def _contains_key(value: Any, key: str) -> bool:
    if isinstance(value, dict):
        return key in value or any(_contains_key(v, key) for v in value.values())
    if isinstance(value, list):
        return any(_contains_key(v, key) for v in value)
    return False


def test_strips_server_fields() -> None:
    """Test that server populated metadata and status are removed."""
    doc = sanitize(yaml.safe_load(SERVER_OUTPUT))

    assert "status" not in doc
    assert doc["metadata"] == {
        "name": "podinfo",
        "namespace": "podinfo",
        "labels": {"app": "podinfo"},
    }
    assert doc["spec"]["template"]["metadata"] == {"labels": {"app": "podinfo"}}
    assert doc["spec"]["replicas"] == 2
    assert doc["spec"]["template"]["spec"]["containers"][0]["name"] == "podinfo"


def test_strips_embedded_documents() -> None:
    """Test objects embedded in lists and other objects are sanitized."""
    doc = {
        "apiVersion": "v1",
        "kind": "List",
        "metadata": {"resourceVersion": "1"},
        "items": [
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": {
                    "name": "a",
                    "uid": "x",
                    "generation": 1,
                    "managedFields": [{"manager": "kubectl"}],
                },
                "data": {"nested": {"managedFields": ["y"], "keep": "z"}},
            }
        ],
    }

    sanitize(doc)

    for key in (
        "managedFields",
        "resourceVersion",
        "uid",
        "generation",
        "creationTimestamp",
        "selfLink",
    ):
        assert not _contains_key(doc, key), key
    assert doc["items"][0]["metadata"] == {"name": "a"}
    assert doc["items"][0]["data"] == {"nested": {"keep": "z"}}


def test_nested_status_is_kept() -> None:
    """Test that only the root status is removed."""
    doc = {
        "apiVersion": "example.com/v1",
        "kind": "Widget",
        "metadata": {"name": "w"},
        "spec": {"status": "enabled"},
        "status": {"phase": "Ready"},
    }

    sanitize(doc)

    assert doc == {
        "apiVersion": "example.com/v1",
        "kind": "Widget",
        "metadata": {"name": "w"},
        "spec": {"status": "enabled"},
    }


def test_sanitize_is_idempotent() -> None:
    """Test that sanitizing twice has the same result as once."""
    once = sanitize(yaml.safe_load(SERVER_OUTPUT))
    twice = sanitize(copy.deepcopy(once))
    assert once == twice


def test_absent_fields() -> None:
    """Test a minimal document without any server fields is unchanged."""
    doc = {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "cm"}}
    assert sanitize(copy.deepcopy(doc)) == doc


def test_non_mapping_metadata() -> None:
    """Test that a scalar metadata value does not raise."""
    doc = {"apiVersion": "v1", "kind": "Thing", "metadata": None, "spec": ["a", 1]}
    assert sanitize(doc) == {
        "apiVersion": "v1",
        "kind": "Thing",
        "metadata": None,
        "spec": ["a", 1],
    }
