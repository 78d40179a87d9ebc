"""Strip server populated fields from manifests before they are applied.

Manifests committed to a repository are sometimes copied from `kubectl get -o
yaml` output and carry fields the API server owns. Resubmitting them causes
the request to be rejected (e.g. "metadata.managedFields must be nil") or
spurious conflicts, so they are removed everywhere in the tree, including
objects embedded inside other objects such as pod templates or list items.
"""

from typing import Any

__all__ = [
    "sanitize",
]

MANAGED_FIELDS = "managedFields"
METADATA = "metadata"
STATUS = "status"

# Removed from any mapping reachable through a `metadata` key
SERVER_METADATA_FIELDS = (
    MANAGED_FIELDS,
    "resourceVersion",
    "uid",
    "creationTimestamp",
    "generation",
    "selfLink",
)


def _visit(value: Any) -> None:
    """Remove server populated fields from a value and everything beneath it."""
    if isinstance(value, dict):
        if isinstance(metadata := value.get(METADATA), dict):
            for key in SERVER_METADATA_FIELDS:
                metadata.pop(key, None)
        value.pop(MANAGED_FIELDS, None)
        for child in value.values():
            _visit(child)
    elif isinstance(value, list):
        for item in value:
            _visit(item)


def sanitize(doc: dict[str, Any]) -> dict[str, Any]:
    """Remove server populated fields from a decoded document in place.

    The root `status` is dropped, `managedFields` is dropped at any depth and
    server owned keys are dropped from every `metadata` mapping. Running it
    again on its own output changes nothing.
    """
    doc.pop(STATUS, None)
    _visit(doc)
    return doc
