"""Configuration objects for config-sync."""

from dataclasses import dataclass

FIELD_MANAGER = "configsync"
"""Field manager identity that owns every field written by the apply engine."""


@dataclass
class SyncConfig:
    """Configuration for the ApplyEngine."""

    dry_run: bool = True
    """Validate every document with a server-side dry-run before committing.

    Only disable this against clusters that cannot emulate dry-run requests.
    """

    field_manager: str = FIELD_MANAGER
    """Field manager used for server-side apply with forced ownership."""
