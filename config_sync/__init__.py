"""config-sync applies manifests from a git repository or ConfigMap to a cluster.

The two entry points used by a reconciliation loop are
`config_sync.source.fetch_source`, which materializes a source into a local
directory, and `config_sync.apply.apply_target`, which applies that directory
to the cluster with server-side apply.
"""

__all__ = [
    "apply",
    "client",
    "config",
    "decoder",
    "exceptions",
    "manifest",
    "sanitize",
    "source",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
