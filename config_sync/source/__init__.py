"""The source module.

Fetches a declared source (a git repository or a ConfigMap) into a local
directory of manifests and computes the identity of its contents.
"""

from .cache import GitCache, get_git_cache
from .config_map import content_identity, fetch_config_map
from .git import fetch_git
from .resolver import fetch_source
from .secret import CredentialResolver, GitAuth, SecretCredentialResolver

__all__ = [
    "fetch_source",
    "fetch_git",
    "fetch_config_map",
    "content_identity",
    "CredentialResolver",
    "SecretCredentialResolver",
    "GitAuth",
    "GitCache",
    "get_git_cache",
]
