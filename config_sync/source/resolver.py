"""Resolves a declared source into a local snapshot."""

import logging

from config_sync.client import Client
from config_sync.exceptions import SourceUnsupportedError
from config_sync.manifest import ResolvedSnapshot, SourceKind, SourceSpec

from .cache import GitCache
from .config_map import fetch_config_map
from .git import fetch_git
from .secret import CredentialResolver, SecretCredentialResolver

_LOGGER = logging.getLogger(__name__)


async def fetch_source(
    spec: SourceSpec,
    client: Client,
    credentials: CredentialResolver | None = None,
    cache: GitCache | None = None,
) -> ResolvedSnapshot:
    """Fetch the declared source into a local directory.

    Args:
        spec: The source to fetch, exactly one kind must be set
        client: Client used to read ConfigMaps and credential Secrets
        credentials: Resolves git credentials, defaults to reading Secrets
        cache: Cache of local git clones

    Returns:
        ResolvedSnapshot: The identity, local path and description. The local
        path is never removed by this function.
    """
    match spec.kind:
        case SourceKind.GIT:
            assert spec.git is not None
            resolver = credentials or SecretCredentialResolver(client)
            auth = await resolver.resolve(
                spec.git.auth_method, spec.git.auth_secret_ref
            )
            return await fetch_git(spec.git, auth, cache)
        case SourceKind.CONFIG_OBJECT:
            assert spec.config_map_ref is not None
            return await fetch_config_map(client, spec.config_map_ref)
        case kind:
            raise SourceUnsupportedError(f"Unsupported source kind: {kind}")
