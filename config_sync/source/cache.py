"""Cache of local clones for git repositories."""

import hashlib
import tempfile
import logging
from pathlib import Path
from urllib.parse import urlparse

from slugify import slugify

from config_sync.exceptions import SourceFetchError

_LOGGER = logging.getLogger(__name__)

CACHE_DIR_NAME = "config-sync-cache"


class GitCache:
    """Maps repository URLs to local clone directories.

    A repository keeps the same directory for the lifetime of the cache so that
    later syncs update the existing clone instead of cloning again. The
    directories are never removed by the cache.
    """

    def __init__(self, cache_dir: Path | None = None) -> None:
        """Initialize the cache manager."""
        self._cache_dir = cache_dir or Path(tempfile.gettempdir()) / CACHE_DIR_NAME

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def _slugify_url(self, url: str) -> str:
        """Extract and slugify a repository name from a URL."""
        # scp-like ssh URLs e.g. git@github.com:user/repo.git
        if "://" not in url and "@" in url and ":" in url:
            path = url.split(":", 1)[1]
        else:
            path = urlparse(url).path
        path = path.rstrip("/")
        if path.endswith(".git"):
            path = path[:-4]
        slug = slugify(
            path.split("/")[-1], max_length=50, lowercase=True, separator="-"
        )
        return slug or "repo"

    def get_repo_path(self, url: str) -> Path:
        """Get the local clone path for a repository, creating its parent."""
        # Credentials embedded in the url must not change the cache key
        parsed = urlparse(url)
        if parsed.password or parsed.username:
            url = parsed._replace(netloc=parsed.netloc.rsplit("@", 1)[-1]).geturl()
        hash_str = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
        # e.g. /config-sync-cache/my-repo/ab1234567890abcdef
        cache_path = self._cache_dir / self._slugify_url(url) / hash_str
        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            _LOGGER.error("Error creating cache directory for %s: %s", url, err)
            raise SourceFetchError(f"Failed to create cache directory: {err}") from err
        return cache_path


# Create a singleton instance for the application
_git_cache = GitCache()


def get_git_cache() -> GitCache:
    """Get the singleton GitCache instance."""
    return _git_cache
