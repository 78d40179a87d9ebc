"""Git repository fetcher.

The repository is cloned into the cache on first use and updated in place on
later fetches. The checkout target is chosen with a fixed precedence:
revision, then branch, then the default branch of the remote.
"""

import asyncio
from collections.abc import Generator
from contextlib import contextmanager
import logging
from pathlib import Path
from shutil import rmtree
import tempfile

import git

from config_sync.context import trace_context
from config_sync.exceptions import RevisionNotFoundError
from config_sync.manifest import GitSource, ResolvedSnapshot

from .cache import GitCache, get_git_cache
from .errors import classify_error
from .secret import GitAuth

_LOGGER = logging.getLogger(__name__)

REMOTE = "origin"
FETCH_REFSPEC = f"+refs/heads/*:refs/remotes/{REMOTE}/*"


@contextmanager
def _git_environment(auth: GitAuth | None) -> Generator[dict[str, str], None, None]:
    """Yield environment variables for git, writing ssh keys to private files."""
    env = {"GIT_TERMINAL_PROMPT": "0"}
    if auth is None or auth.ssh_private_key is None:
        yield env
        return
    with tempfile.TemporaryDirectory(prefix="config-sync-ssh-") as ssh_dir:
        key_file = Path(ssh_dir) / "identity"
        key_file.write_text(auth.ssh_private_key.rstrip("\n") + "\n")
        key_file.chmod(0o600)
        ssh_cmd = ["ssh", "-i", str(key_file), "-o", "IdentitiesOnly=yes"]
        if auth.known_hosts:
            known_hosts = Path(ssh_dir) / "known_hosts"
            known_hosts.write_text(auth.known_hosts)
            ssh_cmd += [
                "-o",
                f"UserKnownHostsFile={known_hosts}",
                "-o",
                "StrictHostKeyChecking=yes",
            ]
        else:
            ssh_cmd += ["-o", "StrictHostKeyChecking=accept-new"]
        env["GIT_SSH_COMMAND"] = " ".join(ssh_cmd)
        yield env


def _checkout(repo: git.Repo, source: GitSource) -> None:
    """Check out the requested revision, branch or the default branch."""
    if source.revision:
        if source.branch:
            _LOGGER.warning(
                "Both revision %s and branch %s set for %s, using revision",
                source.revision,
                source.branch,
                source.url,
            )
        try:
            repo.git.rev_parse("--verify", "--quiet", f"{source.revision}^{{commit}}")
        except git.exc.GitCommandError as err:
            raise RevisionNotFoundError(
                f"Revision {source.revision} not found in {source.url}"
            ) from err
        _LOGGER.info("Checking out revision %s", source.revision)
        repo.git.checkout("--force", "--detach", source.revision)
        return

    if source.branch:
        remote_ref = f"{REMOTE}/{source.branch}"
        if remote_ref not in {ref.name for ref in repo.remote(REMOTE).refs}:
            raise RevisionNotFoundError(
                f"Branch {source.branch} not found in {source.url}"
            )
        _LOGGER.info("Checking out branch %s", source.branch)
        repo.git.checkout("--force", "-B", source.branch, remote_ref)
        return

    try:
        default_ref = repo.git.rev_parse("--abbrev-ref", f"{REMOTE}/HEAD")
    except git.exc.GitCommandError as err:
        raise RevisionNotFoundError(
            f"Unable to determine the default branch of {source.url}"
        ) from err
    _LOGGER.info("Checking out default branch %s", default_ref)
    repo.git.checkout("--force", "--detach", default_ref)


def _clone_or_update(
    source: GitSource, auth: GitAuth | None, repo_path: Path
) -> ResolvedSnapshot:
    url = auth.authenticated_url(source.url) if auth else source.url
    with _git_environment(auth) as env:
        try:
            if (repo_path / ".git").exists():
                _LOGGER.info("Updating existing repository at %s", repo_path)
                repo = git.Repo(str(repo_path))
                with repo.git.custom_environment(**env):
                    repo.git.fetch(url, FETCH_REFSPEC, "--tags", "--prune", "--force")
            else:
                if repo_path.exists():
                    _LOGGER.debug("Removing incomplete clone at %s", repo_path)
                    rmtree(repo_path)
                _LOGGER.info("Cloning repository %s to %s", source.url, repo_path)
                repo = git.Repo.clone_from(url, str(repo_path), env=env)
                # Credentials are supplied on every fetch, never stored
                repo.remote(REMOTE).set_url(source.url)
            with repo.git.custom_environment(**env):
                _checkout(repo, source)
        except git.exc.GitCommandError as err:
            stderr = str(err.stderr or "")
            message = f"Git operation failed for {source.url}: {stderr.strip()}"
            if url != source.url:
                message = message.replace(url, source.url)
            raise classify_error(stderr, message) from err

        commit = repo.head.commit
        return ResolvedSnapshot(
            identity=commit.hexsha,
            local_path=str(repo_path),
            description=str(commit.message).strip(),
        )


async def fetch_git(
    source: GitSource,
    auth: GitAuth | None = None,
    cache: GitCache | None = None,
) -> ResolvedSnapshot:
    """Fetch a Git repository into the cache and check out the requested ref.

    Args:
        source: The repository and ref to check out
        auth: Credentials for the repository, if any
        cache: Cache of local clones, defaults to the process wide cache

    Returns:
        ResolvedSnapshot: The commit sha, checkout path and commit message

    Raises:
        AuthError: If the repository rejected the credentials
        RevisionNotFoundError: If the revision or branch does not exist
        TransientNetworkError: If the repository could not be reached
        SourceFetchError: For any other git failure
    """
    repo_path = (cache or get_git_cache()).get_repo_path(source.url)
    with trace_context(f"Git '{source.url}'"):
        snapshot = await asyncio.to_thread(_clone_or_update, source, auth, repo_path)
    _LOGGER.info("Fetched Git repository %s at %s", source.url, snapshot.identity)
    return snapshot
