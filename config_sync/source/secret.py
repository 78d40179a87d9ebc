"""Module for resolving git credentials from secrets."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
from urllib.parse import quote, urlparse

from config_sync.client import Client
from config_sync.exceptions import AuthError, CommandException
from config_sync.manifest import AuthMethod, ObjectRef

from .errors import classify_error

_LOGGER = logging.getLogger(__name__)

# Keys read from the referenced Secret, matching the flux conventions
TOKEN_KEYS = ("token", "password")
USERNAME_KEY = "username"
PASSWORD_KEY = "password"
SSH_KEY_KEYS = ("identity", "ssh-privatekey")
KNOWN_HOSTS_KEY = "known_hosts"

TOKEN_USERNAME = "x-access-token"


@dataclass
class GitAuth:
    """Credentials for a git repository."""

    username: str | None = None
    password: str | None = None
    ssh_private_key: str | None = None
    known_hosts: str | None = None

    def authenticated_url(self, url: str) -> str:
        """Return the url with basic credentials added for http(s) urls."""
        if self.password is None:
            return url
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise AuthError(
                f"Token and basic auth require an http(s) url, got {parsed.scheme!r}"
            )
        host = parsed.netloc.rsplit("@", 1)[-1]
        username = quote(self.username or TOKEN_USERNAME, safe="")
        password = quote(self.password, safe="")
        return parsed._replace(netloc=f"{username}:{password}@{host}").geturl()


class CredentialResolver(ABC):
    """Resolves an auth method and secret reference into git credentials."""

    @abstractmethod
    async def resolve(
        self, method: AuthMethod, secret_ref: ObjectRef | None
    ) -> GitAuth | None:
        """Return credentials, or None when no authentication is needed."""


class SecretCredentialResolver(CredentialResolver):
    """Reads git credentials from a Secret in the cluster."""

    def __init__(self, client: Client) -> None:
        """Initialize SecretCredentialResolver."""
        self._client = client

    async def resolve(
        self, method: AuthMethod, secret_ref: ObjectRef | None
    ) -> GitAuth | None:
        if method == AuthMethod.NONE:
            return None
        if secret_ref is None:
            raise AuthError(f"Auth method {method.value} requires authSecretRef")
        try:
            secret = await self._client.get_secret(
                secret_ref.namespace, secret_ref.name
            )
        except CommandException as err:
            raise classify_error(
                str(err), f"Failed to read auth secret {secret_ref}: {err}"
            ) from err
        if secret is None:
            raise AuthError(f"Auth secret {secret_ref} not found")

        def first(keys: tuple[str, ...]) -> str | None:
            for key in keys:
                if (value := secret.get(key)) is not None:
                    return value
            return None

        if method == AuthMethod.TOKEN:
            if not (token := first(TOKEN_KEYS)):
                raise AuthError(f"Secret {secret_ref} has no token")
            return GitAuth(
                username=secret.get(USERNAME_KEY) or TOKEN_USERNAME, password=token
            )
        if method == AuthMethod.BASIC:
            username = secret.get(USERNAME_KEY)
            password = secret.get(PASSWORD_KEY)
            if not username or password is None:
                raise AuthError(f"Secret {secret_ref} needs username and password")
            return GitAuth(username=username, password=password)
        if method == AuthMethod.SSH:
            if not (key := first(SSH_KEY_KEYS)):
                raise AuthError(f"Secret {secret_ref} has no ssh private key")
            return GitAuth(ssh_private_key=key, known_hosts=secret.get(KNOWN_HOSTS_KEY))
        raise AuthError(f"Unsupported auth method {method}")
