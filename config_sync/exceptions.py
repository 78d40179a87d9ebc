"""Exceptions related to config-sync."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .manifest import ApplyResult, NamedResource

__all__ = [
    "SyncException",
    "InputException",
    "DecodeError",
    "SourceUnsupportedError",
    "SourceFetchError",
    "AuthError",
    "RevisionNotFoundError",
    "TransientNetworkError",
    "BundleNotFoundError",
    "CommandException",
    "KubectlException",
    "ResourceError",
    "ValidationError",
    "ApplyError",
]


class SyncException(Exception):
    """Generic base exception used for this library."""


class InputException(SyncException):
    """Raised when the input files or values are not formatted as expected."""


class DecodeError(InputException):
    """Raised when a document in a manifest file cannot be decoded."""

    def __init__(self, path: str, index: int, message: str) -> None:
        super().__init__(f"Failed to decode document {index} in {path}: {message}")
        self.path = path
        self.index = index
        self.results: list["ApplyResult"] = []


class SourceUnsupportedError(InputException):
    """Raised when a source does not declare exactly one recognized kind."""


class SourceFetchError(SyncException):
    """Raised when a source could not be fetched."""

    retryable = False
    """Whether retrying the whole sync may succeed without operator action."""


class AuthError(SourceFetchError):
    """Raised when the source rejected the supplied credentials."""


class RevisionNotFoundError(SourceFetchError):
    """Raised when the requested revision or branch does not exist."""


class TransientNetworkError(SourceFetchError):
    """Raised for network failures that are expected to clear on retry."""

    retryable = True


class BundleNotFoundError(SourceFetchError):
    """Raised when a ConfigMap source does not exist in the cluster."""


class CommandException(SyncException):
    """Raised when there is a failure running a subcommand."""


class KubectlException(CommandException):
    """Raised when there is a failure running a kubectl command."""


class ResourceError(SyncException):
    """Raised when a single resource could not be applied.

    The results of the documents handled before the failure (and the failing
    document itself) are attached so callers can report partial progress.
    """

    def __init__(
        self,
        message: str,
        resource: "NamedResource",
        path: str,
        results: list["ApplyResult"] | None = None,
    ) -> None:
        super().__init__(message)
        self.resource = resource
        self.path = path
        self.results: list["ApplyResult"] = results or []


class ValidationError(ResourceError):
    """Raised when a server-side dry-run rejected a resource."""


class ApplyError(ResourceError):
    """Raised when the committed server-side apply rejected a resource."""
