"""Classification of failures while fetching a source.

Both `git` and `kubectl` report failures as free form text. The text is
matched against known messages so callers can tell a retryable network outage
from a credential problem or a missing revision.
"""

from config_sync.exceptions import (
    AuthError,
    RevisionNotFoundError,
    SourceFetchError,
    TransientNetworkError,
)

__all__ = [
    "classify_error",
]

# Matched against lowercased error output, checked in this order
AUTH_ERRORS = (
    "authentication failed",
    "could not read username",
    "could not read password",
    "terminal prompts disabled",
    "permission denied (publickey",
    "host key verification failed",
    "invalid username or password",
    "http basic: access denied",
    "returned error: 401",
    "returned error: 403",
    "(forbidden)",
    "(unauthorized)",
    "you must be logged in to the server",
)
REVISION_ERRORS = (
    "did not match any file(s) known to git",
    "unknown revision",
    "needed a single revision",
    "couldn't find remote ref",
    "not a valid object name",
    "invalid reference",
)
TRANSIENT_ERRORS = (
    "could not resolve host",
    "temporary failure in name resolution",
    "connection timed out",
    "operation timed out",
    "connection refused",
    "connection reset",
    "network is unreachable",
    "the remote end hung up unexpectedly",
    "early eof",
    "rpc failed",
    "returned error: 5",
    "unable to connect to the server",
    "the connection to the server",
    "i/o timeout",
    "tls handshake timeout",
    "(serviceunavailable)",
    "(internalerror)",
)


def classify_error(output: str, message: str) -> SourceFetchError:
    """Map the error output of a failed command to a SourceFetchError."""
    text = output.lower()
    if any(pattern in text for pattern in AUTH_ERRORS):
        return AuthError(message)
    if any(pattern in text for pattern in REVISION_ERRORS):
        return RevisionNotFoundError(message)
    if any(pattern in text for pattern in TRANSIENT_ERRORS):
        return TransientNetworkError(message)
    return SourceFetchError(message)
