"""Deterministic process exit codes for the CLI."""

from mdloader.errors import AuthError, AuthRequiredError, MangaDexError, OutOfRangeError

SUCCESS = 0
# Shared with click's own usage errors.
AUTH_OR_USAGE_ERROR = 2
OUT_OF_RANGE = 3
UPSTREAM_FAILURE = 4
INTERNAL_BUG = 5


def for_error(error: MangaDexError) -> int:
    """Map a client error kind to its exit code."""
    if isinstance(error, (AuthError, AuthRequiredError)):
        return AUTH_OR_USAGE_ERROR
    if isinstance(error, OutOfRangeError):
        return OUT_OF_RANGE
    return UPSTREAM_FAILURE
