"""Domain-specific exceptions raised by mdloader runtime components."""

from __future__ import annotations

import logging

import requests

from mdloader.constants import ERROR_SOURCE

log = logging.getLogger(__name__)

UNKNOWN_ERROR_DETAILS = "Unknown Error"
TRANSPORT_ERROR_DETAILS = "unknown transport error"
TRANSPORT_STATUS = -1
# Status of local lookups that never reach the API.
OUT_OF_RANGE_STATUS = 0


class MangaDexError(Exception):
    """Base exception for every failure reported by the client core."""

    def __init__(self, status: int, details: str) -> None:
        """Store the upstream status code and human-readable details."""
        super().__init__(f"[{status}] {details}")
        self.status = status
        self.details = details

    def to_report(self) -> dict[str, object]:
        """Return the error event payload handed to the UI layer."""
        return {"source": ERROR_SOURCE, "status": self.status, "details": self.details}


class TransportError(MangaDexError):
    """Raised when no response was received (network, DNS, timeout)."""

    def __init__(self, details: str = TRANSPORT_ERROR_DETAILS) -> None:
        super().__init__(TRANSPORT_STATUS, details)


class ApiError(MangaDexError):
    """Raised when the API answered with a non-success status."""


class AuthError(ApiError):
    """Raised when the API rejects login credentials."""


class AuthRequiredError(ApiError):
    """Raised when the stored refresh token is missing, invalid or expired."""


class ServersUnreachableError(MangaDexError):
    """Raised when a refresh failed for a reason other than a rejected token."""


class OutOfRangeError(MangaDexError, LookupError):
    """Raised when a page number or required lookup has no match."""

    def __init__(self, details: str) -> None:
        super().__init__(OUT_OF_RANGE_STATUS, details)


def _first_error_detail(response: requests.Response) -> str:
    """Extract the first structured error ``detail`` from an error response."""
    try:
        body = response.json()
    except ValueError:
        return UNKNOWN_ERROR_DETAILS
    errors = body.get("errors") if isinstance(body, dict) else None
    if not errors or not isinstance(errors[0], dict):
        return UNKNOWN_ERROR_DETAILS
    return errors[0].get("detail") or errors[0].get("title") or UNKNOWN_ERROR_DETAILS


def classify_error(exc: requests.RequestException | MangaDexError) -> MangaDexError:
    """
    Convert a transport-level exception into one of the domain error kinds.

    Responses with a status become ``ApiError`` carrying the first structured
    error detail (or ``"Unknown Error"``); failures without a response become
    ``TransportError`` and are always logged.
    """
    if isinstance(exc, MangaDexError):
        return exc

    response = getattr(exc, "response", None)
    if response is not None:
        return ApiError(response.status_code, _first_error_detail(response))

    log.error("MangaDex transport failure: %r", exc)
    return TransportError()
