"""Typed protocol contracts shared across runtime components."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterator, Mapping, MutableMapping, Protocol, TypeVar

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]
ProgressCallback = Callable[[int, "int | None"], None]


class SettingsStore(Protocol):
    """Persistent key-value store holding credentials and user preferences."""

    def get(self, key: str) -> Any:
        """Return the stored value for ``key`` (or its default)."""

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` and persist it."""


class ResponseLike(Protocol):
    """Minimal HTTP response contract used by the transport."""

    status_code: int
    headers: Mapping[str, str]
    content: bytes

    def json(self) -> Any:
        """Decode the response body as JSON."""

    def raise_for_status(self) -> None:
        """Raise for non-successful HTTP responses."""

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        """Iterate over the body in chunks when streaming."""

    def close(self) -> None:
        """Release the underlying connection."""


class SessionLike(Protocol):
    """Minimal HTTP session contract used by the transport."""

    headers: MutableMapping[str, str]

    def request(
        self,
        method: str,
        url: str,
        params: object = None,
        json: object = None,
        headers: Mapping[str, str | None] | None = None,
        timeout: tuple[float, float] | None = None,
        stream: bool = False,
    ) -> ResponseLike:
        """Perform an HTTP request and return a response object."""
