"""Single outbound request path: rate limiting, threading and error classification."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

import requests

from mdloader import config
from mdloader.client.rate_limiter import RateLimiter, get_shared_rate_limiter
from mdloader.errors import ApiError, classify_error
from mdloader.types import ProgressCallback, SessionLike

log = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
DOWNLOAD_CHUNK_SIZE = 64 * 1024


class ApiTransport:
    """
    Perform API calls through the shared rate limiter.

    Blocking ``requests`` calls run in worker threads; the ``Authorization``
    header is read on the event loop when a request is dispatched, so a token
    change never affects requests already in flight.
    """

    def __init__(
        self,
        http: SessionLike | None = None,
        *,
        api_url: str = config.API_URL,
        limiter: RateLimiter | None = None,
        request_timeout: tuple[float, float] = config.REQUEST_TIMEOUT,
    ) -> None:
        self.http = http if http is not None else requests.Session()
        self.http.headers.update({"User-Agent": config.USER_AGENT})
        self.api_url = api_url.rstrip("/")
        self.limiter = limiter if limiter is not None else get_shared_rate_limiter()
        self.request_timeout = request_timeout
        self._authorization: str | None = None

    def build_url(self, path: str) -> str:
        """Construct the full URL for an API ``path``."""
        return f"{self.api_url}/{path.lstrip('/')}"

    @property
    def authorization(self) -> str | None:
        """Return the ``Authorization`` value attached to new API requests."""
        return self._authorization

    def set_bearer_token(self, token: str | None) -> None:
        """
        Install (or with ``None`` remove) the bearer token for later requests.

        The token is never written to the shared session headers, which
        worker threads read while preparing requests.
        """
        self._authorization = f"Bearer {token}" if token else None

    def _send_json(
        self,
        method: str,
        url: str,
        params: object,
        body: object,
        headers: Mapping[str, str | None],
    ) -> Any:
        """Perform one blocking request and decode its JSON body."""
        response = self.http.request(
            method,
            url,
            params=params,
            json=body,
            headers=headers,
            timeout=self.request_timeout,
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, "Malformed response body") from exc

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: object = None,
        body: object = None,
    ) -> Any:
        """Perform a rate-limited API call and return the decoded JSON payload."""
        url = self.build_url(path)

        async def task() -> Any:
            headers = {AUTHORIZATION_HEADER: self.authorization}
            log.debug("%s %s params=%s", method, url, params)
            return await asyncio.to_thread(self._send_json, method, url, params, body, headers)

        try:
            return await self.limiter.schedule(task)
        except requests.RequestException as exc:
            raise classify_error(exc) from exc

    def _send_download(self, url: str, notify: Callable[[int, int | None], None] | None) -> bytes:
        """Stream one resource into memory, reporting progress per chunk."""
        # Image servers never receive the API bearer token.
        response = self.http.request(
            "GET",
            url,
            headers={AUTHORIZATION_HEADER: None},
            timeout=self.request_timeout,
            stream=True,
        )
        try:
            response.raise_for_status()
            length = response.headers.get("Content-Length")
            total = int(length) if length and length.isdigit() else None
            chunks: list[bytes] = []
            received = 0
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if not chunk:
                    continue
                chunks.append(chunk)
                received += len(chunk)
                if notify is not None:
                    notify(received, total)
            return b"".join(chunks)
        finally:
            response.close()

    async def download(self, url: str, on_progress: ProgressCallback | None = None) -> bytes:
        """Download an absolute ``url`` through the rate limiter."""
        loop = asyncio.get_running_loop()
        notify = None
        if on_progress is not None:
            def notify(received: int, total: int | None) -> None:
                loop.call_soon_threadsafe(on_progress, received, total)

        async def task() -> bytes:
            log.debug("GET %s (stream)", url)
            return await asyncio.to_thread(self._send_download, url, notify)

        try:
            return await self.limiter.schedule(task)
        except requests.RequestException as exc:
            raise classify_error(exc) from exc
