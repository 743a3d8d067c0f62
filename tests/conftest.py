"""Shared client fixtures."""

from __future__ import annotations

import pytest

from http_doubles import API_URL, FakeHttpSession
from mdloader.client.init import MangaDexClient
from mdloader.client.rate_limiter import RateLimiter
from mdloader.config import SETTINGS_DEFAULTS
from mdloader.settings import MemorySettingsStore


@pytest.fixture
def http() -> FakeHttpSession:
    """Provide a fresh routed HTTP session double."""
    return FakeHttpSession()


@pytest.fixture
def settings() -> MemorySettingsStore:
    """Provide an in-memory settings store seeded with defaults."""
    return MemorySettingsStore(SETTINGS_DEFAULTS)


@pytest.fixture
def limiter() -> RateLimiter:
    """Provide a limiter without start spacing to keep tests fast."""
    return RateLimiter(max_concurrent=5, min_interval=0)


@pytest.fixture
def client(http: FakeHttpSession, settings: MemorySettingsStore, limiter: RateLimiter) -> MangaDexClient:
    """Provide a client wired to the HTTP double."""
    return MangaDexClient(settings, http=http, api_url=API_URL, limiter=limiter)
