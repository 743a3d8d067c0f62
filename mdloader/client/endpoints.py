from __future__ import annotations

import logging
from functools import partial
from typing import Any, Iterable, Mapping

from mdloader.client.normalization import (
    DEFAULT_LOCALE,
    extract_at_home_entry,
    extract_page_cache_entry,
    normalize_chapter,
    normalize_manga,
    normalize_page,
    normalize_tag,
)
from mdloader.client.page_cache import ChapterPageCache
from mdloader.client.transport import ApiTransport
from mdloader.config import SETTINGS_DEFAULTS, UPLOADS_URL
from mdloader.constants import EntityType
from mdloader.domain.models import ChapterRow, MangaRow, Page, PageCacheEntry, TagCatalog
from mdloader.domain.options import ChapterListOptions, MangaListOptions
from mdloader.errors import ApiError, OutOfRangeError
from mdloader.types import ProgressCallback, SettingsStore

log = logging.getLogger(__name__)

CHAPTER_INCLUDES = (EntityType.SCANLATION_GROUP, EntityType.USER)


def build_page_url(server_url: str, content_hash: str, filename: str, low_quality: bool = False) -> str:
    """Construct the image URL of one page on an at-home server."""
    quality = "data-saver" if low_quality else "data"
    return f"{server_url.rstrip('/')}/{quality}/{content_hash}/{filename}"


def cover_url(manga_id: str, filename: str, uploads_url: str = UPLOADS_URL) -> str:
    """Construct the cover image URL of a manga."""
    return f"{uploads_url.rstrip('/')}/covers/{manga_id}/{filename}"


class EndpointsMixin:
    """Typed resource operations composed from transport, normalizer and page cache."""

    transport: ApiTransport
    settings: SettingsStore
    page_cache: ChapterPageCache
    tag_catalog: TagCatalog | None

    def _setting(self, key: str) -> Any:
        """Read a user preference at call time, falling back to its default."""
        value = self.settings.get(key)
        return SETTINGS_DEFAULTS[key] if value in (None, "") else value

    @property
    def locale(self) -> str:
        return self._setting("locale") or DEFAULT_LOCALE

    def _remember_pages(self, results: Iterable[Mapping[str, Any]]) -> None:
        """Store page metadata of every chapter result in the page cache."""
        for result in results:
            cached = extract_page_cache_entry(result)
            if cached is not None:
                chapter_id, entry = cached
                self.page_cache.put(chapter_id, entry)
                log.debug("Cached %s page filenames for chapter %s", len(entry.data), chapter_id)

    async def get_manga_list(self, options: MangaListOptions | None = None) -> Page[MangaRow]:
        """Fetch one page of manga rows."""
        options = options or MangaListOptions()
        params = options.to_params(
            default_limit=self._setting("mangaLimit"),
            default_content_rating=self._setting("contentRating"),
        )
        payload = await self.transport.request_json("GET", "/manga", params=params)
        return normalize_page(payload, partial(normalize_manga, locale=self.locale))

    async def get_chapter_list(self, options: ChapterListOptions | None = None) -> Page[ChapterRow]:
        """Fetch one page of chapter rows, caching each chapter's page metadata."""
        options = options or ChapterListOptions()
        params = options.to_params(default_limit=self._setting("chapterLimit"))
        payload = await self.transport.request_json("GET", "/chapter", params=params)
        page = normalize_page(payload, normalize_chapter)
        self._remember_pages(payload.get("results") or payload.get("data") or ())
        return page

    async def get_chapter(self, chapter_id: str) -> ChapterRow:
        """Fetch a single chapter row and cache its page metadata."""
        params = [("includes[]", entity_type.value) for entity_type in CHAPTER_INCLUDES]
        payload = await self.transport.request_json("GET", f"/chapter/{chapter_id}", params=params)
        self._remember_pages([payload])
        return normalize_chapter(payload)

    async def get_server_url(self, chapter_id: str) -> str:
        """
        Resolve the at-home image server base URL for ``chapter_id``.

        Page metadata carried in the ``chapter`` block of the answer is stored
        in the page cache as well.
        """
        payload = await self.transport.request_json("GET", f"/at-home/server/{chapter_id}")
        base_url = payload.get("baseUrl") if isinstance(payload, dict) else None
        if not base_url:
            raise ApiError(200, "Malformed at-home server response")
        entry = extract_at_home_entry(payload)
        if entry is not None:
            self.page_cache.put(chapter_id, entry)
        return base_url

    async def get_page_entry(self, chapter_id: str) -> PageCacheEntry:
        """
        Return cached page metadata, fetching it on a cache miss.

        The chapter itself is fetched first. When its attributes carry no page
        metadata, the at-home handshake is asked for it.
        """
        entry = self.page_cache.get(chapter_id)
        if entry is None:
            log.debug("Page cache miss for chapter %s", chapter_id)
            await self.get_chapter(chapter_id)
            entry = self.page_cache.get(chapter_id)
        if entry is None:
            log.debug("Chapter %s has no page metadata; asking the at-home server", chapter_id)
            await self.get_server_url(chapter_id)
            entry = self.page_cache.get(chapter_id)
        if entry is None:
            raise OutOfRangeError(f"Chapter {chapter_id} carries no page metadata")
        return entry

    async def get_page(
        self,
        chapter_id: str,
        page_number: int,
        server_url: str,
        on_progress: ProgressCallback | None = None,
        low_quality: bool = False,
    ) -> bytes:
        """Download the image bytes of 1-based ``page_number`` of a chapter."""
        entry = await self.get_page_entry(chapter_id)
        filename = entry.filename(page_number, low_quality)
        url = build_page_url(server_url, entry.hash, filename, low_quality)
        return await self.transport.download(url, on_progress)

    async def init_tags(self) -> TagCatalog:
        """Load the tag catalog once; later calls return the same catalog."""
        if self.tag_catalog is not None:
            return self.tag_catalog
        payload = await self.transport.request_json("GET", "/manga/tag")
        results = payload if isinstance(payload, list) else payload.get("data") or payload.get("results") or []
        locale = self.locale
        self.tag_catalog = TagCatalog(normalize_tag(result, locale) for result in results)
        log.info("Loaded %s tags", len(self.tag_catalog))
        return self.tag_catalog
