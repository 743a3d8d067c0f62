"""In-memory chapter page metadata consulted by page-image fetches."""

from __future__ import annotations

import logging
from collections import OrderedDict

from mdloader.domain.models import PageCacheEntry

log = logging.getLogger(__name__)


class ChapterPageCache:
    """
    Map chapter IDs to their page filenames and content hash.

    Entries live for the process lifetime unless ``max_entries`` is set, in
    which case the least recently accessed entry is evicted first.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, PageCacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, chapter_id: object) -> bool:
        return chapter_id in self._entries

    def get(self, chapter_id: str) -> PageCacheEntry | None:
        """Return the entry for ``chapter_id`` and mark it recently used."""
        entry = self._entries.get(chapter_id)
        if entry is not None:
            self._entries.move_to_end(chapter_id)
        return entry

    def put(self, chapter_id: str, entry: PageCacheEntry) -> None:
        """Create or overwrite the entry for ``chapter_id``."""
        self._entries[chapter_id] = entry
        self._entries.move_to_end(chapter_id)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                log.debug("Evicted page cache entry for chapter %s", evicted)
