"""Immutable records exchanged between the client core and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Iterator, Mapping, TypeVar

from mdloader.constants import EntityType
from mdloader.errors import OutOfRangeError

RowT = TypeVar("RowT")


@dataclass(frozen=True, slots=True)
class Relationship:
    """Sparse reference to a related entity, tagged by its ``type``."""

    id: str
    type: EntityType
    attributes: Mapping[str, Any] | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Relationship | None:
        """Build a relationship from raw JSON, or ``None`` for unknown types."""
        try:
            entity_type = EntityType(payload.get("type"))
        except ValueError:
            return None
        return cls(
            id=str(payload.get("id", "")),
            type=entity_type,
            attributes=payload.get("attributes"),
        )


@dataclass(frozen=True, slots=True)
class Entity:
    """Primary API resource together with its relationship references."""

    id: str
    type: EntityType
    attributes: Mapping[str, Any]
    relationships: tuple[Relationship, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Entity:
        """
        Build an entity from one ``{data, relationships}`` result envelope.

        Relationships are read from the envelope first and from ``data`` when
        the envelope carries none. Unknown relationship types are dropped.
        """
        data = payload.get("data", payload)
        raw_relationships = payload.get("relationships") or data.get("relationships") or []
        relationships = tuple(
            relationship
            for relationship in map(Relationship.from_payload, raw_relationships)
            if relationship is not None
        )
        return cls(
            id=str(data["id"]),
            type=EntityType(data["type"]),
            attributes=data.get("attributes") or {},
            relationships=relationships,
        )


@dataclass(frozen=True, slots=True)
class TagEntry:
    """One entry of the tag catalog used by UI filters."""

    id: str
    name: str
    group: str


@dataclass(frozen=True, slots=True)
class MangaRow:
    """Flat, display-ready manga record. ``cover`` is ``None`` when absent."""

    id: str
    title: str
    cover: str | None
    description: str
    demographic: str | None
    content_rating: str | None
    tags: tuple[TagEntry, ...]
    original_language: str | None
    status: str | None
    authors: tuple[str, ...] = ()
    artists: tuple[str, ...] = ()
    year: int | None = None


@dataclass(frozen=True, slots=True)
class ChapterRow:
    """Flat, display-ready chapter record. ``group_name`` is ``None`` when absent."""

    id: str
    volume: str | None
    chapter: str | None
    title: str
    updated_at: str | None
    group_name: str | None
    translated_language: str | None = None
    uploader: str | None = None
    pages: int = 0
    publish_at: str | None = None


@dataclass(frozen=True, slots=True)
class Page(Generic[RowT]):
    """One page of a paginated list response."""

    data: tuple[RowT, ...]
    total: int
    limit: int = 0
    offset: int = 0

    @property
    def has_more(self) -> bool:
        """Return whether results remain beyond this page."""
        return self.offset + len(self.data) < self.total


@dataclass(frozen=True, slots=True)
class PageCacheEntry:
    """Page-image filenames and content hash of one chapter."""

    hash: str
    data: tuple[str, ...] = ()
    data_saver: tuple[str, ...] = ()

    def filenames(self, low_quality: bool = False) -> tuple[str, ...]:
        """Return the filename list for the requested quality."""
        return self.data_saver if low_quality else self.data

    def filename(self, page_number: int, low_quality: bool = False) -> str:
        """Return the filename of 1-based ``page_number``."""
        filenames = self.filenames(low_quality)
        if not 1 <= page_number <= len(filenames):
            raise OutOfRangeError(
                f"Page {page_number} is out of range (chapter has {len(filenames)} pages)"
            )
        return filenames[page_number - 1]


@dataclass(frozen=True, slots=True)
class SessionTokens:
    """Short-lived session token and long-lived refresh token pair."""

    session_token: str = field(repr=False)
    refresh_token: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class InitError:
    """Non-fatal problem collected during client startup."""

    status: int
    details: str


class TagCatalog:
    """Immutable tag catalog queried by UI filters."""

    def __init__(self, entries: Iterable[TagEntry]) -> None:
        self._entries = tuple(entries)
        self._by_name = {entry.name.casefold(): entry for entry in self._entries}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TagEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> tuple[TagEntry, ...]:
        return self._entries

    def groups(self) -> dict[str, tuple[TagEntry, ...]]:
        """Return catalog entries grouped by tag group, sorted by name."""
        grouped: dict[str, list[TagEntry]] = {}
        for entry in sorted(self._entries, key=lambda tag: tag.name):
            grouped.setdefault(entry.group, []).append(entry)
        return {group: tuple(entries) for group, entries in grouped.items()}

    def by_name(self, name: str) -> TagEntry | None:
        """Look up a tag by its localized name, ignoring case."""
        return self._by_name.get(name.casefold())

    def ids_for(self, names: Iterable[str]) -> tuple[str, ...]:
        """Resolve tag names to IDs, failing on the first unknown name."""
        ids = []
        for name in names:
            entry = self.by_name(name)
            if entry is None:
                raise OutOfRangeError(f"Unknown tag: {name}")
            ids.append(entry.id)
        return tuple(ids)
