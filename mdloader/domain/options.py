"""Immutable list-query models rendered into MangaDex query parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Sequence

from mdloader.constants import ContentRating, EntityType, Order, PublicationDemographic, TagsMode

QueryParams = list[tuple[str, str]]
TimeFilter = str | datetime | None

MANGA_ORDER_FIELDS = frozenset({"createdAt", "updatedAt", "latestUploadedChapter", "title", "year"})
CHAPTER_ORDER_FIELDS = frozenset({"createdAt", "updatedAt", "publishAt", "volume", "chapter"})


def _render(value: object) -> str:
    """Render one scalar filter value in the API's query syntax."""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%dT%H:%M:%S")
    return str(value)


def _add(params: QueryParams, key: str, value: object) -> None:
    """Append ``key=value`` unless ``value`` is ``None``."""
    if value is not None:
        params.append((key, _render(value)))


def _add_many(params: QueryParams, key: str, values: Iterable[object] | None) -> None:
    """Append ``key[]=value`` once per value."""
    for value in values or ():
        params.append((f"{key}[]", _render(value)))


def _add_one_or_many(params: QueryParams, key: str, value: str | Sequence[str] | None) -> None:
    """Append a filter accepting either one string or a list of strings."""
    if isinstance(value, str):
        params.append((key, value))
    else:
        _add_many(params, key, value)


def _add_order(params: QueryParams, order: Mapping[str, Order | str], allowed: frozenset[str]) -> None:
    """Append ``order[field]=direction`` pairs after validating field names."""
    for field_name, direction in order.items():
        if field_name not in allowed:
            raise ValueError(f"Unsupported sort field: {field_name}")
        params.append((f"order[{field_name}]", Order(_render(direction)).value))


def _check_paging(limit: int | None, offset: int) -> None:
    """Reject negative offsets and non-positive limits."""
    if limit is not None and limit < 1:
        raise ValueError("limit must be a positive integer")
    if offset < 0:
        raise ValueError("offset must not be negative")


@dataclass(frozen=True, slots=True)
class MangaListOptions:
    """Filters, paging and ordering for ``GET /manga``."""

    limit: int | None = None
    offset: int = 0
    title: str | None = None
    authors: tuple[str, ...] = ()
    artists: tuple[str, ...] = ()
    year: int | None = None
    included_tags: tuple[str, ...] = ()
    included_tags_mode: TagsMode | None = None
    excluded_tags: tuple[str, ...] = ()
    excluded_tags_mode: TagsMode | None = None
    status: tuple[str, ...] = ()
    original_language: tuple[str, ...] = ()
    publication_demographic: tuple[PublicationDemographic | str, ...] = ()
    ids: tuple[str, ...] = ()
    content_rating: tuple[ContentRating | str, ...] | None = None
    created_at_since: TimeFilter = None
    updated_at_since: TimeFilter = None
    order: Mapping[str, Order | str] = field(default_factory=dict)
    includes: tuple[EntityType, ...] = (EntityType.COVER_ART, EntityType.AUTHOR, EntityType.ARTIST)

    def __post_init__(self) -> None:
        _check_paging(self.limit, self.offset)

    def to_params(self, default_limit: int, default_content_rating: Sequence[str]) -> QueryParams:
        """Render the options, filling ``limit``/``contentRating`` from user defaults."""
        params: QueryParams = []
        _add(params, "limit", self.limit if self.limit is not None else default_limit)
        _add(params, "offset", self.offset)
        _add(params, "title", self.title)
        _add_many(params, "authors", self.authors)
        _add_many(params, "artists", self.artists)
        _add(params, "year", self.year)
        _add_many(params, "includedTags", self.included_tags)
        _add(params, "includedTagsMode", self.included_tags_mode)
        _add_many(params, "excludedTags", self.excluded_tags)
        _add(params, "excludedTagsMode", self.excluded_tags_mode)
        _add_many(params, "status", self.status)
        _add_many(params, "originalLanguage", self.original_language)
        _add_many(params, "publicationDemographic", self.publication_demographic)
        _add_many(params, "ids", self.ids)
        content_rating = self.content_rating if self.content_rating is not None else default_content_rating
        _add_many(params, "contentRating", content_rating)
        _add(params, "createdAtSince", self.created_at_since)
        _add(params, "updatedAtSince", self.updated_at_since)
        _add_order(params, self.order, MANGA_ORDER_FIELDS)
        _add_many(params, "includes", self.includes)
        return params


@dataclass(frozen=True, slots=True)
class ChapterListOptions:
    """Filters, paging and ordering for ``GET /chapter``."""

    limit: int | None = None
    offset: int = 0
    ids: tuple[str, ...] = ()
    title: str | None = None
    groups: tuple[str, ...] = ()
    uploader: str | None = None
    manga: str | None = None
    volume: str | tuple[str, ...] | None = None
    chapter: str | tuple[str, ...] | None = None
    translated_language: tuple[str, ...] = ()
    created_at_since: TimeFilter = None
    updated_at_since: TimeFilter = None
    publish_at_since: TimeFilter = None
    order: Mapping[str, Order | str] = field(default_factory=dict)
    includes: tuple[EntityType, ...] = (EntityType.SCANLATION_GROUP, EntityType.USER)

    def __post_init__(self) -> None:
        _check_paging(self.limit, self.offset)

    def to_params(self, default_limit: int) -> QueryParams:
        """Render the options, filling ``limit`` from user defaults."""
        params: QueryParams = []
        _add(params, "limit", self.limit if self.limit is not None else default_limit)
        _add(params, "offset", self.offset)
        _add_many(params, "ids", self.ids)
        _add(params, "title", self.title)
        _add_many(params, "groups", self.groups)
        _add(params, "uploader", self.uploader)
        _add(params, "manga", self.manga)
        _add_one_or_many(params, "volume", self.volume)
        _add_one_or_many(params, "chapter", self.chapter)
        _add_many(params, "translatedLanguage", self.translated_language)
        _add(params, "createdAtSince", self.created_at_since)
        _add(params, "updatedAtSince", self.updated_at_since)
        _add(params, "publishAtSince", self.publish_at_since)
        _add_order(params, self.order, CHAPTER_ORDER_FIELDS)
        _add_many(params, "includes", self.includes)
        return params
