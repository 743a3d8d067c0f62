"""Pure helpers flattening raw API payloads into display-ready rows."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, TypeVar

from mdloader.constants import EntityType
from mdloader.domain.models import (
    ChapterRow,
    Entity,
    MangaRow,
    Page,
    PageCacheEntry,
    Relationship,
    TagEntry,
)

RowT = TypeVar("RowT")

DEFAULT_LOCALE = "en"


def localized(strings: Mapping[str, str] | None, locale: str = DEFAULT_LOCALE) -> str:
    """Pick ``locale`` from a localized-string mapping, or ``""`` when missing."""
    if not strings or not isinstance(strings, Mapping):
        return ""
    return strings.get(locale) or ""


def _relationships_of(entity: Entity, entity_type: EntityType) -> list[Relationship]:
    """Return all relationships of ``entity`` tagged with ``entity_type``."""
    return [relationship for relationship in entity.relationships if relationship.type is entity_type]


def _first_of(entity: Entity, entity_type: EntityType) -> Relationship | None:
    """Return the first relationship of ``entity_type``, if any."""
    matches = _relationships_of(entity, entity_type)
    return matches[0] if matches else None


def find_cover_art(entity: Entity) -> Relationship | None:
    return _first_of(entity, EntityType.COVER_ART)


def find_scanlation_group(entity: Entity) -> Relationship | None:
    return _first_of(entity, EntityType.SCANLATION_GROUP)


def find_uploader(entity: Entity) -> Relationship | None:
    return _first_of(entity, EntityType.USER)


def find_authors(entity: Entity) -> list[Relationship]:
    return _relationships_of(entity, EntityType.AUTHOR)


def find_artists(entity: Entity) -> list[Relationship]:
    return _relationships_of(entity, EntityType.ARTIST)


def _attribute(relationship: Relationship | None, key: str) -> Any:
    """Read an embedded attribute of an optional relationship."""
    if relationship is None or not relationship.attributes:
        return None
    return relationship.attributes.get(key)


def _names(relationships: Iterable[Relationship]) -> tuple[str, ...]:
    """Collect embedded ``name`` attributes, skipping references without them."""
    names = (_attribute(relationship, "name") for relationship in relationships)
    return tuple(name for name in names if name)


def normalize_tag(payload: Mapping[str, Any], locale: str = DEFAULT_LOCALE) -> TagEntry:
    """Map a tag entity (bare or wrapped in ``{data}``) to a catalog entry."""
    data = payload.get("data", payload)
    attributes = data.get("attributes") or {}
    return TagEntry(
        id=str(data["id"]),
        name=localized(attributes.get("name"), locale),
        group=attributes.get("group") or "",
    )


def normalize_manga(payload: Mapping[str, Any], locale: str = DEFAULT_LOCALE) -> MangaRow:
    """
    Flatten one manga result into a ``MangaRow``.

    The cover filename comes from the embedded ``cover_art`` relationship and
    is ``None`` when the relationship (or its attributes) is absent.
    """
    entity = Entity.from_payload(payload)
    attributes = entity.attributes
    return MangaRow(
        id=entity.id,
        title=localized(attributes.get("title"), locale),
        cover=_attribute(find_cover_art(entity), "fileName"),
        description=localized(attributes.get("description"), locale),
        demographic=attributes.get("publicationDemographic"),
        content_rating=attributes.get("contentRating"),
        tags=tuple(normalize_tag(tag, locale) for tag in attributes.get("tags") or ()),
        original_language=attributes.get("originalLanguage"),
        status=attributes.get("status"),
        authors=_names(find_authors(entity)),
        artists=_names(find_artists(entity)),
        year=attributes.get("year"),
    )


def normalize_chapter(payload: Mapping[str, Any]) -> ChapterRow:
    """Flatten one chapter result into a ``ChapterRow``."""
    entity = Entity.from_payload(payload)
    attributes = entity.attributes
    page_count = attributes.get("pages")
    if page_count is None:
        page_count = len(attributes.get("data") or ())
    return ChapterRow(
        id=entity.id,
        volume=attributes.get("volume"),
        chapter=attributes.get("chapter"),
        title=attributes.get("title") or "",
        updated_at=attributes.get("updatedAt"),
        group_name=_attribute(find_scanlation_group(entity), "name"),
        translated_language=attributes.get("translatedLanguage"),
        uploader=_attribute(find_uploader(entity), "username"),
        pages=page_count,
        publish_at=attributes.get("publishAt"),
    )


def extract_page_cache_entry(payload: Mapping[str, Any]) -> tuple[str, PageCacheEntry] | None:
    """Return ``(chapter_id, entry)`` for a chapter result carrying page metadata."""
    data = payload.get("data", payload)
    attributes = data.get("attributes") or {}
    content_hash = attributes.get("hash")
    if not content_hash:
        return None
    entry = PageCacheEntry(
        hash=content_hash,
        data=tuple(attributes.get("data") or ()),
        data_saver=tuple(attributes.get("dataSaver") or ()),
    )
    return str(data["id"]), entry


def extract_at_home_entry(payload: Mapping[str, Any]) -> PageCacheEntry | None:
    """Return page metadata from the ``chapter`` block of an at-home answer."""
    chapter = payload.get("chapter")
    if not isinstance(chapter, Mapping) or not chapter.get("hash"):
        return None
    return PageCacheEntry(
        hash=chapter["hash"],
        data=tuple(chapter.get("data") or ()),
        data_saver=tuple(chapter.get("dataSaver") or ()),
    )


def normalize_page(
    payload: Mapping[str, Any],
    normalize_row: Callable[[Mapping[str, Any]], RowT],
) -> Page[RowT]:
    """Normalize a paginated ``{results, limit, offset, total}`` envelope."""
    results = payload.get("results")
    if results is None:
        results = payload.get("data") or []
    rows = tuple(normalize_row(result) for result in results)
    return Page(
        data=rows,
        total=int(payload.get("total", len(rows))),
        limit=int(payload.get("limit", len(rows))),
        offset=int(payload.get("offset", 0)),
    )
