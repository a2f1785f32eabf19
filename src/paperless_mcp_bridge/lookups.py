"""Lookup metadata and the name-to-ID cache."""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from .config import logger

MATCHING_ALGORITHM_MAP = {
    "none": 0,
    "any": 1,
    "all": 2,
    "exact": 3,
    "literal": 3,
    "regex": 4,
    "regular_expression": 4,
    "regular expression": 4,
    "fuzzy": 5,
    "auto": 6,
}


class EntityKind(str, enum.Enum):
    """The three metadata kinds a document can reference."""

    TAGS = "tags"
    CORRESPONDENTS = "correspondents"
    DOCUMENT_TYPES = "document_types"

    @property
    def endpoint(self) -> str:
        return f"/api/{self.value}/"

    @property
    def label(self) -> str:
        return _SINGULAR_LABELS[self]


_SINGULAR_LABELS = {
    EntityKind.TAGS: "tag",
    EntityKind.CORRESPONDENTS: "correspondent",
    EntityKind.DOCUMENT_TYPES: "document type",
}


@dataclass(frozen=True)
class MetadataEntity:
    id: int
    name: str
    document_count: int = 0
    color: str | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "MetadataEntity | None":
        entity_id = item.get("id")
        if not isinstance(entity_id, int) or isinstance(entity_id, bool):
            return None
        document_count = item.get("document_count")
        color = item.get("color")
        return cls(
            id=entity_id,
            name=str(item.get("name") or ""),
            document_count=document_count if isinstance(document_count, int) else 0,
            color=color if isinstance(color, str) and color else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "document_count": self.document_count,
        }
        if self.color is not None:
            data["color"] = self.color
        return data


class LookupSource(Protocol):
    async def fetch_all(self, endpoint: str, label: str) -> list[dict[str, Any]]: ...


EntityMap = dict[int, MetadataEntity]


def _normalize_name(name: str) -> str:
    return name.strip().casefold()


def _normalize_matching_algorithm(value: Any) -> Any:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in MATCHING_ALGORITHM_MAP:
            return MATCHING_ALGORITHM_MAP[key]
    return value


def _build_mapping(items: Iterable[dict[str, Any]]) -> EntityMap:
    entities = (MetadataEntity.from_api(item) for item in items)
    # Ascending ID order doubles as the duplicate-name tie-break.
    return {entity.id: entity for entity in sorted(filter(None, entities), key=lambda e: e.id)}


class MetadataCache:
    """In-memory snapshot of tags, correspondents and document types.

    The bootstrap constructs exactly one instance per process and hands it to
    the tool dispatcher. Each kind's mapping is built off to the side and
    then published by replacing the whole mapping, so a reader never sees a
    partially loaded kind.

    Lookups on a kind that was never loaded behave like lookups on an empty
    kind; they do not raise.
    """

    def __init__(self, source: LookupSource) -> None:
        self._source = source
        self._mappings: dict[EntityKind, EntityMap] = {}
        self._last_updated: datetime | None = None

    @property
    def last_updated(self) -> datetime | None:
        return self._last_updated

    def is_loaded(self, kind: EntityKind) -> bool:
        return kind in self._mappings

    async def _fetch_kind(self, kind: EntityKind) -> EntityMap:
        items = await self._source.fetch_all(kind.endpoint, kind.value)
        return _build_mapping(items)

    async def initialize(self) -> None:
        """Load all three kinds concurrently and publish them together.

        If any listing fails, the cache keeps whatever it held before the
        call and the first failure is raised.
        """
        logger.debug("Initializing metadata cache")
        kinds = list(EntityKind)
        results = await asyncio.gather(
            *(self._fetch_kind(kind) for kind in kinds),
            return_exceptions=True,
        )

        for kind, result in zip(kinds, results):
            if isinstance(result, BaseException):
                logger.error("Failed to load %s: %s", kind.value, result)
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            raise failures[0]

        self._mappings = dict(zip(kinds, results))
        self._last_updated = datetime.now(timezone.utc)
        logger.info(
            "Metadata cache initialized with %s tags, %s correspondents and %s document types",
            len(self._mappings[EntityKind.TAGS]),
            len(self._mappings[EntityKind.CORRESPONDENTS]),
            len(self._mappings[EntityKind.DOCUMENT_TYPES]),
        )

    async def refresh_kind(self, kind: EntityKind) -> None:
        """Reload a single kind, leaving the other two untouched."""
        mapping = await self._fetch_kind(kind)
        self._mappings = {**self._mappings, kind: mapping}
        logger.info("Refreshed %s cache count=%s", kind.value, len(mapping))

    def entities(self, kind: EntityKind) -> list[MetadataEntity]:
        return list(self._mappings.get(kind, {}).values())

    def lookup_by_id(self, kind: EntityKind, entity_id: int) -> MetadataEntity | None:
        return self._mappings.get(kind, {}).get(entity_id)

    def lookup_by_ids(
        self, kind: EntityKind, ids: list[int] | None
    ) -> list[MetadataEntity] | None:
        """Best-effort enrichment: unknown IDs are dropped.

        Returns ``None`` for an empty or missing ``ids`` list.
        """
        if not ids:
            return None
        mapping = self._mappings.get(kind, {})
        return [mapping[entity_id] for entity_id in ids if entity_id in mapping]

    def lookup_id_by_name(self, kind: EntityKind, name: str) -> int | None:
        """Exact, case-insensitive and trim-insensitive name match.

        When several entities share a normalized name the lowest ID wins.
        """
        wanted = _normalize_name(name or "")
        if not wanted:
            return None
        for entity in self._mappings.get(kind, {}).values():
            if _normalize_name(entity.name) == wanted:
                return entity.id
        return None


__all__ = [
    "MATCHING_ALGORITHM_MAP",
    "EntityKind",
    "MetadataEntity",
    "MetadataCache",
    "LookupSource",
    "_normalize_name",
    "_normalize_matching_algorithm",
]
