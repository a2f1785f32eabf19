"""Utility helpers for request formatting and result summaries."""

from __future__ import annotations

import datetime
import json
from typing import Any

from .config import DEFAULT_DOCUMENT_LIMIT, MAX_PAGE_SIZE
from .lookups import EntityKind, MetadataCache, MetadataEntity

CONTENT_PREVIEW_LENGTH = 400


def _normalize_page_size(page_size: int) -> int:
    if page_size < 1:
        return DEFAULT_DOCUMENT_LIMIT
    return min(page_size, MAX_PAGE_SIZE)


def _build_search_params(
    query: str | None,
    document_id: int | None,
    title: str | None,
    content: str | None,
    created_from: datetime.date | None,
    created_to: datetime.date | None,
    limit: int,
    name_filters: dict[str, Any] | None,
) -> dict[str, Any]:
    params: dict[str, Any] = {"page_size": _normalize_page_size(limit)}

    if query:
        params["query"] = query
    if document_id is not None:
        params["id"] = document_id
    if title:
        params["title__icontains"] = title
    if content:
        params["content__icontains"] = content
    if created_from is not None:
        params["created__date__gte"] = created_from.isoformat()
    if created_to is not None:
        params["created__date__lte"] = created_to.isoformat()
    if name_filters:
        params.update(name_filters)

    return params


def _content_preview(content: Any, *, full: bool = False) -> str:
    if not isinstance(content, str):
        return ""
    if full or len(content) <= CONTENT_PREVIEW_LENGTH:
        return content
    return content[:CONTENT_PREVIEW_LENGTH] + "..."


def _entity_reference(
    cache: MetadataCache, kind: EntityKind, entity_id: Any
) -> dict[str, Any] | None:
    if not isinstance(entity_id, int):
        return None
    entity = cache.lookup_by_id(kind, entity_id)
    return {"id": entity_id, "name": entity.name if entity else None}


def _compact_document(
    document: dict[str, Any], cache: MetadataCache, *, full_content: bool = False
) -> dict[str, Any]:
    raw_tags = document.get("tags")
    if not isinstance(raw_tags, list):
        raw_tags = []
    tag_ids = [tag for tag in raw_tags if isinstance(tag, int) and not isinstance(tag, bool)]
    tags = cache.lookup_by_ids(EntityKind.TAGS, tag_ids) or []
    summary: dict[str, Any] = {
        "id": document.get("id"),
        "title": document.get("title"),
        "created": document.get("created_date") or document.get("created"),
        "correspondent": _entity_reference(cache, EntityKind.CORRESPONDENTS, document.get("correspondent")),
        "document_type": _entity_reference(cache, EntityKind.DOCUMENT_TYPES, document.get("document_type")),
        "tags": [tag.name for tag in tags],
        "tag_ids": tag_ids,
        "archived_file_name": document.get("archived_file_name"),
        "content": _content_preview(document.get("content"), full=full_content),
    }
    # Present on full-text query results only.
    search_hit = document.get("__search_hit__")
    if isinstance(search_hit, dict):
        summary["search_hit"] = {
            "score": search_hit.get("score"),
            "highlights": search_hit.get("highlights"),
        }
    return summary


def _entity_listing(kind: EntityKind, entities: list[MetadataEntity]) -> dict[str, Any]:
    return {
        "count": len(entities),
        kind.value: [entity.to_dict() for entity in entities],
    }


def _json_text(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


__all__ = [
    "CONTENT_PREVIEW_LENGTH",
    "_normalize_page_size",
    "_build_search_params",
    "_content_preview",
    "_entity_reference",
    "_compact_document",
    "_entity_listing",
    "_json_text",
]
