"""MCP tool implementations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from .config import logger
from .errors import (
    BridgeError,
    PaperlessAPIError,
    ResolutionError,
    ToolValidationError,
    UnknownToolError,
)
from .lookups import EntityKind, LookupSource, MetadataCache, MetadataEntity
from .schemas import (
    CreateLookupRequest,
    EditDocumentsRequest,
    GetDocumentsRequest,
    ListLookupRequest,
    ToolRequest,
    parse_tool_arguments,
)
from .utils import _build_search_params, _compact_document, _entity_listing, _json_text

REMOTE_FILTER_KEYS = {
    EntityKind.TAGS: "tags__name__icontains",
    EntityKind.CORRESPONDENTS: "correspondent__name__icontains",
    EntityKind.DOCUMENT_TYPES: "document_type__name__icontains",
}


class DocumentClient(LookupSource, Protocol):
    async def search_documents(self, params: dict[str, Any]) -> dict[str, Any]: ...

    async def bulk_edit(
        self, document_ids: list[int], method: str, parameters: dict[str, Any]
    ) -> Any: ...

    async def create_lookup(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]: ...


@dataclass(frozen=True)
class ToolResult:
    """Uniform tool-call envelope: one JSON text block, flagged on error."""

    text: str
    is_error: bool = False

    @classmethod
    def success(cls, payload: Any) -> "ToolResult":
        return cls(_json_text(payload))

    @classmethod
    def failure(cls, error: BridgeError) -> "ToolResult":
        return cls(_json_text(error.to_payload()), is_error=True)

    def to_dict(self) -> dict[str, Any]:
        content = [{"type": "text", "text": self.text}]
        if self.is_error:
            return {"isError": True, "content": content}
        return {"content": content}


class ToolDispatcher:
    """Route tool calls to Paperless.

    Every call runs validate, resolve names, call Paperless, wrap. Failures
    at any step come back as an error :class:`ToolResult`; ``dispatch`` does
    not raise for them.
    """

    def __init__(self, client: DocumentClient, cache: MetadataCache) -> None:
        self._client = client
        self._cache = cache

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        logger.info("Tool called: %s", name)
        logger.debug("%s arguments=%s", name, arguments)

        try:
            request = parse_tool_arguments(name, arguments)
            payload = await self._handle(request)
        except UnknownToolError as exc:
            logger.error("Unknown tool: %s", name)
            return ToolResult.failure(exc)
        except (ToolValidationError, ResolutionError) as exc:
            logger.warning("%s rejected: %s", name, exc.message)
            return ToolResult.failure(exc)
        except PaperlessAPIError as exc:
            logger.error("%s failed: %s %s", name, exc.code, exc.message)
            return ToolResult.failure(exc)
        except Exception as exc:
            logger.exception("%s failed on an unexpected Paperless response", name)
            return ToolResult.failure(
                PaperlessAPIError("unexpected_response", f"{name} failed: {exc}")
            )

        logger.info("%s completed", name)
        return ToolResult.success(payload)

    async def _handle(self, request: ToolRequest) -> dict[str, Any]:
        if isinstance(request, ListLookupRequest):
            return await self._list_lookup(request)
        if isinstance(request, GetDocumentsRequest):
            return await self._get_documents(request)
        if isinstance(request, EditDocumentsRequest):
            return await self._edit_documents(request)
        if isinstance(request, CreateLookupRequest):
            return await self._create_lookup(request)
        raise UnknownToolError(request.tool_name)

    @staticmethod
    def _remote_name_filter(kind: EntityKind, name: str) -> tuple[str, str]:
        """Read-path policy: never fails.

        The name goes to Paperless's own case-insensitive "contains" filter
        whether or not it is cached, so results do not depend on cache state.
        """
        return REMOTE_FILTER_KEYS[kind], name

    def _require_entity_id(self, kind: EntityKind, name: str) -> int:
        """Write-path policy: an unknown name fails the whole call."""
        entity_id = self._cache.lookup_id_by_name(kind, name)
        if entity_id is None:
            raise ResolutionError(kind.label, [name])
        return entity_id

    def _resolve_tag_ids(self, names: list[str]) -> tuple[list[int], list[str]]:
        """Tag-list policy: unknown names are dropped and reported back."""
        resolved: list[int] = []
        missing: list[str] = []
        for name in names:
            tag_id = self._cache.lookup_id_by_name(EntityKind.TAGS, name)
            if tag_id is None:
                missing.append(name)
            elif tag_id not in resolved:
                resolved.append(tag_id)
        return resolved, missing

    async def _list_lookup(self, request: ListLookupRequest) -> dict[str, Any]:
        """List every cached entry of one kind, loading the kind on first use."""
        kind = request.kind
        if request.refresh or not self._cache.is_loaded(kind):
            await self._cache.refresh_kind(kind)
        return _entity_listing(kind, self._cache.entities(kind))

    async def _get_documents(self, request: GetDocumentsRequest) -> dict[str, Any]:
        """Search documents with the given filters.

        Returns:
            ``total`` matches on the server, ``returned`` on this page and
            ``documents`` as compact summaries with metadata names filled in
            from the cache.
        """
        name_filters: dict[str, Any] = {}
        for kind, name in (
            (EntityKind.TAGS, request.tag),
            (EntityKind.CORRESPONDENTS, request.correspondent),
            (EntityKind.DOCUMENT_TYPES, request.document_type),
        ):
            if name is not None:
                key, value = self._remote_name_filter(kind, name)
                name_filters[key] = value

        params = _build_search_params(
            query=request.query,
            document_id=request.id,
            title=request.title,
            content=request.content__icontains,
            created_from=request.created__date__gte,
            created_to=request.created__date__lte,
            limit=request.limit,
            name_filters=name_filters,
        )
        logger.debug("get_documents params=%s", params)

        payload = await self._client.search_documents(params)
        results = [item for item in payload["results"] if isinstance(item, dict)]
        return {
            "total": payload.get("count", len(results)),
            "returned": len(results),
            "documents": [
                _compact_document(document, self._cache, full_content=request.full_content)
                for document in results
            ],
        }

    async def _edit_documents(self, request: EditDocumentsRequest) -> dict[str, Any]:
        """Resolve metadata names, then submit one bulk edit.

        Resolution finishes before anything is sent, so an unknown
        correspondent or document type means no request reaches Paperless.
        """
        parameters: dict[str, Any] = {}
        ignored_tags: list[str] = []

        if request.method == "set_correspondent":
            parameters["correspondent"] = (
                request.correspondent_id
                if request.correspondent_id is not None
                else self._require_entity_id(EntityKind.CORRESPONDENTS, request.correspondent or "")
            )
        elif request.method == "set_document_type":
            parameters["document_type"] = (
                request.document_type_id
                if request.document_type_id is not None
                else self._require_entity_id(EntityKind.DOCUMENT_TYPES, request.document_type or "")
            )
        elif request.method == "modify_tags":
            add_ids, add_missing = self._resolve_tag_ids(request.add_tags)
            remove_ids, remove_missing = self._resolve_tag_ids(request.remove_tags)
            ignored_tags = add_missing + remove_missing
            if ignored_tags:
                logger.warning("Ignoring unknown tags: %s", ", ".join(ignored_tags))
            if not add_ids and not remove_ids:
                raise ResolutionError(EntityKind.TAGS.label, ignored_tags)
            parameters = {"add_tags": add_ids, "remove_tags": remove_ids}

        response = await self._client.bulk_edit(request.document_ids, request.method, parameters)
        summary: dict[str, Any] = {
            "method": request.method,
            "documents": request.document_ids,
            "count": len(request.document_ids),
            "parameters": parameters,
            "result": response,
        }
        if ignored_tags:
            summary["ignored_tags"] = ignored_tags
        return summary

    async def _create_lookup(self, request: CreateLookupRequest) -> dict[str, Any]:
        """Create the entry, then reload its kind so the name resolves right away."""
        kind = request.kind
        created = await self._client.create_lookup(kind.endpoint, request.to_payload())
        logger.info("Created %s id=%s", kind.label, created.get("id"))

        try:
            await self._cache.refresh_kind(kind)
        except PaperlessAPIError as exc:
            logger.error("Created %s but refreshing %s failed: %s", kind.label, kind.value, exc.message)

        entity = MetadataEntity.from_api(created)
        return {
            "kind": kind.value,
            "created": entity.to_dict() if entity else created,
        }


__all__ = [
    "REMOTE_FILTER_KEYS",
    "DocumentClient",
    "ToolResult",
    "ToolDispatcher",
]
