"""Per-tool request models.

Each model is both the tool's published JSON input schema and the validator
for incoming arguments, so the two cannot drift apart.
"""

from __future__ import annotations

import datetime
from typing import Any, ClassVar, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError

from .config import DEFAULT_DOCUMENT_LIMIT
from .errors import ToolValidationError, UnknownToolError
from .lookups import EntityKind, _normalize_matching_algorithm

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{6}|[0-9a-fA-F]{3})$"
DOCUMENT_FILTER_FIELDS = (
    "query",
    "id",
    "content__icontains",
    "title",
    "tag",
    "correspondent",
    "created__date__gte",
    "created__date__lte",
    "document_type",
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class ToolRequest(BaseModel):
    """Base for the closed set of tool argument models."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tool_name: ClassVar[str]
    description: ClassVar[str]


class ListLookupRequest(ToolRequest):
    kind: ClassVar[EntityKind]

    refresh: bool = Field(
        default=False,
        description="Reload this list from Paperless before answering.",
    )


class ListTagsRequest(ListLookupRequest):
    tool_name = "list_tags"
    description = "Lists all tags in Paperless NGX."
    kind = EntityKind.TAGS


class ListCorrespondentsRequest(ListLookupRequest):
    tool_name = "list_correspondents"
    description = "Lists all correspondents in Paperless NGX."
    kind = EntityKind.CORRESPONDENTS


class ListDocumentTypesRequest(ListLookupRequest):
    tool_name = "list_document_types"
    description = "Lists all document types in Paperless NGX."
    kind = EntityKind.DOCUMENT_TYPES


class GetDocumentsRequest(ToolRequest):
    tool_name = "get_documents"
    description = (
        "Finds documents in Paperless NGX. At least one filter (query, id, content__icontains, "
        "title, tag, correspondent, created__date__gte, created__date__lte, document_type) "
        "is required."
    )

    query: str | None = Field(
        default=None, description="Full-text search query, ranked by Paperless."
    )
    id: PositiveInt | None = Field(default=None, description="ID of the document to retrieve.")
    content__icontains: str | None = Field(
        default=None,
        validation_alias=AliasChoices("content__icontains", "content_contains"),
        description="Text the document content must contain.",
    )
    title: str | None = Field(default=None, description="Text the document title must contain.")
    tag: str | None = Field(default=None, description="Tag name of the documents to find.")
    correspondent: str | None = Field(
        default=None, description="Correspondent name of the documents to find."
    )
    created__date__gte: datetime.date | None = Field(
        default=None,
        validation_alias=AliasChoices("created__date__gte", "created_from"),
        description="Creation date greater than or equal to this date (YYYY-MM-DD).",
    )
    created__date__lte: datetime.date | None = Field(
        default=None,
        validation_alias=AliasChoices("created__date__lte", "created_to"),
        description="Creation date less than or equal to this date (YYYY-MM-DD).",
    )
    document_type: str | None = Field(
        default=None, description="Document type name of the documents to find."
    )
    limit: int = Field(
        default=DEFAULT_DOCUMENT_LIMIT,
        ge=1,
        description="Maximum number of documents to return.",
    )
    full_content: bool = Field(
        default=False,
        description="Return each document's full text instead of a short preview.",
    )

    @field_validator(
        "query", "content__icontains", "title", "tag", "correspondent", "document_type", mode="before"
    )
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @model_validator(mode="after")
    def _require_filter(self) -> "GetDocumentsRequest":
        if all(getattr(self, name) is None for name in DOCUMENT_FILTER_FIELDS):
            raise PydanticCustomError(
                "missing_filter",
                "At least one of {fields} must be provided",
                {"fields": ", ".join(DOCUMENT_FILTER_FIELDS)},
            )
        return self


class EditDocumentsRequest(ToolRequest):
    tool_name = "edit_documents"
    description = (
        "Bulk-edits documents in Paperless NGX: set their correspondent or document type, "
        "add/remove tags, or delete them. Metadata is given by name."
    )

    document_ids: list[PositiveInt] = Field(
        alias="documentIds",
        min_length=1,
        description="IDs of the documents to edit.",
    )
    method: Literal["set_correspondent", "set_document_type", "modify_tags", "delete"] = Field(
        description="Edit to apply: set_correspondent, set_document_type, modify_tags or delete.",
    )
    correspondent: str | None = Field(
        default=None, description="Name of the correspondent to set (set_correspondent)."
    )
    correspondent_id: PositiveInt | None = Field(
        default=None, description="ID of the correspondent to set, instead of a name."
    )
    document_type: str | None = Field(
        default=None, description="Name of the document type to set (set_document_type)."
    )
    document_type_id: PositiveInt | None = Field(
        default=None, description="ID of the document type to set, instead of a name."
    )
    add_tags: list[str] = Field(
        default_factory=list, description="Names of tags to add (modify_tags)."
    )
    remove_tags: list[str] = Field(
        default_factory=list, description="Names of tags to remove (modify_tags)."
    )

    @field_validator("correspondent", "document_type", mode="before")
    @classmethod
    def _strip_names(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("add_tags", "remove_tags", mode="after")
    @classmethod
    def _drop_blank_tags(cls, value: list[str]) -> list[str]:
        return [name.strip() for name in value if name and name.strip()]

    @model_validator(mode="after")
    def _require_method_fields(self) -> "EditDocumentsRequest":
        if self.method == "set_correspondent" and self.correspondent is None and self.correspondent_id is None:
            raise PydanticCustomError(
                "missing_method_field",
                "method {method} requires {fields}",
                {"method": self.method, "fields": "correspondent or correspondent_id"},
            )
        if self.method == "set_document_type" and self.document_type is None and self.document_type_id is None:
            raise PydanticCustomError(
                "missing_method_field",
                "method {method} requires {fields}",
                {"method": self.method, "fields": "document_type or document_type_id"},
            )
        if self.method == "modify_tags" and not (self.add_tags or self.remove_tags):
            raise PydanticCustomError(
                "missing_method_field",
                "method {method} requires a non-empty {fields}",
                {"method": self.method, "fields": "add_tags or remove_tags"},
            )
        return self


class CreateLookupRequest(ToolRequest):
    kind: ClassVar[EntityKind]

    name: str = Field(min_length=1, description="Name of the new entry.")
    match: str | None = Field(default=None, description="Optional auto-matching pattern.")
    matching_algorithm: int | str | None = Field(
        default=None,
        description=(
            "Optional matching algorithm, as an integer or one of: "
            "none, any, all, exact, regex, fuzzy, auto."
        ),
    )

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("matching_algorithm", mode="after")
    @classmethod
    def _known_algorithm(cls, value: int | str | None) -> int | None:
        if value is None:
            return value
        normalized = _normalize_matching_algorithm(value)
        if not isinstance(normalized, int):
            raise PydanticCustomError(
                "unknown_matching_algorithm",
                "Unknown matching algorithm '{value}'",
                {"value": value},
            )
        return normalized

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CreateCorrespondentRequest(CreateLookupRequest):
    tool_name = "create_correspondent"
    description = "Creates a new correspondent in Paperless NGX."
    kind = EntityKind.CORRESPONDENTS


class CreateDocumentTypeRequest(CreateLookupRequest):
    tool_name = "create_document_type"
    description = "Creates a new document type in Paperless NGX."
    kind = EntityKind.DOCUMENT_TYPES


class CreateTagRequest(CreateLookupRequest):
    tool_name = "create_tag"
    description = "Creates a new tag in Paperless NGX."
    kind = EntityKind.TAGS

    color: str | None = Field(
        default=None,
        pattern=HEX_COLOR_PATTERN,
        description="Tag color as #RRGGBB or #RGB.",
    )


TOOL_REQUESTS: dict[str, type[ToolRequest]] = {
    model.tool_name: model
    for model in (
        ListTagsRequest,
        ListCorrespondentsRequest,
        ListDocumentTypesRequest,
        GetDocumentsRequest,
        EditDocumentsRequest,
        CreateCorrespondentRequest,
        CreateDocumentTypeRequest,
        CreateTagRequest,
    )
}


def tool_input_schema(model: type[ToolRequest]) -> dict[str, Any]:
    return model.model_json_schema(by_alias=True)


def _validation_details(exc: ValidationError) -> list[dict[str, str]]:
    details: list[dict[str, str]] = []
    for error in exc.errors(include_url=False):
        field = ".".join(str(part) for part in error["loc"])
        if not field:
            field = str(error.get("ctx", {}).get("fields") or "arguments")
        details.append({"field": field, "rule": error["type"], "message": error["msg"]})
    return details


def parse_tool_arguments(tool_name: str, arguments: Any) -> ToolRequest:
    """Validate raw tool arguments into the tool's request model.

    Raises:
        UnknownToolError: ``tool_name`` is not a declared tool.
        ToolValidationError: the arguments violate the tool's schema or one
            of its cross-field rules.
    """
    model = TOOL_REQUESTS.get(tool_name)
    if model is None:
        raise UnknownToolError(tool_name)
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise ToolValidationError(
            tool_name,
            [{"field": "arguments", "rule": "dict_type", "message": "Arguments must be an object"}],
        )
    try:
        return model.model_validate(arguments)
    except ValidationError as exc:
        raise ToolValidationError(tool_name, _validation_details(exc)) from exc


__all__ = [
    "HEX_COLOR_PATTERN",
    "DOCUMENT_FILTER_FIELDS",
    "ToolRequest",
    "ListLookupRequest",
    "ListTagsRequest",
    "ListCorrespondentsRequest",
    "ListDocumentTypesRequest",
    "GetDocumentsRequest",
    "EditDocumentsRequest",
    "CreateLookupRequest",
    "CreateCorrespondentRequest",
    "CreateDocumentTypeRequest",
    "CreateTagRequest",
    "TOOL_REQUESTS",
    "tool_input_schema",
    "parse_tool_arguments",
]
