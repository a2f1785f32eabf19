"""MCP application instance."""

from __future__ import annotations

import re
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from pydantic import AnyUrl

from . import __version__
from .config import logger
from .errors import PaperlessAPIError
from .http_client import PaperlessClient
from .schemas import TOOL_REQUESTS, tool_input_schema
from .tools import ToolDispatcher, ToolResult
from .utils import _json_text

SERVER_NAME = "paperless-mcp-bridge"
DOCUMENT_URI_PATTERN = re.compile(r"^paperless://documents/(\d+)/?$")


def _tool_definitions() -> list[types.Tool]:
    return [
        types.Tool(
            name=model.tool_name,
            description=model.description,
            inputSchema=tool_input_schema(model),
        )
        for model in TOOL_REQUESTS.values()
    ]


def _to_call_tool_result(result: ToolResult) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=result.text)],
        isError=result.is_error,
    )


def _document_uri(document_id: int) -> str:
    return f"paperless://documents/{document_id}"


def _parse_document_uri(uri: str) -> int:
    match = DOCUMENT_URI_PATTERN.match(uri)
    if not match:
        raise ValueError(f"Invalid document URI: {uri}")
    return int(match.group(1))


def _document_resource(document: dict[str, Any]) -> types.Resource | None:
    document_id = document.get("id")
    if not isinstance(document_id, int):
        return None
    title = document.get("title") or f"Document {document_id}"
    return types.Resource(
        uri=AnyUrl(_document_uri(document_id)),
        name=title,
        description=f"Paperless NGX document: {title}",
        mimeType="application/json",
    )


def create_server(client: PaperlessClient, dispatcher: ToolDispatcher) -> Server:
    """Build the MCP server exposing the Paperless tools and document resources.

    Argument validation is left to the dispatcher so that every rejection
    comes back in the same error envelope.
    """
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return _tool_definitions()

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        result = await dispatcher.dispatch(name, arguments)
        return _to_call_tool_result(result)

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        try:
            documents = await client.list_recent_documents()
        except PaperlessAPIError as exc:
            logger.error("Error listing resources: %s", exc.message)
            return []
        resources = [_document_resource(document) for document in documents]
        logger.info("Listing %s document resources", len(resources))
        return [resource for resource in resources if resource is not None]

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        logger.info("Reading resource %s", uri)
        document_id = _parse_document_uri(str(uri))
        document = await client.get_document(document_id)
        return [ReadResourceContents(content=_json_text(document), mime_type="application/json")]

    return server


__all__ = [
    "SERVER_NAME",
    "DOCUMENT_URI_PATTERN",
    "create_server",
    "_tool_definitions",
    "_to_call_tool_result",
    "_document_uri",
    "_parse_document_uri",
    "_document_resource",
]
