"""MCP server entrypoint for Paperless-ngx."""

from __future__ import annotations

import contextlib
import sys
from typing import Any

import anyio
import uvicorn
from dotenv import load_dotenv
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.routing import Mount

from .app import create_server
from .config import (
    PaperlessSettings,
    _configure_logging,
    _mcp_host,
    _mcp_log_level,
    _mcp_mount_path,
    _mcp_port,
    _resolve_transport,
    load_settings,
    logger,
)
from .errors import ConfigError, PaperlessAPIError
from .http_client import PaperlessClient
from .lookups import MetadataCache
from .tools import ToolDispatcher


async def _serve_stdio(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


async def _serve_streamable_http(server: Server, http_options: dict[str, Any]) -> None:
    session_manager = StreamableHTTPSessionManager(app=server, json_response=False, stateless=True)

    async def handle_mcp(scope: Any, receive: Any, send: Any) -> None:
        await session_manager.handle_request(scope, receive, send)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette):
        async with session_manager.run():
            yield

    starlette_app = Starlette(
        routes=[Mount(http_options["mount_path"], app=handle_mcp)],
        lifespan=lifespan,
    )
    config = uvicorn.Config(
        starlette_app,
        host=http_options["host"],
        port=http_options["port"],
        log_level=http_options["log_level"].lower(),
    )
    await uvicorn.Server(config).serve()


async def _run(
    settings: PaperlessSettings,
    transport: str,
    http_options: dict[str, Any] | None = None,
) -> int:
    async with PaperlessClient(settings) as client:
        logger.info("Testing Paperless connection base_url=%s", settings.base_url)
        try:
            await client.ping()
        except PaperlessAPIError as exc:
            logger.error("Paperless NGX is not accessible: %s", exc.message)
            return 1

        cache = MetadataCache(client)
        try:
            await cache.initialize()
        except PaperlessAPIError as exc:
            logger.error("Failed to initialize metadata cache: %s", exc.message)
            return 1

        server = create_server(client, ToolDispatcher(client, cache))
        logger.info("Starting Paperless MCP bridge transport=%s", transport)
        if transport == "streamable-http":
            await _serve_streamable_http(server, http_options or {})
        else:
            await _serve_stdio(server)
    return 0


def main() -> None:
    """Start the MCP server."""
    load_dotenv()
    _configure_logging()
    transport = _resolve_transport()
    try:
        settings = load_settings()
        http_options: dict[str, Any] | None = None
        if transport == "streamable-http":
            http_options = {
                "host": _mcp_host(),
                "port": _mcp_port(),
                "mount_path": _mcp_mount_path(),
                "log_level": _mcp_log_level(),
            }
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    exit_code = anyio.run(_run, settings, transport, http_options)
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
