import anyio
import pytest

from paperless_mcp_bridge import app, server
from paperless_mcp_bridge.config import PaperlessSettings
from paperless_mcp_bridge.errors import PaperlessAPIError
from paperless_mcp_bridge.tools import ToolResult


def test_tool_definitions_publish_every_tool() -> None:
    tools = {tool.name: tool for tool in app._tool_definitions()}

    assert set(tools) == {
        "list_tags",
        "list_correspondents",
        "list_document_types",
        "get_documents",
        "edit_documents",
        "create_correspondent",
        "create_document_type",
        "create_tag",
    }
    assert "documentIds" in tools["edit_documents"].inputSchema["properties"]
    assert tools["create_tag"].inputSchema["required"] == ["name"]


def test_tool_result_maps_onto_call_tool_result() -> None:
    result = app._to_call_tool_result(ToolResult('{"error": "unknown_tool"}', is_error=True))

    assert result.isError is True
    assert result.content[0].text == '{"error": "unknown_tool"}'


def test_document_uri_round_trip() -> None:
    assert app._document_uri(12) == "paperless://documents/12"
    assert app._parse_document_uri("paperless://documents/12") == 12

    with pytest.raises(ValueError):
        app._parse_document_uri("paperless://tags/12")


def test_document_resource_skips_documents_without_id() -> None:
    resource = app._document_resource({"id": 3, "title": "Lease"})

    assert str(resource.uri) == "paperless://documents/3"
    assert resource.name == "Lease"
    assert resource.mimeType == "application/json"
    assert app._document_resource({"title": "No id"}) is None


def _settings() -> PaperlessSettings:
    return PaperlessSettings(base_url="http://paperless.local", token="token")


class _DummyClient:
    ping_error: PaperlessAPIError | None = None
    listing_error: PaperlessAPIError | None = None

    def __init__(self, settings: PaperlessSettings) -> None:
        self.settings = settings

    async def __aenter__(self) -> "_DummyClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    async def ping(self) -> None:
        if self.ping_error is not None:
            raise self.ping_error

    async def fetch_all(self, endpoint: str, label: str) -> list[dict[str, object]]:
        if self.listing_error is not None:
            raise self.listing_error
        return []


def test_run_exits_when_paperless_is_unreachable(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Unreachable(_DummyClient):
        ping_error = PaperlessAPIError("paperless_request_error", "connection refused")

    served: list[str] = []

    async def fake_serve(_server) -> None:
        served.append("stdio")

    monkeypatch.setattr(server, "PaperlessClient", _Unreachable)
    monkeypatch.setattr(server, "_serve_stdio", fake_serve)

    assert anyio.run(server._run, _settings(), "stdio") == 1
    assert served == []


def test_run_exits_when_cache_cannot_load(monkeypatch: pytest.MonkeyPatch) -> None:
    class _BrokenListings(_DummyClient):
        listing_error = PaperlessAPIError("paperless_http_error", "Forbidden", status_code=403)

    monkeypatch.setattr(server, "PaperlessClient", _BrokenListings)

    assert anyio.run(server._run, _settings(), "stdio") == 1


def test_run_serves_after_successful_bootstrap(monkeypatch: pytest.MonkeyPatch) -> None:
    served: list[object] = []

    async def fake_serve(mcp_server) -> None:
        served.append(mcp_server)

    monkeypatch.setattr(server, "PaperlessClient", _DummyClient)
    monkeypatch.setattr(server, "_serve_stdio", fake_serve)

    assert anyio.run(server._run, _settings(), "stdio") == 0
    assert served[0].name == app.SERVER_NAME


def test_main_exits_on_missing_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server, "load_dotenv", lambda: False)
    monkeypatch.setenv("MCP_TRANSPORT", "stdio")
    monkeypatch.delenv("PAPERLESS_URL", raising=False)
    monkeypatch.delenv("PAPERLESS_BASE_URL", raising=False)
    monkeypatch.delenv("PAPERLESS_TOKEN", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        server.main()

    assert exc_info.value.code == 1
