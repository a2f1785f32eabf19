"""Error types shared by the client, cache and tool dispatcher."""

from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base class for errors that map onto a tool error payload."""

    code = "bridge_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message}


class ConfigError(BridgeError, ValueError):
    """Missing or malformed configuration. Fatal at startup."""

    code = "config_error"


class UnknownToolError(BridgeError):
    code = "unknown_tool"

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["tool"] = self.tool_name
        return payload


class ToolValidationError(BridgeError):
    """Tool arguments did not match the tool's declared shape.

    ``details`` holds one entry per violation with the failing ``field``,
    the violated ``rule`` and a human-readable ``message``.
    """

    code = "invalid_arguments"

    def __init__(self, tool_name: str, details: list[dict[str, str]]) -> None:
        summary = "; ".join(f"{item['field']}: {item['message']}" for item in details)
        super().__init__(f"Invalid arguments for {tool_name}: {summary}")
        self.tool_name = tool_name
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["tool"] = self.tool_name
        payload["details"] = self.details
        return payload


class ResolutionError(BridgeError):
    """A name given for a write operation is not in the metadata cache."""

    code = "entity_not_found"

    def __init__(self, kind: str, names: list[str]) -> None:
        joined = ", ".join(repr(name) for name in names)
        super().__init__(f"No {kind} found with name {joined}.")
        self.kind = kind
        self.names = names

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["kind"] = self.kind
        payload["names"] = self.names
        return payload


class PaperlessAPIError(BridgeError):
    """The Paperless API could not be reached or answered unexpectedly."""

    def __init__(self, code: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        return payload


__all__ = [
    "BridgeError",
    "ConfigError",
    "UnknownToolError",
    "ToolValidationError",
    "ResolutionError",
    "PaperlessAPIError",
]
