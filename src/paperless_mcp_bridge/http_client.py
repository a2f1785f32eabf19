"""Async client for the Paperless-ngx REST API."""

from __future__ import annotations

from typing import Any

import httpx

from .config import MAX_PAGE_SIZE, PaperlessSettings, logger
from .errors import PaperlessAPIError

DOCUMENTS_ENDPOINT = "/api/documents/"
BULK_EDIT_ENDPOINT = "/api/documents/bulk_edit/"


class PaperlessClient:
    """Authenticated HTTP client for Paperless-ngx.

    Every method raises :class:`PaperlessAPIError` on transport failures,
    non-2xx responses and malformed JSON. One instance is shared for the
    lifetime of the process::

        async with PaperlessClient(settings) as client:
            tags = await client.fetch_all("/api/tags/", "tags")
    """

    def __init__(
        self,
        settings: PaperlessSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=settings.headers,
            timeout=settings.timeout_seconds,
            verify=settings.verify,
            transport=transport,
        )

    async def __aenter__(self) -> "PaperlessClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        logger.debug("Paperless request %s %s params=%s", method, path, params)
        try:
            response = await self._client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Paperless returned HTTP %s for %s %s", exc.response.status_code, method, path)
            raise PaperlessAPIError(
                "paperless_http_error",
                exc.response.text[:500] or f"HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Paperless request failed: %s", exc)
            raise PaperlessAPIError("paperless_request_error", str(exc) or type(exc).__name__) from exc

        try:
            return response.json()
        except ValueError as exc:
            logger.error("Paperless returned invalid JSON payload for %s.", path)
            raise PaperlessAPIError(
                "unexpected_response", f"{path} returned invalid JSON."
            ) from exc

    async def _get_object(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = await self._request("GET", path, params=params)
        if not isinstance(payload, dict):
            raise PaperlessAPIError("unexpected_response", f"{path} returned non-object JSON.")
        return payload

    async def ping(self) -> None:
        """Check that the API root answers with the configured token."""
        await self._request("GET", "/api/")

    async def fetch_all(self, endpoint: str, label: str) -> list[dict[str, Any]]:
        """Fetch every page of a paginated listing endpoint."""
        results: list[dict[str, Any]] = []
        page = 1

        while True:
            payload = await self._get_object(
                endpoint, params={"page": page, "page_size": MAX_PAGE_SIZE}
            )
            page_results = payload.get("results")
            if not isinstance(page_results, list):
                raise PaperlessAPIError(
                    "unexpected_response", f"{label} response missing results list."
                )

            results.extend(item for item in page_results if isinstance(item, dict))

            if not payload.get("next"):
                break
            page += 1

        logger.debug("Fetched %s %s across %s page(s)", len(results), label, page)
        return results

    async def search_documents(self, params: dict[str, Any]) -> dict[str, Any]:
        """Run a filtered document query and return the raw page payload."""
        payload = await self._get_object(DOCUMENTS_ENDPOINT, params=params)
        if not isinstance(payload.get("results"), list):
            raise PaperlessAPIError(
                "unexpected_response", "Paperless response missing results list."
            )
        return payload

    async def list_recent_documents(self, page_size: int = MAX_PAGE_SIZE) -> list[dict[str, Any]]:
        payload = await self.search_documents({"page_size": page_size, "ordering": "-added"})
        return [item for item in payload["results"] if isinstance(item, dict)]

    async def get_document(self, document_id: int) -> dict[str, Any]:
        return await self._get_object(f"{DOCUMENTS_ENDPOINT}{document_id}/")

    async def bulk_edit(
        self,
        document_ids: list[int],
        method: str,
        parameters: dict[str, Any],
    ) -> Any:
        """Apply one bulk-edit method to a batch of documents."""
        body = {"documents": document_ids, "method": method, "parameters": parameters}
        logger.debug("bulk_edit payload=%s", body)
        return await self._request("POST", BULK_EDIT_ENDPOINT, json=body)

    async def create_lookup(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a tag, correspondent or document type."""
        created = await self._request("POST", endpoint, json=payload)
        if not isinstance(created, dict):
            raise PaperlessAPIError("unexpected_response", f"{endpoint} returned non-object JSON.")
        return created


__all__ = [
    "DOCUMENTS_ENDPOINT",
    "BULK_EDIT_ENDPOINT",
    "PaperlessClient",
]
