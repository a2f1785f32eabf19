import anyio
import pytest

from paperless_mcp_bridge.errors import PaperlessAPIError
from paperless_mcp_bridge.lookups import EntityKind, MetadataCache, MetadataEntity


class _FakeSource:
    def __init__(self, listings: dict[str, list[dict[str, object]]]) -> None:
        self.listings = listings
        self.failing: set[str] = set()
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_all(self, endpoint: str, label: str) -> list[dict[str, object]]:
        self.calls.append(endpoint)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await anyio.sleep(0.01)
        finally:
            self.in_flight -= 1
        if endpoint in self.failing:
            raise PaperlessAPIError("paperless_request_error", f"{label} unreachable")
        return [dict(item) for item in self.listings.get(endpoint, [])]


def _listings() -> dict[str, list[dict[str, object]]]:
    return {
        "/api/tags/": [
            {"id": 2, "name": "Receipt", "document_count": 3, "color": "#a6cee3"},
            {"id": 1, "name": " Invoice ", "document_count": 12},
        ],
        "/api/correspondents/": [{"id": 7, "name": "ACME Corp", "document_count": 4}],
        "/api/document_types/": [{"id": 4, "name": "Bill"}],
    }


def _loaded_cache(source: _FakeSource | None = None) -> MetadataCache:
    cache = MetadataCache(source or _FakeSource(_listings()))
    anyio.run(cache.initialize)
    return cache


def test_initialize_loads_all_kinds() -> None:
    cache = _loaded_cache()

    assert [tag.id for tag in cache.entities(EntityKind.TAGS)] == [1, 2]
    assert cache.lookup_by_id(EntityKind.CORRESPONDENTS, 7) == MetadataEntity(
        id=7, name="ACME Corp", document_count=4
    )
    assert cache.lookup_by_id(EntityKind.DOCUMENT_TYPES, 4).name == "Bill"
    assert cache.last_updated is not None
    assert all(cache.is_loaded(kind) for kind in EntityKind)


def test_initialize_fetches_kinds_concurrently() -> None:
    source = _FakeSource(_listings())
    _loaded_cache(source)

    assert sorted(source.calls) == ["/api/correspondents/", "/api/document_types/", "/api/tags/"]
    assert source.max_in_flight == 3


def test_initialize_failure_installs_nothing() -> None:
    source = _FakeSource(_listings())
    source.failing.add("/api/correspondents/")
    cache = MetadataCache(source)

    with pytest.raises(PaperlessAPIError):
        anyio.run(cache.initialize)

    assert not any(cache.is_loaded(kind) for kind in EntityKind)
    assert cache.lookup_id_by_name(EntityKind.TAGS, "Receipt") is None
    assert cache.last_updated is None


def test_failed_reload_keeps_previous_snapshot() -> None:
    source = _FakeSource(_listings())
    cache = _loaded_cache(source)
    loaded_at = cache.last_updated

    source.listings["/api/tags/"] = [{"id": 50, "name": "Replaced"}]
    source.failing.add("/api/document_types/")
    with pytest.raises(PaperlessAPIError):
        anyio.run(cache.initialize)

    assert cache.lookup_id_by_name(EntityKind.TAGS, "Receipt") == 2
    assert cache.lookup_id_by_name(EntityKind.TAGS, "Replaced") is None
    assert cache.last_updated == loaded_at


def test_refresh_kind_replaces_only_that_kind() -> None:
    source = _FakeSource(_listings())
    cache = _loaded_cache(source)
    loaded_at = cache.last_updated
    tags_before = cache._mappings[EntityKind.TAGS]

    source.listings["/api/tags/"].append({"id": 3, "name": "Tax"})
    source.listings["/api/correspondents/"].append({"id": 8, "name": "Utility Co"})
    anyio.run(cache.refresh_kind, EntityKind.TAGS)

    assert cache.lookup_id_by_name(EntityKind.TAGS, "tax") == 3
    assert cache.lookup_id_by_name(EntityKind.CORRESPONDENTS, "Utility Co") is None
    assert cache.last_updated == loaded_at
    # The old mapping is swapped out, not edited in place.
    assert cache._mappings[EntityKind.TAGS] is not tags_before
    assert 3 not in tags_before


def test_lookup_id_by_name_ignores_case_and_whitespace() -> None:
    cache = _loaded_cache()

    assert cache.lookup_id_by_name(EntityKind.TAGS, "invoice") == 1
    assert cache.lookup_id_by_name(EntityKind.TAGS, "  INVOICE") == 1
    assert cache.lookup_id_by_name(EntityKind.TAGS, "Invoices") is None
    assert cache.lookup_id_by_name(EntityKind.TAGS, "   ") is None


def test_lookup_id_by_name_prefers_lowest_id_on_duplicates() -> None:
    listings = _listings()
    listings["/api/tags/"] = [
        {"id": 9, "name": "Tax"},
        {"id": 3, "name": "tax "},
        {"id": 5, "name": "TAX"},
    ]
    cache = _loaded_cache(_FakeSource(listings))

    assert cache.lookup_id_by_name(EntityKind.TAGS, "tax") == 3


def test_lookup_by_ids_without_ids_returns_none() -> None:
    cache = _loaded_cache()

    assert cache.lookup_by_ids(EntityKind.TAGS, []) is None
    assert cache.lookup_by_ids(EntityKind.TAGS, None) is None


def test_lookup_by_ids_drops_unknown_ids() -> None:
    cache = _loaded_cache()

    found = cache.lookup_by_ids(EntityKind.TAGS, [2, 99, 1])

    assert [tag.name for tag in found] == ["Receipt", " Invoice "]
    assert cache.lookup_by_ids(EntityKind.TAGS, [99]) == []


def test_lookups_before_initialize_do_not_raise() -> None:
    cache = MetadataCache(_FakeSource(_listings()))

    assert cache.lookup_id_by_name(EntityKind.TAGS, "Invoice") is None
    assert cache.lookup_by_id(EntityKind.TAGS, 1) is None
    assert cache.lookup_by_ids(EntityKind.TAGS, [1, 2]) == []
    assert cache.entities(EntityKind.CORRESPONDENTS) == []
    assert cache.last_updated is None


def test_entity_from_api_skips_items_without_id() -> None:
    assert MetadataEntity.from_api({"name": "Orphan"}) is None
    assert MetadataEntity.from_api({"id": "3", "name": "Stringly"}) is None

    tag = MetadataEntity.from_api({"id": 3, "name": "Tax", "color": "#ff0000", "document_count": 2})
    assert tag.to_dict() == {"id": 3, "name": "Tax", "document_count": 2, "color": "#ff0000"}
