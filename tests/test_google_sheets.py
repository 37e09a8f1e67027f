"""Tests for the Google Sheets record store over in-memory worksheets."""

import json
import time
from datetime import date

import pytest

from clearspend.models.receipt import ResolvedFilter, SearchType
from clearspend.queries.executor import SearchExecutor
from clearspend.services.storage.google_sheets import (
    GoogleSheetsRecordStore,
    cosine_similarity,
)
from tests.fakes import TENANT, FakeEmbedder, run


class FakeWorksheet:
    def __init__(self, rows):
        self.rows = rows

    def get_all_values(self):
        return self.rows


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; each sheet includes its header row."""

    def __init__(self, receipts, vendors, line_items):
        self.receipts = FakeWorksheet([["id", "tenant_id", "receipt_date", "total_amount", "vendor_id"]] + receipts)
        self.vendors = FakeWorksheet([["id", "tenant_id", "name", "category"]] + vendors)
        self.line_items = FakeWorksheet(
            [["id", "receipt_id", "tenant_id", "description", "total_price", "category", "embedding_json"]]
            + line_items
        )

    def get_receipts_sheet(self):
        return self.receipts

    def get_vendors_sheet(self):
        return self.vendors

    def get_line_items_sheet(self):
        return self.line_items


@pytest.fixture
def sheets_store():
    client = FakeSheetsClient(
        receipts=[
            ["r1", TENANT, "2024-03-10", "5.75", "v-sbux"],
            ["r2", TENANT, "2024-03-02", "6.25", "v-sbux"],
            ["r3", TENANT, "2024-02-20", "84.10", "v-tgt"],
            ["r4", "other-tenant", "2024-03-12", "99.00", "v-tgt"],
            ["r5", TENANT, "not a date", "1.00", ""],
            ["", TENANT, "2024-03-01", "1.00", ""],
            ["r6", TENANT, "2024-01-05", "", ""],
        ],
        vendors=[
            ["v-sbux", TENANT, "Starbucks", "Coffee"],
            ["v-tgt", TENANT, "Target", ""],
            ["v-blank", TENANT, "", "Retail"],
        ],
        line_items=[
            ["li1", "r1", TENANT, "latte", "5.75", "Coffee", json.dumps([1.0, 0.0])],
            ["li2", "r3", TENANT, "mugs", "20.00", "Home", json.dumps([0.6, 0.8])],
            ["li3", "r2", TENANT, "cold brew", "6.25", "Coffee", json.dumps([0.0, 1.0])],
            ["li4", "r4", "other-tenant", "latte", "5.00", "Coffee", json.dumps([1.0, 0.0])],
            ["li5", "missing", TENANT, "orphan", "1.00", "", json.dumps([1.0, 0.0])],
            ["li6", "r1", TENANT, "napkins", "0.00", "", "not json"],
        ],
    )
    return GoogleSheetsRecordStore(client=client)


class TestListReceipts:
    def test_tenant_rows_newest_first(self, sheets_store):
        receipts = run(sheets_store.list_receipts(TENANT))
        assert [r.id for r in receipts] == ["r1", "r2", "r3", "r6"]

    def test_missing_amount_is_zero(self, sheets_store):
        receipts = run(sheets_store.list_receipts(TENANT))
        assert receipts[-1].total_amount == 0.0
        assert receipts[-1].vendor_id is None

    def test_filters_are_inclusive(self, sheets_store):
        receipts = run(sheets_store.list_receipts(
            TENANT, date_from=date(2024, 3, 2), date_to=date(2024, 3, 10), min_amount=6.25,
        ))
        assert [r.id for r in receipts] == ["r2"]

    def test_limit(self, sheets_store):
        receipts = run(sheets_store.list_receipts(TENANT, limit=2))
        assert [r.id for r in receipts] == ["r1", "r2"]

    def test_unknown_tenant(self, sheets_store):
        assert run(sheets_store.list_receipts("nobody")) == []


class TestGetVendors:
    def test_lookup_by_id(self, sheets_store):
        vendors = run(sheets_store.get_vendors(["v-tgt", "v-sbux", "v-unknown", "v-blank"]))
        assert [v.name for v in vendors] == ["Target", "Starbucks"]
        assert vendors[0].category is None
        assert vendors[1].category == "Coffee"

    def test_no_ids(self, sheets_store):
        assert run(sheets_store.get_vendors([])) == []


class TestSimilaritySearch:
    def test_scored_joined_and_sorted(self, sheets_store):
        items = run(sheets_store.similarity_search([1.0, 0.0], TENANT, threshold=0.5, limit=10))

        assert [item.line_item_id for item in items] == ["li1", "li2"]
        assert items[0].similarity_score == pytest.approx(1.0)
        assert items[0].vendor_name == "Starbucks"
        assert items[0].receipt_total_amount == 5.75
        assert items[1].similarity_score == pytest.approx(0.6)
        assert items[1].receipt_date == date(2024, 2, 20)

    def test_limit_applies_before_join(self, sheets_store):
        items = run(sheets_store.similarity_search([1.0, 0.0], TENANT, threshold=0.5, limit=1))
        assert [item.line_item_id for item in items] == ["li1"]

    def test_nothing_above_threshold(self, sheets_store):
        assert run(sheets_store.similarity_search([-1.0, 0.0], TENANT, threshold=0.5, limit=10)) == []


class TestCosineSimilarity:
    def test_values(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_undefined(self):
        assert cosine_similarity([], []) is None
        assert cosine_similarity([1.0], [1.0, 2.0]) is None
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) is None


class SlowWorksheet(FakeWorksheet):
    def __init__(self, rows, delay):
        super().__init__(rows)
        self.delay = delay

    def get_all_values(self):
        time.sleep(self.delay)
        return self.rows


class TestSemanticTimeoutWithSheets:
    """A slow line-item sheet must not hold up the reply."""

    def test_slow_similarity_scan_falls_back_to_lexical(self, sheets_store, semantic_settings, audit_logger):
        line_items = sheets_store._client.line_items
        sheets_store._client.line_items = SlowWorksheet(line_items.rows, delay=1.5)
        executor = SearchExecutor(
            sheets_store,
            embedder=FakeEmbedder(vector=[1.0, 0.0]),
            similarity_index=sheets_store,
            settings=semantic_settings,
            audit_logger=audit_logger,
        )

        async def timed_search():
            started = time.monotonic()
            result = await executor.search(ResolvedFilter(query_text="latte"), TENANT)
            return result, time.monotonic() - started

        result, elapsed = run(timed_search())

        assert elapsed < 1.0
        assert result.search_type is SearchType.BASIC
        assert [row.id for row in result.rows] == ["r1", "r2", "r3", "r6"]
