"""
In-memory fakes for the record store and semantic collaborators.

No test reaches Google Sheets or Gemini.
"""

import asyncio
from datetime import date
from typing import Optional

from clearspend.models.receipt import (
    SimilarLineItem,
    StoredReceipt,
    VendorRecord,
)
from clearspend.services.storage.interface import (
    EmbeddingInterface,
    RecordStoreInterface,
    SimilaritySearchInterface,
    StorageError,
)


TENANT = "tenant-1"
REFERENCE_NOW = date(2024, 3, 15)  # A Friday


def run(coro):
    """Run a coroutine to completion."""
    return asyncio.run(coro)


class InMemoryRecordStore(RecordStoreInterface):
    """Record store over plain lists, with call recording."""

    def __init__(
        self,
        receipts: Optional[list[StoredReceipt]] = None,
        vendors: Optional[list[VendorRecord]] = None,
        tenant_id: str = TENANT,
    ):
        self.receipts = receipts or []
        self.vendors = {v.id: v for v in (vendors or [])}
        self.tenant_id = tenant_id
        self.list_calls: list[dict] = []
        self.vendor_calls: list[list[str]] = []

    async def list_receipts(self, tenant_id, date_from=None, date_to=None, min_amount=None, limit=50):
        self.list_calls.append({
            "tenant_id": tenant_id,
            "date_from": date_from,
            "date_to": date_to,
            "min_amount": min_amount,
            "limit": limit,
        })
        if tenant_id != self.tenant_id:
            return []
        rows = [
            r for r in self.receipts
            if (date_from is None or r.receipt_date >= date_from)
            and (date_to is None or r.receipt_date <= date_to)
            and (min_amount is None or r.total_amount >= min_amount)
        ]
        rows.sort(key=lambda r: r.receipt_date, reverse=True)
        return rows[:limit]

    async def get_vendors(self, vendor_ids):
        self.vendor_calls.append(list(vendor_ids))
        return [self.vendors[vid] for vid in vendor_ids if vid in self.vendors]


class FailingRecordStore(RecordStoreInterface):
    """Every read raises StorageError."""

    def __init__(self):
        self.list_calls = 0

    async def list_receipts(self, tenant_id, date_from=None, date_to=None, min_amount=None, limit=50):
        self.list_calls += 1
        raise StorageError("connection reset")

    async def get_vendors(self, vendor_ids):
        raise StorageError("connection reset")


class VendorLookupFailingStore(InMemoryRecordStore):
    """Receipts load, vendor lookup fails."""

    async def get_vendors(self, vendor_ids):
        raise StorageError("vendor table unavailable")


class FakeEmbedder(EmbeddingInterface):
    def __init__(self, vector=None, error: Optional[Exception] = None, delay: float = 0.0):
        self.vector = vector or [1.0, 0.0]
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def embed(self, text):
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.vector


class FakeSimilarityIndex(SimilaritySearchInterface):
    def __init__(self, items: Optional[list[SimilarLineItem]] = None):
        self.items = items or []
        self.calls: list[dict] = []

    async def similarity_search(self, vector, tenant_id, threshold, limit):
        self.calls.append({"tenant_id": tenant_id, "threshold": threshold, "limit": limit})
        return [i for i in self.items if i.similarity_score >= threshold][:limit]


def make_receipts() -> tuple[list[StoredReceipt], list[VendorRecord]]:
    """A small tenant: two Starbucks visits, a Target run, a Costco trip."""
    vendors = [
        VendorRecord(id="v-sbux", name="Starbucks", category="Coffee"),
        VendorRecord(id="v-tgt", name="Target", category="Retail"),
        VendorRecord(id="v-cost", name="Costco Wholesale", category="Groceries"),
    ]
    receipts = [
        StoredReceipt(id="r1", receipt_date=date(2024, 3, 10), total_amount=5.75, vendor_id="v-sbux"),
        StoredReceipt(id="r2", receipt_date=date(2024, 3, 2), total_amount=6.25, vendor_id="v-sbux"),
        StoredReceipt(id="r3", receipt_date=date(2024, 2, 20), total_amount=84.10, vendor_id="v-tgt"),
        StoredReceipt(id="r4", receipt_date=date(2024, 1, 5), total_amount=212.40, vendor_id="v-cost"),
    ]
    return receipts, vendors
