"""
Google Sheets Record Store

DESIGN DECISION: Google Sheets is the shipped record store backend because:
1. Small teams can inspect their receipts directly in Sheets
2. No database setup required for a demo tenant
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a tenant's receipts fit in memory)
- Limited query capabilities (we filter in Python)
- Similarity search is a linear scan over stored line-item embeddings

The implementation follows the abstract interfaces, so a hosted
database can replace it without changing the resolver.
"""

import asyncio
import json
import math
from datetime import date
from typing import Callable, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from clearspend.config import get_settings
from clearspend.models.receipt import (
    SimilarLineItem,
    StoredReceipt,
    VendorRecord,
)
from clearspend.services.storage.interface import (
    ConnectionError,
    RecordStoreInterface,
    SimilaritySearchInterface,
    StorageError,
)


# Column mappings for Receipts sheet
RECEIPT_COLUMNS = [
    "id",
    "tenant_id",
    "receipt_date",
    "total_amount",
    "vendor_id",
]

# Column mappings for Vendors sheet
VENDOR_COLUMNS = [
    "id",
    "tenant_id",
    "name",
    "category",
]

# Column mappings for ReceiptItems sheet
LINE_ITEM_COLUMNS = [
    "id",
    "receipt_id",
    "tenant_id",
    "description",
    "total_price",
    "category",
    "embedding_json",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets.readonly",
                    "https://www.googleapis.com/auth/drive.readonly",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_worksheet(self, title: str) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            raise ConnectionError(f"Worksheet not found: {title}")

    def get_receipts_sheet(self) -> gspread.Worksheet:
        """Get the Receipts worksheet."""
        return self._get_worksheet(self._settings.receipts_sheet_name)

    def get_vendors_sheet(self) -> gspread.Worksheet:
        """Get the Vendors worksheet."""
        return self._get_worksheet(self._settings.vendors_sheet_name)

    def get_line_items_sheet(self) -> gspread.Worksheet:
        """Get the ReceiptItems worksheet."""
        return self._get_worksheet(self._settings.line_items_sheet_name)


def cosine_similarity(a: list[float], b: list[float]) -> Optional[float]:
    """Cosine similarity of two vectors; None when it is undefined."""
    if not a or len(a) != len(b):
        return None
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return None
    return sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)


class GoogleSheetsRecordStore(RecordStoreInterface, SimilaritySearchInterface):
    """
    Google Sheets implementation of the record store.

    One receipt, vendor or line item per row; line-item embeddings
    are stored as a JSON array in the last column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read_rows(self, get_sheet: Callable[[], gspread.Worksheet]) -> list[list]:
        """Read every data row of a worksheet (header excluded)."""
        return get_sheet().get_all_values()[1:]

    @staticmethod
    def _safe_get(row: list, index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default

    def _row_to_receipt(self, row: list) -> StoredReceipt:
        """Convert a spreadsheet row to a StoredReceipt."""
        amount = self._safe_get(row, 3)
        return StoredReceipt(
            id=self._safe_get(row, 0),
            receipt_date=date.fromisoformat(self._safe_get(row, 2)),
            total_amount=float(amount) if amount else 0.0,
            vendor_id=self._safe_get(row, 4) or None,
        )

    def _row_to_vendor(self, row: list) -> VendorRecord:
        """Convert a spreadsheet row to a VendorRecord."""
        return VendorRecord(
            id=self._safe_get(row, 0),
            name=self._safe_get(row, 2),
            category=self._safe_get(row, 3) or None,
        )

    def _load_receipts(self, tenant_id: str) -> list[StoredReceipt]:
        receipts = []
        for row in self._read_rows(self._client.get_receipts_sheet):
            if not row or not row[0] or self._safe_get(row, 1) != tenant_id:
                continue
            try:
                receipts.append(self._row_to_receipt(row))
            except ValueError:
                continue  # Skip malformed rows
        return receipts

    def _load_vendors(self) -> dict[str, VendorRecord]:
        vendors = {}
        for row in self._read_rows(self._client.get_vendors_sheet):
            if not row or not row[0] or not self._safe_get(row, 2):
                continue
            vendor = self._row_to_vendor(row)
            vendors[vendor.id] = vendor
        return vendors

    def _filter_receipts(
        self,
        tenant_id: str,
        date_from: Optional[date],
        date_to: Optional[date],
        min_amount: Optional[float],
        limit: int,
    ) -> list[StoredReceipt]:
        receipts = []
        for receipt in self._load_receipts(tenant_id):
            # Apply filters (all bounds inclusive)
            if date_from and receipt.receipt_date < date_from:
                continue
            if date_to and receipt.receipt_date > date_to:
                continue
            if min_amount is not None and receipt.total_amount < min_amount:
                continue
            receipts.append(receipt)

        receipts.sort(key=lambda r: r.receipt_date, reverse=True)
        return receipts[:limit]

    def _score_line_items(
        self,
        vector: list[float],
        tenant_id: str,
        threshold: float,
        limit: int,
    ) -> list[SimilarLineItem]:
        scored = []
        for row in self._read_rows(self._client.get_line_items_sheet):
            if not row or not row[0] or self._safe_get(row, 2) != tenant_id:
                continue
            embedding_json = self._safe_get(row, 6)
            if not embedding_json:
                continue
            try:
                embedding = json.loads(embedding_json)
            except json.JSONDecodeError:
                continue
            score = cosine_similarity(vector, embedding)
            if score is not None and score >= threshold:
                scored.append((score, row))

        if not scored:
            return []

        scored.sort(key=lambda pair: pair[0], reverse=True)
        scored = scored[:limit]

        receipts = {r.id: r for r in self._load_receipts(tenant_id)}
        vendors = self._load_vendors()

        items = []
        for score, row in scored:
            receipt = receipts.get(self._safe_get(row, 1))
            if receipt is None:
                continue  # Orphaned line item
            vendor = vendors.get(receipt.vendor_id) if receipt.vendor_id else None
            items.append(SimilarLineItem(
                line_item_id=self._safe_get(row, 0),
                receipt_id=receipt.id,
                receipt_date=receipt.receipt_date,
                receipt_total_amount=receipt.total_amount,
                vendor_name=vendor.name if vendor else None,
                vendor_category=vendor.category if vendor else None,
                similarity_score=max(-1.0, min(1.0, score)),
            ))
        return items

    # Sheets reads and their retry backoff block; keep them off the event loop

    async def list_receipts(
        self,
        tenant_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        min_amount: Optional[float] = None,
        limit: int = 50,
    ) -> list[StoredReceipt]:
        """List receipts with optional filters, newest first."""
        try:
            return await asyncio.to_thread(
                self._filter_receipts, tenant_id, date_from, date_to, min_amount, limit,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list receipts: {e}")

    async def get_vendors(self, vendor_ids: list[str]) -> list[VendorRecord]:
        """Look up vendors by id."""
        if not vendor_ids:
            return []
        try:
            vendors = await asyncio.to_thread(self._load_vendors)
            return [vendors[vid] for vid in vendor_ids if vid in vendors]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to look up vendors: {e}")

    async def similarity_search(
        self,
        vector: list[float],
        tenant_id: str,
        threshold: float,
        limit: int,
    ) -> list[SimilarLineItem]:
        """Linear-scan cosine similarity over stored line-item embeddings."""
        try:
            return await asyncio.to_thread(
                self._score_line_items, vector, tenant_id, threshold, limit,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to search line items: {e}")
