"""
Abstract Record Store Interfaces

DESIGN DECISION: The resolver only ever talks to these interfaces.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory fakes for testing
3. Make the semantic capability optional without touching the executor

The interfaces are intentionally narrow - just the reads the
query resolver needs. Receipts are written elsewhere.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from clearspend.models.receipt import (
    SimilarLineItem,
    StoredReceipt,
    VendorRecord,
)


class RecordStoreInterface(ABC):
    """
    Read access to a tenant's receipts and vendors.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_receipts(
        self,
        tenant_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        min_amount: Optional[float] = None,
        limit: int = 50,
    ) -> list[StoredReceipt]:
        """
        List a tenant's receipts, newest first.

        Args:
            tenant_id: Tenant whose receipts to read
            date_from: Receipts on or after this date
            date_to: Receipts on or before this date
            min_amount: Receipts with total_amount >= this value
            limit: Maximum number of receipts

        Returns:
            Matching receipts ordered by receipt_date descending

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def get_vendors(
        self,
        vendor_ids: list[str],
    ) -> list[VendorRecord]:
        """
        Look up vendors by id.

        Unknown ids are simply absent from the result.

        Raises:
            StorageError: If the store cannot be read
        """
        pass


class SimilaritySearchInterface(ABC):
    """Vector similarity search over receipt line items."""

    @abstractmethod
    async def similarity_search(
        self,
        vector: list[float],
        tenant_id: str,
        threshold: float,
        limit: int,
    ) -> list[SimilarLineItem]:
        """
        Find the line items most similar to a query vector.

        Args:
            vector: Query embedding
            tenant_id: Tenant whose line items to search
            threshold: Minimum similarity score to include
            limit: Maximum number of line items

        Returns:
            Line items ordered by similarity_score descending
        """
        pass


class EmbeddingInterface(ABC):
    """Turns text into an embedding vector."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Embed a query.

        Raises:
            EmbeddingError: If the embedding service fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class EmbeddingError(Exception):
    """The embedding service failed or returned nothing usable."""
    pass
