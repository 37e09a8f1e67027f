"""
Storage Services Package

Provides abstract interfaces and concrete implementations for reading
receipts. Currently implements Google Sheets as the backend, but designed
to be swappable.
"""

from clearspend.services.storage.interface import (
    ConnectionError,
    EmbeddingError,
    EmbeddingInterface,
    RecordStoreInterface,
    SimilaritySearchInterface,
    StorageError,
)
from clearspend.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
)

__all__ = [
    # Interfaces
    "EmbeddingInterface",
    "RecordStoreInterface",
    "SimilaritySearchInterface",
    # Exceptions
    "ConnectionError",
    "EmbeddingError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
]
