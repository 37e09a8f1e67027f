"""Services package."""

from clearspend.services.embeddings import GeminiEmbeddingService
from clearspend.services.storage import (
    ConnectionError,
    EmbeddingError,
    EmbeddingInterface,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    RecordStoreInterface,
    SimilaritySearchInterface,
    StorageError,
)

__all__ = [
    # Embedding services
    "GeminiEmbeddingService",
    # Storage services
    "ConnectionError",
    "EmbeddingError",
    "EmbeddingInterface",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "RecordStoreInterface",
    "SimilaritySearchInterface",
    "StorageError",
]
