"""Embedding services package."""

from clearspend.services.embeddings.gemini_service import GeminiEmbeddingService

__all__ = ["GeminiEmbeddingService"]
