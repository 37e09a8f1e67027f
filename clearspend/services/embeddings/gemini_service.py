"""
Query Embedding Service using Gemini

DESIGN DECISION: Embeddings are only used to FIND receipts.
The vector never leaves the search step and nothing is generated
from it - replies are still composed from stored rows only.

The call is synchronous in the SDK, so it runs in a worker thread
and the executor's timeout can abandon it.
"""

import asyncio
from typing import Optional

import google.generativeai as genai

from clearspend.config import GeminiSettings, get_settings
from clearspend.services.storage.interface import EmbeddingError, EmbeddingInterface


class GeminiEmbeddingService(EmbeddingInterface):
    """
    Embeds chat queries with a Gemini embedding model.

    Query vectors use the retrieval_query task type; stored line items
    are expected to have been embedded with retrieval_document.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    def _embed_sync(self, text: str) -> list[float]:
        result = genai.embed_content(
            model=self._settings.embedding_model,
            content=text,
            task_type="retrieval_query",
        )
        return list(result["embedding"])

    async def embed(self, text: str) -> list[float]:
        """Embed a query, raising EmbeddingError on any failure."""
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        try:
            vector = await asyncio.to_thread(self._embed_sync, text)
        except Exception as e:
            raise EmbeddingError(f"Gemini embedding failed: {e}") from e

        if not vector:
            raise EmbeddingError("Gemini returned an empty embedding")
        return vector
