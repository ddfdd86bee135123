"""OpenAI embedding capability."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import openai

from vibranium.errors import EmbeddingError

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class Embedder:
    """Turns text into fixed-length vectors via the OpenAI embeddings API.

    Every returned vector is checked against ``dimensions``; a provider that
    answers with anything else is treated as broken, so callers never store
    a record with a wrong-sized embedding.
    """

    def __init__(self, client: AsyncOpenAI, model: str, dimensions: int) -> None:
        self._client = client
        self.model = model
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        """Embed a single text."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one API call, preserving input order."""
        if not texts:
            return []

        try:
            response = await self._client.embeddings.create(model=self.model, input=texts)
        except openai.OpenAIError as exc:
            raise EmbeddingError(f"Embedding provider unavailable: {exc}") from exc

        data = sorted(getattr(response, "data", None) or [], key=lambda item: item.index)
        if len(data) != len(texts):
            msg = f"Expected {len(texts)} embeddings, got {len(data)}"
            raise EmbeddingError(msg)

        vectors = [list(item.embedding) for item in data]
        for vector in vectors:
            if len(vector) != self.dimensions:
                msg = f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
                raise EmbeddingError(msg)

        logger.debug("Embedded %d text(s) with %s", len(texts), self.model)
        return vectors
