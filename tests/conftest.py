"""Shared test fixtures."""

import math
import re
import zlib
from unittest.mock import AsyncMock, MagicMock

import pytest

from vibranium.memory.backend import InMemoryVectorBackend
from vibranium.memory.store import MemoryStore

TEST_DIMENSIONS = 256


class FakeEmbedder:
    """Deterministic bag-of-words embedder: shared words mean similar vectors."""

    def __init__(self, dimensions: int = TEST_DIMENSIONS) -> None:
        self.dimensions = dimensions
        self.calls: list[list[str]] = []

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            vector[zlib.crc32(word.encode()) % self.dimensions] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        return [v / norm for v in vector] if norm else vector

    async def embed(self, text: str) -> list[float]:
        self.calls.append([text])
        return self._vector(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def backend() -> InMemoryVectorBackend:
    return InMemoryVectorBackend()


@pytest.fixture
def store(backend: InMemoryVectorBackend, embedder: FakeEmbedder) -> MemoryStore:
    """MemoryStore over the in-process index and the fake embedder."""
    return MemoryStore(
        backend,
        embedder,
        index_name="test-index",
        dimensions=TEST_DIMENSIONS,
    )


@pytest.fixture
def llm() -> MagicMock:
    """LLMClient double; set ``llm.complete.side_effect`` per test."""
    client = MagicMock()
    client.complete = AsyncMock()
    return client
