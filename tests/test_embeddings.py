"""Tests for the OpenAI embedding wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from vibranium.errors import EmbeddingError
from vibranium.memory.embeddings import Embedder


def _response(*vectors: list[float], reverse: bool = False) -> SimpleNamespace:
    data = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
    if reverse:
        data.reverse()
    return SimpleNamespace(data=data)


def _client(response=None, error=None) -> MagicMock:
    client = MagicMock()
    client.embeddings.create = AsyncMock(return_value=response, side_effect=error)
    return client


async def test_embed_single_text() -> None:
    client = _client(_response([0.1, 0.2, 0.3]))
    embedder = Embedder(client, "text-embedding-3-small", 3)

    assert await embedder.embed("hello") == [0.1, 0.2, 0.3]
    client.embeddings.create.assert_awaited_once_with(
        model="text-embedding-3-small", input=["hello"]
    )


async def test_embed_batch_preserves_input_order() -> None:
    client = _client(_response([1.0, 0.0], [0.0, 1.0], reverse=True))
    embedder = Embedder(client, "m", 2)

    assert await embedder.embed_batch(["a", "b"]) == [[1.0, 0.0], [0.0, 1.0]]
    client.embeddings.create.assert_awaited_once()


async def test_embed_batch_empty_makes_no_call() -> None:
    client = _client(_response())
    embedder = Embedder(client, "m", 2)

    assert await embedder.embed_batch([]) == []
    client.embeddings.create.assert_not_called()


async def test_wrong_dimension_raises() -> None:
    embedder = Embedder(_client(_response([0.1, 0.2])), "m", 3)

    with pytest.raises(EmbeddingError, match="dimensions"):
        await embedder.embed("hello")


async def test_missing_vectors_raise() -> None:
    embedder = Embedder(_client(_response([0.1, 0.2])), "m", 2)

    with pytest.raises(EmbeddingError):
        await embedder.embed_batch(["a", "b"])


async def test_provider_error_raises_embedding_error() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    error = openai.APIConnectionError(request=request)
    embedder = Embedder(_client(error=error), "m", 2)

    with pytest.raises(EmbeddingError, match="unavailable"):
        await embedder.embed("hello")
