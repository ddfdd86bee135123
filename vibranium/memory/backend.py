"""Vector-search backends behind the memory store.

Two implementations share the ``VectorBackend`` protocol:
- ``PineconeBackend``: hosted Pinecone index (set PINECONE_API_KEY).
- ``InMemoryVectorBackend``: process-local cosine index. Used when no
  Pinecone key is configured; memory then lasts only as long as the process.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import math
from typing import TYPE_CHECKING, Any, Protocol

from vibranium.errors import BackendUnavailableError, MalformedResponseError
from vibranium.memory.models import VectorMatch

if TYPE_CHECKING:
    from pinecone import Pinecone

logger = logging.getLogger(__name__)


class VectorBackend(Protocol):
    """Operations the memory store needs from a vector index."""

    supports_filtered_delete: bool

    async def list_indexes(self) -> list[str]: ...

    async def create_index(self, name: str, dimension: int, cloud: str, region: str) -> None: ...

    async def upsert(self, vectors: list[dict[str, Any]]) -> None: ...

    async def query(self, vector: list[float], top_k: int) -> list[VectorMatch]: ...

    async def query_recent(self, count: int) -> list[VectorMatch]: ...

    async def delete_by_id(self, vector_id: str) -> None: ...

    async def delete_by_filter(self, metadata_filter: dict[str, str]) -> None: ...


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0.0 when either vector has no magnitude."""
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b, strict=False)) / (norm_a * norm_b)


# ---------------------------------------------------------------------------
# Pinecone
# ---------------------------------------------------------------------------


class PineconeBackend:
    """Pinecone index accessed through the synchronous SDK.

    Each SDK call runs in a worker thread so the event loop keeps serving
    Slack events while the index is busy.
    """

    def __init__(
        self,
        client: Pinecone,
        index_name: str,
        dimension: int,
        *,
        supports_filtered_delete: bool = False,
    ) -> None:
        self._client = client
        self.index_name = index_name
        self.dimension = dimension
        self.supports_filtered_delete = supports_filtered_delete
        self._index: Any = None

    def _get_index(self) -> Any:
        if self._index is None:
            self._index = self._client.Index(self.index_name)
        return self._index

    async def _call(self, fn: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except Exception as exc:
            msg = f"Pinecone call {getattr(fn, '__name__', fn)!s} failed: {exc}"
            raise BackendUnavailableError(msg) from exc

    async def list_indexes(self) -> list[str]:
        result = await self._call(self._client.list_indexes)
        if hasattr(result, "names"):
            return list(result.names())
        return [getattr(i, "name", None) or i["name"] for i in result or []]

    async def create_index(self, name: str, dimension: int, cloud: str, region: str) -> None:
        from pinecone import ServerlessSpec

        await self._call(
            self._client.create_index,
            name=name,
            dimension=dimension,
            metric="cosine",
            spec=ServerlessSpec(cloud=cloud, region=region),
        )
        logger.info("Created Pinecone index %s (dim=%d, %s/%s)", name, dimension, cloud, region)

    async def upsert(self, vectors: list[dict[str, Any]]) -> None:
        if not vectors:
            return
        await self._call(self._get_index().upsert, vectors=vectors)

    async def query(self, vector: list[float], top_k: int) -> list[VectorMatch]:
        response = await self._call(
            self._get_index().query,
            vector=vector,
            top_k=top_k,
            include_metadata=True,
        )
        return self._normalize(response)

    async def query_recent(self, count: int) -> list[VectorMatch]:
        """Query with a zero vector and order whatever comes back by ``createdAt``.

        Pinecone gives no recency guarantee for tied scores, so this is
        best-effort: callers may receive any ``count`` records.
        """
        matches = await self.query([0.0] * self.dimension, count)
        return sorted(
            matches,
            key=lambda m: float(m.metadata.get("createdAt", 0.0) or 0.0),
            reverse=True,
        )

    async def delete_by_id(self, vector_id: str) -> None:
        await self._call(self._get_index().delete, ids=[vector_id])

    async def delete_by_filter(self, metadata_filter: dict[str, str]) -> None:
        pinecone_filter = {key: {"$eq": value} for key, value in metadata_filter.items()}
        await self._call(self._get_index().delete, filter=pinecone_filter)

    @staticmethod
    def _normalize(response: Any) -> list[VectorMatch]:
        """Convert a Pinecone query response into ``VectorMatch`` objects."""
        if response is None:
            return []
        matches = getattr(response, "matches", None)
        if matches is None and isinstance(response, dict):
            matches = response.get("matches")
        if matches is None:
            msg = "Pinecone query response has no matches field"
            raise MalformedResponseError(msg)

        results = []
        for match in matches:
            if isinstance(match, dict):
                match_id, score, metadata = match.get("id"), match.get("score"), match.get("metadata")
            else:
                match_id = getattr(match, "id", None)
                score = getattr(match, "score", None)
                metadata = getattr(match, "metadata", None)
            if not match_id:
                continue
            results.append(
                VectorMatch(id=match_id, score=float(score or 0.0), metadata=dict(metadata or {}))
            )
        return results


# ---------------------------------------------------------------------------
# In-process index
# ---------------------------------------------------------------------------


class InMemoryVectorBackend:
    """Cosine-similarity index held in a dict.

    Recency is tracked with a monotonic sequence number instead of the
    zero-vector trick, and metadata-filtered deletes are supported.
    """

    supports_filtered_delete = True

    def __init__(self) -> None:
        self._indexes: list[str] = []
        self._vectors: dict[str, tuple[list[float], dict[str, Any], int]] = {}
        self._seq = itertools.count()

    async def list_indexes(self) -> list[str]:
        return list(self._indexes)

    async def create_index(self, name: str, dimension: int, cloud: str, region: str) -> None:
        if name not in self._indexes:
            self._indexes.append(name)

    async def upsert(self, vectors: list[dict[str, Any]]) -> None:
        for vector in vectors:
            self._vectors[vector["id"]] = (
                list(vector["values"]),
                dict(vector.get("metadata") or {}),
                next(self._seq),
            )

    async def query(self, vector: list[float], top_k: int) -> list[VectorMatch]:
        scored = [
            (cosine_similarity(vector, values), seq, vector_id, metadata)
            for vector_id, (values, metadata, seq) in self._vectors.items()
        ]
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [
            VectorMatch(id=vector_id, score=score, metadata=dict(metadata))
            for score, _, vector_id, metadata in scored[:top_k]
        ]

    async def query_recent(self, count: int) -> list[VectorMatch]:
        ordered = sorted(self._vectors.items(), key=lambda item: item[1][2], reverse=True)
        return [
            VectorMatch(id=vector_id, score=0.0, metadata=dict(metadata))
            for vector_id, (_, metadata, _) in ordered[:count]
        ]

    async def delete_by_id(self, vector_id: str) -> None:
        self._vectors.pop(vector_id, None)

    async def delete_by_filter(self, metadata_filter: dict[str, str]) -> None:
        doomed = [
            vector_id
            for vector_id, (_, metadata, _) in self._vectors.items()
            if all(metadata.get(key) == value for key, value in metadata_filter.items())
        ]
        for vector_id in doomed:
            del self._vectors[vector_id]

    def __len__(self) -> int:
        return len(self._vectors)
