"""Conversational memory store backed by a vector index.

Every inbound user message, outbound answer and tool result becomes a
``MemoryRecord``. Records are embedded on write and retrieved by
similarity; deletion is driven by the originating Slack message being
deleted.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Protocol

from vibranium.errors import MemoryStoreError
from vibranium.memory.models import MemoryRecord, Role

if TYPE_CHECKING:
    from vibranium.memory.backend import VectorBackend
    from vibranium.memory.embeddings import Embedder

logger = logging.getLogger(__name__)

DEFAULT_MIN_SCORE = 0.5
KEYWORD_TOP_K = 100
RECENT_TOP_K = 3
# Pinecone caps one upsert request at 2 MB; 100 vectors of 1536 floats fit
UPSERT_BATCH_SIZE = 100


class HistorySource(Protocol):
    """Where backfill reads channel history from (the Slack transport)."""

    async def list_channels(self) -> list[dict[str, Any]]: ...

    async def fetch_channel_history(self, channel: str, limit: int) -> list[dict[str, Any]]: ...


class MemoryStore:
    """Vector-indexed memory shared by every request.

    Args:
        backend: Vector index implementation.
        embedder: Embedding capability producing ``dimensions``-long vectors.
        index_name: Name of the index to create/check at startup.
        dimensions: Embedding length D.
        cloud: Cloud provider for index creation.
        region: Region for index creation.
        min_score: Default similarity cut-off for ``query_by_similarity``.
        backfill_page_size: Messages fetched per channel during backfill.
    """

    def __init__(
        self,
        backend: VectorBackend,
        embedder: Embedder,
        *,
        index_name: str,
        dimensions: int,
        cloud: str = "aws",
        region: str = "us-east-1",
        min_score: float = DEFAULT_MIN_SCORE,
        backfill_page_size: int = 500,
    ) -> None:
        self._backend = backend
        self._embedder = embedder
        self.index_name = index_name
        self.dimensions = dimensions
        self.cloud = cloud
        self.region = region
        self.min_score = min_score
        self.backfill_page_size = backfill_page_size
        self._backfill_task: asyncio.Task | None = None

    # -- Embedding -----------------------------------------------------------

    async def embed(self, text: str | list[str]) -> list[float] | list[list[float]]:
        """Embed one text (returns a vector) or many (returns a list of vectors)."""
        if isinstance(text, list):
            return await self._embedder.embed_batch(text)
        return await self._embedder.embed(text)

    @staticmethod
    def _embedding_text(content: str | list[str]) -> str:
        if isinstance(content, list):
            return "\n".join(t for t in content if t)
        return content

    # -- Write ---------------------------------------------------------------

    def new_record(
        self,
        content: str | list[str],
        *,
        role: Role,
        user: str = "",
        channel: str = "",
        message_ts: str = "",
        parent_message_ts: str = "",
    ) -> MemoryRecord:
        """Create an unsaved record with a fresh id."""
        return MemoryRecord(
            id=str(uuid.uuid4()),
            content=content,
            role=role,
            user=user,
            channel=channel,
            message_ts=message_ts,
            parent_message_ts=parent_message_ts,
            created_at=time.time(),
        )

    async def upsert(self, record: MemoryRecord) -> MemoryRecord:
        """Embed ``record.content`` and write it under a fresh id.

        Repeated calls create distinct records; there is no dedup.
        Raises ``EmbeddingError`` before anything is written if embedding fails.
        """
        embedding = await self._embedder.embed(self._embedding_text(record.content))
        stored = record.model_copy(update={"id": str(uuid.uuid4()), "embedding": embedding})
        await self._backend.upsert([self._to_vector(stored)])
        logger.debug(
            "Stored %s memory %s in %s: %s",
            stored.role,
            stored.id,
            stored.channel or "-",
            self._embedding_text(stored.content)[:80],
        )
        return stored

    async def upsert_many(self, records: list[MemoryRecord]) -> list[MemoryRecord]:
        """Embed and write records in chunks of ``UPSERT_BATCH_SIZE``."""
        stored: list[MemoryRecord] = []
        for start in range(0, len(records), UPSERT_BATCH_SIZE):
            batch = records[start : start + UPSERT_BATCH_SIZE]
            embeddings = await self._embedder.embed_batch(
                [self._embedding_text(r.content) for r in batch]
            )
            chunk = [
                r.model_copy(update={"id": str(uuid.uuid4()), "embedding": e})
                for r, e in zip(batch, embeddings, strict=True)
            ]
            await self._backend.upsert([self._to_vector(r) for r in chunk])
            stored.extend(chunk)
        if stored:
            logger.info("Stored %d memories", len(stored))
        return stored

    async def remember(
        self,
        content: str | list[str],
        *,
        role: Role,
        user: str = "",
        channel: str = "",
        message_ts: str = "",
        parent_message_ts: str = "",
    ) -> MemoryRecord:
        """Build and persist a record in one step."""
        record = self.new_record(
            content,
            role=role,
            user=user,
            channel=channel,
            message_ts=message_ts,
            parent_message_ts=parent_message_ts,
        )
        return await self.upsert(record)

    async def remember_user_message(
        self, text: str, *, user: str, channel: str, message_ts: str, parent_message_ts: str = ""
    ) -> MemoryRecord:
        return await self.remember(
            text,
            role=Role.USER,
            user=user,
            channel=channel,
            message_ts=message_ts,
            parent_message_ts=parent_message_ts,
        )

    async def remember_answer(
        self, text: str, *, user: str, channel: str, parent_message_ts: str = ""
    ) -> MemoryRecord:
        # Answers are synthetic: they carry no platform timestamp
        return await self.remember(
            text,
            role=Role.ASSISTANT,
            user=user,
            channel=channel,
            parent_message_ts=parent_message_ts,
        )

    async def remember_tool_result(
        self, text: str, *, user: str, channel: str, parent_message_ts: str = ""
    ) -> MemoryRecord:
        return await self.remember(
            text,
            role=Role.TOOL,
            user=user,
            channel=channel,
            parent_message_ts=parent_message_ts,
        )

    # -- Read ----------------------------------------------------------------

    async def query_by_similarity(
        self,
        text: str,
        top_k: int = KEYWORD_TOP_K,
        min_score: float | None = None,
    ) -> list[MemoryRecord]:
        """Return up to ``top_k`` records scoring strictly above ``min_score``.

        An empty list is a normal outcome, not an error.
        """
        threshold = self.min_score if min_score is None else min_score
        vector = await self._embedder.embed(text)
        matches = await self._backend.query(vector, top_k)
        return [
            MemoryRecord.from_match(m.id, m.score, m.metadata)
            for m in matches
            if m.score > threshold
        ]

    async def search_texts(self, text: str, top_k: int = KEYWORD_TOP_K) -> list[str]:
        """Similarity search flattened into the matched message texts."""
        records = await self.query_by_similarity(text, top_k=top_k)
        texts: list[str] = []
        for record in records:
            texts.extend(record.texts)
        return texts

    async def query_recent(self, count: int = RECENT_TOP_K) -> list[str]:
        """Return the content of (roughly) the ``count`` latest records.

        Ordering depends on the backend; with Pinecone this is best-effort
        and may return any ``count`` records.
        """
        if count <= 0:
            return []
        try:
            matches = await self._backend.query_recent(count)
        except MemoryStoreError:
            logger.warning("Recent memory lookup failed; continuing without it", exc_info=True)
            return []

        texts: list[str] = []
        for match in matches:
            texts.extend(MemoryRecord.from_match(match.id, match.score, match.metadata).texts)
        return texts

    # -- Delete --------------------------------------------------------------

    async def delete_by_content(self, text: str) -> bool:
        """Delete the single record most similar to ``text``.

        Returns False (and logs a warning) when nothing matches, since the
        message may never have been indexed. Two near-duplicate messages can
        make this delete the wrong one.
        """
        if not text:
            logger.warning("Cannot delete memory without message text")
            return False

        matches = await self.query_by_similarity(text, top_k=1)
        if not matches:
            logger.warning("Message embedding not found for deletion: %s", text[:80])
            return False

        await self._backend.delete_by_id(matches[0].id)
        logger.info("Deleted memory %s", matches[0].id)
        return True

    async def delete_message(self, message_ts: str, text: str) -> bool:
        """Forget a deleted Slack message.

        Uses an exact ``messageTs`` filter when the backend supports it, and
        falls back to content matching otherwise.
        """
        if message_ts and self._backend.supports_filtered_delete:
            await self._backend.delete_by_filter({"messageTs": message_ts})
            logger.info("Deleted memories for message %s", message_ts)
            return True
        return await self.delete_by_content(text)

    # -- Index lifecycle -----------------------------------------------------

    async def ensure_index(self) -> bool:
        """Create the index if missing. Returns True when it was created.

        Failures here propagate: an unreachable vector store at boot is fatal.
        """
        indexes = await self._backend.list_indexes()
        if self.index_name in indexes:
            logger.info("Using existing index %s", self.index_name)
            return False
        await self._backend.create_index(self.index_name, self.dimensions, self.cloud, self.region)
        return True

    async def start(self, history: HistorySource) -> None:
        """Ensure the index exists and kick off a background backfill for new ones."""
        created = await self.ensure_index()
        if created:
            self._backfill_task = asyncio.create_task(self.backfill(history))

    async def backfill(self, history: HistorySource) -> int:
        """Import message history from every channel the bot is a member of.

        Channels are processed concurrently. Returns the number of records
        stored; errors are logged and never raised.
        """
        try:
            channels = await history.list_channels()
            member_channels = [c["id"] for c in channels if c.get("is_member") and c.get("id")]
            logger.info("Backfilling memory from %d channel(s)", len(member_channels))
            counts = await asyncio.gather(
                *(self._backfill_channel(history, ch) for ch in member_channels),
                return_exceptions=True,
            )
        except Exception:
            logger.exception("Error populating index")
            return 0

        total = 0
        for channel, count in zip(member_channels, counts, strict=True):
            if isinstance(count, BaseException):
                logger.error("Backfill failed for channel %s: %s", channel, count)
                continue
            total += count
        logger.info("Backfill complete: %d memories", total)
        return total

    async def _backfill_channel(self, history: HistorySource, channel: str) -> int:
        messages = await history.fetch_channel_history(channel, self.backfill_page_size)
        records = [
            self.new_record(
                m["text"],
                role=Role.USER,
                user=m.get("user", ""),
                channel=channel,
                message_ts=m.get("ts", ""),
                parent_message_ts=m.get("thread_ts", ""),
            )
            for m in messages
            if m.get("text")
        ]
        stored = await self.upsert_many(records)
        return len(stored)

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _to_vector(record: MemoryRecord) -> dict[str, Any]:
        return {"id": record.id, "values": record.embedding, "metadata": record.to_metadata()}
