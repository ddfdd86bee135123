"""Thread lookup tools and the answer-gate tool.

The two lookup tools gather material (from memory or from Slack) and hand
it back to the orchestrator for a summarization pass. That second pass
never offers tools, so recursion stops after one level.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from pydantic import Field

from vibranium.tools.base import CUSTOM_TOOL_DEFAULT_MESSAGE, BaseTool, ToolParams

if TYPE_CHECKING:
    from vibranium.memory.store import MemoryStore
    from vibranium.slack.transport import SlackTransport
    from vibranium.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SUMMARIZE_THREAD_BY_KEYWORD = "getSlackThreadByKeyword"
SUMMARIZE_THREAD_BY_TS = "getSlackThreadByTs"
ANSWER_QUERY = "answerUserQuery"


class Summarizer(Protocol):
    """The part of the orchestrator the tools call back into."""

    async def summarize(self, material: list[str]) -> str | None: ...

    async def phrase_not_found(self, query: str) -> str | None: ...


# -- getSlackThreadByKeyword -------------------------------------------------


class KeywordLookupParams(ToolParams):
    keywords: str = Field(
        description="The phrase that will be used to search for the thread in the channel",
    )


class KeywordLookupTool(BaseTool):
    name = SUMMARIZE_THREAD_BY_KEYWORD
    description = (
        "fetch a single message or the replies from a thread on a given slack channel "
        "using keyword(s). Only call this if the word thread is present in the query"
    )
    params_model = KeywordLookupParams

    def __init__(self, store: MemoryStore, summarizer: Summarizer, top_k: int = 100) -> None:
        self._store = store
        self._summarizer = summarizer
        self._top_k = top_k

    async def execute(self, keywords: str, query: str = "") -> str | None:
        messages = await self._store.search_texts(keywords, top_k=self._top_k)
        if messages:
            logger.info("Found %d message(s) for keywords %r", len(messages), keywords)
            return await self._summarizer.summarize(messages)

        logger.info("No memory matched keywords %r", keywords)
        return await self._summarizer.phrase_not_found(query or keywords)


# -- getSlackThreadByTs ------------------------------------------------------


class TimestampLookupParams(ToolParams):
    ts: str = Field(default="", description="Timestamp of the thread's parent message")


class TimestampLookupTool(BaseTool):
    name = SUMMARIZE_THREAD_BY_TS
    description = (
        "fetch the replies of the thread the user is currently writing in and summarize "
        "them. Call this when the user asks about 'this thread' or wants it summarized"
    )
    params_model = TimestampLookupParams

    def __init__(self, transport: SlackTransport, summarizer: Summarizer) -> None:
        self._transport = transport
        self._summarizer = summarizer

    async def execute(self, ts: str, channel: str = "") -> str | None:
        if not ts:
            return CUSTOM_TOOL_DEFAULT_MESSAGE

        thread = await self._transport.fetch_thread_replies(channel, ts)
        texts = [m["text"] for m in thread if m and m.get("text")]
        if not texts:
            return CUSTOM_TOOL_DEFAULT_MESSAGE

        logger.info("Summarizing %d message(s) from thread %s", len(texts), ts)
        return await self._summarizer.summarize(texts)


# -- answerUserQuery ---------------------------------------------------------


class AnswerQueryTool(BaseTool):
    """Schema-only tool: the relevance gate checks whether the model picks it."""

    name = ANSWER_QUERY
    description = (
        "Decide if a user query should be answered or not. Only call this if the AI "
        "assistant gets called directly"
    )

    async def execute(self) -> str | None:
        return None


def register_thread_tools(
    registry: ToolRegistry,
    *,
    store: MemoryStore,
    transport: SlackTransport,
    summarizer: Summarizer,
    keyword_top_k: int = 100,
) -> ToolRegistry:
    """Register all three tools on ``registry``."""
    registry.register(KeywordLookupTool(store, summarizer, top_k=keyword_top_k))
    registry.register(TimestampLookupTool(transport, summarizer))
    registry.register(AnswerQueryTool())
    return registry
