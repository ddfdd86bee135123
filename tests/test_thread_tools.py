"""Tests for the thread lookup tools."""

from unittest.mock import AsyncMock

import pytest

from vibranium.memory.models import Role
from vibranium.memory.store import MemoryStore
from vibranium.tools.base import CUSTOM_TOOL_DEFAULT_MESSAGE
from vibranium.tools.registry import ToolRegistry
from vibranium.tools.thread_tools import (
    ANSWER_QUERY,
    SUMMARIZE_THREAD_BY_KEYWORD,
    SUMMARIZE_THREAD_BY_TS,
    register_thread_tools,
)


@pytest.fixture
def summarizer() -> AsyncMock:
    s = AsyncMock()
    s.summarize.return_value = "summary"
    s.phrase_not_found.return_value = "Sorry, I couldn't find that."
    return s


@pytest.fixture
def transport() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def reg(store: MemoryStore, transport: AsyncMock, summarizer: AsyncMock) -> ToolRegistry:
    return register_thread_tools(
        ToolRegistry(), store=store, transport=transport, summarizer=summarizer
    )


def test_all_tools_registered(reg: ToolRegistry) -> None:
    assert set(reg.tool_names) == {
        SUMMARIZE_THREAD_BY_KEYWORD,
        SUMMARIZE_THREAD_BY_TS,
        ANSWER_QUERY,
    }


def test_keyword_schema_requires_keywords(reg: ToolRegistry) -> None:
    schema = reg.get_schemas([SUMMARIZE_THREAD_BY_KEYWORD])[0]
    assert schema["input_schema"]["required"] == ["keywords"]


# -- keyword lookup ----------------------------------------------------------


async def test_keyword_lookup_summarizes_matches(
    reg: ToolRegistry, store: MemoryStore, summarizer: AsyncMock
) -> None:
    await store.remember("the outage hit the billing service", role=Role.USER)
    await store.remember(["outage postmortem", "billing service restored"], role=Role.TOOL)

    result = await reg.execute(
        SUMMARIZE_THREAD_BY_KEYWORD,
        {"keywords": "outage billing service"},
        channel="C1",
        query="find the outage thread",
    )

    assert result == "summary"
    material = summarizer.summarize.call_args.args[0]
    assert "the outage hit the billing service" in material
    assert "billing service restored" in material
    summarizer.phrase_not_found.assert_not_called()


async def test_keyword_lookup_without_matches_asks_for_polite_reply(
    reg: ToolRegistry, summarizer: AsyncMock
) -> None:
    result = await reg.execute(
        SUMMARIZE_THREAD_BY_KEYWORD,
        {"keywords": "outage"},
        channel="C1",
        query="find the thread about the outage",
    )

    assert result == "Sorry, I couldn't find that."
    summarizer.phrase_not_found.assert_awaited_once_with("find the thread about the outage")
    summarizer.summarize.assert_not_called()


# -- timestamp lookup --------------------------------------------------------


async def test_timestamp_lookup_summarizes_thread(
    reg: ToolRegistry, transport: AsyncMock, summarizer: AsyncMock
) -> None:
    transport.fetch_thread_replies.return_value = [
        {"text": "root", "ts": "100.1"},
        {"text": "", "ts": "100.2"},
        {"text": "reply", "ts": "100.3"},
    ]

    result = await reg.execute(SUMMARIZE_THREAD_BY_TS, {"ts": "100.1"}, channel="C1")

    assert result == "summary"
    transport.fetch_thread_replies.assert_awaited_once_with("C1", "100.1")
    summarizer.summarize.assert_awaited_once_with(["root", "reply"])


async def test_timestamp_lookup_empty_thread_returns_default(
    reg: ToolRegistry, transport: AsyncMock, summarizer: AsyncMock
) -> None:
    transport.fetch_thread_replies.return_value = []

    result = await reg.execute(SUMMARIZE_THREAD_BY_TS, {"ts": "100.1"}, channel="C1")

    assert result == CUSTOM_TOOL_DEFAULT_MESSAGE
    summarizer.summarize.assert_not_called()


async def test_timestamp_lookup_without_ts_returns_default(
    reg: ToolRegistry, transport: AsyncMock
) -> None:
    result = await reg.execute(SUMMARIZE_THREAD_BY_TS, {}, channel="C1")

    assert result == CUSTOM_TOOL_DEFAULT_MESSAGE
    transport.fetch_thread_replies.assert_not_called()


# -- unknown -----------------------------------------------------------------


async def test_unknown_tool_returns_default_and_writes_nothing(
    reg: ToolRegistry, backend
) -> None:
    result = await reg.execute("getWeather", {"city": "Lima"}, channel="C1")

    assert result == CUSTOM_TOOL_DEFAULT_MESSAGE
    assert len(backend) == 0
