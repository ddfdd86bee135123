"""Tests for the provider-neutral completion client."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from vibranium.errors import ProviderError, ProviderRateLimitError
from vibranium.llm.client import TOOL_CALLS, LLMClient

KEYWORD_SCHEMA = {
    "name": "getSlackThreadByKeyword",
    "description": "Find a thread",
    "input_schema": {
        "type": "object",
        "properties": {"keywords": {"type": "string"}},
        "required": ["keywords"],
    },
}
GATE_SCHEMA = {
    "name": "answerUserQuery",
    "description": "Decide",
    "input_schema": {"type": "object", "properties": {}},
}


def _openai_response(finish_reason: str, content=None, tool_calls=None) -> SimpleNamespace:
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(finish_reason=finish_reason, message=message)])


def _openai_client(response=None, error=None) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=error)
    return client


# -- OpenAI ------------------------------------------------------------------


async def test_openai_direct_answer() -> None:
    client = _openai_client(_openai_response("stop", content="Hi!"))
    llm = LLMClient("openai", "gpt-4o-mini", openai_client=client)

    result = await llm.complete([{"role": "user", "content": "hello"}])

    assert result.finish_reason == "stop"
    assert result.content == "Hi!"
    assert result.tool_call is None
    kwargs = client.chat.completions.create.call_args.kwargs
    assert "tools" not in kwargs
    assert "tool_choice" not in kwargs


async def test_openai_tool_call() -> None:
    call = SimpleNamespace(
        id="call_1",
        function=SimpleNamespace(name="getSlackThreadByKeyword", arguments='{"keywords": "outage"}'),
    )
    client = _openai_client(_openai_response("tool_calls", tool_calls=[call]))
    llm = LLMClient("openai", "gpt-4o-mini", openai_client=client)

    result = await llm.complete([{"role": "user", "content": "find"}], tools=[KEYWORD_SCHEMA])

    assert result.wants_tool
    assert result.tool_call.name == "getSlackThreadByKeyword"
    assert json.loads(result.tool_call.arguments) == {"keywords": "outage"}
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["tool_choice"] == "auto"
    assert kwargs["tools"][0]["type"] == "function"
    assert kwargs["tools"][0]["function"]["parameters"]["required"] == ["keywords"]


async def test_openai_parameterless_tool_has_no_parameters() -> None:
    client = _openai_client(_openai_response("stop", content="no"))
    llm = LLMClient("openai", "gpt-4o-mini", openai_client=client)

    await llm.complete([{"role": "user", "content": "x"}], tools=[GATE_SCHEMA])

    function = client.chat.completions.create.call_args.kwargs["tools"][0]["function"]
    assert function == {"name": "answerUserQuery", "description": "Decide"}


async def test_openai_rate_limit() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.RateLimitError(
        "slow down", response=httpx.Response(429, request=request), body=None
    )
    llm = LLMClient("openai", "m", openai_client=_openai_client(error=error))

    with pytest.raises(ProviderRateLimitError):
        await llm.complete([{"role": "user", "content": "x"}])


async def test_openai_connection_error() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.APIConnectionError(request=request)
    llm = LLMClient("openai", "m", openai_client=_openai_client(error=error))

    with pytest.raises(ProviderError):
        await llm.complete([{"role": "user", "content": "x"}])


# -- Anthropic ---------------------------------------------------------------


def _anthropic_client(response) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=response)
    return client


async def test_anthropic_folds_system_entries() -> None:
    response = SimpleNamespace(
        stop_reason="end_turn",
        content=[SimpleNamespace(type="text", text="Sure.")],
    )
    client = _anthropic_client(response)
    llm = LLMClient("anthropic", "claude-haiku-4-5", anthropic_client=client)

    result = await llm.complete([
        {"role": "system", "content": "Be helpful."},
        {"role": "system", "content": "memory line"},
        {"role": "user", "content": "hi"},
    ])

    assert result.content == "Sure."
    assert result.finish_reason == "end_turn"
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["system"] == "Be helpful.\n\nmemory line"
    assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
    assert "tools" not in kwargs


async def test_anthropic_tool_use_normalized() -> None:
    response = SimpleNamespace(
        stop_reason="tool_use",
        content=[
            SimpleNamespace(
                type="tool_use", id="tu_1", name="getSlackThreadByTs", input={"ts": "100.1"}
            )
        ],
    )
    client = _anthropic_client(response)
    llm = LLMClient("anthropic", "claude-haiku-4-5", anthropic_client=client)

    result = await llm.complete([{"role": "user", "content": "sum"}], tools=[KEYWORD_SCHEMA])

    assert result.finish_reason == TOOL_CALLS
    assert result.tool_call.name == "getSlackThreadByTs"
    assert json.loads(result.tool_call.arguments) == {"ts": "100.1"}
    assert result.content is None
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["tools"] == [KEYWORD_SCHEMA]
    assert kwargs["tool_choice"] == {"type": "auto"}


# -- Construction ------------------------------------------------------------


def test_unknown_provider_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown chat provider"):
        LLMClient("bard", "m")


def test_missing_client_rejected() -> None:
    with pytest.raises(ValueError, match="openai_client"):
        LLMClient("openai", "m")
