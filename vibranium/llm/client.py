"""Async completion client with a provider-neutral result shape.

Both OpenAI chat completions and Anthropic messages are supported. Either
way the caller gets a ``Completion`` whose ``finish_reason`` is
``"tool_calls"`` when the model asked to invoke a tool.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import anthropic
import openai

from vibranium.errors import ProviderError, ProviderRateLimitError

if TYPE_CHECKING:
    from anthropic import AsyncAnthropic
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

TOOL_CALLS = "tool_calls"


@dataclass
class ToolCall:
    """A tool the model chose to invoke. ``arguments`` is raw JSON text."""

    name: str
    arguments: str = ""
    id: str = ""


@dataclass
class Completion:
    """Normalized model response."""

    finish_reason: str
    content: str | None = None
    tool_call: ToolCall | None = None

    @property
    def wants_tool(self) -> bool:
        return self.finish_reason == TOOL_CALLS and self.tool_call is not None


class LLMClient:
    """Chat completion wrapper.

    Args:
        provider: ``"openai"`` or ``"anthropic"``.
        model: Model id passed through to the provider.
        openai_client: Required when provider is openai.
        anthropic_client: Required when provider is anthropic.
        max_tokens: Completion length cap.
    """

    def __init__(
        self,
        provider: str,
        model: str,
        *,
        openai_client: AsyncOpenAI | None = None,
        anthropic_client: AsyncAnthropic | None = None,
        max_tokens: int = 1024,
    ) -> None:
        if provider not in ("openai", "anthropic"):
            msg = f"Unknown chat provider: {provider}"
            raise ValueError(msg)
        if provider == "openai" and openai_client is None:
            msg = "openai_client is required for the openai provider"
            raise ValueError(msg)
        if provider == "anthropic" and anthropic_client is None:
            msg = "anthropic_client is required for the anthropic provider"
            raise ValueError(msg)
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self._openai = openai_client
        self._anthropic = anthropic_client

    async def complete(
        self,
        messages: list[dict[str, str]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str = "auto",
    ) -> Completion:
        """Run one completion.

        Args:
            messages: Role-tagged entries, ``{"role": ..., "content": ...}``.
            tools: Provider-neutral schemas (``name``/``description``/
                ``input_schema``). When empty, no tool-choice is sent either.
            tool_choice: ``"auto"`` or ``"required"``.
        """
        if self.provider == "anthropic":
            return await self._complete_anthropic(messages, tools or [], tool_choice)
        return await self._complete_openai(messages, tools or [], tool_choice)

    # -- OpenAI --------------------------------------------------------------

    async def _complete_openai(
        self,
        messages: list[dict[str, str]],
        tools: list[dict[str, Any]],
        tool_choice: str,
    ) -> Completion:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if tools:
            kwargs["tools"] = [_openai_tool(t) for t in tools]
            kwargs["tool_choice"] = tool_choice

        try:
            response = await self._openai.chat.completions.create(**kwargs)
        except openai.RateLimitError as exc:
            raise ProviderRateLimitError(str(exc)) from exc
        except openai.OpenAIError as exc:
            raise ProviderError(str(exc)) from exc

        choice = response.choices[0]
        tool_call = None
        calls = getattr(choice.message, "tool_calls", None) or []
        if calls:
            first = calls[0]
            tool_call = ToolCall(
                name=first.function.name,
                arguments=first.function.arguments or "",
                id=first.id or "",
            )
        return Completion(
            finish_reason=choice.finish_reason or "",
            content=choice.message.content,
            tool_call=tool_call,
        )

    # -- Anthropic -----------------------------------------------------------

    async def _complete_anthropic(
        self,
        messages: list[dict[str, str]],
        tools: list[dict[str, Any]],
        tool_choice: str,
    ) -> Completion:
        # Claude takes system text as a separate parameter
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        chat = [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m["role"] != "system"
        ]
        if not chat:
            chat = [{"role": "user", "content": "\n\n".join(system_parts)}]
            system_parts = []

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": chat,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = {"type": "any" if tool_choice == "required" else "auto"}

        try:
            response = await self._anthropic.messages.create(**kwargs)
        except anthropic.RateLimitError as exc:
            raise ProviderRateLimitError(str(exc)) from exc
        except anthropic.AnthropicError as exc:
            raise ProviderError(str(exc)) from exc

        text_parts = [b.text for b in response.content if b.type == "text"]
        tool_blocks = [b for b in response.content if b.type == "tool_use"]
        tool_call = None
        if tool_blocks:
            block = tool_blocks[0]
            tool_call = ToolCall(
                name=block.name,
                arguments=json.dumps(block.input or {}),
                id=block.id,
            )
        finish_reason = TOOL_CALLS if response.stop_reason == "tool_use" else (response.stop_reason or "")
        return Completion(
            finish_reason=finish_reason,
            content="".join(text_parts) or None,
            tool_call=tool_call,
        )


def _openai_tool(schema: dict[str, Any]) -> dict[str, Any]:
    """Wrap a neutral tool schema in OpenAI's function envelope."""
    function: dict[str, Any] = {
        "name": schema["name"],
        "description": schema["description"],
    }
    params = schema.get("input_schema")
    if params and params.get("properties"):
        function["parameters"] = params
    return {"type": "function", "function": function}
