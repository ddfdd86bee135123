"""Orchestrator: one model decision per message, plus tool dispatch.

A request moves through START → CONTEXT_BUILT → MODEL_QUERIED, then either
ANSWERED (the model replied directly) or TOOL_DISPATCHED → PERSISTED (a
tool ran and its result was written to memory), and finally DONE.

Two request shapes share the same context assembly:
- ``respond``: answer a Slack message, optionally offering tools and
  recent memory.
- ``summarize`` / ``phrase_not_found``: one-shot calls made by tools. They
  never offer tools and never inject recent memory, which keeps recursion
  to a single level.
"""

from __future__ import annotations

import json
import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from vibranium.errors import ArgumentParseError
from vibranium.llm.context import (
    DEFAULT_AI_CONTEXT,
    NOT_FOUND_PROMPT_PREFIX,
    SUMMARIZATION_QUERY,
    build_context,
    context_entry,
    summarization_prompt,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from vibranium.llm.client import Completion, LLMClient
    from vibranium.memory.store import MemoryStore
    from vibranium.slack.messages import IncomingMessage
    from vibranium.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class TurnState(StrEnum):
    START = "start"
    CONTEXT_BUILT = "context_built"
    MODEL_QUERIED = "model_queried"
    ANSWERED = "answered"
    TOOL_DISPATCHED = "tool_dispatched"
    PERSISTED = "persisted"
    DONE = "done"


class Orchestrator:
    """Builds context, queries the model, and dispatches tool calls.

    Args:
        llm: Completion client.
        store: Memory store for recent-memory lookups and tool-result writes.
        registry: Tools the model may be offered.
        recent_memory_count: How many recent memories ``respond`` injects.
    """

    def __init__(
        self,
        llm: LLMClient,
        store: MemoryStore,
        registry: ToolRegistry,
        *,
        recent_memory_count: int = 3,
    ) -> None:
        self._llm = llm
        self._store = store
        self._registry = registry
        self.recent_memory_count = recent_memory_count

    async def respond(
        self,
        message: IncomingMessage,
        *,
        context: list[dict[str, str]] | None = None,
        tools: Iterable[str] = (),
        include_recent_memory: bool = True,
    ) -> str | None:
        """Answer ``message`` directly or through one of ``tools``.

        Returns None when the model produced no text; callers treat that as
        "no answer". Raises ``ArgumentParseError`` when the model's tool
        arguments are unusable; nothing is written to memory in that case.
        """
        tool_names = list(tools)

        completion = await self._query(
            message.text,
            context=context,
            tool_names=tool_names,
            include_recent_memory=include_recent_memory,
        )

        if tool_names and completion.wants_tool:
            call = completion.tool_call
            args = _parse_arguments(call.name, call.arguments)
            if message.thread_ts:
                args["ts"] = message.thread_ts

            registered = self._registry.get(call.name) is not None
            result = await self._registry.execute(
                call.name,
                args,
                channel=message.channel,
                query=message.text,
            )
            self._log_state(message, TurnState.TOOL_DISPATCHED)

            # The default message for unknown tools is never persisted
            if result and registered:
                await self._store.remember_tool_result(
                    result,
                    user=message.user,
                    channel=message.channel,
                    parent_message_ts=args.get("ts", ""),
                )
                self._log_state(message, TurnState.PERSISTED)
            return result

        self._log_state(message, TurnState.ANSWERED)
        return completion.content

    async def summarize(self, material: list[str]) -> str | None:
        """Ask the model to summarize ``material`` (no tools, no recent memory)."""
        completion = await self._query(
            SUMMARIZATION_QUERY,
            context=[DEFAULT_AI_CONTEXT, context_entry(summarization_prompt(material))],
            tool_names=[],
            include_recent_memory=False,
        )
        return completion.content

    async def phrase_not_found(self, query: str) -> str | None:
        """Ask the model for a polite "could not find that" reply to ``query``."""
        completion = await self._query(
            NOT_FOUND_PROMPT_PREFIX + query,
            context=[DEFAULT_AI_CONTEXT],
            tool_names=[],
            include_recent_memory=False,
        )
        return completion.content

    async def _query(
        self,
        text: str,
        *,
        context: list[dict[str, str]] | None,
        tool_names: list[str],
        include_recent_memory: bool,
    ) -> Completion:
        """Shared context assembly and model call for every request shape."""
        preamble, *supplementary = context or [DEFAULT_AI_CONTEXT]
        memory = (
            await self._store.query_recent(self.recent_memory_count)
            if include_recent_memory
            else []
        )
        messages = build_context(
            text,
            preamble=preamble,
            supplementary=supplementary,
            memory=memory,
        )
        logger.debug("%s: %d context entries", TurnState.CONTEXT_BUILT, len(messages))

        schemas = self._registry.get_schemas(tool_names) if tool_names else None
        completion = await self._llm.complete(messages, tools=schemas)
        logger.debug("%s: finish_reason=%s", TurnState.MODEL_QUERIED, completion.finish_reason)
        return completion

    @staticmethod
    def _log_state(message: IncomingMessage, state: TurnState) -> None:
        logger.debug("Turn %s/%s -> %s", message.channel or "-", message.ts or "-", state)


def _parse_arguments(tool_name: str, raw: str) -> dict[str, Any]:
    """Decode the model's JSON argument payload. Empty payload means no args."""
    if not raw or not raw.strip():
        return {}
    try:
        args = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ArgumentParseError(tool_name, str(exc)) from exc
    if not isinstance(args, dict):
        raise ArgumentParseError(tool_name, "arguments must be a JSON object")
    return args
