"""Relevance gate: should the bot reply to a channel message at all?"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from vibranium.llm.client import TOOL_CALLS
from vibranium.llm.context import DEFAULT_AI_CONTEXT, SHOULD_ANSWER_CONTEXT, build_context
from vibranium.tools.thread_tools import ANSWER_QUERY

if TYPE_CHECKING:
    from vibranium.llm.client import LLMClient
    from vibranium.slack.messages import IncomingMessage
    from vibranium.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class RelevanceGate:
    """Asks the model whether it wants to invoke the answer-gate tool.

    Provider errors propagate so the Slack handler can decide how to react.
    """

    def __init__(self, llm: LLMClient, registry: ToolRegistry) -> None:
        self._llm = llm
        self._registry = registry

    async def should_respond(self, message: IncomingMessage) -> bool:
        if message.subtype or not message.text:
            return False

        messages = build_context(
            message.text,
            preamble=DEFAULT_AI_CONTEXT,
            supplementary=[SHOULD_ANSWER_CONTEXT],
        )
        completion = await self._llm.complete(
            messages,
            tools=self._registry.get_schemas([ANSWER_QUERY]),
        )
        decision = completion.finish_reason == TOOL_CALLS
        logger.info("Relevance gate for %s: %s", message.ts or "-", "answer" if decision else "skip")
        return decision
