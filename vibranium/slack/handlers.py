"""Slack event handlers for channel messages and mentions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from vibranium.errors import MemoryStoreError
from vibranium.llm.context import DEFAULT_AI_CONTEXT
from vibranium.slack.messages import IncomingMessage, is_bot_tagged, is_deleting_message
from vibranium.tools.thread_tools import SUMMARIZE_THREAD_BY_KEYWORD, SUMMARIZE_THREAD_BY_TS

if TYPE_CHECKING:
    from vibranium.llm.gate import RelevanceGate
    from vibranium.llm.orchestrator import Orchestrator
    from vibranium.memory.store import MemoryStore
    from vibranium.slack.transport import SlackTransport

logger = logging.getLogger(__name__)

PROCESSING_MESSAGE = "Processing your request, please wait a moment..."
NO_ANSWER_MESSAGE = "Sorry, I could not understand or process that."
INTERNAL_ERROR_MESSAGE = "Sorry, there was an internal error while processing your request."


@dataclass
class BotServices:
    """Everything the handlers need, wired once at startup."""

    store: MemoryStore
    gate: RelevanceGate
    orchestrator: Orchestrator
    transport: SlackTransport


async def _post(say: Any, message: IncomingMessage, answer: str, *, in_thread: bool = False) -> None:
    """Post the answer, threaded when asked and the message is in a thread."""
    if in_thread and message.thread_ts:
        await say(text=answer, thread_ts=message.thread_ts)
    else:
        await say(answer)


async def _remember_turn(
    services: BotServices,
    message: IncomingMessage,
    answer: str | None = None,
) -> None:
    """Write the user message (and the answer, if any) to memory.

    Runs after the reply is posted; a failed write is logged and never
    reaches the user.
    """
    try:
        await services.store.remember_user_message(
            message.text,
            user=message.user,
            channel=message.channel,
            message_ts=message.ts,
            parent_message_ts=message.thread_ts,
        )
        if answer:
            await services.store.remember_answer(
                answer,
                user=message.user,
                channel=message.channel,
                parent_message_ts=message.thread_ts,
            )
    except MemoryStoreError:
        logger.exception("Failed to store turn %s in memory", message.ts or "-")


async def handle_message(
    event: dict[str, Any],
    say: Any,
    services: BotServices,
    bot_id: str | None = None,
) -> None:
    """Handle a channel message: delete, ignore, or gate-and-answer."""
    message = IncomingMessage.from_event(event)

    if bot_id is None:
        logger.warning("Bot user id unknown; mentions may be answered twice")
    # Mentions are answered by handle_mention
    elif is_bot_tagged(message.text, bot_id):
        return

    logger.info("Message from %s in %s: %s", message.user, message.channel, message.text[:80])

    try:
        if is_deleting_message(message):
            await services.store.delete_message(message.ts, message.previous_text)
            return

        if message.subtype or not message.text:
            return

        if not await services.gate.should_respond(message):
            await _remember_turn(services, message)
            return

        await say(PROCESSING_MESSAGE)
        answer = await services.orchestrator.respond(
            message,
            context=[DEFAULT_AI_CONTEXT],
            tools=[SUMMARIZE_THREAD_BY_KEYWORD],
        )

        if answer:
            await _post(say, message, answer)
        else:
            await say(NO_ANSWER_MESSAGE)
        await _remember_turn(services, message, answer)
    except Exception:
        logger.exception("Error handling message %s", message.ts)
        await say(INTERNAL_ERROR_MESSAGE)


async def handle_mention(
    event: dict[str, Any],
    say: Any,
    services: BotServices,
) -> None:
    """Handle an @-mention: always answer, offering the thread tool inside threads."""
    message = IncomingMessage.from_event(event)
    logger.info("Mention from %s in %s: %s", message.user, message.channel, message.text[:80])

    tools = [SUMMARIZE_THREAD_BY_TS] if message.in_thread else []
    try:
        answer = await services.orchestrator.respond(
            message,
            context=[DEFAULT_AI_CONTEXT],
            tools=tools,
        )

        if answer:
            await _post(say, message, answer, in_thread=True)
        else:
            await say(NO_ANSWER_MESSAGE)
        await _remember_turn(services, message, answer)
    except Exception:
        logger.exception("Error handling mention %s", message.ts)
        await say(INTERNAL_ERROR_MESSAGE)
