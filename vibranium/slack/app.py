"""Slack Bolt application factory and service wiring."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from aiohttp import web
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.app.async_app import AsyncApp as App
from slack_sdk.web.async_client import AsyncWebClient

from vibranium.config import Settings, settings
from vibranium.llm.client import LLMClient
from vibranium.llm.gate import RelevanceGate
from vibranium.llm.orchestrator import Orchestrator
from vibranium.memory.backend import InMemoryVectorBackend, PineconeBackend, VectorBackend
from vibranium.memory.embeddings import Embedder
from vibranium.memory.store import MemoryStore
from vibranium.slack.handlers import BotServices, handle_mention, handle_message
from vibranium.slack.transport import SlackTransport
from vibranium.tools.registry import ToolRegistry
from vibranium.tools.thread_tools import register_thread_tools

logger = logging.getLogger(__name__)


def _create_backend(config: Settings) -> VectorBackend:
    if config.memory_backend() == "pinecone":
        from pinecone import Pinecone

        logger.info("Memory store: Pinecone index %s", config.pinecone_index)
        return PineconeBackend(
            Pinecone(api_key=config.pinecone_api_key),
            config.pinecone_index,
            config.embedding_dimensions,
            supports_filtered_delete=config.pinecone_filtered_delete,
        )

    logger.warning(
        "Memory store is in-process only. Set PINECONE_API_KEY to persist memory "
        "across restarts."
    )
    return InMemoryVectorBackend()


def _create_llm(config: Settings, openai_client) -> LLMClient:
    if config.chat_provider == "anthropic":
        from anthropic import AsyncAnthropic

        return LLMClient(
            "anthropic",
            config.chat_model,
            anthropic_client=AsyncAnthropic(api_key=config.anthropic_api_key),
            max_tokens=config.max_tokens,
        )
    return LLMClient(
        "openai",
        config.chat_model,
        openai_client=openai_client,
        max_tokens=config.max_tokens,
    )


def build_services(client: AsyncWebClient, config: Settings = settings) -> BotServices:
    """Construct the memory store, model client, tools and orchestrator."""
    from openai import AsyncOpenAI

    openai_client = AsyncOpenAI(api_key=config.openai_api_key)
    transport = SlackTransport(client)
    store = MemoryStore(
        _create_backend(config),
        Embedder(openai_client, config.embedding_model, config.embedding_dimensions),
        index_name=config.pinecone_index,
        dimensions=config.embedding_dimensions,
        cloud=config.pinecone_cloud,
        region=config.pinecone_region,
        min_score=config.similarity_threshold,
        backfill_page_size=config.backfill_page_size,
    )
    llm = _create_llm(config, openai_client)
    registry = ToolRegistry()
    orchestrator = Orchestrator(
        llm,
        store,
        registry,
        recent_memory_count=config.recent_memory_count,
    )
    register_thread_tools(
        registry,
        store=store,
        transport=transport,
        summarizer=orchestrator,
        keyword_top_k=config.keyword_top_k,
    )
    logger.info("Tools registered: %s", ", ".join(registry.tool_names))
    return BotServices(
        store=store,
        gate=RelevanceGate(llm, registry),
        orchestrator=orchestrator,
        transport=transport,
    )


def _bot_user_id(context: dict[str, Any]) -> str | None:
    """The bot's own user id, falling back to the authorization result."""
    bot_id = context.get("bot_user_id")
    if bot_id:
        return bot_id
    authorize_result = context.get("authorize_result")
    if authorize_result is not None:
        return authorize_result.bot_user_id or authorize_result.user_id
    return None


def create_slack_app(
    services: BotServices,
    client: AsyncWebClient,
    config: Settings = settings,
) -> App:
    """Build the Bolt app and attach event listeners."""
    app = App(
        token=config.slack_bot_token,
        signing_secret=config.slack_signing_secret,
        request_verification_enabled=not config.socket_mode(),
        client=client,
    )

    @app.event("message")
    async def _on_message(event, say, context):
        logger.debug(
            "Slack message event: subtype=%s channel=%s",
            event.get("subtype"),
            event.get("channel"),
        )
        await handle_message(
            event=event,
            say=say,
            services=services,
            bot_id=_bot_user_id(context),
        )

    @app.event("app_mention")
    async def _on_mention(event, say):
        await handle_mention(event=event, say=say, services=services)

    return app


async def _serve_http(app: App, port: int) -> None:
    """Serve the Events API over HTTP until cancelled."""
    runner = web.AppRunner(app.web_app(path="/slack/events", port=port))
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    logger.info("Slack bot is running on port %d", port)
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def run_slack() -> None:
    """Start the Slack bot (blocking)."""

    async def _run() -> None:
        client = AsyncWebClient(token=settings.slack_bot_token)
        services = build_services(client, settings)
        app = create_slack_app(services, client, settings)

        # An unreachable vector store at boot is fatal; backfill runs in the background
        await services.store.start(services.transport)

        if settings.socket_mode():
            handler = AsyncSocketModeHandler(app, settings.slack_app_token)
            await handler.start_async()
        else:
            await _serve_http(app, settings.port)

    asyncio.run(_run())
