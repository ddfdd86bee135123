"""Thin wrapper over the Slack Web API calls the bot needs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from slack_sdk.errors import SlackApiError

if TYPE_CHECKING:
    from slack_sdk.web.async_client import AsyncWebClient

logger = logging.getLogger(__name__)


class SlackTransport:
    """Reads threads, channel lists and channel history."""

    def __init__(self, client: AsyncWebClient) -> None:
        self._client = client

    async def fetch_thread_replies(self, channel: str, ts: str) -> list[dict[str, Any]]:
        """Return every message in the thread rooted at ``ts`` (root included).

        API errors are logged and yield an empty thread.
        """
        try:
            response = await self._client.conversations_replies(channel=channel, ts=ts)
        except SlackApiError:
            logger.exception("Error fetching thread replies for %s/%s", channel, ts)
            return []
        return list(response.get("messages") or [])

    async def list_channels(self) -> list[dict[str, Any]]:
        """List all channels visible to the bot, following pagination."""
        channels: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            kwargs: dict[str, Any] = {}
            if cursor:
                kwargs["cursor"] = cursor

            response = await self._client.conversations_list(**kwargs)
            channels.extend(response.get("channels") or [])

            next_cursor = (response.get("response_metadata") or {}).get("next_cursor", "")
            if not next_cursor:
                break
            cursor = next_cursor

        return channels

    async def fetch_channel_history(self, channel: str, limit: int = 1000) -> list[dict[str, Any]]:
        """Return up to ``limit`` of the channel's most recent messages."""
        response = await self._client.conversations_history(channel=channel, limit=limit)
        return list(response.get("messages") or [])
