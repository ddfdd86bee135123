"""Inbound Slack message model and event helpers."""

from typing import Any

from pydantic import BaseModel

MESSAGE_DELETED = "message_deleted"


class IncomingMessage(BaseModel):
    """A message or mention delivered by Slack."""

    text: str = ""
    ts: str = ""
    thread_ts: str = ""
    channel: str = ""
    user: str = ""
    subtype: str | None = None
    previous_text: str = ""

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> "IncomingMessage":
        """Parse a Slack ``message`` or ``app_mention`` event.

        Deletion events carry the original text and timestamp under
        ``previous_message``.
        """
        previous = event.get("previous_message") or {}
        ts = event.get("ts") or ""
        if event.get("subtype") == MESSAGE_DELETED:
            ts = event.get("deleted_ts") or previous.get("ts") or ts
        return cls(
            text=event.get("text") or "",
            ts=ts,
            thread_ts=event.get("thread_ts") or "",
            channel=event.get("channel") or "",
            user=event.get("user") or "",
            subtype=event.get("subtype") or None,
            previous_text=previous.get("text") or "",
        )

    @property
    def in_thread(self) -> bool:
        return bool(self.thread_ts)


def is_deleting_message(message: IncomingMessage) -> bool:
    """True for Slack's message-deletion events."""
    return message.subtype == MESSAGE_DELETED


def is_bot_tagged(text: str, bot_id: str | None) -> bool:
    """True when ``text`` mentions the bot (``<@BOTID>``)."""
    if not bot_id:
        return False
    return f"<@{bot_id}>" in (text or "")
