"""Data models for conversational memory."""

from enum import StrEnum

from pydantic import BaseModel, Field


class Role(StrEnum):
    """Who produced a piece of memory content."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class MemoryRecord(BaseModel):
    """A single persisted unit of conversational memory.

    ``content`` is either one message or a bundle of thread messages stored
    together. Records are immutable once written; corrections are a delete
    followed by a new insert.
    """

    id: str
    content: str | list[str]
    role: Role = Role.USER
    user: str = ""
    channel: str = ""
    message_ts: str = ""
    parent_message_ts: str = ""
    created_at: float = 0.0
    embedding: list[float] = Field(default_factory=list, repr=False)
    score: float = 0.0

    @property
    def texts(self) -> list[str]:
        """Content as a list, whether one message or a bundle."""
        if isinstance(self.content, list):
            return [t for t in self.content if t]
        return [self.content] if self.content else []

    def to_metadata(self) -> dict:
        """Metadata stored alongside the vector."""
        return {
            "content": self.content,
            "channel": self.channel,
            "user": self.user,
            "role": str(self.role),
            "messageTs": self.message_ts,
            "parentMessageTs": self.parent_message_ts,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_match(cls, match_id: str, score: float, metadata: dict | None) -> "MemoryRecord":
        """Build a record from a vector-store query match."""
        meta = metadata or {}
        role = meta.get("role", Role.USER)
        if role not in Role._value2member_map_:
            role = Role.USER
        return cls(
            id=match_id,
            content=meta.get("content", ""),
            role=Role(role),
            user=meta.get("user", ""),
            channel=meta.get("channel", ""),
            message_ts=meta.get("messageTs", ""),
            parent_message_ts=meta.get("parentMessageTs", ""),
            created_at=float(meta.get("createdAt", 0.0) or 0.0),
            score=score,
        )


class VectorMatch(BaseModel):
    """A raw nearest-neighbour hit returned by a vector backend."""

    id: str
    score: float = 0.0
    metadata: dict = Field(default_factory=dict)
