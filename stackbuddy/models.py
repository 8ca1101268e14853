"""
StackBuddy Models - Message data structures

This module defines:
- MessageDirection: request (from user) or response (from the agent)
- MessagePayload / MessageEnvelope: immutable outbound/inbound messages
- ConversationTurn: one prior turn supplied by the history provider
"""

import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .constants import CHARS_PER_TOKEN, CONTENT_TYPE_TEXT


def estimate_tokens(text: str) -> int:
    """Rough token estimate - four characters per token"""
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageDirection(str, Enum):
    """Direction of a message relative to the agent"""
    REQUEST = "request"
    RESPONSE = "response"


@dataclass(frozen=True)
class MessagePayload:
    """
    Content carried by an envelope.

    Attributes:
        text: Message text
        content_type: MIME-ish content tag (always text/plain today)
        created_at: Creation timestamp (UTC)
        estimated_token_count: Rough token count of text
    """
    text: str
    content_type: str = CONTENT_TYPE_TEXT
    created_at: datetime = field(default_factory=_utc_now)
    estimated_token_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content_type": self.content_type,
            "text": self.text,
            "created_at": self.created_at.isoformat(),
            "estimated_token_count": self.estimated_token_count,
        }


@dataclass(frozen=True)
class MessageEnvelope:
    """
    Immutable message envelope.

    A new envelope is created for every outbound message; use
    ``MessageEnvelope.create()`` rather than mutating an existing one.
    """
    message_id: str
    direction: MessageDirection
    payload: MessagePayload

    @property
    def text(self) -> str:
        return self.payload.text

    @property
    def is_request(self) -> bool:
        return self.direction == MessageDirection.REQUEST

    @classmethod
    def create(
        cls,
        text: str,
        direction: MessageDirection = MessageDirection.RESPONSE,
        message_id: Optional[str] = None,
        content_type: str = CONTENT_TYPE_TEXT,
    ) -> "MessageEnvelope":
        """Build a new envelope with a fresh id and token estimate"""
        text = text or ""
        return cls(
            message_id=message_id or uuid.uuid4().hex,
            direction=direction,
            payload=MessagePayload(
                text=text,
                content_type=content_type,
                estimated_token_count=estimate_tokens(text),
            ),
        )

    @classmethod
    def request(cls, text: str, message_id: Optional[str] = None) -> "MessageEnvelope":
        return cls.create(text, MessageDirection.REQUEST, message_id=message_id)

    @classmethod
    def response(cls, text: str) -> "MessageEnvelope":
        return cls.create(text, MessageDirection.RESPONSE)

    def with_text(self, text: str) -> "MessageEnvelope":
        """Copy of this envelope carrying different text (new id)"""
        return replace(
            self,
            message_id=uuid.uuid4().hex,
            payload=MessagePayload(
                text=text,
                content_type=self.payload.content_type,
                estimated_token_count=estimate_tokens(text),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message_id": self.message_id,
            "direction": self.direction.value,
            "payload": self.payload.to_dict(),
        }


# Role names used by conversation stores, mapped onto completion roles
USER_ROLES = frozenset({"user", "customer", "cx-customer"})
ASSISTANT_ROLES = frozenset({"assistant", "robot", "cx-robot", "agent"})


@dataclass
class ConversationTurn:
    """
    One prior turn of a conversation.

    Attributes:
        role: Role tag from the conversation store (user, customer, robot, ...)
        text: Turn text
        message_id: Optional store id
    """
    role: str
    text: str
    message_id: Optional[str] = None

    @property
    def completion_role(self) -> Optional[str]:
        """Map the store role onto 'user'/'assistant', or None if unclassifiable"""
        role = (self.role or "").lower()
        if role in USER_ROLES:
            return "user"
        if role in ASSISTANT_ROLES:
            return "assistant"
        return None
