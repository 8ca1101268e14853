"""
StackBuddy Protocols - Abstract interfaces for the collaborators of the core

These protocols define the contracts that the surrounding transport layer
must fulfill: the completion backend, the conversation store (history and
unread-message queries) and the delivery channel. Callables may be plain
functions or coroutine functions.
"""

from typing import (
    Any, AsyncIterator, Awaitable, Dict, List, Optional, Protocol, Sequence,
    Union, runtime_checkable,
)

from .models import ConversationTurn, MessageEnvelope


@runtime_checkable
class LLMClientProtocol(Protocol):
    """
    Abstract interface for completion backends

    Example:
        class MyLLMClient:
            async def chat_completion(self, messages, tools=None, config=None):
                ...  # returns LLMResponse

            def stream_completion(self, messages, tools=None, config=None):
                ...  # async iterator of StreamChunk
    """

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Any]] = None,
        config: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Single message with optional tool_calls"""
        ...

    def stream_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Any]] = None,
        config: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[Any]:
        """Text deltas; the final chunk carries the tool calls"""
        ...


HistoryEntry = Union[ConversationTurn, Dict[str, Any]]


@runtime_checkable
class HistoryProvider(Protocol):
    """Returns the prior turns of the conversation, oldest first"""

    def __call__(self) -> Union[Sequence[HistoryEntry], Awaitable[Sequence[HistoryEntry]]]:
        ...


@runtime_checkable
class UnreadMessageQuery(Protocol):
    """Returns user messages newer than ``since_message_id``"""

    def __call__(
        self, since_message_id: str
    ) -> Union[Sequence[MessageEnvelope], Awaitable[Sequence[MessageEnvelope]]]:
        ...


@runtime_checkable
class DeliveryCallback(Protocol):
    """Sends one envelope to the user; fire-and-forget"""

    def __call__(self, envelope: MessageEnvelope) -> Union[None, Awaitable[None]]:
        ...
