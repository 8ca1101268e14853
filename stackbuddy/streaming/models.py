"""
StackBuddy Streaming Models - Callback set, stream outcome and delayed responses

This module defines:
- StreamCallbacks: caller hooks for one streamed exchange
- StreamOutcome: what one streamed exchange produced
- DelayedResponse: one-shot handle for the final message of a multi-part reply
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union

from ..models import MessageEnvelope
from ..tools.models import ToolInvocation

logger = logging.getLogger(__name__)

# Hooks may be plain functions or coroutine functions
Hook = Callable[..., Union[None, Awaitable[None]]]


async def maybe_await(value: Any) -> Any:
    """Await value if it is awaitable, otherwise return it unchanged"""
    if inspect.isawaitable(value):
        return await value
    return value


async def call_hook(hook: Optional[Hook], *args: Any) -> None:
    """Invoke a hook, awaiting it when it returns an awaitable"""
    if hook is None:
        return
    await maybe_await(hook(*args))


@dataclass
class StreamCallbacks:
    """
    Caller hooks for one streamed exchange.

    End of stream is signalled only by ``on_stream_finished``; no empty or
    None chunk is ever sent through ``on_stream_chunk_received``.

    Attributes:
        on_stream_start: Called once before the backend request
        on_stream_chunk_received: Called with every text delta, immediately
        on_stream_finished: Called with (full_text, role) when the stream ends
        on_full_message_received: Called with a complete MessageEnvelope
            (tool start notices, status updates)
        on_error: Called with the exception if the backend call fails; when
            absent the error is sent as a chunk instead
    """
    on_stream_start: Optional[Hook] = None
    on_stream_chunk_received: Optional[Hook] = None
    on_stream_finished: Optional[Hook] = None
    on_full_message_received: Optional[Hook] = None
    on_error: Optional[Hook] = None


@dataclass
class StreamOutcome:
    """
    Result of one streamed exchange.

    Attributes:
        text: Accumulated streamed text
        tool_invocations: Tool calls requested at stream end, in order
        error: The backend failure, if any
        finished: True once on_stream_finished (or the error path) ran
    """
    text: str = ""
    tool_invocations: List[ToolInvocation] = field(default_factory=list)
    error: Optional[BaseException] = None
    finished: bool = False

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_invocations)

    @property
    def is_error(self) -> bool:
        return self.error is not None


class DelayedResponse:
    """
    One-shot handle for the authoritative final message of a multi-part reply.

    Usage:
        immediate, delayed = await coordinator.stream_multi_part(...)
        send(immediate)
        delayed.add_done_callback(send)
        final = await delayed
    """

    def __init__(self):
        self._future: "asyncio.Future[MessageEnvelope]" = asyncio.get_running_loop().create_future()

    def resolve(self, envelope: MessageEnvelope) -> bool:
        """Set the final message; later calls are ignored and return False"""
        if self._future.done():
            logger.warning(
                f"[Stream] Delayed response already resolved; ignoring {envelope.message_id}"
            )
            return False
        self._future.set_result(envelope)
        return True

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> MessageEnvelope:
        return self._future.result()

    def add_done_callback(self, callback: Callable[[MessageEnvelope], Any]) -> None:
        """Call ``callback(envelope)`` once the final message is available"""
        def _forward(future: "asyncio.Future[MessageEnvelope]") -> None:
            if future.cancelled():
                return
            try:
                callback(future.result())
            except Exception as e:
                logger.warning(f"[Stream] Delayed response callback error: {e}", exc_info=True)

        self._future.add_done_callback(_forward)

    def cancel(self) -> None:
        self._future.cancel()

    def __await__(self):
        return asyncio.shield(self._future).__await__()
