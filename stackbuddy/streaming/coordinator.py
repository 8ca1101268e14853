"""
StackBuddy Streaming Coordinator - Drives one streamed completion exchange

Text deltas are forwarded to the caller as soon as they arrive and the
tool-call list is picked up from the final chunk. Backend failures never
escape: they go to ``on_error`` or, without one, become a visible chunk.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from ..constants import MONITOR_FAILURE_MESSAGE, NO_RESULTS_MESSAGE, STREAM_ERROR_PREFIX
from ..errors import StreamError
from ..models import ConversationTurn, MessageEnvelope
from ..protocols import HistoryEntry, LLMClientProtocol
from ..tools.models import ToolInvocation
from .models import DelayedResponse, StreamCallbacks, StreamOutcome, call_hook

logger = logging.getLogger(__name__)

ImmediateHandler = Callable[[MessageEnvelope, Sequence[HistoryEntry]], Awaitable[MessageEnvelope]]
FinalizeHandler = Callable[[StreamOutcome], Awaitable[str]]


def _as_turn(entry: HistoryEntry) -> ConversationTurn:
    if isinstance(entry, ConversationTurn):
        return entry
    return ConversationTurn(
        role=str(entry.get("role") or entry.get("author_role") or ""),
        text=str(entry.get("text") or entry.get("content") or ""),
        message_id=entry.get("message_id"),
    )


def build_messages(
    user_text: str,
    history: Sequence[HistoryEntry] = (),
    system_prompt: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Build the completion-backend message list.

    Prior turns are mapped to user/assistant roles; turns whose role cannot
    be classified are skipped. The current user text is appended unless it
    is already the last history entry, so it is never submitted twice.
    """
    messages: List[Dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})

    last: Optional[Dict[str, Any]] = None
    for entry in history or ():
        turn = _as_turn(entry)
        role = turn.completion_role
        if role is None:
            logger.debug(f"[Stream] Skipping history turn with unknown role: {turn.role!r}")
            continue
        last = {"role": role, "content": turn.text}
        messages.append(last)

    if not (last and last["role"] == "user" and last["content"] == user_text):
        messages.append({"role": "user", "content": user_text})
    return messages


class StreamingCoordinator:
    """
    Runs streamed completion exchanges against one backend.

    Usage:
        coordinator = StreamingCoordinator(llm_client, system_prompt="...")
        outcome = await coordinator.stream(
            envelope,
            StreamCallbacks(on_stream_chunk_received=print),
            history=turns,
            tools=catalog.schemas(),
        )
        if outcome.has_tool_calls:
            ...
    """

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        system_prompt: Optional[str] = None,
        llm_config: Optional[Dict[str, Any]] = None,
    ):
        if llm_client is None:
            raise ValueError("llm_client is required")
        self.llm_client = llm_client
        self.system_prompt = system_prompt
        self.llm_config = llm_config
        self._background: Set[asyncio.Task] = set()

    async def stream(
        self,
        envelope: MessageEnvelope,
        callbacks: Optional[StreamCallbacks] = None,
        history: Sequence[HistoryEntry] = (),
        tools: Optional[List[Dict[str, Any]]] = None,
        system_prompt: Optional[str] = None,
    ) -> StreamOutcome:
        """
        Stream one exchange for ``envelope``.

        Every text delta goes to ``on_stream_chunk_received`` before the next
        chunk is awaited. ``on_stream_finished(full_text, "assistant")`` is
        the only end-of-stream signal.
        """
        callbacks = callbacks or StreamCallbacks()
        outcome = StreamOutcome()
        messages = build_messages(envelope.text, history, system_prompt or self.system_prompt)

        try:
            await call_hook(callbacks.on_stream_start)
            async for chunk in self.llm_client.stream_completion(
                messages, tools=tools or None, config=self.llm_config
            ):
                if chunk.content:
                    outcome.text += chunk.content
                    await call_hook(callbacks.on_stream_chunk_received, chunk.content)
                if chunk.tool_calls:
                    outcome.tool_invocations = [
                        ToolInvocation.from_tool_call(tc) for tc in chunk.tool_calls
                    ]
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = e if isinstance(e, StreamError) else StreamError(str(e) or e.__class__.__name__)
            if error is not e:
                error.__cause__ = e
            outcome.error = error
            outcome.finished = True
            logger.error(f"[Stream] Completion stream failed: {e}", exc_info=True)
            await self._route_error(callbacks, error)
            return outcome

        outcome.finished = True
        logger.info(
            f"[Stream] Finished: {len(outcome.text)} chars, "
            f"{len(outcome.tool_invocations)} tool calls"
        )
        try:
            await call_hook(callbacks.on_stream_finished, outcome.text, "assistant")
        except Exception as e:
            logger.warning(f"[Stream] on_stream_finished handler error: {e}", exc_info=True)
        return outcome

    async def _route_error(self, callbacks: StreamCallbacks, error: StreamError) -> None:
        try:
            if callbacks.on_error is not None:
                await call_hook(callbacks.on_error, error)
            else:
                await call_hook(callbacks.on_stream_chunk_received, f"{STREAM_ERROR_PREFIX}{error}")
        except Exception as e:
            logger.warning(f"[Stream] Error handler failed: {e}", exc_info=True)

    async def stream_multi_part(
        self,
        envelope: MessageEnvelope,
        history: Sequence[HistoryEntry],
        immediate: ImmediateHandler,
        finalize: Optional[FinalizeHandler] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Tuple[MessageEnvelope, DelayedResponse]:
        """
        Answer immediately, then finish the streamed exchange in the background.

        Returns the provisional immediate envelope and a DelayedResponse that
        resolves exactly once with the authoritative final message.
        ``finalize`` turns the background outcome into the final text (for
        example by running the requested tools); without it the streamed
        text is used.
        """
        try:
            immediate_envelope = await immediate(envelope, history)
        except Exception as e:
            logger.error(f"[Stream] Immediate response failed: {e}", exc_info=True)
            immediate_envelope = MessageEnvelope.response(MONITOR_FAILURE_MESSAGE)

        delayed = DelayedResponse()
        task = asyncio.create_task(self._run_delayed(envelope, history, delayed, finalize, tools))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return immediate_envelope, delayed

    async def _run_delayed(
        self,
        envelope: MessageEnvelope,
        history: Sequence[HistoryEntry],
        delayed: DelayedResponse,
        finalize: Optional[FinalizeHandler],
        tools: Optional[List[Dict[str, Any]]],
    ) -> None:
        # Errors are reported through the delayed response, not as chunks
        errors: List[BaseException] = []
        try:
            outcome = await self.stream(
                envelope, StreamCallbacks(on_error=errors.append), history, tools
            )
            if outcome.is_error:
                text = f"{STREAM_ERROR_PREFIX}{outcome.error}"
            elif finalize is not None:
                text = await finalize(outcome)
            else:
                text = outcome.text or NO_RESULTS_MESSAGE
        except asyncio.CancelledError:
            delayed.cancel()
            raise
        except Exception as e:
            logger.error(f"[Stream] Delayed response failed: {e}", exc_info=True)
            text = f"{STREAM_ERROR_PREFIX}{e}"

        delayed.resolve(MessageEnvelope.response(text))

    async def close(self) -> None:
        """Cancel background multi-part work"""
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
