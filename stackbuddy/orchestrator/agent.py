"""
StackBuddy Forms Agent - Ties streaming, tools and the completion monitor together

Data flow for one user message:

    handle_message()
        -> SessionTable.open()          (supersedes the conversation's old session)
        -> CompletionMonitor.start()    (poll task)
        -> StreamingCoordinator.stream()
        -> ToolBatchRunner.run_all()    (only if tools were requested)
        -> session.record_*()           (wakes the monitor)

The monitor alone delivers the final response.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..constants import ACKNOWLEDGEMENT_MESSAGE, MONITOR_FAILURE_MESSAGE, STREAM_ERROR_PREFIX
from ..intent import IntentResult, render_intent_context
from ..models import MessageEnvelope
from ..protocols import (
    DeliveryCallback,
    HistoryEntry,
    HistoryProvider,
    LLMClientProtocol,
    UnreadMessageQuery,
)
from ..streaming.coordinator import StreamingCoordinator, build_messages
from ..streaming.models import DelayedResponse, StreamCallbacks, StreamOutcome, call_hook, maybe_await
from ..tools.batch import ToolBatchRunner
from ..tools.catalog import ToolCatalog
from ..tools.executor import ToolExecutor
from ..tools.models import ToolInvocation, ToolResult
from .audit_logger import AuditLogger
from .commands import handle_direct_command
from .monitor import CompletionMonitor
from .session import MonitorConfig, MonitoringSession, SessionTable
from .synthesizer import ResponseSynthesizer

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """You are StackBuddy, an assistant for managing online forms.

Use the available tools to inspect and change forms. Ask for a form ID when
one is needed and not given. Never guess IDs. Confirm before removing fields
or logic. Keep answers short and use markdown lists for details."""


@dataclass
class AgentConfig:
    """
    Configuration for FormsAgent.

    Attributes:
        name: Agent name used in logs
        system_prompt: System prompt sent with every exchange
        enabled_tools: Tool names offered to the backend (None = all)
        max_tokens: Completion token limit
    """
    name: str = "stackbuddy"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    enabled_tools: Optional[List[str]] = None
    max_tokens: int = 1024

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentConfig":
        """Create from dictionary"""
        enabled = data.get("enabled_tools")
        return cls(
            name=data.get("name", "stackbuddy"),
            system_prompt=data.get("system_prompt") or DEFAULT_SYSTEM_PROMPT,
            enabled_tools=list(enabled) if enabled is not None else None,
            max_tokens=int(data.get("max_tokens", 1024)),
        )


class FormsAgent:
    """
    Conversation-level facade over one completion backend and one tool catalog.

    Usage:
        agent = FormsAgent(llm_client, catalog)
        session = await agent.handle_message(
            "conv-1", envelope, callbacks, get_history, get_unread, deliver
        )
        await session.wait_closed()
    """

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        catalog: ToolCatalog,
        config: Optional[AgentConfig] = None,
        monitor_config: Optional[MonitorConfig] = None,
        sessions: Optional[SessionTable] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.config = config or AgentConfig()
        self.monitor_config = monitor_config or MonitorConfig()
        self.catalog = catalog
        self.audit = audit or AuditLogger()
        self.sessions = sessions or SessionTable()

        self.coordinator = StreamingCoordinator(
            llm_client,
            system_prompt=self.config.system_prompt,
            llm_config={"max_tokens": self.config.max_tokens},
        )
        self.executor = ToolExecutor(catalog, audit=self.audit)
        self.batch_runner = ToolBatchRunner(self.executor)
        self.synthesizer = ResponseSynthesizer(llm_client)

    def tool_schemas(self) -> List[Dict[str, Any]]:
        return self.catalog.schemas(self.config.enabled_tools)

    def _system_prompt(self, intent: Optional[IntentResult]) -> str:
        context = render_intent_context(intent)
        if not context:
            return self.config.system_prompt
        return f"{self.config.system_prompt}\n\n{context}"

    # ===== Monitored path =====

    async def handle_message(
        self,
        conversation_id: str,
        envelope: MessageEnvelope,
        callbacks: Optional[StreamCallbacks] = None,
        get_history: Optional[HistoryProvider] = None,
        get_unread: Optional[UnreadMessageQuery] = None,
        deliver: Optional[DeliveryCallback] = None,
        intent: Optional[IntentResult] = None,
    ) -> MonitoringSession:
        """
        Answer one user message under a completion monitor.

        Streams the exchange, runs any requested tools and leaves the final
        response to the monitor, which delivers it through ``deliver``.
        Returns once the stream and tool batch are done; the monitor may
        still be running.
        """
        callbacks = callbacks or StreamCallbacks()
        if deliver is None:
            deliver = callbacks.on_full_message_received or _discard

        session = self.sessions.open(conversation_id, envelope)
        monitor = CompletionMonitor(
            session,
            self.synthesizer,
            get_unread,
            deliver,
            config=self.monitor_config,
            audit=self.audit,
            on_closed=self.sessions.release,
        )
        monitor.start()
        logger.info(
            f"[Agent] {self.config.name}: conversation {conversation_id}, "
            f"message {envelope.message_id}, session {session.session_id}"
        )

        try:
            history = await maybe_await(get_history()) if get_history is not None else []
            outcome = await self.coordinator.stream(
                envelope,
                callbacks,
                history=history or [],
                tools=self.tool_schemas(),
                system_prompt=self._system_prompt(intent),
            )
            session.record_stream_finished(
                outcome.text, len(outcome.tool_invocations), outcome.error
            )

            if outcome.has_tool_calls and session.should_continue():
                await self._announce_tools(callbacks, outcome.tool_invocations)
                results = await self.batch_runner.run_all(
                    outcome.tool_invocations,
                    tracker=session.tracker,
                    should_continue=session.should_continue,
                    conversation_id=conversation_id,
                    on_result=session.record_tool_result,
                )
                session.record_batch_finished(results)
        except asyncio.CancelledError:
            session.supersede("cancelled")
            raise
        except Exception as e:
            # Unblock the monitor so it finalizes with what was recorded
            logger.error(f"[Agent] Message handling failed for {conversation_id}: {e}", exc_info=True)
            if not session.stream_finished:
                session.record_stream_finished("", 0, e)
            elif session.tools_invoked and not session.batch_finished:
                session.record_batch_finished(session.tool_results)

        return session

    async def _announce_tools(
        self,
        callbacks: StreamCallbacks,
        invocations: Sequence[ToolInvocation],
    ) -> None:
        names = ", ".join(dict.fromkeys(inv.tool_name for inv in invocations))
        notice = MessageEnvelope.response(f"Running: {names}")
        try:
            await call_hook(callbacks.on_full_message_received, notice)
        except Exception as e:
            logger.warning(f"[Agent] Tool start notice failed: {e}")

    # ===== Unmonitored paths =====

    async def _complete(
        self,
        envelope: MessageEnvelope,
        history: Sequence[HistoryEntry],
    ) -> str:
        outcome = await self.coordinator.stream(envelope, history=history, tools=self.tool_schemas())
        return await self._finish(outcome, envelope.text)

    async def _finish(self, outcome: StreamOutcome, user_text: Optional[str] = None) -> str:
        if outcome.is_error:
            return f"{STREAM_ERROR_PREFIX}{outcome.error}"
        if outcome.has_tool_calls:
            results: List[ToolResult] = await self.batch_runner.run_all(outcome.tool_invocations)
            return await self.synthesizer.synthesize(results, user_text)
        if outcome.text.strip():
            return outcome.text
        return await self.synthesizer.synthesize([], user_text)

    async def accept_immediate(
        self,
        envelope: MessageEnvelope,
        history: Sequence[HistoryEntry] = (),
    ) -> MessageEnvelope:
        """Answer in one envelope: direct commands first, then one full exchange"""
        reply = handle_direct_command(envelope.text)
        if reply is not None:
            return MessageEnvelope.response(reply)
        try:
            return MessageEnvelope.response(await self._complete(envelope, history))
        except Exception as e:
            logger.error(f"[Agent] Immediate response failed: {e}", exc_info=True)
            return MessageEnvelope.response(MONITOR_FAILURE_MESSAGE)

    async def _acknowledge(
        self,
        envelope: MessageEnvelope,
        history: Sequence[HistoryEntry],
    ) -> MessageEnvelope:
        # No tools here: the background exchange is the one that acts
        messages = build_messages(envelope.text, history, self.config.system_prompt)
        response = await self.coordinator.llm_client.chat_completion(
            messages, config=self.coordinator.llm_config
        )
        text = (getattr(response, "content", None) or "").strip()
        return MessageEnvelope.response(text or ACKNOWLEDGEMENT_MESSAGE)

    async def accept_multi_part(
        self,
        envelope: MessageEnvelope,
        history: Sequence[HistoryEntry] = (),
    ) -> Tuple[MessageEnvelope, DelayedResponse]:
        """
        Immediate provisional answer plus a DelayedResponse with the final one.

        Direct commands resolve the delayed response with the same reply.
        """
        reply = handle_direct_command(envelope.text)
        if reply is not None:
            response = MessageEnvelope.response(reply)
            delayed = DelayedResponse()
            delayed.resolve(response)
            return response, delayed

        return await self.coordinator.stream_multi_part(
            envelope,
            history,
            immediate=self._acknowledge,
            finalize=lambda outcome: self._finish(outcome, envelope.text),
            tools=self.tool_schemas(),
        )

    # ===== Lifecycle =====

    def active_sessions(self) -> List[MonitoringSession]:
        return self.sessions.active_sessions()

    async def stop_all(self) -> None:
        """Supersede every active session and wait for the monitors to stop"""
        await self.sessions.stop_all()

    async def close(self) -> None:
        await self.stop_all()
        await self.coordinator.close()


def _discard(envelope: MessageEnvelope) -> None:
    logger.debug(f"[Agent] No delivery callback; dropping {envelope.message_id}")
