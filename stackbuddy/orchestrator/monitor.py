"""
StackBuddy Completion Monitor - Delivers exactly one final response per request

The monitor runs as its own task next to the stream/tool task of a session.
It wakes on the session's ``wakeup`` event (stream finished, tool result,
batch finished, supersession) and at least every ``poll_interval`` seconds.

Each tick, in order:
1. A newer unread user message supersedes the session (no final response).
2. Past the absolute ceiling the session times out; a timeout notice is
   delivered if no final response was sent yet.
3. A changed tool status is reported as an interim message (never the same
   text twice in a row).
4. When the work is done (or the no-tool ceiling passed) the final response
   is synthesized and delivered once.

After the final response the monitor keeps watching for superseding
messages until the absolute ceiling.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Tuple

from ..constants import MONITOR_FAILURE_MESSAGE, STREAM_ERROR_PREFIX, TIMEOUT_MESSAGE
from ..errors import MonitorInternalError
from ..models import MessageEnvelope
from ..protocols import DeliveryCallback, UnreadMessageQuery
from ..streaming.models import maybe_await
from .audit_logger import AuditLogger
from .session import MonitorConfig, MonitoringSession, MonitorState, StateTransition
from .synthesizer import ResponseSynthesizer

logger = logging.getLogger(__name__)

# Added to computed waits so the strict "elapsed > ceiling" check holds on wake
_WAKE_MARGIN = 0.01


class CompletionMonitor:
    """
    Polling state machine for one MonitoringSession.

    Usage:
        monitor = CompletionMonitor(session, synthesizer, get_unread, deliver)
        monitor.start()
        ...
        await session.wait_closed()

    ``tick()`` performs a single poll step and can be driven directly.
    """

    def __init__(
        self,
        session: MonitoringSession,
        synthesizer: ResponseSynthesizer,
        get_unread: Optional[UnreadMessageQuery],
        deliver: DeliveryCallback,
        config: Optional[MonitorConfig] = None,
        audit: Optional[AuditLogger] = None,
        on_closed: Optional[Callable[[MonitoringSession], None]] = None,
    ):
        self.session = session
        self.synthesizer = synthesizer
        self.get_unread = get_unread
        self.deliver = deliver
        self.config = config or MonitorConfig()
        self.audit = audit
        self.on_closed = on_closed
        session.on_transition = self._audit_transition

    # ===== Lifecycle =====

    def start(self) -> asyncio.Task:
        """IDLE -> ACTIVE and start the poll loop task"""
        if self.session.state == MonitorState.IDLE:
            self.session.transition(MonitorState.ACTIVE, "started")
        task = asyncio.create_task(self.run())
        self.session.timer = task
        return task

    async def run(self) -> None:
        try:
            while await self.tick():
                await self._wait()
        finally:
            self.session.mark_closed()
            if self.on_closed is not None:
                self.on_closed(self.session)
            logger.debug(
                f"[Monitor] {self.session.session_id} stopped in state {self.session.state.value}"
            )

    async def _wait(self) -> None:
        session = self.session
        elapsed = session.elapsed()
        timeout = min(self.config.poll_interval, self.config.session_timeout - elapsed)
        if session.state == MonitorState.ACTIVE and not session.tools_invoked and not session.stream_finished:
            timeout = min(timeout, self.config.no_tool_timeout - elapsed)
        timeout = max(timeout, 0.0) + _WAKE_MARGIN
        try:
            await asyncio.wait_for(session.wakeup.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass

    # ===== Poll step =====

    async def tick(self) -> bool:
        """
        Run one poll step.

        Returns:
            True if the monitor should keep polling
        """
        session = self.session
        if session.is_stopped:
            return False
        session.wakeup.clear()

        try:
            return await self._tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = MonitorInternalError(str(e))
            logger.error(f"[Monitor] Tick failed for {session.session_id}: {error}", exc_info=True)
            if not session.is_stopped:
                session.transition(MonitorState.TIMED_OUT, "internal_error")
            if not session.has_sent_final_response:
                session.has_sent_final_response = True
                await self._deliver(MONITOR_FAILURE_MESSAGE, "monitor_error")
            return False

    async def _tick(self) -> bool:
        session = self.session

        # 1. Superseding user messages
        unread = await self._fetch_unread()
        if session.is_stopped:
            return False
        if unread:
            session.read_message_ids.update(m.message_id for m in unread)
            session.transition(MonitorState.SUPERSEDED, "new_user_message")
            return False

        # 2. Absolute ceiling
        elapsed = session.elapsed()
        if elapsed > self.config.session_timeout:
            if session.has_sent_final_response:
                logger.debug(f"[Monitor] {session.session_id} reached ceiling after settling")
                return False
            text = await self._timeout_text()
            if session.is_stopped or session.has_sent_final_response:
                return False
            session.has_sent_final_response = True
            session.transition(MonitorState.TIMED_OUT, "session_timeout")
            await self._deliver(text, "timeout")
            return False

        if session.state == MonitorState.SETTLED:
            return True

        # 3. Interim status
        if self.config.emit_status_updates and not session.has_sent_final_response:
            status = session.tracker.describe()
            snapshot = session.tracker.snapshot()
            if status is not None and snapshot != session.last_status_snapshot:
                session.last_status_snapshot = snapshot
                if status != session.last_status_text:
                    session.last_status_text = status
                    await self._deliver_status(status)
                    if session.is_stopped:
                        return False

        # 4. Finalize
        reason = self._finalize_reason(elapsed)
        if reason is not None and not session.has_sent_final_response:
            text, source = await self._final_text()
            if session.is_stopped:
                return False
            if session.has_sent_final_response:
                return True
            session.has_sent_final_response = True
            session.transition(MonitorState.SETTLED, reason)
            await self._deliver(text, source)

        return True

    def _finalize_reason(self, elapsed: float) -> Optional[str]:
        session = self.session
        if session.tools_invoked:
            if session.batch_finished and session.tracker.is_settled():
                return "tools_settled"
            return None
        if session.stream_finished:
            return "stream_finished"
        if elapsed > self.config.no_tool_timeout:
            return "no_tool_timeout"
        return None

    # ===== Text =====

    async def _final_text(self) -> Tuple[str, str]:
        session = self.session
        user_text = session.trigger.text
        if session.tools_invoked:
            return await self.synthesizer.synthesize(session.tool_results, user_text), "tool_results"
        if session.stream_error is not None:
            return f"{STREAM_ERROR_PREFIX}{session.stream_error}", "stream_error"
        if session.stream_text.strip():
            return session.stream_text, "stream"
        return await self.synthesizer.synthesize([], user_text), "fallback"

    async def _timeout_text(self) -> str:
        session = self.session
        parts = [TIMEOUT_MESSAGE]
        if session.tool_results:
            parts.append(await self.synthesizer.synthesize(session.tool_results, session.trigger.text))
        elif session.stream_text.strip():
            parts.append(session.stream_text)
        return "\n\n".join(parts)

    # ===== Collaborators =====

    async def _fetch_unread(self) -> List[MessageEnvelope]:
        if self.get_unread is None:
            return []
        session = self.session
        messages = await maybe_await(self.get_unread(session.trigger_message_id))
        return [
            message for message in messages or []
            if message.is_request
            and message.message_id != session.trigger_message_id
            and message.message_id not in session.read_message_ids
        ]

    async def _send(self, envelope: MessageEnvelope) -> None:
        try:
            await maybe_await(self.deliver(envelope))
        except Exception as e:
            logger.error(f"[Monitor] Delivery failed for {envelope.message_id}: {e}", exc_info=True)

    async def _deliver(self, text: str, source: str) -> None:
        session = self.session
        envelope = MessageEnvelope.response(text)
        session.final_envelope = envelope
        await self._send(envelope)
        if self.audit is not None:
            self.audit.log_final_delivery(
                conversation_id=session.conversation_id,
                session_id=session.session_id,
                message_id=envelope.message_id,
                source=source,
                tool_count=len(session.tool_results),
            )

    async def _deliver_status(self, status: str) -> None:
        session = self.session
        logger.info(f"[Monitor] {session.session_id} status: {status}")
        await self._send(MessageEnvelope.response(status))
        if self.audit is not None:
            self.audit.log_status_update(
                conversation_id=session.conversation_id,
                session_id=session.session_id,
                status=status,
            )

    def _audit_transition(self, session: MonitoringSession, change: StateTransition) -> None:
        if self.audit is None:
            return
        self.audit.log_monitor_transition(
            conversation_id=session.conversation_id,
            session_id=session.session_id,
            from_state=change.from_state.value,
            to_state=change.to_state.value,
            reason=change.reason,
            elapsed_s=change.elapsed,
        )
