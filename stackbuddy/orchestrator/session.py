"""
StackBuddy Sessions - Per-conversation monitoring state

This module provides:
- MonitorConfig: timing of the completion monitor
- MonitoringSession: mutable state of one triggering message
- ConversationState: what outlives a session (read message ids, active session)
- SessionTable: one active session per conversation id

Conversation isolation:
- Every conversation id has its own ConversationState
- Opening a session supersedes the conversation's previous one
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from ..constants import (
    DEFAULT_NO_TOOL_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SESSION_TIMEOUT,
)
from ..errors import ConfigError
from ..models import MessageEnvelope
from ..tools.models import ToolResult
from ..tools.status import ToolStatusTracker

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class MonitorState(str, Enum):
    """Completion monitor states"""
    IDLE = "idle"
    ACTIVE = "active"
    SUPERSEDED = "superseded"   # a newer user message won
    SETTLED = "settled"         # final response delivered
    TIMED_OUT = "timed_out"     # absolute ceiling reached (or internal failure)


# States after which the monitor stops polling
STOPPED_STATES = frozenset({MonitorState.SUPERSEDED, MonitorState.TIMED_OUT})


@dataclass
class MonitorConfig:
    """
    Configuration for the completion monitor.

    Attributes:
        poll_interval: Seconds between poll ticks when nothing signals
        no_tool_timeout: Finalize after this long when no tools were invoked
        session_timeout: Absolute ceiling for one session
        emit_status_updates: Send interim tool status messages
    """
    poll_interval: float = DEFAULT_POLL_INTERVAL
    no_tool_timeout: float = DEFAULT_NO_TOOL_TIMEOUT
    session_timeout: float = DEFAULT_SESSION_TIMEOUT
    emit_status_updates: bool = True

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ConfigError("monitor.poll_interval must be positive")
        if self.no_tool_timeout <= 0 or self.session_timeout <= 0:
            raise ConfigError("monitor timeouts must be positive")
        if self.no_tool_timeout > self.session_timeout:
            raise ConfigError("monitor.no_tool_timeout cannot exceed monitor.session_timeout")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitorConfig":
        """Create from dictionary"""
        return cls(
            poll_interval=float(data.get("poll_interval", DEFAULT_POLL_INTERVAL)),
            no_tool_timeout=float(data.get("no_tool_timeout", DEFAULT_NO_TOOL_TIMEOUT)),
            session_timeout=float(data.get("session_timeout", DEFAULT_SESSION_TIMEOUT)),
            emit_status_updates=bool(data.get("emit_status_updates", True)),
        )


@dataclass
class StateTransition:
    from_state: MonitorState
    to_state: MonitorState
    reason: str
    elapsed: float


class MonitoringSession:
    """
    State of one triggering user message while its answer is produced.

    The stream/tool task records progress here and calls ``signal()``; the
    monitor task waits on ``wakeup`` and reads the same fields. Both run on
    one event loop, so plain attribute updates need no locking.
    """

    def __init__(
        self,
        conversation_id: str,
        trigger: MessageEnvelope,
        read_message_ids: Set[str],
        clock: Clock = time.monotonic,
    ):
        self.session_id = uuid.uuid4().hex[:12]
        self.conversation_id = conversation_id
        self.trigger = trigger
        # Owned by this session; a superseded session's late tool updates land here
        self.tracker = ToolStatusTracker()
        self.read_message_ids = read_message_ids
        self.clock = clock
        self.started_at = clock()

        self.state = MonitorState.IDLE
        self.transitions: List[StateTransition] = []
        self.on_transition: Optional[Callable[["MonitoringSession", StateTransition], None]] = None

        self.has_sent_final_response = False
        self.final_envelope: Optional[MessageEnvelope] = None
        self.last_status_snapshot: Optional[tuple] = None
        self.last_status_text: Optional[str] = None

        # Progress of the stream / tool task
        self.stream_finished = False
        self.stream_text = ""
        self.stream_error: Optional[BaseException] = None
        self.tools_invoked = False
        self.batch_finished = False
        # Per-request result buffer, filled by the batch runner's on_result hook
        self.tool_results: List[ToolResult] = []

        self.wakeup = asyncio.Event()
        self.timer: Optional[asyncio.Task] = None
        self._closed = asyncio.Event()

    @property
    def trigger_message_id(self) -> str:
        return self.trigger.message_id

    @property
    def is_stopped(self) -> bool:
        return self.state in STOPPED_STATES

    @property
    def is_superseded(self) -> bool:
        return self.state == MonitorState.SUPERSEDED

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def elapsed(self) -> float:
        return self.clock() - self.started_at

    def transition(self, to_state: MonitorState, reason: str) -> None:
        change = StateTransition(self.state, to_state, reason, self.elapsed())
        self.state = to_state
        self.transitions.append(change)
        logger.info(
            f"[Monitor] {self.conversation_id}/{self.session_id}: "
            f"{change.from_state.value} -> {to_state.value} ({reason}, {change.elapsed:.1f}s)"
        )
        if self.on_transition is not None:
            try:
                self.on_transition(self, change)
            except Exception as e:
                logger.warning(f"[Monitor] Transition hook error: {e}", exc_info=True)

    def signal(self) -> None:
        """Wake the monitor so it re-evaluates immediately"""
        self.wakeup.set()

    # ===== Progress recorded by the stream / tool task =====

    def record_stream_finished(
        self,
        text: str,
        tool_count: int = 0,
        error: Optional[BaseException] = None,
    ) -> None:
        self.stream_text = text or ""
        self.stream_error = error
        self.tools_invoked = tool_count > 0
        self.stream_finished = True
        self.signal()

    def record_tool_result(self, result: ToolResult) -> None:
        self.tool_results.append(result)
        self.signal()

    def record_batch_finished(self, results: List[ToolResult]) -> None:
        self.tool_results = list(results)
        self.batch_finished = True
        self.signal()

    def should_continue(self) -> bool:
        """False once the session has been superseded or timed out"""
        return not self.is_stopped

    def supersede(self, reason: str = "new_user_message") -> bool:
        """Stop this session in favour of a newer request"""
        if self.is_stopped:
            return False
        self.transition(MonitorState.SUPERSEDED, reason)
        self.signal()
        return True

    # ===== Lifecycle =====

    def mark_closed(self) -> None:
        self.timer = None
        self._closed.set()

    async def wait_closed(self) -> None:
        """Resolve once the monitor for this session has stopped"""
        await self._closed.wait()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "conversation_id": self.conversation_id,
            "trigger_message_id": self.trigger_message_id,
            "state": self.state.value,
            "elapsed": round(self.elapsed(), 3),
            "has_sent_final_response": self.has_sent_final_response,
            "tools_invoked": self.tools_invoked,
            "tool_status": self.tracker.to_dict(),
        }


@dataclass
class ConversationState:
    """State shared by successive sessions of one conversation"""
    conversation_id: str
    read_message_ids: Set[str] = field(default_factory=set)
    active_session: Optional[MonitoringSession] = None


class SessionTable:
    """
    Explicit table of per-conversation state.

    Only one session per conversation id is active at a time: opening a new
    one supersedes the previous session. Each session starts with an empty
    tool status tracker of its own.

    Usage:
        table = SessionTable()
        session = table.open("conv-1", envelope)
        ...
        table.release(session)
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._conversations: Dict[str, ConversationState] = {}
        self.clock = clock

    def get(self, conversation_id: str) -> Optional[ConversationState]:
        return self._conversations.get(conversation_id)

    def state_for(self, conversation_id: str) -> ConversationState:
        state = self._conversations.get(conversation_id)
        if state is None:
            state = ConversationState(conversation_id=conversation_id)
            self._conversations[conversation_id] = state
        return state

    def open(self, conversation_id: str, trigger: MessageEnvelope) -> MonitoringSession:
        """Create the conversation's new active session, superseding the old one"""
        state = self.state_for(conversation_id)
        previous = state.active_session
        if previous is not None and not previous.is_closed:
            previous.supersede("new_request")

        state.read_message_ids.add(trigger.message_id)
        session = MonitoringSession(
            conversation_id=conversation_id,
            trigger=trigger,
            read_message_ids=state.read_message_ids,
            clock=self.clock,
        )
        state.active_session = session
        logger.debug(f"[Monitor] Opened session {session.session_id} for {conversation_id}")
        return session

    def active(self, conversation_id: str) -> Optional[MonitoringSession]:
        state = self._conversations.get(conversation_id)
        return state.active_session if state else None

    def release(self, session: MonitoringSession) -> None:
        """Forget the session if it is still the conversation's active one"""
        state = self._conversations.get(session.conversation_id)
        if state is not None and state.active_session is session:
            state.active_session = None

    def active_sessions(self) -> List[MonitoringSession]:
        return [
            state.active_session
            for state in self._conversations.values()
            if state.active_session is not None
        ]

    def remove(self, conversation_id: str) -> None:
        state = self._conversations.pop(conversation_id, None)
        if state is not None and state.active_session is not None:
            state.active_session.supersede("conversation_removed")

    async def stop_all(self) -> None:
        """Supersede every active session and wait for their monitors to stop"""
        sessions = self.active_sessions()
        for session in sessions:
            session.supersede("shutdown")
        timers = [s.timer for s in sessions if s.timer is not None]
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

    def __len__(self) -> int:
        return len(self._conversations)
