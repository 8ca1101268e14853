"""
StackBuddy Orchestrator Module

Coordinates one conversation turn end to end:
- FormsAgent: facade over streaming, tools and monitoring
- SessionTable / MonitoringSession: per-conversation session state
- CompletionMonitor: delivers exactly one final response per request
- ResponseSynthesizer: final text from tool results
- AuditLogger: structured JSON audit trail

Quick Start:
    from stackbuddy.orchestrator import FormsAgent, AgentConfig

    agent = FormsAgent(llm_client, catalog, config=AgentConfig())
    session = await agent.handle_message(
        "conv-1", envelope, callbacks, get_history, get_unread, deliver
    )
    await session.wait_closed()
"""

from .agent import AgentConfig, FormsAgent
from .audit_logger import AuditLogger
from .commands import handle_direct_command
from .monitor import CompletionMonitor
from .session import (
    ConversationState,
    MonitorConfig,
    MonitoringSession,
    MonitorState,
    SessionTable,
    StateTransition,
)
from .synthesizer import ResponseSynthesizer, render_errors, render_overview

__all__ = [
    # Agent
    "AgentConfig",
    "FormsAgent",
    # Sessions
    "ConversationState",
    "MonitorConfig",
    "MonitoringSession",
    "MonitorState",
    "SessionTable",
    "StateTransition",
    # Monitor
    "CompletionMonitor",
    # Synthesis
    "ResponseSynthesizer",
    "render_errors",
    "render_overview",
    # Misc
    "AuditLogger",
    "handle_direct_command",
]
