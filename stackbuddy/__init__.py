"""
StackBuddy - A conversational assistant for managing online forms

StackBuddy streams completion-backend replies to a chat surface, runs the
forms tools the backend requests, and guarantees exactly one final response
per user request through a per-conversation completion monitor.

Quick Start:
    from stackbuddy import StackBuddy

    app = StackBuddy("config.yaml")
    reply = await app.chat("Give me an overview of form 12345")

Monitored turns:
    session = await app.handle_message(
        conversation_id, envelope, callbacks, get_history, get_unread, deliver
    )
    await session.wait_closed()
"""

__version__ = "0.1.0"

# Messages
from .models import ConversationTurn, MessageDirection, MessageEnvelope, MessagePayload

# Errors
from .errors import (
    ConfigError,
    FormsApiError,
    MonitorInternalError,
    StackBuddyError,
    StashError,
    StreamError,
    ToolInvocationError,
    UnknownToolError,
)

# Intent
from .intent import IntentParsingError, IntentResult, parse_intent

# Tools
from .tools import (
    ToolBatchRunner,
    ToolCatalog,
    ToolDefinition,
    ToolExecutor,
    ToolInvocation,
    ToolResult,
    ToolStatus,
    ToolStatusTracker,
)

# Streaming
from .streaming import DelayedResponse, StreamCallbacks, StreamingCoordinator

# Orchestrator
from .orchestrator import (
    AgentConfig,
    CompletionMonitor,
    FormsAgent,
    MonitorConfig,
    MonitoringSession,
    MonitorState,
    ResponseSynthesizer,
    SessionTable,
)

# LLM Clients
from .llm import LLMConfig, LLMResponse, OpenAIClient, StreamChunk

# Application Entry Point
from .app import StackBuddy

__all__ = [
    "__version__",
    # Messages
    "ConversationTurn",
    "MessageDirection",
    "MessageEnvelope",
    "MessagePayload",
    # Errors
    "ConfigError",
    "FormsApiError",
    "MonitorInternalError",
    "StackBuddyError",
    "StashError",
    "StreamError",
    "ToolInvocationError",
    "UnknownToolError",
    # Intent
    "IntentParsingError",
    "IntentResult",
    "parse_intent",
    # Tools
    "ToolBatchRunner",
    "ToolCatalog",
    "ToolDefinition",
    "ToolExecutor",
    "ToolInvocation",
    "ToolResult",
    "ToolStatus",
    "ToolStatusTracker",
    # Streaming
    "DelayedResponse",
    "StreamCallbacks",
    "StreamingCoordinator",
    # Orchestrator
    "AgentConfig",
    "CompletionMonitor",
    "FormsAgent",
    "MonitorConfig",
    "MonitoringSession",
    "MonitorState",
    "ResponseSynthesizer",
    "SessionTable",
    # LLM
    "LLMConfig",
    "LLMResponse",
    "OpenAIClient",
    "StreamChunk",
    # App
    "StackBuddy",
]
