"""
StackBuddy Tools - Tool calling system for the completion backend

Provides:
- ToolDefinition / ToolCatalog: Define and register tools with schemas
- ToolExecutor: Execute one tool, never raising
- ToolBatchRunner: Execute a turn's tool calls sequentially
- ToolStatusTracker: Executing / completed / error status per request
- decode_payload: Classify raw tool results into known payload variants
"""

from .models import (
    ToolStatus,
    ToolDefinition,
    ToolInvocation,
    ToolResult,
)
from .payloads import (
    EntityRef,
    FormOverviewPayload,
    ApiErrorPayload,
    ApiSuccessPayload,
    TextPayload,
    ToolPayload,
    decode_payload,
)
from .catalog import ToolCatalog
from .status import ToolStatusTracker
from .executor import ToolExecutor
from .batch import ToolBatchRunner

__all__ = [
    # Models
    "ToolStatus",
    "ToolDefinition",
    "ToolInvocation",
    "ToolResult",
    # Payloads
    "EntityRef",
    "FormOverviewPayload",
    "ApiErrorPayload",
    "ApiSuccessPayload",
    "TextPayload",
    "ToolPayload",
    "decode_payload",
    # Catalog / execution
    "ToolCatalog",
    "ToolStatusTracker",
    "ToolExecutor",
    "ToolBatchRunner",
]
