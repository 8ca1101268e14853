"""
StackBuddy Tool Models - Data structures for LLM tool calling
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .payloads import ApiErrorPayload, ToolPayload, decode_payload


class ToolStatus(str, Enum):
    """Execution status of a tool name within one request"""
    EXECUTING = "executing"
    COMPLETED = "completed"
    ERROR = "error"


ToolHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass
class ToolDefinition:
    """
    A tool the completion backend may request.

    Attributes:
        name: Tool function name (used in LLM tool_calls)
        description: What this tool does (shown to the LLM)
        parameters: JSON Schema for tool arguments
        executor: Async function(args: dict) -> ApiResponse | dict | str
        risk_level: One of "read", "write", "destructive"
    """
    name: str
    description: str
    parameters: Dict[str, Any]
    executor: ToolHandler
    risk_level: str = "read"

    def to_openai_schema(self) -> Dict[str, Any]:
        """Convert to OpenAI function-calling tool schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ToolInvocation:
    """
    One tool call requested by the completion backend for a single turn

    Attributes:
        id: Call id from the backend
        tool_name: Tool name
        arguments: Parsed arguments dict
    """
    id: str
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_tool_call(cls, tool_call: Any) -> "ToolInvocation":
        """Build from an llm.ToolCall (or anything with id/name/arguments)"""
        return cls(
            id=tool_call.id,
            tool_name=tool_call.name,
            arguments=dict(tool_call.arguments or {}),
        )


@dataclass
class ToolResult:
    """
    Result of one ToolInvocation.

    ``payload`` is the decoded shape of ``response`` (or of the errors), so
    consumers never have to inspect raw data.
    """
    invocation_id: str
    tool_name: str
    is_success: bool
    response: Any = None
    error_items: Optional[List[str]] = None
    payload: Optional[ToolPayload] = None

    @classmethod
    def from_raw(cls, invocation: ToolInvocation, raw: Any) -> "ToolResult":
        """Normalize a handler's return value"""
        if hasattr(raw, "to_dict"):
            raw = raw.to_dict()
        payload = decode_payload(raw)
        if isinstance(payload, ApiErrorPayload):
            return cls(
                invocation_id=invocation.id,
                tool_name=invocation.tool_name,
                is_success=False,
                error_items=list(payload.error_items),
                payload=payload,
            )
        return cls(
            invocation_id=invocation.id,
            tool_name=invocation.tool_name,
            is_success=True,
            response=raw,
            payload=payload,
        )

    @classmethod
    def failure(cls, invocation: ToolInvocation, *error_items: str) -> "ToolResult":
        items = [str(item) for item in error_items]
        return cls(
            invocation_id=invocation.id,
            tool_name=invocation.tool_name,
            is_success=False,
            error_items=items,
            payload=ApiErrorPayload(error_items=tuple(items)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "invocationId": self.invocation_id,
            "toolName": self.tool_name,
            "isSuccess": self.is_success,
            "response": self.response,
            "errorItems": self.error_items,
        }
