"""
StackBuddy LLM Base - the completion backend contract

The agent only ever talks to a backend through BaseLLMClient. A backend
turns an OpenAI-style message list plus tool schemas into either one
LLMResponse or a stream of StreamChunk objects. Tool calls are never
reported half-built: a streamed turn carries them on its final chunk.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from ..tools.models import ToolDefinition


class StopReason(str, Enum):
    """Why a backend ended its turn"""
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    TOOL_USE = "tool_use"


@dataclass
class LLMConfig:
    """
    Connection and sampling settings for a backend.

    Only ``model``, ``temperature`` and ``max_tokens`` travel with each
    request (see ``to_dict``); the rest configure the SDK client itself.
    ``default_headers`` are added to every HTTP request the SDK makes.
    """
    api_key: Optional[str] = None
    model: str = "gpt-4o"
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout: int = 60
    max_retries: int = 2
    default_headers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Per-request sampling parameters"""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


@dataclass
class ToolCall:
    """One function call the model asked for, arguments already decoded"""
    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    """A complete assistant turn from a non-streaming call"""
    content: str
    tool_calls: Optional[List[ToolCall]] = None
    stop_reason: StopReason = StopReason.END_TURN
    usage: Optional[Usage] = None
    model: Optional[str] = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class StreamChunk:
    """
    One piece of a streamed assistant turn.

    ``content`` is only the new text. ``accumulated_content`` is filled in
    by ``BaseLLMClient.stream_completion`` with everything seen so far.
    ``tool_calls``, ``stop_reason`` and ``usage`` are set on the chunk
    whose ``is_final`` is True.
    """
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None
    is_final: bool = False
    stop_reason: Optional[StopReason] = None
    usage: Optional[Usage] = None
    accumulated_content: str = ""


_CONFIG_FIELDS = frozenset(f.name for f in fields(LLMConfig))


class BaseLLMClient(ABC):
    """
    Shared front half of every backend.

    Subclasses provide ``_call_api`` and ``_stream_api``. This class turns
    ToolDefinition objects into wire schemas, folds per-call config
    overrides into the backend kwargs and keeps the running text of a
    stream.

    Settings can come as an LLMConfig, as keyword arguments, or both; a
    keyword wins over the matching field of the given config, and the
    caller's config object is left untouched.
    """

    provider: str = "unknown"

    def __init__(self, config: Optional[LLMConfig] = None, **overrides):
        unknown = set(overrides) - _CONFIG_FIELDS
        if unknown:
            raise TypeError(f"Unknown LLM settings: {', '.join(sorted(unknown))}")
        self.config = replace(config or LLMConfig(), **overrides)
        # SDK client, created on first use by the subclass
        self._client = None

    @abstractmethod
    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMResponse:
        ...

    @abstractmethod
    def _stream_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        ...

    def _tool_schemas(
        self,
        tools: Optional[List[Union[Dict[str, Any], ToolDefinition]]],
    ) -> Optional[List[Dict[str, Any]]]:
        # Backends treat None as "no tools offered"
        if not tools:
            return None
        return [
            self._format_tool(tool) if isinstance(tool, ToolDefinition) else tool
            for tool in tools
        ]

    @staticmethod
    def _request_kwargs(config: Optional[Dict[str, Any]], kwargs: Dict[str, Any]) -> Dict[str, Any]:
        return {**kwargs, **(config or {})}

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Union[Dict[str, Any], ToolDefinition]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Run one non-streaming turn.

        ``tools`` may mix ToolDefinition objects and ready-made schema dicts.
        Entries in ``config`` take precedence over plain keyword arguments.
        """
        return await self._call_api(
            messages, self._tool_schemas(tools), **self._request_kwargs(config, kwargs)
        )

    async def stream_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Union[Dict[str, Any], ToolDefinition]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        """Run one streaming turn, yielding chunks in the order the backend sends them"""
        text = ""
        stream = self._stream_api(
            messages, self._tool_schemas(tools), **self._request_kwargs(config, kwargs)
        )
        async for chunk in stream:
            text += chunk.content
            chunk.accumulated_content = text
            yield chunk

    def _format_tool(self, tool: ToolDefinition) -> Dict[str, Any]:
        return tool.to_openai_schema()

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None
