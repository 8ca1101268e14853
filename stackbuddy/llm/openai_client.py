"""
StackBuddy OpenAI Client - Completion backend over the OpenAI chat API

Supports:
- GPT-4o, GPT-4 Turbo and other chat models
- Any OpenAI-compatible API (Azure, vLLM, etc.) via base_url
"""

import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional

from openai import AsyncOpenAI

from .base import (
    BaseLLMClient, LLMConfig, LLMResponse, StreamChunk,
    ToolCall, Usage, StopReason
)

logger = logging.getLogger(__name__)


def _parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"[LLM] Discarding unparseable tool arguments: {raw[:200]}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIClient(BaseLLMClient):
    """
    OpenAI API client.

    Example:
        client = OpenAIClient(api_key="sk-xxx", model="gpt-4o")
        response = await client.chat_completion([
            {"role": "user", "content": "Hello!"}
        ])

        async for chunk in client.stream_completion(messages, tools=schemas):
            print(chunk.content, end="")
    """

    provider = "openai"

    def __init__(self, config: Optional[LLMConfig] = None, **kwargs):
        """
        Initialize OpenAI client.

        Args:
            config: LLMConfig instance
            api_key: OpenAI API key (or set OPENAI_API_KEY env var)
            model: Model name (default: gpt-4o)
            base_url: Optional base URL for API
        """
        if config is None and "api_key" not in kwargs:
            kwargs["api_key"] = os.environ.get("OPENAI_API_KEY")
        if config is not None and not config.api_key:
            config.api_key = os.environ.get("OPENAI_API_KEY")

        super().__init__(config, **kwargs)

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the OpenAI client"""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=self.config.max_retries,
                default_headers=self.config.default_headers or None,
            )
        return self._client

    def _build_params(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]],
        stream: bool,
        **kwargs
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "messages": messages,
            "temperature": kwargs.get("temperature", self.config.temperature),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
        }
        if stream:
            params["stream"] = True
            params["stream_options"] = {"include_usage": True}
        if tools:
            params["tools"] = tools
            params["tool_choice"] = kwargs.get("tool_choice", "auto")
        if "stop" in kwargs:
            params["stop"] = kwargs["stop"]
        return params

    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMResponse:
        """Make OpenAI API call"""
        client = self._get_client()
        response = await client.chat.completions.create(
            **self._build_params(messages, tools, stream=False, **kwargs)
        )

        choice = response.choices[0]
        message = choice.message

        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=_parse_arguments(tc.function.arguments),
                )
                for tc in message.tool_calls
            ]

        usage = None
        if response.usage:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return LLMResponse(
            content=message.content or "",
            tool_calls=tool_calls,
            stop_reason=self._parse_stop_reason(choice.finish_reason),
            usage=usage,
            model=response.model,
        )

    async def _stream_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        """Make streaming OpenAI API call"""
        client = self._get_client()
        stream = await client.chat.completions.create(
            **self._build_params(messages, tools, stream=True, **kwargs)
        )

        # Tool call deltas arrive in fragments keyed by index
        tool_call_deltas: Dict[int, Dict[str, str]] = {}

        async for chunk in stream:
            if not chunk.choices:
                if chunk.usage:
                    yield StreamChunk(
                        usage=Usage(
                            prompt_tokens=chunk.usage.prompt_tokens,
                            completion_tokens=chunk.usage.completion_tokens,
                            total_tokens=chunk.usage.total_tokens,
                        ),
                    )
                continue

            choice = chunk.choices[0]
            delta = choice.delta

            if delta.tool_calls:
                for tc_delta in delta.tool_calls:
                    entry = tool_call_deltas.setdefault(
                        tc_delta.index, {"id": "", "name": "", "arguments": ""}
                    )
                    if tc_delta.id:
                        entry["id"] = tc_delta.id
                    if tc_delta.function:
                        if tc_delta.function.name:
                            entry["name"] = tc_delta.function.name
                        if tc_delta.function.arguments:
                            entry["arguments"] += tc_delta.function.arguments

            is_final = choice.finish_reason is not None
            tool_calls = None
            stop_reason = None
            if is_final:
                stop_reason = self._parse_stop_reason(choice.finish_reason)
                if tool_call_deltas:
                    tool_calls = [
                        ToolCall(
                            id=tc["id"],
                            name=tc["name"],
                            arguments=_parse_arguments(tc["arguments"]),
                        )
                        for _, tc in sorted(tool_call_deltas.items())
                    ]

            yield StreamChunk(
                content=delta.content or "",
                tool_calls=tool_calls,
                is_final=is_final,
                stop_reason=stop_reason,
            )

    def _parse_stop_reason(self, finish_reason: Optional[str]) -> StopReason:
        """Parse OpenAI finish_reason to StopReason"""
        mapping = {
            "stop": StopReason.END_TURN,
            "length": StopReason.MAX_TOKENS,
            "tool_calls": StopReason.TOOL_USE,
            "content_filter": StopReason.END_TURN,
            "function_call": StopReason.TOOL_USE,  # Legacy
        }
        return mapping.get(finish_reason or "stop", StopReason.END_TURN)
