"""
StackBuddy LLM Module - Completion backend clients

Example:
    from stackbuddy.llm import OpenAIClient

    client = OpenAIClient(model="gpt-4o")
    response = await client.chat_completion([{"role": "user", "content": "Hello!"}])
"""

from .base import (
    BaseLLMClient,
    LLMConfig,
    LLMResponse,
    StreamChunk,
    ToolCall,
    Usage,
    StopReason,
)
from .openai_client import OpenAIClient

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "LLMResponse",
    "StreamChunk",
    "ToolCall",
    "Usage",
    "StopReason",
    "OpenAIClient",
]
