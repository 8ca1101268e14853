"""Shared fixtures: scripted completion backend and a manual clock"""

from typing import Any, Dict, List, Optional

import pytest

from stackbuddy.llm.base import LLMResponse, StreamChunk, ToolCall


class FakeLLMClient:
    """
    Completion backend driven by scripts.

    Each stream_completion() call consumes the next entry of ``streams``: a
    list of StreamChunk objects, or an Exception raised after the chunks
    before it were yielded.
    """

    def __init__(self, streams=None, reply: str = "How can I help with your forms?"):
        self.streams: List[List[Any]] = list(streams or [])
        self.reply = reply
        self.chat_calls: List[Dict[str, Any]] = []
        self.stream_calls: List[Dict[str, Any]] = []

    async def chat_completion(self, messages, tools=None, config=None, **kwargs):
        self.chat_calls.append({"messages": messages, "tools": tools, "config": config})
        if isinstance(self.reply, Exception):
            raise self.reply
        return LLMResponse(content=self.reply)

    async def stream_completion(self, messages, tools=None, config=None, **kwargs):
        self.stream_calls.append({"messages": messages, "tools": tools, "config": config})
        script = self.streams.pop(0) if self.streams else [StreamChunk(content="", is_final=True)]
        for item in script:
            if isinstance(item, Exception):
                raise item
            yield item


def text_stream(*parts: str) -> List[StreamChunk]:
    chunks = [StreamChunk(content=part) for part in parts]
    chunks.append(StreamChunk(is_final=True))
    return chunks


def tool_stream(*calls: ToolCall, text: str = "") -> List[StreamChunk]:
    chunks = [StreamChunk(content=text)] if text else []
    chunks.append(StreamChunk(tool_calls=list(calls), is_final=True))
    return chunks


class ManualClock:
    """Monotonic clock advanced by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def clock():
    return ManualClock()
