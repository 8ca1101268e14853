"""Tests for stackbuddy.llm.base - BaseLLMClient shared logic"""

import pytest

from stackbuddy.llm.base import (
    BaseLLMClient,
    LLMConfig,
    LLMResponse,
    StreamChunk,
    ToolCall,
)
from stackbuddy.tools.models import ToolDefinition


# ── Concrete subclass for testing (abstract methods stubbed) ──


class StubLLMClient(BaseLLMClient):
    provider = "stub"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    async def _call_api(self, messages, tools=None, **kwargs):
        self.calls.append({"messages": messages, "tools": tools, "kwargs": kwargs})
        return LLMResponse(content="stub")

    async def _stream_api(self, messages, tools=None, **kwargs):
        self.calls.append({"messages": messages, "tools": tools, "kwargs": kwargs})
        yield StreamChunk(content="Hel")
        yield StreamChunk(content="lo")
        yield StreamChunk(is_final=True, tool_calls=[ToolCall(id="c1", name="ping", arguments={})])


async def _noop(args):
    return None


@pytest.fixture
def client():
    return StubLLMClient(model="gpt-4o")


# =========================================================================
# Config
# =========================================================================


class TestConfig:

    def test_kwargs_build_config(self):
        client = StubLLMClient(model="gpt-4o-mini", max_tokens=200)
        assert client.config.model == "gpt-4o-mini"
        assert client.config.max_tokens == 200

    def test_kwargs_override_config(self):
        client = StubLLMClient(LLMConfig(model="a"), model="b")
        assert client.config.model == "b"

    def test_override_leaves_given_config_untouched(self):
        config = LLMConfig(model="a", max_tokens=50)
        client = StubLLMClient(config, model="b")
        assert config.model == "a"
        assert client.config.max_tokens == 50

    def test_unknown_setting_rejected(self):
        with pytest.raises(TypeError, match="temprature"):
            StubLLMClient(LLMConfig(), temprature=0.1)

    def test_defaults(self):
        config = LLMConfig()
        assert config.model == "gpt-4o"
        assert config.max_tokens == 1024
        assert config.to_dict() == {"model": "gpt-4o", "temperature": 0.7, "max_tokens": 1024}


# =========================================================================
# chat_completion / stream_completion
# =========================================================================


class TestCompletion:

    @pytest.mark.asyncio
    async def test_config_overrides_become_kwargs(self, client):
        await client.chat_completion([{"role": "user", "content": "hi"}], config={"max_tokens": 10})
        assert client.calls[0]["kwargs"] == {"max_tokens": 10}

    @pytest.mark.asyncio
    async def test_tool_definitions_formatted(self, client):
        tool = ToolDefinition(name="ping", description="Ping", parameters={"type": "object"}, executor=_noop)
        await client.chat_completion([], tools=[tool, {"type": "function", "function": {"name": "raw"}}])
        tools = client.calls[0]["tools"]
        assert tools[0] == {
            "type": "function",
            "function": {"name": "ping", "description": "Ping", "parameters": {"type": "object"}},
        }
        assert tools[1]["function"]["name"] == "raw"

    @pytest.mark.asyncio
    async def test_empty_tools_sent_as_none(self, client):
        await client.chat_completion([], tools=[])
        assert client.calls[0]["tools"] is None

    @pytest.mark.asyncio
    async def test_stream_accumulates_content(self, client):
        chunks = [chunk async for chunk in client.stream_completion([])]
        assert [c.accumulated_content for c in chunks] == ["Hel", "Hello", "Hello"]
        assert chunks[-1].is_final is True
        assert chunks[-1].tool_calls[0].name == "ping"

    def test_response_has_tool_calls(self):
        assert LLMResponse(content="").has_tool_calls is False
        assert LLMResponse(content="", tool_calls=[ToolCall("1", "x", {})]).has_tool_calls is True
