"""Tests for stackbuddy.llm.openai_client - response and stream parsing"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from stackbuddy.llm import LLMConfig, OpenAIClient, StopReason


def _tool_delta(index, id=None, name=None, arguments=None):
    return SimpleNamespace(
        index=index,
        id=id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def _chunk(content=None, tool_calls=None, finish_reason=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)],
        usage=None,
    )


class _Stream:
    def __init__(self, chunks):
        self._chunks = list(chunks)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)


def _client_with(create_result):
    client = OpenAIClient(LLMConfig(api_key="sk-test"))
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(return_value=create_result)
    client._client = sdk
    return client, sdk


class TestKeys:

    def test_env_key_fallback(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIClient().config.api_key == "sk-env"

    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIClient(LLMConfig(api_key="sk-mine")).config.api_key == "sk-mine"


class TestChatCompletion:

    @pytest.mark.asyncio
    async def test_parses_message_and_tool_calls(self):
        message = SimpleNamespace(
            content=None,
            tool_calls=[SimpleNamespace(
                id="call_1",
                function=SimpleNamespace(name="fieldRemove", arguments='{"fieldId": "9"}'),
            )],
        )
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=message, finish_reason="tool_calls")],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
            model="gpt-4o",
        )
        client, sdk = _client_with(response)

        result = await client.chat_completion([{"role": "user", "content": "remove 9"}])

        assert result.content == ""
        assert result.stop_reason == StopReason.TOOL_USE
        assert result.tool_calls[0].arguments == {"fieldId": "9"}
        assert result.usage.total_tokens == 15
        params = sdk.chat.completions.create.call_args.kwargs
        assert params["model"] == "gpt-4o"
        assert "tools" not in params

    @pytest.mark.asyncio
    async def test_bad_arguments_become_empty(self):
        message = SimpleNamespace(
            content="",
            tool_calls=[SimpleNamespace(id="c", function=SimpleNamespace(name="x", arguments="{not json"))],
        )
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=message, finish_reason="tool_calls")],
            usage=None,
            model="gpt-4o",
        )
        client, _ = _client_with(response)
        result = await client.chat_completion([])
        assert result.tool_calls[0].arguments == {}


class TestStream:

    @pytest.mark.asyncio
    async def test_tool_call_fragments_assembled_on_final_chunk(self):
        stream = _Stream([
            _chunk(content="Checking"),
            _chunk(tool_calls=[_tool_delta(0, id="call_a", name="fsRestrictedApiFieldLogicRemove", arguments='{"form')]),
            _chunk(tool_calls=[_tool_delta(1, id="call_b", name="fieldRemove", arguments='{"fieldId":')]),
            _chunk(tool_calls=[_tool_delta(0, arguments='Id": "5"}')]),
            _chunk(tool_calls=[_tool_delta(1, arguments=' "9"}')]),
            _chunk(finish_reason="tool_calls"),
        ])
        client, sdk = _client_with(stream)
        tools = [{"type": "function", "function": {"name": "fieldRemove"}}]

        chunks = [c async for c in client.stream_completion([], tools=tools)]

        assert chunks[0].content == "Checking"
        assert all(c.tool_calls is None for c in chunks[:-1])
        final = chunks[-1]
        assert final.is_final is True
        assert [(tc.id, tc.name, tc.arguments) for tc in final.tool_calls] == [
            ("call_a", "fsRestrictedApiFieldLogicRemove", {"formId": "5"}),
            ("call_b", "fieldRemove", {"fieldId": "9"}),
        ]
        params = sdk.chat.completions.create.call_args.kwargs
        assert params["stream"] is True
        assert params["tool_choice"] == "auto"

    @pytest.mark.asyncio
    async def test_text_only_stream(self):
        stream = _Stream([_chunk(content="Hi"), _chunk(content=" there", finish_reason="stop")])
        client, _ = _client_with(stream)
        chunks = [c async for c in client.stream_completion([])]
        assert chunks[-1].accumulated_content == "Hi there"
        assert chunks[-1].tool_calls is None
        assert chunks[-1].stop_reason == StopReason.END_TURN
