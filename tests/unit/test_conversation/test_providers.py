"""Unit tests for toolagent.conversation.providers."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    RateLimitError,
)

from toolagent.config import Settings
from toolagent.conversation.providers import (
    LLMAPIError,
    LLMConnectionError,
    LLMProvider,
    LLMRateLimitError,
    LLMTimeoutError,
    OpenAICompatibleProvider,
    StreamDelta,
    ToolCallFragment,
    ToolDefinition,
    delta_from_completion,
    deltas_from_chunk,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_REQUEST = httpx.Request("POST", "http://localhost/v1/chat/completions")


def _chunk(
    content: str | None = None,
    tool_calls: list[Any] | None = None,
    finish_reason: str | None = None,
    **extra: Any,
) -> SimpleNamespace:
    delta = SimpleNamespace(content=content, tool_calls=tool_calls, **extra)
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)]
    )


def _tc(index: int, id: str | None = None, name: str | None = None, arguments: str | None = None):
    return SimpleNamespace(
        index=index,
        id=id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


async def _aiter(items):
    for item in items:
        yield item


def _make_provider(**kwargs: Any) -> tuple[OpenAICompatibleProvider, MagicMock]:
    with patch("toolagent.conversation.providers.AsyncOpenAI") as client_cls:
        provider = OpenAICompatibleProvider(**kwargs)
    client = client_cls.return_value
    client.chat.completions.create = AsyncMock()
    return provider, client


async def _collect(provider: OpenAICompatibleProvider) -> list[StreamDelta]:
    return [d async for d in provider.stream([{"role": "user", "content": "hi"}], [])]


_WEATHER_DEF = ToolDefinition(
    name="get_weather",
    description="Get weather",
    parameters={"type": "object", "properties": {}},
)


# ---------------------------------------------------------------------------
# ToolDefinition
# ---------------------------------------------------------------------------


def test_tool_definition_openai_format() -> None:
    assert _WEATHER_DEF.to_openai_format() == {
        "type": "function",
        "function": {
            "name": "get_weather",
            "description": "Get weather",
            "parameters": {"type": "object", "properties": {}},
        },
    }


# ---------------------------------------------------------------------------
# Chunk normalisation
# ---------------------------------------------------------------------------


def test_content_chunk() -> None:
    [delta] = deltas_from_chunk(_chunk(content="Hello"))
    assert delta == StreamDelta(content="Hello")


def test_reasoning_content_field() -> None:
    [delta] = deltas_from_chunk(_chunk(reasoning_content="thinking..."))
    assert delta.reasoning == "thinking..."
    assert delta.content is None


def test_reasoning_field_fallback() -> None:
    [delta] = deltas_from_chunk(_chunk(reasoning="hmm"))
    assert delta.reasoning == "hmm"


def test_tool_call_fragments() -> None:
    chunk = _chunk(
        tool_calls=[
            _tc(0, id="call_1", name="get_weather", arguments=""),
            _tc(0, arguments='{"location":'),
        ]
    )

    [delta] = deltas_from_chunk(chunk)

    assert delta.tool_calls == [
        ToolCallFragment(id="call_1", index=0, name="get_weather", arguments=""),
        ToolCallFragment(id=None, index=0, name=None, arguments='{"location":'),
    ]


def test_empty_id_is_treated_as_absent() -> None:
    [delta] = deltas_from_chunk(_chunk(tool_calls=[_tc(0, id="", arguments="x")]))
    assert delta.tool_calls[0].id is None


def test_finish_reason_chunk() -> None:
    [delta] = deltas_from_chunk(_chunk(finish_reason="tool_calls"))
    assert delta.finish_reason == "tool_calls"


def test_chunk_without_choices() -> None:
    assert deltas_from_chunk(SimpleNamespace(choices=[])) == []


def test_completion_becomes_single_delta() -> None:
    message = SimpleNamespace(
        content=None,
        tool_calls=[
            SimpleNamespace(
                id="a",
                function=SimpleNamespace(name="get_weather", arguments='{"location":"北京"}'),
            ),
            SimpleNamespace(
                id="b",
                function=SimpleNamespace(name="get_weather", arguments='{"location":"郑州"}'),
            ),
        ],
    )
    completion = SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason="tool_calls")]
    )

    delta = delta_from_completion(completion)

    assert delta.finish_reason == "tool_calls"
    assert [(f.id, f.index) for f in delta.tool_calls] == [("a", 0), ("b", 1)]


def test_completion_without_choices_is_empty_stop() -> None:
    assert delta_from_completion(SimpleNamespace(choices=[])) == StreamDelta(
        finish_reason="stop"
    )


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


def test_provider_satisfies_protocol() -> None:
    provider, _ = _make_provider()
    assert isinstance(provider, LLMProvider)


def test_build_request_minimal() -> None:
    provider, _ = _make_provider(model="glm-4.7")

    kwargs = provider.build_request([{"role": "user", "content": "hi"}], [])

    assert kwargs == {
        "model": "glm-4.7",
        "messages": [{"role": "user", "content": "hi"}],
        "stream": True,
    }


def test_build_request_with_tools_and_extras() -> None:
    provider, _ = _make_provider(
        extra_body={"thinking": {"type": "enabled"}},
        temperature=0.2,
        streaming=False,
    )

    kwargs = provider.build_request([], [_WEATHER_DEF])

    assert kwargs["tools"] == [_WEATHER_DEF.to_openai_format()]
    assert kwargs["temperature"] == 0.2
    assert kwargs["extra_body"] == {"thinking": {"type": "enabled"}}
    assert kwargs["stream"] is False


def test_from_settings() -> None:
    settings = Settings(
        host="localhost",
        port=11434,
        base_path="/v1",
        scheme="http",
        model="qwen3",
        api_key="sk-test",
        timeout=12.0,
        stream=False,
        _env_file=None,
    )
    with patch("toolagent.conversation.providers.AsyncOpenAI") as client_cls:
        provider = OpenAICompatibleProvider.from_settings(settings)

    assert provider.base_url == "http://localhost:11434/v1"
    assert provider.model == "qwen3"
    assert provider.streaming is False
    client_cls.assert_called_once_with(
        base_url="http://localhost:11434/v1", api_key="sk-test", timeout=12.0
    )


def test_from_settings_base_url_override() -> None:
    with patch("toolagent.conversation.providers.AsyncOpenAI"):
        provider = OpenAICompatibleProvider.from_settings(
            Settings(_env_file=None), base_url="http://proxy:8080/v1"
        )
    assert provider.base_url == "http://proxy:8080/v1"


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_stream_yields_deltas_in_order() -> None:
    provider, client = _make_provider()
    client.chat.completions.create.return_value = _aiter(
        [_chunk(content="Hel"), _chunk(content="lo"), _chunk(finish_reason="stop")]
    )

    deltas = await _collect(provider)

    assert [d.content for d in deltas] == ["Hel", "lo", None]
    assert deltas[-1].finish_reason == "stop"
    client.chat.completions.create.assert_awaited_once()


@pytest.mark.anyio
async def test_non_streaming_yields_one_delta() -> None:
    provider, client = _make_provider(streaming=False)
    message = SimpleNamespace(content="Hi there", tool_calls=None)
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason="stop")]
    )

    deltas = await _collect(provider)

    assert deltas == [StreamDelta(content="Hi there", finish_reason="stop")]


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_rate_limit_error_mapped() -> None:
    provider, client = _make_provider()
    client.chat.completions.create.side_effect = RateLimitError(
        "slow down", response=httpx.Response(429, request=_REQUEST), body=None
    )

    with pytest.raises(LLMRateLimitError):
        await _collect(provider)


@pytest.mark.anyio
async def test_timeout_error_mapped() -> None:
    provider, client = _make_provider(timeout=5.0)
    client.chat.completions.create.side_effect = APITimeoutError(request=_REQUEST)

    with pytest.raises(LLMTimeoutError, match="5.0s"):
        await _collect(provider)


@pytest.mark.anyio
async def test_timeout_is_a_connection_error() -> None:
    provider, client = _make_provider()
    client.chat.completions.create.side_effect = APITimeoutError(request=_REQUEST)

    with pytest.raises(LLMConnectionError):
        await _collect(provider)


@pytest.mark.anyio
async def test_connection_error_mapped() -> None:
    provider, client = _make_provider()
    client.chat.completions.create.side_effect = APIConnectionError(request=_REQUEST)

    with pytest.raises(LLMConnectionError):
        await _collect(provider)


@pytest.mark.anyio
async def test_status_error_mapped_with_code() -> None:
    provider, client = _make_provider()
    client.chat.completions.create.side_effect = APIStatusError(
        "unauthorized", response=httpx.Response(401, request=_REQUEST), body=None
    )

    with pytest.raises(LLMAPIError) as excinfo:
        await _collect(provider)
    assert excinfo.value.status_code == 401


@pytest.mark.anyio
async def test_error_during_iteration_is_mapped() -> None:
    async def _broken():
        yield _chunk(content="partial")
        raise APIConnectionError(request=_REQUEST)

    provider, client = _make_provider()
    client.chat.completions.create.return_value = _broken()

    received = []
    with pytest.raises(LLMConnectionError):
        async for delta in provider.stream([], []):
            received.append(delta)
    assert [d.content for d in received] == ["partial"]


@pytest.mark.anyio
async def test_stream_error_event_mapped() -> None:
    async def _broken():
        yield _chunk(content="partial")
        raise APIError("stream error event", request=_REQUEST, body=None)

    provider, client = _make_provider()
    client.chat.completions.create.return_value = _broken()

    with pytest.raises(LLMAPIError, match="stream error event") as excinfo:
        await _collect(provider)
    assert excinfo.value.status_code is None


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (httpx.RemoteProtocolError("peer closed connection"), LLMConnectionError),
        (httpx.ReadError("connection reset"), LLMConnectionError),
        (httpx.ReadTimeout("read timed out"), LLMTimeoutError),
    ],
)
async def test_raw_httpx_errors_during_iteration_mapped(exc, expected) -> None:
    async def _broken():
        yield _chunk(content="partial")
        raise exc

    provider, client = _make_provider()
    client.chat.completions.create.return_value = _broken()

    with pytest.raises(expected):
        await _collect(provider)
