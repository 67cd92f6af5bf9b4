"""
LLM Provider abstractions for the toolagent conversation package.

Defines the `LLMProvider` Protocol so the `ConversationOrchestrator` can work
with any OpenAI-compatible backend (OpenAI, Zhipu, DeepSeek, Ollama, etc.)
without being tied to a specific vendor or SDK.

A provider turns one completion request into an async stream of
provider-neutral ``StreamDelta`` events.  Streaming responses yield one delta
per chunk; a non-streaming response is delivered as a single delta carrying
the whole message, so the orchestrator handles both the same way.

The concrete implementation, `OpenAICompatibleProvider`, uses
`openai.AsyncOpenAI` which supports any OpenAI-compatible base URL.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Protocol, runtime_checkable

import httpx
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

if TYPE_CHECKING:
    from toolagent.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Custom exception hierarchy
# ---------------------------------------------------------------------------


class LLMError(Exception):
    """Base class for failures talking to the model endpoint."""


class LLMRateLimitError(LLMError):
    """The endpoint answered 429 Too Many Requests."""


class LLMConnectionError(LLMError):
    """The endpoint could not be reached."""


class LLMTimeoutError(LLMConnectionError):
    """Raised when a request exceeds the provider timeout."""


class LLMAPIError(LLMError):
    """The endpoint answered with a non-success status (auth failure, 5xx, ...).

    Attributes:
        status_code: HTTP status of the response, if known.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Core data types
# ---------------------------------------------------------------------------


@dataclass
class ToolDefinition:
    """A tool as advertised to the model in a completion request.

    Attributes:
        name: Unique tool name the model calls it by.
        description: Text telling the model when to use the tool.
        parameters: JSON Schema object for the arguments.
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_openai_format(self) -> dict[str, Any]:
        """Render as an entry of the request's ``tools`` array."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class ToolCall:
    """A complete tool invocation requested by the LLM.

    Attributes:
        id: Call id chosen by the model; the tool message echoes it.
        name: Name of the tool to invoke.
        arguments: Raw JSON argument text, exactly as the model produced it.
        index: Position index reported by the stream, if any.
    """

    id: str
    name: str
    arguments: str
    index: int | None = None

    def to_openai_format(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class ToolCallFragment:
    """One streamed piece of a tool call.  Every field may be absent."""

    id: str | None = None
    index: int | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass
class StreamDelta:
    """One provider-neutral stream event.

    Attributes:
        reasoning: "Thinking" text emitted by reasoning models.
        content: Answer text.
        tool_calls: Tool-call fragments carried by this event.
        finish_reason: ``"tool_calls"``, ``"stop"`` or another provider
            value; ``None`` until the final event of the turn.
    """

    reasoning: str | None = None
    content: str | None = None
    tool_calls: list[ToolCallFragment] = field(default_factory=list)
    finish_reason: str | None = None


# ---------------------------------------------------------------------------
# LLMProvider Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM backends used by ConversationOrchestrator.

    Any object implementing this Protocol can serve as the LLM backend.
    The default implementation is `OpenAICompatibleProvider`.
    """

    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDefinition],
    ) -> AsyncIterator[StreamDelta]:
        """Send a completion request and yield its events in arrival order.

        Raises:
            LLMRateLimitError: If the API returns a 429 rate-limit response.
            LLMConnectionError: If the API endpoint cannot be reached.
            LLMAPIError: For other API-level failures.
        """
        ...


# ---------------------------------------------------------------------------
# Concrete provider implementation
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """Streams chat completions from any OpenAI-compatible endpoint.

    Attributes:
        base_url: The API base URL.
        model: The model identifier.
        timeout: Per-request timeout in seconds.
        extra_body: Extra request-body fields passed through verbatim
            (e.g. ``{"thinking": {"type": "enabled"}}``).
        temperature: Optional sampling temperature.
        streaming: Request a streamed response (default) or a single one.
    """

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        api_key: str = "",
        timeout: float = 30.0,
        extra_body: dict[str, Any] | None = None,
        temperature: float | None = None,
        streaming: bool = True,
    ) -> None:
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.extra_body = dict(extra_body or {})
        self.temperature = temperature
        self.streaming = streaming
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout)

    @classmethod
    def from_settings(
        cls, settings: Settings, base_url: str | None = None
    ) -> OpenAICompatibleProvider:
        """Build a provider from application ``Settings``.

        *base_url* overrides the URL assembled from the settings.
        """
        return cls(
            base_url=base_url or settings.base_url,
            model=settings.model,
            api_key=settings.api_key,
            timeout=settings.timeout,
            extra_body=settings.extra_body,
            temperature=settings.temperature,
            streaming=settings.stream,
        )

    def build_request(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDefinition],
    ) -> dict[str, Any]:
        """Return the keyword arguments for ``chat.completions.create``."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": self.streaming,
        }
        if tools:
            kwargs["tools"] = [t.to_openai_format() for t in tools]
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.extra_body:
            kwargs["extra_body"] = self.extra_body
        return kwargs

    async def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDefinition],
    ) -> AsyncIterator[StreamDelta]:
        """Call the LLM and yield normalised ``StreamDelta`` events.

        Raises:
            LLMRateLimitError: If the API returns a 429 response.
            LLMTimeoutError: If the request exceeds ``self.timeout``.
            LLMConnectionError: If the API endpoint cannot be reached.
            LLMAPIError: For other API-level failures (e.g. 4xx/5xx).
        """
        kwargs = self.build_request(messages, tools)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Send query: %s",
                json.dumps(kwargs, ensure_ascii=False, default=str),
            )

        try:
            response = await self._client.chat.completions.create(**kwargs)
            if not self.streaming:
                yield delta_from_completion(response)
                return
            async for chunk in response:
                logger.debug("Chunk: %s", chunk)
                for delta in deltas_from_chunk(chunk):
                    yield delta
        except RateLimitError as exc:
            logger.warning("Rate limited by %s: %s", self.base_url, exc)
            raise LLMRateLimitError(f"Rate limit exceeded: {exc}") from exc
        except APITimeoutError as exc:
            logger.error("LLM request timed out after %.1fs", self.timeout)
            raise LLMTimeoutError(f"Request timed out after {self.timeout}s") from exc
        except APIConnectionError as exc:
            logger.error("Cannot reach %s: %s", self.base_url, exc)
            raise LLMConnectionError(f"Could not connect to LLM endpoint: {exc}") from exc
        except APIStatusError as exc:
            logger.error("Completion request failed with HTTP %d: %s", exc.status_code, exc)
            raise LLMAPIError(
                f"LLM API returned status {exc.status_code}: {exc}",
                status_code=exc.status_code,
            ) from exc
        except APIError as exc:
            # Error events inside the stream carry no HTTP status.
            logger.error("Completion stream failed: %s", exc)
            raise LLMAPIError(f"LLM stream error: {exc}") from exc
        except httpx.TimeoutException as exc:
            logger.error("LLM stream timed out after %.1fs", self.timeout)
            raise LLMTimeoutError(f"Request timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            logger.error("Connection to %s broke: %s", self.base_url, exc)
            raise LLMConnectionError(f"Connection to LLM endpoint failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.close()


# ---------------------------------------------------------------------------
# Response normalisation
# ---------------------------------------------------------------------------


def _reasoning_text(obj: Any) -> str | None:
    # Not part of the OpenAI schema; providers expose it as an extra field.
    for attr in ("reasoning_content", "reasoning"):
        value = getattr(obj, attr, None)
        if isinstance(value, str) and value:
            return value
    return None


def deltas_from_chunk(chunk: Any) -> list[StreamDelta]:
    """Convert one ``ChatCompletionChunk`` into ``StreamDelta`` events."""
    deltas: list[StreamDelta] = []
    for choice in chunk.choices or []:
        delta = choice.delta
        fragments: list[ToolCallFragment] = []
        for tc in (delta.tool_calls if delta is not None else None) or []:
            function = tc.function
            fragments.append(
                ToolCallFragment(
                    id=tc.id or None,
                    index=tc.index,
                    name=function.name if function is not None else None,
                    arguments=function.arguments if function is not None else None,
                )
            )
        deltas.append(
            StreamDelta(
                reasoning=_reasoning_text(delta) if delta is not None else None,
                content=delta.content if delta is not None else None,
                tool_calls=fragments,
                finish_reason=choice.finish_reason,
            )
        )
    return deltas


def delta_from_completion(completion: Any) -> StreamDelta:
    """Convert a non-streamed ``ChatCompletion`` into a single ``StreamDelta``."""
    if not completion.choices:
        return StreamDelta(finish_reason="stop")
    choice = completion.choices[0]
    message = choice.message
    fragments = [
        ToolCallFragment(
            id=tc.id,
            index=position,
            name=tc.function.name,
            arguments=tc.function.arguments,
        )
        for position, tc in enumerate(message.tool_calls or [])
    ]
    return StreamDelta(
        reasoning=_reasoning_text(message),
        content=message.content,
        tool_calls=fragments,
        finish_reason=choice.finish_reason or "stop",
    )
