"""
ConversationOrchestrator, the streaming tool-calling engine for toolagent.

This module implements the core "agentic" behaviour: stream a completion
from the LLM, reassemble the tool calls it requests, execute them through the
``ToolRegistry``, feed the results back and repeat until the LLM produces a
final answer.

Continuation after tool calls is an explicit loop, so long tool-calling
chains do not grow the call stack.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Protocol

from toolagent.conversation.accumulator import ToolCallAccumulator
from toolagent.conversation.history import (
    AssistantMessage,
    ConversationHistory,
    SystemMessage,
    ToolMessage,
    UserMessage,
)
from toolagent.conversation.providers import LLMError, LLMProvider, ToolCall
from toolagent.conversation.tools.errors import ExecutionFailed, ToolError
from toolagent.conversation.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

FINISH_TOOL_CALLS = "tool_calls"
FINISH_STOP = "stop"


class StreamListener(Protocol):
    """Receives progress of a request as it streams."""

    def on_reasoning(self, text: str) -> None: ...

    def on_content(self, text: str) -> None: ...

    def on_tool_result(self, call: ToolCall, result: str) -> None: ...


class _SilentListener:
    def on_reasoning(self, text: str) -> None:
        pass

    def on_content(self, text: str) -> None:
        pass

    def on_tool_result(self, call: ToolCall, result: str) -> None:
        pass


@dataclass
class TurnResult:
    """Outcome of one user request.

    Attributes:
        content: Final answer text (empty if the request failed).
        reasoning: Reasoning text of the final turn.
        finish_reason: Finish signal of the last turn, or ``None`` on failure.
        iterations: Number of completion requests issued.
        tool_calls: Every tool call executed while answering.
        error: Description of the failure that aborted the request, if any.
    """

    content: str = ""
    reasoning: str = ""
    finish_reason: str | None = None
    iterations: int = 0
    tool_calls: list[ToolCall] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _Turn:
    content: str = ""
    reasoning: str = ""
    finish_reason: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)


class ConversationOrchestrator:
    """Drives the request → stream → execute → continue loop for one session.

    The orchestrator exclusively owns the ``ConversationHistory``.  One
    completion request is outstanding at a time; tool calls of one turn run
    concurrently and all finish before the next request.

    Typical usage::

        orchestrator = ConversationOrchestrator(provider=provider, registry=registry)
        result = await orchestrator.run("查询厦门和郑州的天气")
        print(result.content)

    Attributes:
        provider: The LLM backend (any `LLMProvider` implementation).
        registry: Tools advertised to and executable by the model.
        history: Conversation history, mutated only by appends.
        max_iterations: Maximum completion requests per user request (guard
            against endless tool loops). ``None`` disables the guard.
        tool_failure_message: When set, replaces the detailed error text of a
            failed tool call with this fixed string.
    """

    def __init__(
        self,
        provider: LLMProvider,
        registry: ToolRegistry,
        system_prompt: str | None = None,
        max_iterations: int | None = 10,
        listener: StreamListener | None = None,
        tool_failure_message: str | None = None,
    ) -> None:
        self.provider = provider
        self.registry = registry
        self.max_iterations = max_iterations
        self.listener = listener or _SilentListener()
        self.tool_failure_message = tool_failure_message
        self.history = ConversationHistory()
        if system_prompt:
            self.history.append(SystemMessage(system_prompt))

    async def run(self, user_text: str) -> TurnResult:
        """Append *user_text* and converse until the model gives a final answer.

        Transport failures do not raise: they are logged and reported in
        ``TurnResult.error``.  Messages appended before the failure stay in
        the history.
        """
        self.history.append(UserMessage(user_text))
        result = TurnResult()
        request_start = time.monotonic()

        while self.max_iterations is None or result.iterations < self.max_iterations:
            result.iterations += 1
            logger.debug("Turn %d (history=%d)", result.iterations, len(self.history))

            try:
                turn = await self._stream_turn()
            except LLMError as exc:
                logger.error("Turn %d aborted: %s", result.iterations, exc)
                result.error = str(exc)
                return result

            result.reasoning = turn.reasoning
            result.finish_reason = turn.finish_reason

            if turn.finish_reason == FINISH_TOOL_CALLS and turn.tool_calls:
                self.history.append(
                    AssistantMessage(content=turn.content, tool_calls=turn.tool_calls)
                )
                await self._handle_tool_calls(turn.tool_calls)
                result.tool_calls.extend(turn.tool_calls)
                continue

            if turn.finish_reason != FINISH_STOP:
                logger.warning(
                    "Unexpected finish_reason=%r; treating content as final answer",
                    turn.finish_reason,
                )
            if turn.tool_calls:
                logger.warning(
                    "Ignoring %d tool call(s) from a turn that finished with %r",
                    len(turn.tool_calls),
                    turn.finish_reason,
                )

            self.history.append(AssistantMessage(content=turn.content))
            result.content = turn.content
            logger.info(
                "Request complete after %d turn(s) in %.3fs",
                result.iterations,
                time.monotonic() - request_start,
            )
            return result

        logger.error(
            "Exceeded max_iterations=%s without a final answer", self.max_iterations
        )
        result.error = (
            f"exceeded max_iterations={self.max_iterations} without reaching a "
            "final answer"
        )
        return result

    async def _stream_turn(self) -> _Turn:
        """Issue one completion request and consume its stream."""
        turn = _Turn()
        accumulator = ToolCallAccumulator()

        stream = self.provider.stream(
            self.history.to_openai_format(),
            self.registry.list_tool_definitions(),
        )
        async for delta in stream:
            if delta.reasoning:
                turn.reasoning += delta.reasoning
                self.listener.on_reasoning(delta.reasoning)
            if delta.content:
                turn.content += delta.content
                self.listener.on_content(delta.content)
            for fragment in delta.tool_calls:
                accumulator.feed(fragment)
            if delta.finish_reason:
                turn.finish_reason = delta.finish_reason

        turn.tool_calls = accumulator.finalize_all()
        logger.debug(
            "Turn finished: finish_reason=%s, tool_calls=%d, content=%d chars",
            turn.finish_reason,
            len(turn.tool_calls),
            len(turn.content),
        )
        return turn

    async def _handle_tool_calls(self, calls: list[ToolCall]) -> None:
        """Run *calls* concurrently, then append one tool message per call in order."""
        results = await asyncio.gather(*[self._execute(call) for call in calls])
        for call, content in zip(calls, results):
            self.history.append(ToolMessage(content=content, tool_call_id=call.id))
            self.listener.on_tool_result(call, content)

    async def _execute(self, call: ToolCall) -> str:
        logger.info("- call: %s(%s)", call.name, call.arguments)
        try:
            content = await self.registry.execute(call.name, call.arguments)
        except ToolError as exc:
            logger.warning("Tool %r failed: %s", call.name, exc)
            content = self.tool_failure_message or exc.to_tool_content()
        except Exception as exc:
            # Every call must still get a tool message.
            logger.error("Tool %r crashed: %s", call.name, exc, exc_info=True)
            failure = ExecutionFailed(str(exc) or type(exc).__name__)
            content = self.tool_failure_message or failure.to_tool_content()
        logger.info("  result: %s", content)
        return content
