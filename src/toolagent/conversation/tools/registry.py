"""
Tool registry for the toolagent conversation loop.

Provides ``ToolRegistry``, a container mapping tool names to
``ToolDescriptor`` records.  The registry advertises tool definitions to the
model and executes tool calls: parse the raw JSON argument text, validate it
against the descriptor's parameters, then invoke the executor.

Typical usage::

    from toolagent.conversation.tools.registry import ToolRegistry
    from toolagent.conversation.tools.weather import WeatherTool
    from toolagent.conversation.tools.datetime_tool import DateTimeTool

    registry = ToolRegistry(timeout=10.0)
    registry.register(WeatherTool().descriptor())
    registry.register(DateTimeTool().descriptor())

    orchestrator = ConversationOrchestrator(provider=provider, registry=registry)
    result = await orchestrator.run("What is the weather in Xiamen?")
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any

from toolagent.conversation.providers import ToolDefinition
from toolagent.conversation.tools.errors import (
    ArgumentsNotJson,
    ExecutionFailed,
    ToolError,
    ToolNotFound,
)
from toolagent.conversation.tools.schema import Arguments, ToolDescriptor
from toolagent.conversation.tools.validation import validate_arguments

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry mapping tool names to their descriptors.

    Use ``list_tool_definitions()`` to obtain the definitions sent with every
    completion request and ``execute()`` to run a tool call requested by the
    model.

    Attributes:
        timeout: Maximum seconds per tool execution, or ``None`` for no limit.
        _tools: Internal dict of registered descriptors.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout
        self._tools: dict[str, ToolDescriptor] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, descriptor: ToolDescriptor) -> None:
        """Register *descriptor* under its name.

        Registering a name twice replaces the earlier descriptor entirely
        (last write wins); its old parameter specs are no longer honoured.
        """
        if descriptor.name in self._tools:
            logger.debug("Replacing registered tool: %r", descriptor.name)
        else:
            logger.debug("Registered tool: %r", descriptor.name)
        self._tools[descriptor.name] = descriptor

    def deregister(self, name: str) -> None:
        """Remove a registered tool by name.

        Raises:
            KeyError: If the tool is not registered.
        """
        if name not in self._tools:
            raise KeyError(f"Tool {name!r} is not registered.")
        del self._tools[name]
        logger.debug("Deregistered tool: %r", name)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> ToolDescriptor | None:
        """Return the descriptor registered under *name*, or ``None``."""
        return self._tools.get(name)

    def list_tool_definitions(self) -> list[ToolDefinition]:
        """Return one ``ToolDefinition`` per registered tool (insertion order)."""
        return [descriptor.definition() for descriptor in self._tools.values()]

    def describe(self) -> str:
        """Return a human-readable listing of every tool and its parameters."""
        lines = ["Registered tools:"]
        for descriptor in self._tools.values():
            lines.append(f"- {descriptor.name}(")
            for param in descriptor.parameters:
                lines.append(
                    f"    {param.name}, type={param.type.value}, "
                    f"required={param.required}: {param.description},"
                )
            lines.append(f"  ): {descriptor.description}")
        return "\n".join(lines)

    def __len__(self) -> int:
        """Return the number of registered tools."""
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        """Return True if *name* is a registered tool."""
        return name in self._tools

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, name: str, raw_arguments: str) -> str:
        """Parse, validate and run the tool *name* with *raw_arguments*.

        Args:
            name: Tool name requested by the model.
            raw_arguments: The complete JSON argument text of the call.
                Empty or whitespace-only text is treated as ``{}``.

        Returns:
            The executor's result as text.  Non-string results are
            JSON-encoded.

        Raises:
            ToolNotFound: If *name* is not registered.
            ArgumentsNotJson: If *raw_arguments* is not a JSON object.
            ValidationError: If the arguments do not match the parameters.
            ExecutionFailed: If the executor raises or times out.
        """
        descriptor = self._tools.get(name)
        if descriptor is None:
            logger.warning("Unknown tool requested: %r", name)
            raise ToolNotFound(name)

        arguments = _parse_arguments(raw_arguments)
        validate_arguments(descriptor.parameters, arguments)

        try:
            if self.timeout is not None:
                result = await asyncio.wait_for(
                    _invoke(descriptor, arguments), timeout=self.timeout
                )
            else:
                result = await _invoke(descriptor, arguments)
        except ToolError:
            raise
        except asyncio.TimeoutError as exc:
            logger.error("Tool %r timed out after %.1fs", name, self.timeout)
            raise ExecutionFailed(f"timed out after {self.timeout}s") from exc
        except Exception as exc:
            logger.error("Tool %r failed: %s", name, exc, exc_info=True)
            raise ExecutionFailed(str(exc) or type(exc).__name__) from exc

        if isinstance(result, str):
            return result
        try:
            return json.dumps(result, ensure_ascii=False)
        except (TypeError, ValueError, RecursionError) as exc:
            logger.error("Tool %r returned an unencodable result: %s", name, exc)
            raise ExecutionFailed(f"result is not JSON-encodable: {exc}") from exc


def _parse_arguments(raw_arguments: str) -> Arguments:
    if not raw_arguments or not raw_arguments.strip():
        return {}
    try:
        parsed: Any = json.loads(raw_arguments)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError is a ValueError; very deep nesting overflows the parser.
        raise ArgumentsNotJson(raw_arguments, str(exc) or type(exc).__name__) from exc
    if not isinstance(parsed, dict):
        raise ArgumentsNotJson(
            raw_arguments, f"expected an object, got {type(parsed).__name__}"
        )
    return parsed


async def _invoke(descriptor: ToolDescriptor, arguments: Arguments) -> Any:
    if inspect.iscoroutinefunction(descriptor.executor):
        return await descriptor.executor(arguments)
    # Plain functions run in a worker thread so the timeout can bound them.
    result = await asyncio.to_thread(descriptor.executor, arguments)
    if inspect.isawaitable(result):
        result = await result
    return result
