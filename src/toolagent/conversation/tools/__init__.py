"""
Tools for the toolagent conversation loop.

Each tool class exposes a ``descriptor()`` method returning the
``ToolDescriptor`` to register with ``ToolRegistry``.  The registry validates
arguments and executes calls requested by the model.

Quick-start example::

    from toolagent.conversation.tools import ToolRegistry, WeatherTool, DateTimeTool

    registry = ToolRegistry(timeout=10.0)
    registry.register(WeatherTool().descriptor())
    registry.register(DateTimeTool().descriptor())
"""

from toolagent.conversation.tools.datetime_tool import DateTimeTool
from toolagent.conversation.tools.errors import (
    ArgumentsNotJson,
    ExecutionFailed,
    MissingRequiredParameter,
    ToolError,
    ToolNotFound,
    TypeMismatch,
    UnknownParameter,
    ValidationError,
)
from toolagent.conversation.tools.registry import ToolRegistry
from toolagent.conversation.tools.schema import (
    AnyValue,
    Arguments,
    ParameterSpec,
    ParameterType,
    ToolDescriptor,
)
from toolagent.conversation.tools.validation import validate_arguments
from toolagent.conversation.tools.weather import WeatherTool


def default_registry(
    timeout: float | None = None, weather_timeout: float = 10.0
) -> ToolRegistry:
    """Build a new registry holding the built-in weather and date/time tools."""
    registry = ToolRegistry(timeout=timeout)
    registry.register(WeatherTool(timeout=weather_timeout).descriptor())
    registry.register(DateTimeTool().descriptor())
    return registry


__all__ = [
    "AnyValue",
    "Arguments",
    "ArgumentsNotJson",
    "DateTimeTool",
    "ExecutionFailed",
    "MissingRequiredParameter",
    "ParameterSpec",
    "ParameterType",
    "ToolDescriptor",
    "ToolError",
    "ToolNotFound",
    "ToolRegistry",
    "TypeMismatch",
    "UnknownParameter",
    "ValidationError",
    "WeatherTool",
    "default_registry",
    "validate_arguments",
]
