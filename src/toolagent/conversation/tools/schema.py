"""
Tool descriptors and their JSON Schema rendering.

A tool is declared once as a ``ToolDescriptor``: a name, a description, an
ordered tuple of ``ParameterSpec`` entries and an executor callable.  The
descriptor is what the ``ToolRegistry`` stores; ``ToolDescriptor.definition()``
derives the ``ToolDefinition`` advertised to the model.

Example::

    from toolagent.conversation.tools.schema import (
        ParameterSpec,
        ParameterType,
        ToolDescriptor,
    )

    def get_weather(args):
        return f"Weather in {args['location']}: 25°C, clear"

    descriptor = ToolDescriptor(
        name="get_weather",
        description="Get current weather for a city.",
        parameters=(
            ParameterSpec("location", ParameterType.STRING, "City name"),
        ),
        executor=get_weather,
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from toolagent.conversation.providers import ToolDefinition

# JSON value as produced by ``json.loads``.
AnyValue = Union[str, int, float, bool, None, list["AnyValue"], dict[str, "AnyValue"]]

# Parsed tool arguments handed to an executor.
Arguments = dict[str, AnyValue]

# Executors may be plain functions or coroutine functions.
ToolExecutor = Callable[[Arguments], Union[Any, Awaitable[Any]]]


class ParameterType(str, Enum):
    """Parameter types; the value is the JSON Schema type name."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


def json_type_name(value: Any) -> str:
    """Return the JSON type name of a decoded JSON *value*.

    ``bool`` is checked before ``int`` because it is an ``int`` subclass.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


@dataclass(frozen=True)
class ParameterSpec:
    """One declared tool parameter.

    Attributes:
        name: Parameter name, unique within its tool.
        type: Declared ``ParameterType``.
        description: Text shown to the model.
        required: Whether the model must supply it.  Defaults to ``True``.
    """

    name: str
    type: ParameterType
    description: str
    required: bool = True

    def to_schema(self) -> dict[str, Any]:
        return {"type": self.type.value, "description": self.description}


@dataclass(frozen=True)
class ToolDescriptor:
    """The registered, immutable definition of a tool.

    Attributes:
        name: Unique tool name used by the model to invoke it.
        description: Human-readable description for the model.
        parameters: Ordered parameter specs.
        executor: Callable ``(arguments) -> str`` (sync or async).  Raising
            signals a tool-specific failure.

    Raises:
        ValueError: If two parameters share a name.
    """

    name: str
    description: str
    parameters: tuple[ParameterSpec, ...] = ()
    executor: ToolExecutor = field(default=None, compare=False, repr=False)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        # Accept lists for convenience but store an immutable tuple.
        object.__setattr__(self, "parameters", tuple(self.parameters))
        seen: set[str] = set()
        for param in self.parameters:
            if param.name in seen:
                raise ValueError(
                    f"Tool {self.name!r} declares parameter {param.name!r} twice."
                )
            seen.add(param.name)
        if self.executor is None:
            raise ValueError(f"Tool {self.name!r} has no executor.")

    @property
    def required_names(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def parameters_schema(self) -> dict[str, Any]:
        """Build the JSON Schema object describing this tool's arguments."""
        return {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.parameters},
            "required": self.required_names,
            "additionalProperties": False,
        }

    def definition(self) -> ToolDefinition:
        """Return the ``ToolDefinition`` advertised to the model."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters_schema(),
        )
