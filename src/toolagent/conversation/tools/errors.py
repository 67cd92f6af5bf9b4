"""
Tool error hierarchy.

Every failure that can happen between "the model asked for a tool" and "the
tool produced a result" is a ``ToolError``.  The ``ConversationOrchestrator``
never lets these escape: they are rendered into the ``tool`` message that is
sent back to the model so it can retry or adjust.
"""

from __future__ import annotations

import json


class ToolError(Exception):
    """Base exception for all tool lookup, validation and execution errors."""

    def to_tool_content(self) -> str:
        """Render the error as the JSON text placed in a tool result message."""
        return json.dumps(
            {"error": str(self), "type": type(self).__name__}, ensure_ascii=False
        )


class ToolNotFound(ToolError):
    """Raised when the model invokes a tool name absent from the registry.

    Attributes:
        name: The unknown tool name.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name!r}")
        self.name = name


class ArgumentsNotJson(ToolError):
    """Raised when raw argument text is not a JSON object.

    Attributes:
        raw_arguments: The offending argument text.
    """

    def __init__(self, raw_arguments: str, reason: str) -> None:
        super().__init__(f"Arguments are not a JSON object: {reason}")
        self.raw_arguments = raw_arguments


class ExecutionFailed(ToolError):
    """Raised when the tool's own logic fails; the message is passed through."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Execution failed: {message}")
        self.message = message


class ValidationError(ToolError):
    """Base class for argument validation failures."""


class MissingRequiredParameter(ValidationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Missing required parameter: {name}")
        self.name = name


class UnknownParameter(ValidationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown parameter: {name}")
        self.name = name


class TypeMismatch(ValidationError):
    """Raised when an argument value has the wrong JSON type.

    Attributes:
        name: Parameter name.
        expected: Declared JSON Schema type, e.g. ``"string"``.
        actual: JSON type name of the supplied value, e.g. ``"integer"``.
    """

    def __init__(self, name: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Parameter {name!r} should be of type {expected}, got {actual}"
        )
        self.name = name
        self.expected = expected
        self.actual = actual
