"""Structural validation of tool arguments against declared parameter specs."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from toolagent.conversation.tools.errors import (
    MissingRequiredParameter,
    TypeMismatch,
    UnknownParameter,
)
from toolagent.conversation.tools.schema import ParameterSpec, ParameterType, json_type_name

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


_TYPE_CHECKS: dict[ParameterType, Callable[[Any], bool]] = {
    ParameterType.STRING: lambda v: isinstance(v, str),
    ParameterType.NUMBER: _is_number,
    ParameterType.INTEGER: _is_integer,
    ParameterType.BOOLEAN: lambda v: isinstance(v, bool),
    ParameterType.ARRAY: lambda v: isinstance(v, list),
    ParameterType.OBJECT: lambda v: isinstance(v, dict),
}


def validate_arguments(
    parameters: Iterable[ParameterSpec],
    arguments: Mapping[str, Any],
) -> None:
    """Check *arguments* against *parameters*, raising on the first failure.

    Checks run in a fixed order: missing required parameters, then unknown
    keys, then value types.  Only structure is checked; ranges, formats and
    lengths are not.

    Raises:
        MissingRequiredParameter: A required parameter is absent.
        UnknownParameter: An argument has no matching spec.
        TypeMismatch: A value does not match its declared type.
    """
    specs = {p.name: p for p in parameters}

    for spec in specs.values():
        if spec.required and spec.name not in arguments:
            raise MissingRequiredParameter(spec.name)

    for key in arguments:
        if key not in specs:
            raise UnknownParameter(key)

    for key, value in arguments.items():
        spec = specs[key]
        if not _TYPE_CHECKS[spec.type](value):
            raise TypeMismatch(key, spec.type.value, json_type_name(value))

    logger.debug("Validated arguments: %s", sorted(arguments))
