"""Unit tests for toolagent.conversation.tools.schema."""

from __future__ import annotations

import pytest

from toolagent.conversation.tools.schema import (
    ParameterSpec,
    ParameterType,
    ToolDescriptor,
    json_type_name,
)


def _noop(args):
    return ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "null"),
        (True, "boolean"),
        (0, "integer"),
        (1.5, "number"),
        ("s", "string"),
        ([], "array"),
        ({}, "object"),
    ],
)
def test_json_type_name(value, expected) -> None:
    assert json_type_name(value) == expected


def test_parameter_spec_defaults_to_required() -> None:
    spec = ParameterSpec("location", ParameterType.STRING, "City")
    assert spec.required is True
    assert spec.to_schema() == {"type": "string", "description": "City"}


def test_parameters_schema_lists_required_in_declaration_order() -> None:
    descriptor = ToolDescriptor(
        name="t",
        description="d",
        parameters=[
            ParameterSpec("b", ParameterType.INTEGER, "B"),
            ParameterSpec("a", ParameterType.BOOLEAN, "A", required=False),
            ParameterSpec("c", ParameterType.ARRAY, "C"),
        ],
        executor=_noop,
    )

    schema = descriptor.parameters_schema()

    assert list(schema["properties"]) == ["b", "a", "c"]
    assert schema["required"] == ["b", "c"]
    assert schema["additionalProperties"] is False
    assert isinstance(descriptor.parameters, tuple)


def test_definition_carries_name_and_description() -> None:
    definition = ToolDescriptor(name="ping", description="Ping.", executor=_noop).definition()

    assert definition.name == "ping"
    assert definition.description == "Ping."
    assert definition.parameters["properties"] == {}


def test_duplicate_parameter_names_rejected() -> None:
    with pytest.raises(ValueError, match="'x'"):
        ToolDescriptor(
            name="t",
            description="d",
            parameters=(
                ParameterSpec("x", ParameterType.STRING, "1"),
                ParameterSpec("x", ParameterType.NUMBER, "2"),
            ),
            executor=_noop,
        )


def test_missing_executor_rejected() -> None:
    with pytest.raises(ValueError, match="no executor"):
        ToolDescriptor(name="t", description="d")


def test_descriptor_is_immutable() -> None:
    descriptor = ToolDescriptor(name="t", description="d", executor=_noop)
    with pytest.raises(AttributeError):
        descriptor.name = "other"  # type: ignore[misc]
