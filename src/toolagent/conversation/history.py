"""
Conversation messages and the append-only history the model reads.

Messages are a tagged union of small dataclasses; each serialises itself to
the OpenAI chat message format with ``to_openai_format()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Literal, Union

from toolagent.conversation.providers import ToolCall


@dataclass(frozen=True)
class SystemMessage:
    content: str
    role: Literal["system"] = field(default="system", init=False)

    def to_openai_format(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class UserMessage:
    content: str
    role: Literal["user"] = field(default="user", init=False)

    def to_openai_format(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class AssistantMessage:
    """An assistant reply, optionally requesting tool calls.

    Attributes:
        content: Final answer text of the turn (may be empty).
        tool_calls: Calls requested in this turn, in finalized order.
    """

    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    role: Literal["assistant"] = field(default="assistant", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

    def to_openai_format(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [tc.to_openai_format() for tc in self.tool_calls]
        return message


@dataclass(frozen=True)
class ToolMessage:
    """The result of one tool call, tagged with that call's id."""

    content: str
    tool_call_id: str
    role: Literal["tool"] = field(default="tool", init=False)

    def to_openai_format(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "tool_call_id": self.tool_call_id,
            "content": self.content,
        }


ConversationMessage = Union[SystemMessage, UserMessage, AssistantMessage, ToolMessage]


class ConversationHistory:
    """Ordered, append-only sequence of ``ConversationMessage`` objects.

    Invariant: every ``ToolMessage`` answers a call listed in the most recent
    ``AssistantMessage``, with only other tool messages in between.
    """

    def __init__(self, messages: list[ConversationMessage] | None = None) -> None:
        self._messages: list[ConversationMessage] = []
        for message in messages or []:
            self.append(message)

    def append(self, message: ConversationMessage) -> None:
        """Append *message*.

        Raises:
            ValueError: If a ``ToolMessage`` does not reference a tool call of
                the preceding assistant message.
        """
        if isinstance(message, ToolMessage):
            self._check_tool_reply(message)
        self._messages.append(message)

    def _check_tool_reply(self, message: ToolMessage) -> None:
        for previous in reversed(self._messages):
            if isinstance(previous, ToolMessage):
                continue
            if isinstance(previous, AssistantMessage) and any(
                tc.id == message.tool_call_id for tc in previous.tool_calls
            ):
                return
            break
        raise ValueError(
            f"Tool message for call {message.tool_call_id!r} does not follow "
            "an assistant message requesting that call."
        )

    @property
    def messages(self) -> list[ConversationMessage]:
        """A copy of the messages in order."""
        return list(self._messages)

    def to_openai_format(self) -> list[dict[str, Any]]:
        return [message.to_openai_format() for message in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ConversationMessage]:
        return iter(list(self._messages))

    def __getitem__(self, position: int) -> ConversationMessage:
        return self._messages[position]
