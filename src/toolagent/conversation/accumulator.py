"""
Reassembly of streamed tool-call fragments.

Streaming chat APIs deliver a tool call's identity (id, position index) and
its name and argument text in arbitrary-size fragments spread across many
stream events.  ``ToolCallAccumulator`` rebuilds complete ``ToolCall``
records without assuming any single event carries the whole triple.

A call is identified by its stream id.  Fragments without an id belong to
the call currently open.  A fragment bearing a *different* id closes the
open call and opens a new one, so later fragments can never modify a call
that has already been closed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from toolagent.conversation.providers import ToolCall, ToolCallFragment

logger = logging.getLogger(__name__)


@dataclass
class PendingToolCall:
    """A tool call still being assembled from stream fragments."""

    id: str | None = None
    index: int | None = None
    name: str | None = None
    arguments: str = ""

    def freeze(self) -> ToolCall:
        return ToolCall(
            id=self.id or "",
            name=self.name or "",
            arguments=self.arguments,
            index=self.index,
        )


class ToolCallAccumulator:
    """Collects tool-call fragments for one streaming response.

    Usage::

        acc = ToolCallAccumulator()
        for fragment in delta.tool_calls:
            acc.feed(fragment)
        ...
        calls = acc.finalize_all()
    """

    def __init__(self) -> None:
        self._closed: list[PendingToolCall] = []
        self._open: PendingToolCall | None = None

    def on_delta(
        self,
        id: str | None = None,
        index: int | None = None,
        name: str | None = None,
        arguments: str | None = None,
    ) -> None:
        """Apply one fragment.  Absent fields leave the pending call untouched.

        Args:
            id: Stream-level call id, if this fragment carries one.
            index: Position index reported alongside the id.
            name: Function name; overwrites any earlier name.
            arguments: Argument text chunk; appended to the buffer.
        """
        if id is not None:
            if self._open is None:
                self._open = PendingToolCall(id=id, index=index)
            elif self._open.id is None:
                # Fragments arrived before the id; the open call adopts it.
                self._open.id = id
                self._open.index = index
            elif self._open.id != id:
                self._closed.append(self._open)
                self._open = PendingToolCall(id=id, index=index)
            elif index is not None:
                self._open.index = index

        if name is None and arguments is None:
            return

        if self._open is None:
            self._open = PendingToolCall(index=index)
        if name is not None:
            self._open.name = name
        if arguments is not None:
            self._open.arguments += arguments

    def feed(self, fragment: ToolCallFragment) -> None:
        """Apply a ``ToolCallFragment`` produced by a provider."""
        self.on_delta(
            id=fragment.id,
            index=fragment.index,
            name=fragment.name,
            arguments=fragment.arguments,
        )

    @property
    def pending(self) -> PendingToolCall | None:
        """The call currently being assembled, if any."""
        return self._open

    def __len__(self) -> int:
        return len(self._closed) + (1 if self._open is not None else 0)

    def finalize_all(self) -> list[ToolCall]:
        """Close the open call and return every call in the order opened.

        Calls that never received an id are dropped: without one their
        result cannot be correlated.  The accumulator is empty afterwards.
        """
        pending = list(self._closed)
        if self._open is not None:
            pending.append(self._open)
        self._closed = []
        self._open = None

        calls: list[ToolCall] = []
        for call in pending:
            if not call.id:
                logger.warning(
                    "Dropping tool call without an id: name=%r, arguments=%r",
                    call.name,
                    call.arguments,
                )
                continue
            calls.append(call.freeze())
        return calls
