"""
toolagent - a demo agent that lets an OpenAI-compatible model call tools.

The model's streamed tool-call fragments are reassembled, validated against
each tool's declared parameters, executed, and fed back into the
conversation until the model produces a final answer.

Quick Start:
    >>> from toolagent import ConversationOrchestrator, OpenAICompatibleProvider
    >>> from toolagent.conversation.tools import default_registry
    >>> orchestrator = ConversationOrchestrator(
    ...     provider=OpenAICompatibleProvider(model="gpt-4o-mini", api_key="sk-..."),
    ...     registry=default_registry(),
    ... )
    >>> result = await orchestrator.run("What's the weather in Xiamen?")
"""

from toolagent.config import Settings, get_settings
from toolagent.conversation import (
    ConversationOrchestrator,
    OpenAICompatibleProvider,
    TurnResult,
)
from toolagent.conversation.tools import ToolRegistry, default_registry

__version__ = "0.1.0"
__all__ = [
    "ConversationOrchestrator",
    "OpenAICompatibleProvider",
    "Settings",
    "ToolRegistry",
    "TurnResult",
    "default_registry",
    "get_settings",
]
