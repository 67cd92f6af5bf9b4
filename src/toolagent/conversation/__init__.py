"""
toolagent Conversation Package.

Implements the streaming tool-calling loop: providers, the tool-call
accumulator, conversation history and the orchestrator that ties them to the
tool registry.
"""

from toolagent.conversation.providers import (
    LLMAPIError,
    LLMConnectionError,
    LLMError,
    LLMProvider,
    LLMRateLimitError,
    LLMTimeoutError,
    OpenAICompatibleProvider,
    StreamDelta,
    ToolCall,
    ToolCallFragment,
    ToolDefinition,
)
from toolagent.conversation.accumulator import PendingToolCall, ToolCallAccumulator
from toolagent.conversation.history import (
    AssistantMessage,
    ConversationHistory,
    ConversationMessage,
    SystemMessage,
    ToolMessage,
    UserMessage,
)
from toolagent.conversation.loop import (
    ConversationOrchestrator,
    StreamListener,
    TurnResult,
)

__all__ = [
    "AssistantMessage",
    "ConversationHistory",
    "ConversationMessage",
    "ConversationOrchestrator",
    "LLMAPIError",
    "LLMConnectionError",
    "LLMError",
    "LLMProvider",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "OpenAICompatibleProvider",
    "PendingToolCall",
    "StreamDelta",
    "StreamListener",
    "SystemMessage",
    "ToolCall",
    "ToolCallAccumulator",
    "ToolCallFragment",
    "ToolDefinition",
    "ToolMessage",
    "TurnResult",
    "UserMessage",
]
