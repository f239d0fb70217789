"""Agent runtime layer."""

from .types import (
    RuntimeMessage,
    RuntimeResult,
    RuntimeTimeoutError,
    RuntimeUnavailableError,
    RuntimeDisabledError,
    RuntimeResponseError,
)
from .toolset import ToolSet, ToolSpec
from .provider import AgentRuntime, RuntimeFactory
from .openai_compat import OpenAICompatRuntime, OpenAICompatRuntimeFactory

__all__ = [
    "RuntimeMessage",
    "RuntimeResult",
    "RuntimeTimeoutError",
    "RuntimeUnavailableError",
    "RuntimeDisabledError",
    "RuntimeResponseError",
    "ToolSet",
    "ToolSpec",
    "AgentRuntime",
    "RuntimeFactory",
    "OpenAICompatRuntime",
    "OpenAICompatRuntimeFactory",
]
