"""
Agent runtime protocol definition.

WHAT: Abstract interface for tool-calling agent runtimes
WHY: Decouple the negotiation session from a specific model backend
HOW: Protocols for the runtime instance and the factory that creates it
"""

from typing import Protocol

from .toolset import ToolSet
from .types import RuntimeResult


class AgentRuntime(Protocol):
    """A configured agent: instructions and tools are fixed, history grows."""

    async def invoke(
        self,
        turn_input: str,
        *,
        max_steps: int,
        extra_instructions: str | None = None
    ) -> RuntimeResult:
        """Run one user turn, executing requested tools, for at most max_steps model calls."""
        ...


class RuntimeFactory(Protocol):
    """Creates runtimes bound to instructions and a tool set."""

    def create_runtime(self, instructions: str, tools: ToolSet) -> AgentRuntime:
        ...
