"""
Agent runtime types, dataclasses, and exceptions.

WHAT: Standard type definitions for agent runtime interactions
WHY: Ensure consistent contracts between the session and any runtime
HOW: Dataclasses for messages and results, custom exceptions
"""

from typing import Literal
from dataclasses import dataclass, field


@dataclass
class RuntimeMessage:
    """One message produced during a runtime turn."""
    role: Literal["user", "assistant", "tool"]
    content: str
    tool_name: str | None = None


@dataclass
class RuntimeResult:
    """Messages produced by one runtime invocation, in order."""
    messages: list[RuntimeMessage] = field(default_factory=list)
    steps: int = 0

    @property
    def tool_calls(self) -> list[RuntimeMessage]:
        """Tool result messages of this turn."""
        return [m for m in self.messages if m.tool_name]

    def called(self, tool_name: str) -> bool:
        """Whether the given tool ran during this turn."""
        return any(m.tool_name == tool_name for m in self.messages)


# Runtime exceptions
class RuntimeTimeoutError(Exception):
    """Request to the model endpoint timed out."""
    pass


class RuntimeUnavailableError(Exception):
    """Model endpoint is not reachable or down."""
    pass


class RuntimeDisabledError(Exception):
    """Runtime is not configured (e.g. missing API key)."""
    pass


class RuntimeResponseError(Exception):
    """Model endpoint returned an invalid or error response."""
    pass
