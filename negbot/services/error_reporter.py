"""
Error reporting collaborator.

WHAT: Single sink for failures the negotiation flow absorbs instead of raising
WHY: Recoverable errors must stay visible with enough context to rebuild a
     negotiation timeline from the logs
HOW: Protocol with report(context, error); default implementation logs
"""

from typing import Any, Mapping, Protocol

from ..utils.logger import get_logger

logger = get_logger(__name__)


class ErrorReporter(Protocol):
    """Receives absorbed errors together with their negotiation context."""

    def report(self, context: Mapping[str, Any], error: BaseException) -> None:
        ...


class LoggingErrorReporter:
    """Report errors as one structured log line each."""

    def __init__(self, log=None):
        self.log = log or logger

    def report(self, context: Mapping[str, Any], error: BaseException) -> None:
        operation = context.get("operation", "unknown")
        details = ", ".join(
            f"{key}={value}" for key, value in context.items() if key != "operation"
        )
        self.log.error(
            f"{operation} failed ({details}): {type(error).__name__}: {error}"
        )
