"""
Tool registry handed to the agent runtime.

WHAT: Named tools with a pydantic argument model and an async handler
WHY: The runtime must only ever see validated arguments and text results
HOW: call() parses and validates raw arguments before dispatching; every
     failure comes back as an error string instead of an exception
"""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from ..services.error_reporter import ErrorReporter, LoggingErrorReporter
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ToolSpec:
    """A tool exposed to the model."""
    name: str
    description: str
    args_model: type[BaseModel]
    handler: Callable[[Any], Awaitable[str]]

    def openai_schema(self) -> dict:
        """Function-tool definition for OpenAI-compatible chat completions."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.args_model.model_json_schema(),
            },
        }


def format_validation_error(tool_name: str, error: ValidationError) -> str:
    """Structured, model-readable validation error."""
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "(root)",
            "type": err["type"],
            "message": err["msg"],
        }
        for err in error.errors(include_url=False)
    ]
    return f"Error: invalid arguments for tool '{tool_name}': {json.dumps(errors)}"


class ToolSet:
    """Ordered collection of tools with validated dispatch."""

    def __init__(
        self,
        specs: list[ToolSpec],
        reporter: ErrorReporter | None = None,
        context: Callable[[], dict] | None = None
    ):
        self._specs = {spec.name: spec for spec in specs}
        self.reporter = reporter or LoggingErrorReporter()
        self._context = context or dict

    @property
    def names(self) -> list[str]:
        return list(self._specs)

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def openai_schemas(self) -> list[dict]:
        return [spec.openai_schema() for spec in self._specs.values()]

    async def call(self, name: str, arguments: str | dict | None) -> str:
        """
        Validate arguments and run a tool.

        Args:
            name: Tool name requested by the model
            arguments: JSON string or already-decoded mapping

        Returns:
            The tool's text result, or an "Error: ..." string
        """
        spec = self._specs.get(name)
        if spec is None:
            logger.warning(f"Model requested unknown tool: {name}")
            return f"Error: unknown tool '{name}'. Available tools: {', '.join(self.names)}"

        if isinstance(arguments, (str, bytes)):
            try:
                arguments = json.loads(arguments) if arguments else {}
            except json.JSONDecodeError as e:
                logger.warning(f"Malformed JSON arguments for tool {name}: {e}")
                return f"Error: invalid arguments for tool '{name}': arguments are not valid JSON ({e.msg})"

        try:
            args = spec.args_model.model_validate(arguments or {})
        except ValidationError as e:
            logger.warning(f"Rejected arguments for tool {name}: {e.error_count()} error(s)")
            return format_validation_error(name, e)

        logger.debug(f"Running tool {name}")
        try:
            return await spec.handler(args)
        except Exception as e:
            self.reporter.report({"operation": f"tool:{name}", **self._context()}, e)
            return f"Error: tool '{name}' failed: {e}"
