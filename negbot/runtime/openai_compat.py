"""
OpenAI-compatible agent runtime.

WHAT: Tool-calling agent over any /chat/completions endpoint (OpenRouter by default)
WHY: The negotiation session needs a model that can call its tools
HOW: httpx client with bearer auth, retry with exponential backoff, and a
     bounded loop that executes requested tools and feeds results back
"""

import asyncio
import json

import httpx

from .toolset import ToolSet
from .types import (
    RuntimeMessage,
    RuntimeResult,
    RuntimeDisabledError,
    RuntimeTimeoutError,
    RuntimeUnavailableError,
    RuntimeResponseError,
)
from ..core.config import settings as default_settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


class OpenAICompatRuntime:
    """
    One agent conversation: fixed instructions, fixed tools, growing history.

    History survives between invoke() calls so later turns see earlier tool
    results. Per-turn extra instructions are sent once and never stored.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        instructions: str,
        tools: ToolSet,
        *,
        settings=None
    ):
        self.settings = settings or default_settings
        self.client = client
        self.instructions = instructions
        self.tools = tools
        self.base_url = self.settings.LLM_BASE_URL
        self.model = self.settings.LLM_MODEL
        self.max_retries = self.settings.LLM_MAX_RETRIES
        self.retry_delay = self.settings.LLM_RETRY_DELAY
        self.history: list[dict] = []

    def _system_message(self, extra_instructions: str | None) -> dict:
        content = self.instructions
        if extra_instructions:
            content = f"{extra_instructions}\n\n{content}"
        return {"role": "system", "content": content}

    async def _complete(self, messages: list[dict]) -> dict:
        """
        Request one completion.

        Returns:
            The assistant message object of the first choice

        Raises:
            RuntimeTimeoutError: Request timed out on every attempt
            RuntimeUnavailableError: Endpoint not reachable
            RuntimeResponseError: Error status or malformed body
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "tools": self.tools.openai_schemas(),
            "tool_choice": "auto",
            "temperature": self.settings.LLM_DEFAULT_TEMPERATURE,
            "max_tokens": self.settings.LLM_DEFAULT_MAX_TOKENS,
        }

        # Retry logic with exponential backoff
        for attempt in range(self.max_retries):
            try:
                response = await self.client.post(f"{self.base_url}/chat/completions", json=payload)
                response.raise_for_status()
                data = response.json()
                message = data["choices"][0]["message"]
                usage = data.get("usage", {})
                logger.debug(f"Runtime completion (model: {data.get('model', self.model)}, tokens: {usage.get('total_tokens', 'unknown')})")
                return message

            except httpx.TimeoutException as e:
                logger.warning(f"Runtime timeout (attempt {attempt + 1}/{self.max_retries})")
                if attempt == self.max_retries - 1:
                    raise RuntimeTimeoutError(f"Request timed out after {self.max_retries} attempts") from e
                await asyncio.sleep(self.retry_delay * (2 ** attempt))

            except httpx.ConnectError as e:
                logger.error(f"Runtime connection refused (attempt {attempt + 1}/{self.max_retries})")
                if attempt == self.max_retries - 1:
                    raise RuntimeUnavailableError(f"{self.base_url} is not reachable") from e
                await asyncio.sleep(self.retry_delay * (2 ** attempt))

            except httpx.HTTPStatusError as e:
                if e.response.status_code >= 500 or e.response.status_code == 429:
                    logger.error(f"Runtime server error {e.response.status_code} (attempt {attempt + 1}/{self.max_retries})")
                    if attempt == self.max_retries - 1:
                        raise RuntimeResponseError(f"Server error: {e.response.status_code}") from e
                    await asyncio.sleep(self.retry_delay * (2 ** attempt))
                else:
                    # Client errors don't retry
                    raise RuntimeResponseError(f"HTTP {e.response.status_code}: {e.response.text}") from e

            except (KeyError, IndexError, TypeError, json.JSONDecodeError) as e:
                logger.error(f"Invalid completion response: {e}")
                raise RuntimeResponseError(f"Invalid response format: {e}") from e

        raise RuntimeResponseError("No completion attempts were made (LLM_MAX_RETRIES < 1)")

    async def invoke(
        self,
        turn_input: str,
        *,
        max_steps: int,
        extra_instructions: str | None = None
    ) -> RuntimeResult:
        """
        Run one user turn.

        Each step is one model call; requested tools run sequentially in the
        order the model listed them. The turn ends when the model answers
        without tool calls or after max_steps calls.
        """
        result = RuntimeResult()
        self.history.append({"role": "user", "content": turn_input})
        result.messages.append(RuntimeMessage(role="user", content=turn_input))
        system = self._system_message(extra_instructions)

        while result.steps < max_steps:
            message = await self._complete([system, *self.history])
            result.steps += 1

            tool_calls = message.get("tool_calls") or []
            content = message.get("content") or ""
            entry = {"role": "assistant", "content": content}
            if tool_calls:
                entry["tool_calls"] = tool_calls
            self.history.append(entry)
            if content:
                result.messages.append(RuntimeMessage(role="assistant", content=content))

            if not tool_calls:
                break

            for call in tool_calls:
                function = call.get("function", {})
                name = function.get("name", "")
                output = await self.tools.call(name, function.get("arguments"))
                self.history.append({"role": "tool", "tool_call_id": call.get("id", ""), "content": output})
                result.messages.append(RuntimeMessage(role="tool", content=output, tool_name=name))
        else:
            logger.warning(f"Runtime turn stopped after {max_steps} steps")

        return result


class OpenAICompatRuntimeFactory:
    """Creates runtimes sharing one HTTP client."""

    def __init__(self, settings=None, client: httpx.AsyncClient | None = None):
        self.settings = settings or default_settings
        api_key = self.settings.LLM_API_KEY
        if client is None:
            if not api_key or not api_key.strip():
                raise RuntimeDisabledError(
                    "LLM_API_KEY is not set. Set it in your .env file to enable the agent runtime."
                )
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(5.0, read=float(self.settings.LLM_TIMEOUT)),
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "HTTP-Referer": self.settings.APP_NAME,
                    "X-Title": self.settings.APP_NAME,
                },
            )
        self.client = client
        logger.info(f"Agent runtime factory initialized (model: {self.settings.LLM_MODEL}, base: {self.settings.LLM_BASE_URL})")

    def create_runtime(self, instructions: str, tools: ToolSet) -> OpenAICompatRuntime:
        return OpenAICompatRuntime(self.client, instructions, tools, settings=self.settings)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
