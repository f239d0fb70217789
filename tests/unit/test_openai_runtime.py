"""
Unit tests for the OpenAI-compatible agent runtime.

WHAT: Test the tool loop, history handling, retries and error mapping
WHY: The runtime is the bridge between the model endpoint and the tools
HOW: Mock HTTP with respx, register a tiny echo tool
"""

import json

import httpx
import pytest
import respx
from pydantic import BaseModel

from negbot.runtime.openai_compat import OpenAICompatRuntimeFactory
from negbot.runtime.toolset import ToolSet, ToolSpec
from negbot.runtime.types import (
    RuntimeDisabledError,
    RuntimeResponseError,
    RuntimeTimeoutError,
    RuntimeUnavailableError,
)


COMPLETIONS_URL = "http://llm.test/v1/chat/completions"


class EchoArgs(BaseModel):
    text: str


def completion(content=None, tool_calls=None):
    message = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return {
        "choices": [{"message": message, "finish_reason": "tool_calls" if tool_calls else "stop"}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        "model": "test-model",
    }


def call(call_id, name, **arguments):
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": json.dumps(arguments)}}


@pytest.fixture
def echo_calls():
    return []


@pytest.fixture
def runtime(test_settings, echo_calls):
    async def echo(args: EchoArgs) -> str:
        echo_calls.append(args.text)
        return f"echo: {args.text}"

    tools = ToolSet([ToolSpec(name="echo", description="Echo text", args_model=EchoArgs, handler=echo)])
    factory = OpenAICompatRuntimeFactory(test_settings, client=httpx.AsyncClient())
    return factory.create_runtime("You are a test agent.", tools)


@pytest.mark.unit
class TestToolLoop:
    """Test tool execution and history."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_runs_tools_until_final_answer(self, runtime, echo_calls):
        route = respx.post(COMPLETIONS_URL).mock(side_effect=[
            httpx.Response(200, json=completion(tool_calls=[call("c1", "echo", text="hi"), call("c2", "echo", text="there")])),
            httpx.Response(200, json=completion(content="Done.")),
        ])

        result = await runtime.invoke("start", max_steps=5)

        assert echo_calls == ["hi", "there"]
        assert result.steps == 2
        assert [m.tool_name for m in result.tool_calls] == ["echo", "echo"]
        assert result.messages[-1].content == "Done."

        second_request = json.loads(route.calls[1].request.content)
        tool_messages = [m for m in second_request["messages"] if m["role"] == "tool"]
        assert [m["tool_call_id"] for m in tool_messages] == ["c1", "c2"]
        assert tool_messages[0]["content"] == "echo: hi"
        assert second_request["tools"][0]["function"]["name"] == "echo"

    @pytest.mark.asyncio
    @respx.mock
    async def test_stops_at_max_steps(self, runtime, echo_calls):
        respx.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, json=completion(tool_calls=[call("c", "echo", text="again")]))
        )

        result = await runtime.invoke("start", max_steps=3)

        assert result.steps == 3
        assert len(echo_calls) == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_bad_arguments_returned_to_model(self, runtime, echo_calls):
        respx.post(COMPLETIONS_URL).mock(side_effect=[
            httpx.Response(200, json=completion(tool_calls=[call("c1", "echo", wrong="x")])),
            httpx.Response(200, json=completion(content="Sorry.")),
        ])

        result = await runtime.invoke("start", max_steps=5)

        assert echo_calls == []
        assert result.tool_calls[0].content.startswith("Error: invalid arguments for tool 'echo'")

    @pytest.mark.asyncio
    @respx.mock
    async def test_history_kept_and_extra_instructions_not_stored(self, runtime):
        route = respx.post(COMPLETIONS_URL).mock(return_value=httpx.Response(200, json=completion(content="ok")))

        await runtime.invoke("first", max_steps=1, extra_instructions="Competitor offers 900.00")
        await runtime.invoke("second", max_steps=1)

        first = json.loads(route.calls[0].request.content)
        second = json.loads(route.calls[1].request.content)
        assert first["messages"][0]["content"].startswith("Competitor offers 900.00")
        assert "900.00" not in second["messages"][0]["content"]
        assert [m["content"] for m in second["messages"] if m["role"] == "user"] == ["first", "second"]


@pytest.mark.unit
class TestErrors:
    """Test retry and error mapping."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_server_errors(self, runtime):
        route = respx.post(COMPLETIONS_URL).mock(side_effect=[
            httpx.Response(503, text="overloaded"),
            httpx.Response(200, json=completion(content="ok")),
        ])

        result = await runtime.invoke("start", max_steps=1)
        assert route.call_count == 2
        assert result.messages[-1].content == "ok"

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_error_not_retried(self, runtime):
        route = respx.post(COMPLETIONS_URL).mock(return_value=httpx.Response(400, text="bad request"))
        with pytest.raises(RuntimeResponseError):
            await runtime.invoke("start", max_steps=1)
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_after_retries(self, runtime, test_settings):
        route = respx.post(COMPLETIONS_URL).mock(side_effect=httpx.TimeoutException("timeout"))
        with pytest.raises(RuntimeTimeoutError):
            await runtime.invoke("start", max_steps=1)
        assert route.call_count == test_settings.LLM_MAX_RETRIES

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_refused(self, runtime):
        respx.post(COMPLETIONS_URL).mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(RuntimeUnavailableError):
            await runtime.invoke("start", max_steps=1)

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_body(self, runtime):
        respx.post(COMPLETIONS_URL).mock(return_value=httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(RuntimeResponseError):
            await runtime.invoke("start", max_steps=1)

    def test_factory_requires_api_key(self, test_settings):
        settings = test_settings.model_copy(update={"LLM_API_KEY": ""})
        with pytest.raises(RuntimeDisabledError):
            OpenAICompatRuntimeFactory(settings)
