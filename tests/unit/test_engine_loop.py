import asyncio

import pytest

from agent_swarm.engine.scripted import ScriptedEngine, ScriptedStep, tool_call
from agent_swarm.errors import NoSuchToolError
from agent_swarm.schemas.generation import EngineTool, GenerationRequest
from agent_swarm.schemas.messages import UserMessage


async def add(args):
    return args["a"] + args["b"]


def build_request(tools=None, max_steps=5, on_step_finish=None):
    return GenerationRequest(
        model="test-model",
        system="You add numbers.",
        messages=[UserMessage(content="What is 1 + 2?")],
        tools=tools,
        max_steps=max_steps,
        on_step_finish=on_step_finish,
    )


ADD_TOOL = {"add": EngineTool(name="add", description="Add", parameters={}, execute=add)}


def test_executes_tools_and_continues_until_text():
    engine = ScriptedEngine(
        [ScriptedStep(tool_calls=[tool_call("add", {"a": 1, "b": 2})]), ScriptedStep(text="It is 3.")]
    )

    result = asyncio.run(engine.generate(build_request(ADD_TOOL)))

    assert result.finish_reason == "stop"
    assert result.text == "It is 3."
    assert [m.role for m in result.response_messages] == ["assistant", "tool", "assistant"]
    assert result.response_messages[1].content[0].result == 3
    assert len(result.steps) == 2
    assert result.tool_calls == []


def test_stops_on_call_without_executor():
    engine = ScriptedEngine(
        [ScriptedStep(tool_calls=[tool_call("transfer", tool_call_id="h1")]), ScriptedStep(text="never")]
    )
    tools = {"transfer": EngineTool(name="transfer", description="Transfer", parameters={})}

    result = asyncio.run(engine.generate(build_request(tools)))

    assert result.finish_reason == "tool-calls"
    assert [call.tool_call_id for call in result.tool_calls] == ["h1"]
    assert result.tool_results == []
    assert [m.role for m in result.response_messages] == ["assistant"]
    assert engine.remaining == 1


def test_step_ceiling_is_respected():
    engine = ScriptedEngine(
        [
            ScriptedStep(tool_calls=[tool_call("add", {"a": 1, "b": 1})]),
            ScriptedStep(tool_calls=[tool_call("add", {"a": 2, "b": 2})]),
        ]
    )

    result = asyncio.run(engine.generate(build_request(ADD_TOOL, max_steps=1)))

    assert result.finish_reason == "tool-calls"
    assert [m.role for m in result.response_messages] == ["assistant", "tool"]
    assert engine.remaining == 1


def test_unknown_tool_raises():
    engine = ScriptedEngine([ScriptedStep(tool_calls=[tool_call("divide")])])
    with pytest.raises(NoSuchToolError):
        asyncio.run(engine.generate(build_request(ADD_TOOL)))


def test_observer_sees_every_step():
    seen = []
    engine = ScriptedEngine(
        [ScriptedStep(tool_calls=[tool_call("add", {"a": 1, "b": 2})]), ScriptedStep(text="3")]
    )

    asyncio.run(engine.generate(build_request(ADD_TOOL, on_step_finish=lambda step: seen.append(step))))

    assert [step.finish_reason for step in seen] == ["tool-calls", "stop"]
    assert seen[0].tool_results[0].result == 3


def test_echoes_when_script_is_exhausted():
    result = asyncio.run(ScriptedEngine().generate(build_request()))
    assert result.text == "You said: What is 1 + 2?"
    assert result.finish_reason == "stop"


def test_stream_emits_parts_and_resolves_same_result():
    engine = ScriptedEngine(
        [
            ScriptedStep(tool_calls=[tool_call("add", {"a": 1, "b": 2})]),
            ScriptedStep(text="The answer is three."),
        ]
    )

    async def scenario():
        generation = engine.stream(build_request(ADD_TOOL))
        parts = [part async for part in generation.full_stream]
        return parts, await generation.collect()

    parts, result = asyncio.run(scenario())
    kinds = [part.type for part in parts]

    assert kinds[:3] == ["tool-call", "tool-result", "step-finish"]
    assert kinds[-2:] == ["step-finish", "finish"]
    assert "".join(part.text_delta for part in parts if part.type == "text-delta") == "The answer is three."
    assert result.text == "The answer is three."
    assert result.finish_reason == "stop"
    assert [m.role for m in result.response_messages] == ["assistant", "tool", "assistant"]


def test_stream_failure_surfaces_through_result_slots():
    async def explode(args):
        raise ValueError("tool failed")

    engine = ScriptedEngine([ScriptedStep(tool_calls=[tool_call("explode")])])
    tools = {"explode": EngineTool(name="explode", description="", parameters={}, execute=explode)}

    async def scenario():
        generation = engine.stream(build_request(tools))
        parts = [part async for part in generation.full_stream]
        with pytest.raises(ValueError):
            await generation.text
        return parts

    assert [part.type for part in asyncio.run(scenario())] == ["tool-call"]
