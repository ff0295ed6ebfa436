import asyncio

import pytest

from agent_swarm.agents.base import Agent
from agent_swarm.engine.scripted import ScriptedEngine, ScriptedStep, tool_call
from agent_swarm.tools.base import FunctionTool, handover_to
from agent_swarm.workflows.orchestrator import Swarm


def support_pair():
    billing = Agent(name="billing", instructions="You handle billing.")
    queen = Agent(name="queen", instructions="You route.", tools={"transfer_to_billing": handover_to(billing)})
    return queen, billing


def test_text_stream_matches_final_text():
    queen, _ = support_pair()
    swarm = Swarm(queen=queen, engine=ScriptedEngine([ScriptedStep(text="Hello there, how can I help you?")]))

    async def scenario():
        live = swarm.stream_text("hi")
        chunks = [chunk async for chunk in live.text_stream]
        return chunks, await live.text, await live.finish_reason

    chunks, text, finish_reason = asyncio.run(scenario())

    assert len(chunks) > 1
    assert "".join(chunks) == text == "Hello there, how can I help you?"
    assert finish_reason == "stop"


def test_result_slots_resolve_without_reading_streams():
    queen, billing = support_pair()
    engine = ScriptedEngine([ScriptedStep(tool_calls=[tool_call("transfer_to_billing")]), ScriptedStep(text="Billing.")])
    swarm = Swarm(queen=queen, engine=engine)

    async def scenario():
        live = swarm.stream_text("my invoice")
        return await live.result()

    result = asyncio.run(scenario())

    assert result.active_agent is billing
    assert result.text == "Billing."
    assert swarm.active_agent is billing
    assert swarm.get_messages()[1:] == result.messages


def test_full_stream_reports_handover_between_agents():
    queen, billing = support_pair()
    engine = ScriptedEngine(
        [
            ScriptedStep(text="Transferring.", tool_calls=[tool_call("transfer_to_billing", tool_call_id="h1")]),
            ScriptedStep(text="Billing speaking."),
        ]
    )
    swarm = Swarm(queen=queen, engine=engine)

    async def scenario():
        live = swarm.stream_text("refund please")
        return [part async for part in live.full_stream]

    parts = asyncio.run(scenario())

    handovers = [i for i, part in enumerate(parts) if part.type == "tool-result" and part.handed_over_to]
    assert len(handovers) == 1
    handover = parts[handovers[0]]
    assert handover.tool_call_id == "h1"
    assert handover.agent.name == "queen"
    assert handover.handed_over_to.name == "billing"
    assert handover.result == "Handing over to agent billing"

    before, after = parts[: handovers[0]], parts[handovers[0] + 1 :]
    assert {part.agent.name for part in before} == {"queen"}
    assert {part.agent.name for part in after} == {"billing"}
    assert "".join(part.text_delta for part in after if part.type == "text-delta") == "Billing speaking."
    assert after[-1].type == "finish"


def test_function_tool_results_are_streamed():
    agent = Agent(name="solo", tools={"ping": FunctionTool(description="Ping", execute=lambda args: "pong")})
    engine = ScriptedEngine([ScriptedStep(tool_calls=[tool_call("ping", tool_call_id="p1")]), ScriptedStep(text="Done")])
    swarm = Swarm(queen=agent, engine=engine)

    async def scenario():
        live = swarm.stream_text("go")
        return [part async for part in live.full_stream]

    parts = asyncio.run(scenario())

    assert [part.type for part in parts] == [
        "tool-call",
        "tool-result",
        "step-finish",
        "text-delta",
        "step-finish",
        "finish",
    ]
    assert parts[1].result == "pong"
    assert parts[1].handed_over_to is None


def test_failure_surfaces_on_streams_and_slots():
    def explode(args):
        raise ValueError("backend down")

    agent = Agent(name="solo", tools={"explode": FunctionTool(description="Boom", execute=explode)})
    swarm = Swarm(queen=agent, engine=ScriptedEngine([ScriptedStep(tool_calls=[tool_call("explode")])]))

    async def scenario():
        live = swarm.stream_text("go")
        parts = [part async for part in live.full_stream]
        with pytest.raises(ValueError):
            await live.text
        with pytest.raises(ValueError):
            [chunk async for chunk in live.text_stream]
        return parts

    parts = asyncio.run(scenario())

    assert [part.type for part in parts] == ["tool-call", "error"]
    assert isinstance(parts[-1].error, ValueError)
    assert parts[-1].agent.name == "solo"
    assert swarm.get_messages() == []
