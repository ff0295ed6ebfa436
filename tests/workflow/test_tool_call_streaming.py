import asyncio
from types import SimpleNamespace

import pytest

from agent_swarm.agents.base import Agent
from agent_swarm.engine.openai_engine import OpenAIEngine
from agent_swarm.tools.base import FunctionTool
from agent_swarm.workflows.orchestrator import Swarm


class StreamingCompletions:
    def __init__(self, *streams):
        self.streams = list(streams)

    async def create(self, **kwargs):
        return self.streams.pop(0)


async def chunks(*items):
    for item in items:
        yield item


def chunk(content=None, tool_calls=None, finish_reason=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)])


def lookup_delta(arguments, first=False):
    return SimpleNamespace(
        index=0,
        id="call_1" if first else None,
        function=SimpleNamespace(name="lookup" if first else None, arguments=arguments),
    )


def build_swarm(**options):
    completions = StreamingCompletions(
        chunks(
            chunk(tool_calls=[lookup_delta('{"invoice', first=True)]),
            chunk(tool_calls=[lookup_delta('_id": "INV-1"}')], finish_reason="tool_calls"),
        ),
        chunks(chunk(content="Found it."), chunk(finish_reason="stop")),
    )
    engine = OpenAIEngine(client=SimpleNamespace(chat=SimpleNamespace(completions=completions)))
    agent = Agent(
        name="billing",
        tools={"lookup": FunctionTool(description="Look up", execute=lambda args: f"paid {args['invoice_id']}")},
    )
    return Swarm(queen=agent, engine=engine, **options)


def stream_parts(swarm, **options):
    async def scenario():
        live = swarm.stream_text("where is INV-1", **options)
        parts = [part async for part in live.full_stream]
        return parts, await live.text

    return asyncio.run(scenario())


def test_partial_tool_arguments_are_streamed_by_default():
    parts, text = stream_parts(build_swarm())

    types = [part.type for part in parts]
    assert types[:4] == ["tool-call-streaming-start", "tool-call-delta", "tool-call-delta", "tool-call"]
    deltas = [part.args_text_delta for part in parts if part.type == "tool-call-delta"]
    assert "".join(deltas) == '{"invoice_id": "INV-1"}'
    assert {part.agent.name for part in parts} == {"billing"}
    assert text == "Found it."


@pytest.mark.parametrize(
    "swarm_options, call_options",
    [({"tool_call_streaming": False}, {}), ({}, {"tool_call_streaming": False})],
)
def test_partial_tool_arguments_can_be_switched_off(swarm_options, call_options):
    parts, text = stream_parts(build_swarm(**swarm_options), **call_options)

    types = [part.type for part in parts]
    assert "tool-call-streaming-start" not in types
    assert "tool-call-delta" not in types
    tool_call = next(part for part in parts if part.type == "tool-call")
    assert tool_call.args == {"invoice_id": "INV-1"}
    result = next(part for part in parts if part.type == "tool-result")
    assert result.result == "paid INV-1"
    assert text == "Found it."
