from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator

from agent_swarm.schemas.stream import AgentRef, ErrorPart, StreamPart, ToolResultEvent
from agent_swarm.utils.streams import StitchableStream
from agent_swarm.workflows.handover import HandoverOutcome


@dataclass
class EnrichedPart:
    """A stream element paired with the agent that was active when it was produced."""

    part: StreamPart
    agent: AgentRef


class StreamComposer:
    """Stitches per-turn engine streams into one channel and derives the public views."""

    def __init__(self) -> None:
        self._channel: StitchableStream[EnrichedPart] = StitchableStream()
        self.text_stream: AsyncIterator[str] = text_view(self._channel.tee())
        self.full_stream: AsyncIterator[StreamPart] = annotated_view(self._channel.tee())

    def splice(self, source: AsyncIterable[StreamPart], agent: AgentRef) -> None:
        self._channel.add_stream(_enrich(source, agent))

    def handover(self, outcome: HandoverOutcome) -> None:
        previous = outcome.previous_agent.ref
        self._channel.enqueue(
            EnrichedPart(
                part=ToolResultEvent(
                    tool_call_id=outcome.call.tool_call_id,
                    tool_name=outcome.call.tool_name,
                    args=outcome.call.args,
                    result=outcome.message,
                    handed_over_to=outcome.agent.ref,
                    agent=previous,
                ),
                agent=previous,
            )
        )

    def fail(self, error: BaseException, agent: AgentRef) -> None:
        self._channel.enqueue(EnrichedPart(part=ErrorPart(error=error), agent=agent))

    def close(self) -> None:
        self._channel.close()


async def _enrich(source: AsyncIterable[StreamPart], agent: AgentRef) -> AsyncIterator[EnrichedPart]:
    async for part in source:
        yield EnrichedPart(part=part, agent=agent)


async def text_view(channel: AsyncIterable[EnrichedPart]) -> AsyncIterator[str]:
    async for enriched in channel:
        part = enriched.part
        if part.type == "text-delta":
            yield part.text_delta
        elif part.type == "error":
            raise part.error


async def annotated_view(channel: AsyncIterable[EnrichedPart]) -> AsyncIterator[StreamPart]:
    async for enriched in channel:
        part = enriched.part
        if part.agent is None:
            part = dataclasses.replace(part, agent=enriched.agent)
        yield part
