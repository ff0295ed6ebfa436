"""Handover resolution for a single turn.

A handover tool reaches the engine without an executor, so the engine ends
the turn and reports the call as unhandled. Here the first such call is
executed against the agent's original tool, its result is written into the
turn's messages as a synthetic tool result, and any further handover calls
from the same turn are removed from the assistant message so the history
never holds a call without a result.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from agent_swarm.agents.base import Agent
from agent_swarm.memory.context import ContextStore
from agent_swarm.schemas.generation import GenerationResult, ToolCall
from agent_swarm.schemas.messages import AssistantMessage, Message, ToolMessage, ToolResultPart
from agent_swarm.tools.base import HandoverResult, HandoverTool
from agent_swarm.utils.awaitables import maybe_await

logger = logging.getLogger(__name__)


@dataclass
class HandoverOutcome:
    call: ToolCall
    previous_agent: Agent
    agent: Agent

    @property
    def message(self) -> str:
        return f"Handing over to agent {self.agent.name}"

    def as_tool_result(self) -> ToolResultPart:
        return ToolResultPart(
            tool_call_id=self.call.tool_call_id,
            tool_name=self.call.tool_name,
            result=self.message,
        )


def find_handover_calls(agent: Agent, result: GenerationResult) -> List[ToolCall]:
    """Unhandled calls of the turn that name one of ``agent``'s handover tools, in emission order."""
    handled = {tool_result.tool_call_id for tool_result in result.tool_results}
    calls: List[ToolCall] = []
    for call in result.tool_calls:
        if call.tool_call_id in handled:
            continue
        tool = agent.tools.get(call.tool_name)
        if tool is not None and tool.type == "handover":
            calls.append(call)
    return calls


async def execute_handover(agent: Agent, call: ToolCall, store: ContextStore) -> HandoverOutcome:
    tool: HandoverTool = agent.tools[call.tool_name]
    args: Dict[str, Any] = {**call.args, **store.get()}
    result: HandoverResult = await maybe_await(tool.execute(args))
    if result.context:
        store.merge(result.context)
    logger.info("Agent %s handed over to %s via %s", agent.name, result.agent.name, call.tool_name)
    return HandoverOutcome(call=call, previous_agent=agent, agent=result.agent)


def record_handover(
    response_messages: List[Message],
    outcome: Optional[HandoverOutcome],
    discarded: List[ToolCall],
) -> List[Message]:
    """Return the turn's messages with the synthetic handover result spliced in and discarded calls pruned.

    The turn's messages end either with its assistant message or with the
    assistant message followed by the tool message holding executed results.
    ``response_messages`` itself is left untouched.
    """
    messages = list(response_messages)
    tool_index = len(messages) - 1 if messages[-1].role == "tool" else None
    assistant_index = len(messages) - 1 if tool_index is None else tool_index - 1

    if outcome is not None:
        if tool_index is None:
            messages.append(ToolMessage(content=[outcome.as_tool_result()]))
        else:
            tool_message: ToolMessage = messages[tool_index]
            messages[tool_index] = dataclasses.replace(
                tool_message, content=[*tool_message.content, outcome.as_tool_result()]
            )

    assistant_message: AssistantMessage = messages[assistant_index]
    if discarded and not isinstance(assistant_message.content, str):
        dropped = {call.tool_call_id for call in discarded}
        logger.debug("Discarding %d extra handover call(s): %s", len(dropped), sorted(dropped))
        messages[assistant_index] = dataclasses.replace(
            assistant_message,
            content=[
                part
                for part in assistant_message.content
                if part.type != "tool-call" or part.tool_call_id not in dropped
            ],
        )
    return messages


async def resolve_handover(
    agent: Agent,
    result: GenerationResult,
    response_messages: List[Message],
    store: ContextStore,
) -> Tuple[Optional[HandoverOutcome], List[Message]]:
    """Honour the first handover call of the turn, if any.

    Returns the outcome (None when there was no handover) and the turn's
    messages after recording it.
    """
    calls = find_handover_calls(agent, result)
    outcome = await execute_handover(agent, calls[0], store) if calls else None
    return outcome, record_handover(response_messages, outcome, calls[1:])
