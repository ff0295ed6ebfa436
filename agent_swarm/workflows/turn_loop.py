from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Union

from agent_swarm.agents.base import Agent
from agent_swarm.memory.context import ContextStore
from agent_swarm.schemas.generation import (
    TERMINAL_FINISH_REASONS,
    FinishReason,
    GenerationRequest,
    GenerationResult,
    StepResult,
)
from agent_swarm.schemas.messages import Message, count_assistant_messages
from agent_swarm.tools.adapter import wrap_tools
from agent_swarm.utils.awaitables import maybe_await
from agent_swarm.workflows.handover import HandoverOutcome, resolve_handover

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 100

Invoke = Callable[[Agent, GenerationRequest], Awaitable[GenerationResult]]
HandoverListener = Callable[[HandoverOutcome], None]
StepListener = Callable[[StepResult, Mapping[str, Any]], Union[Awaitable[None], None]]


@dataclass
class TurnState:
    """Loop state threaded from one turn to the next."""

    agent: Agent
    input_messages: List[Message]
    response_messages: List[Message] = field(default_factory=list)
    last_result: Optional[GenerationResult] = None
    done: bool = False

    @property
    def assistant_turns(self) -> int:
        return count_assistant_messages(self.response_messages)

    @property
    def finish_reason(self) -> Optional[FinishReason]:
        return self.last_result.finish_reason if self.last_result else None


@dataclass
class LoopResult:
    finish_reason: FinishReason
    agent: Agent
    text: str
    messages: List[Message]


class TurnLoop:
    """Runs turns for the active agent until a terminal finish reason or the turn ceiling.

    How a single turn reaches the engine is supplied by the caller as
    ``invoke``, so the blocking and streaming modes share this loop.
    """

    def __init__(
        self,
        queen: Agent,
        default_model: str,
        store: ContextStore,
        max_turns: int = DEFAULT_MAX_TURNS,
        on_step_finish: Optional[StepListener] = None,
        on_handover: Optional[HandoverListener] = None,
    ) -> None:
        self.queen = queen
        self.default_model = default_model
        self.store = store
        self.max_turns = max_turns
        self.on_step_finish = on_step_finish
        self.on_handover = on_handover

    async def run(self, state: TurnState, invoke: Invoke) -> LoopResult:
        while not state.done:
            state = await self.step(state, invoke)
        return LoopResult(
            finish_reason=state.finish_reason,
            agent=state.agent,
            text=state.last_result.text,
            messages=state.response_messages,
        )

    async def step(self, state: TurnState, invoke: Invoke) -> TurnState:
        agent = state.agent
        logger.debug("Turn %d: invoking agent %s", state.assistant_turns + 1, agent.name)
        result = await invoke(agent, self.request_for(agent, state))
        produced = tag_messages(result.response_messages, agent.name)
        state = dataclasses.replace(
            state,
            response_messages=[*state.response_messages, *produced],
            last_result=result,
        )

        if result.finish_reason in TERMINAL_FINISH_REASONS:
            logger.debug("Agent %s finished with %s", agent.name, result.finish_reason)
            return dataclasses.replace(state, done=True)

        next_agent = agent
        outcome, recorded = await resolve_handover(agent, result, state.response_messages, self.store)
        state = dataclasses.replace(state, response_messages=recorded)
        if outcome is not None:
            next_agent = outcome.agent
            if self.on_handover is not None:
                self.on_handover(outcome)

        if self.exhausted_own_budget(agent, result, state):
            logger.info(
                "Agent %s used all %d of its turns, returning to %s",
                agent.name,
                agent.config.max_turns,
                self.queen.name,
            )
            next_agent = self.queen

        return dataclasses.replace(
            state,
            agent=next_agent,
            done=state.assistant_turns >= self.max_turns,
        )

    def request_for(self, agent: Agent, state: TurnState) -> GenerationRequest:
        context = self.store.get()
        return GenerationRequest(
            model=agent.config.model or self.default_model,
            system=agent.get_instructions(context),
            tools=wrap_tools(agent.tools, self.store),
            max_steps=agent.config.max_turns or self.max_turns,
            tool_choice=agent.config.tool_choice,
            on_step_finish=self._observe if self.on_step_finish is not None else None,
            messages=[*state.input_messages, *state.response_messages],
        )

    def exhausted_own_budget(self, agent: Agent, result: GenerationResult, state: TurnState) -> bool:
        cap = agent.config.max_turns
        return (
            cap is not None
            and count_assistant_messages(result.response_messages) == cap
            and state.assistant_turns < self.max_turns
        )

    async def _observe(self, step: StepResult) -> None:
        await maybe_await(self.on_step_finish(step, self.store.get()))


def tag_messages(messages: List[Message], sender: str) -> List[Message]:
    """Copy a turn's messages, stamping assistant messages with their sender."""
    tagged: List[Message] = []
    for message in messages:
        if message.role == "assistant":
            content = message.content if isinstance(message.content, str) else list(message.content)
            tagged.append(dataclasses.replace(message, content=content, sender=sender))
        elif message.role == "tool":
            tagged.append(dataclasses.replace(message, content=list(message.content)))
        else:
            tagged.append(message)
    return tagged
