from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional, Tuple

from agent_swarm.agents.base import Agent
from agent_swarm.engine.base import ModelEngine
from agent_swarm.errors import InvocationError
from agent_swarm.memory.context import ContextStore
from agent_swarm.memory.transcript import Transcript
from agent_swarm.schemas.generation import FinishReason, GenerationRequest, GenerationResult
from agent_swarm.schemas.messages import Message, UserContent, UserMessage
from agent_swarm.schemas.stream import StreamPart
from agent_swarm.utils.settings import SwarmConfig
from agent_swarm.utils.streams import ResultSlot
from agent_swarm.workflows.stream_composer import StreamComposer
from agent_swarm.workflows.turn_loop import (
    DEFAULT_MAX_TURNS,
    HandoverListener,
    LoopResult,
    StepListener,
    TurnLoop,
    TurnState,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


@dataclass
class SwarmResult:
    finish_reason: FinishReason
    active_agent: Agent
    text: str
    messages: List[Message]
    context: Dict[str, Any]


@dataclass
class SwarmStreamResult:
    """Live result of ``Swarm.stream_text``.

    The scalar fields are result slots: ``await result.text`` resolves once
    the whole invocation completes, independently of whether ``text_stream``
    or ``full_stream`` are consumed.
    """

    text_stream: AsyncIterator[str]
    full_stream: AsyncIterator[StreamPart]
    finish_reason: ResultSlot[FinishReason] = field(default_factory=ResultSlot)
    active_agent: ResultSlot[Agent] = field(default_factory=ResultSlot)
    text: ResultSlot[str] = field(default_factory=ResultSlot)
    messages: ResultSlot[List[Message]] = field(default_factory=ResultSlot)
    context: ResultSlot[Dict[str, Any]] = field(default_factory=ResultSlot)
    _task: Optional[asyncio.Task] = field(default=None, repr=False)

    async def result(self) -> SwarmResult:
        return SwarmResult(
            finish_reason=await self.finish_reason,
            active_agent=await self.active_agent,
            text=await self.text,
            messages=await self.messages,
            context=await self.context,
        )

    def _resolve(self, result: SwarmResult) -> None:
        self.finish_reason.set(result.finish_reason)
        self.active_agent.set(result.active_agent)
        self.text.set(result.text)
        self.messages.set(result.messages)
        self.context.set(result.context)

    def _fail(self, error: BaseException) -> None:
        for slot in (self.finish_reason, self.active_agent, self.text, self.messages, self.context):
            slot.set_exception(error)


class Swarm:
    """Conversation between a user and a set of agents that hand control to each other.

    One instance holds one conversation: its history, its shared context and
    the currently active agent. Every invocation runs turns for the active
    agent until one produces a final answer, hands over, or runs out of
    turns, and appends the exchange to the history.
    """

    def __init__(
        self,
        queen: Agent,
        engine: ModelEngine,
        initial_context: Mapping[str, Any] | None = None,
        messages: Iterable[Message] | None = None,
        name: str | None = None,
        default_model: str = DEFAULT_MODEL,
        max_turns: int | None = None,
        return_to_queen: bool = False,
        tool_call_streaming: bool = True,
    ) -> None:
        self.queen = queen
        self.engine = engine
        self.name = name
        self.default_model = default_model
        self.max_turns = max_turns or DEFAULT_MAX_TURNS
        self.return_to_queen = return_to_queen
        self.tool_call_streaming = tool_call_streaming
        self._active_agent = queen
        self._context = ContextStore(initial_context)
        self._transcript = Transcript(messages)

    @classmethod
    def from_config(
        cls,
        config: SwarmConfig,
        queen: Agent,
        engine: ModelEngine,
        default_model: str = DEFAULT_MODEL,
        initial_context: Mapping[str, Any] | None = None,
    ) -> "Swarm":
        return cls(
            queen=queen,
            engine=engine,
            initial_context=initial_context,
            name=config.name,
            default_model=default_model,
            max_turns=config.max_turns,
            return_to_queen=config.return_to_queen,
            tool_call_streaming=config.tool_call_streaming,
        )

    @property
    def active_agent(self) -> Agent:
        return self._active_agent

    def get_context(self) -> Mapping[str, Any]:
        return self._context.get()

    def update_context(self, update: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._context.merge(update)

    def get_messages(self) -> List[Message]:
        return self._transcript.all()

    async def generate_text(
        self,
        content: UserContent | None = None,
        *,
        messages: List[Message] | None = None,
        context_update: Mapping[str, Any] | None = None,
        set_agent: Agent | None = None,
        max_turns: int | None = None,
        return_to_queen: bool | None = None,
        on_step_finish: StepListener | None = None,
    ) -> SwarmResult:
        state, new_messages = self._prepare(content, messages, context_update, set_agent)
        loop = self._turn_loop(max_turns, on_step_finish)
        outcome = await loop.run(state, self._generate)
        return self._commit(outcome, new_messages, return_to_queen)

    def stream_text(
        self,
        content: UserContent | None = None,
        *,
        messages: List[Message] | None = None,
        context_update: Mapping[str, Any] | None = None,
        set_agent: Agent | None = None,
        max_turns: int | None = None,
        return_to_queen: bool | None = None,
        on_step_finish: StepListener | None = None,
        tool_call_streaming: bool | None = None,
    ) -> SwarmStreamResult:
        """Start an invocation in the background and return its live result.

        Must be called while an event loop is running.
        """
        state, new_messages = self._prepare(content, messages, context_update, set_agent)
        composer = StreamComposer()
        live = SwarmStreamResult(text_stream=composer.text_stream, full_stream=composer.full_stream)
        stream_tool_calls = self.tool_call_streaming if tool_call_streaming is None else tool_call_streaming

        async def invoke(agent: Agent, request: GenerationRequest) -> GenerationResult:
            request.tool_call_streaming = stream_tool_calls
            generation = self.engine.stream(request)
            composer.splice(generation.full_stream, agent.ref)
            return await generation.collect()

        loop = self._turn_loop(max_turns, on_step_finish, on_handover=composer.handover)

        async def run() -> None:
            try:
                outcome = await loop.run(state, invoke)
                committed = self._commit(outcome, new_messages, return_to_queen)
            except Exception as exc:
                logger.debug("Streaming invocation failed: %s", exc)
                composer.fail(exc, self._active_agent.ref)
                live._fail(exc)
            else:
                live._resolve(committed)
            finally:
                composer.close()

        live._task = asyncio.get_running_loop().create_task(run())
        return live

    async def _generate(self, agent: Agent, request: GenerationRequest) -> GenerationResult:
        return await self.engine.generate(request)

    def _turn_loop(
        self,
        max_turns: int | None,
        on_step_finish: StepListener | None,
        on_handover: HandoverListener | None = None,
    ) -> TurnLoop:
        return TurnLoop(
            queen=self.queen,
            default_model=self.default_model,
            store=self._context,
            max_turns=max_turns if max_turns is not None else self.max_turns,
            on_step_finish=on_step_finish,
            on_handover=on_handover,
        )

    def _prepare(
        self,
        content: UserContent | None,
        messages: List[Message] | None,
        context_update: Mapping[str, Any] | None,
        set_agent: Agent | None,
    ) -> Tuple[TurnState, List[Message]]:
        if (content is None) == (messages is None):
            raise InvocationError("Invoke the swarm with either new content or a message list, not both.")

        if set_agent is not None:
            self._active_agent = set_agent

        new_messages: List[Message] = []
        if messages is not None:
            self._transcript.reset(messages)
        else:
            new_messages.append(UserMessage(content=content))

        self._context.merge(context_update)
        state = TurnState(
            agent=self._active_agent,
            input_messages=[*self._transcript.all(), *new_messages],
        )
        return state, new_messages

    def _commit(
        self,
        outcome: LoopResult,
        new_messages: List[Message],
        return_to_queen: bool | None,
    ) -> SwarmResult:
        self._transcript.extend([*new_messages, *outcome.messages])
        self._active_agent = outcome.agent
        result = SwarmResult(
            finish_reason=outcome.finish_reason,
            active_agent=outcome.agent,
            text=outcome.text,
            messages=outcome.messages,
            context=self._context.as_dict(),
        )

        reset = self.return_to_queen if return_to_queen is None else return_to_queen
        if reset:
            self._active_agent = self.queen
        logger.debug(
            "Swarm %s finished with %s after %d message(s); active agent is %s",
            self.name or "(unnamed)",
            outcome.finish_reason,
            len(outcome.messages),
            self._active_agent.name,
        )
        return result
