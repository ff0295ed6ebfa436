from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from agent_swarm.engine.base import ModelEngine, StepOutput
from agent_swarm.schemas.generation import FinishReason, GenerationRequest, ToolCall
from agent_swarm.schemas.messages import Message, text_of
from agent_swarm.schemas.stream import TextDelta


@dataclass
class ScriptedStep:
    """One canned model completion."""

    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: Optional[FinishReason] = None


def tool_call(tool_name: str, args: Optional[Dict[str, Any]] = None, tool_call_id: str = "") -> ToolCall:
    """Scripted tool call; an empty id is replaced by a generated ``call_<n>``."""
    return ToolCall(tool_call_id=tool_call_id, tool_name=tool_name, args=dict(args or {}))


@dataclass
class RecordedCall:
    model: str
    system: str
    messages: List[Message]
    tool_names: List[str]
    tools: Dict[str, Any]
    max_steps: int
    tool_choice: Any


class ScriptedEngine(ModelEngine):
    """Deterministic engine that replays scripted steps for tests and offline runs.

    Once the script is exhausted it echoes the last user message, so it can
    also back the CLI without network access.
    """

    def __init__(self, steps: Iterable[ScriptedStep] | None = None, chunk_size: int = 8) -> None:
        self._steps: List[ScriptedStep] = list(steps or [])
        self._chunk_size = chunk_size
        self._ids = itertools.count(1)
        self.calls: List[RecordedCall] = []

    @property
    def remaining(self) -> int:
        return len(self._steps)

    async def _complete(self, request: GenerationRequest, messages: List[Message]) -> StepOutput:
        self.calls.append(
            RecordedCall(
                model=request.model,
                system=request.system,
                messages=list(messages),
                tool_names=sorted(request.tools or {}),
                tools=dict(request.tools or {}),
                max_steps=request.max_steps,
                tool_choice=request.tool_choice,
            )
        )
        if not self._steps:
            return StepOutput(text=self._echo(messages))

        step = self._steps.pop(0)
        calls = [
            ToolCall(
                tool_call_id=call.tool_call_id or f"call_{next(self._ids)}",
                tool_name=call.tool_name,
                args=dict(call.args),
            )
            for call in step.tool_calls
        ]
        return StepOutput(text=step.text, tool_calls=calls, finish_reason=step.finish_reason)

    async def _stream_step(self, request: GenerationRequest, messages: List[Message]):
        async for part in super()._stream_step(request, messages):
            if part.type != "text-delta":
                yield part
                continue
            text = part.text_delta
            for start in range(0, len(text), self._chunk_size):
                yield TextDelta(text_delta=text[start : start + self._chunk_size])

    @staticmethod
    def _echo(messages: List[Message]) -> str:
        for message in reversed(messages):
            if message.role == "user":
                return f"You said: {text_of(message.content)}"
        return "Hello!"
