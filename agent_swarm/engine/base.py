"""Model-invocation engine contract.

A backend only has to produce one model completion at a time (``_complete``,
optionally ``_stream_step`` for live output). ``ModelEngine`` runs the
multi-step loop on top of it: it executes every tool call whose tool has an
executor, feeds the results back to the model, and stops as soon as a step
finishes without tool calls, a call could not be executed (handover tools
have no executor), or ``max_steps`` is reached.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from agent_swarm.errors import NoSuchToolError
from agent_swarm.schemas.generation import (
    FinishReason,
    GenerationRequest,
    GenerationResult,
    StepResult,
    ToolCall,
    ToolResult,
)
from agent_swarm.schemas.messages import (
    AssistantMessage,
    Message,
    TextPart,
    ToolCallPart,
    ToolMessage,
    ToolResultPart,
)
from agent_swarm.schemas.stream import (
    FinishPart,
    StepFinishPart,
    StreamPart,
    TextDelta,
    ToolCallEvent,
    ToolResultEvent,
)
from agent_swarm.utils.awaitables import maybe_await
from agent_swarm.utils.streams import QueueStream, ResultSlot

logger = logging.getLogger(__name__)


@dataclass
class StepOutput:
    """Raw completion returned by a backend for a single step."""

    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: Optional[FinishReason] = None

    def __post_init__(self) -> None:
        if self.finish_reason is None:
            self.finish_reason = "tool-calls" if self.tool_calls else "stop"


class StreamingGeneration:
    """Live view of a streaming engine invocation.

    ``full_stream`` yields stream parts as they are produced; the remaining
    fields are result slots that resolve once the invocation completes,
    whether or not the stream is consumed.
    """

    def __init__(self) -> None:
        self._parts: QueueStream[StreamPart] = QueueStream()
        self.finish_reason: ResultSlot[FinishReason] = ResultSlot()
        self.text: ResultSlot[str] = ResultSlot()
        self.response_messages: ResultSlot[List[Message]] = ResultSlot()
        self.tool_calls: ResultSlot[List[ToolCall]] = ResultSlot()
        self.tool_results: ResultSlot[List[ToolResult]] = ResultSlot()
        self.steps: ResultSlot[List[StepResult]] = ResultSlot()
        self._task: Optional[asyncio.Task] = None

    @property
    def full_stream(self) -> AsyncIterator[StreamPart]:
        return self._parts.__aiter__()

    async def collect(self) -> GenerationResult:
        return GenerationResult(
            finish_reason=await self.finish_reason,
            text=await self.text,
            response_messages=await self.response_messages,
            tool_calls=await self.tool_calls,
            tool_results=await self.tool_results,
            steps=await self.steps,
        )

    def _emit(self, part: StreamPart) -> None:
        self._parts.push(part)

    def _resolve(self, result: GenerationResult) -> None:
        self.finish_reason.set(result.finish_reason)
        self.text.set(result.text)
        self.response_messages.set(result.response_messages)
        self.tool_calls.set(result.tool_calls)
        self.tool_results.set(result.tool_results)
        self.steps.set(result.steps)

    def _fail(self, error: BaseException) -> None:
        for slot in (
            self.finish_reason,
            self.text,
            self.response_messages,
            self.tool_calls,
            self.tool_results,
            self.steps,
        ):
            if not slot.done():
                slot.set_exception(error)


class ModelEngine(ABC):
    """Base class for model backends."""

    @abstractmethod
    async def _complete(self, request: GenerationRequest, messages: List[Message]) -> StepOutput:
        """Run a single model completion over ``messages``."""

    async def _stream_step(
        self, request: GenerationRequest, messages: List[Message]
    ) -> AsyncIterator[StreamPart]:
        """Stream a single completion; must end with a ``step-finish`` part.

        The default falls back to ``_complete`` and replays it as parts.
        """
        output = await self._complete(request, messages)
        if output.text:
            yield TextDelta(text_delta=output.text)
        for call in output.tool_calls:
            yield ToolCallEvent(tool_call_id=call.tool_call_id, tool_name=call.tool_name, args=call.args)
        yield StepFinishPart(finish_reason=output.finish_reason)

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        response: List[Message] = []
        steps: List[StepResult] = []
        while True:
            output = await self._complete(request, [*request.messages, *response])
            step = await self._finish_step(request, output, response)
            steps.append(step)
            if not self._should_continue(request, step, len(steps)):
                break
        return self._result(steps, response)

    def stream(self, request: GenerationRequest) -> StreamingGeneration:
        """Start a streaming invocation in the background; requires a running event loop."""
        generation = StreamingGeneration()
        generation._task = asyncio.get_running_loop().create_task(self._run_stream(request, generation))
        return generation

    async def _run_stream(self, request: GenerationRequest, generation: StreamingGeneration) -> None:
        response: List[Message] = []
        steps: List[StepResult] = []
        try:
            while True:
                text: List[str] = []
                tool_calls: List[ToolCall] = []
                step_finish: Optional[StepFinishPart] = None
                async for part in self._stream_step(request, [*request.messages, *response]):
                    if part.type == "step-finish":
                        step_finish = part
                        continue
                    if part.type == "text-delta":
                        text.append(part.text_delta)
                    elif part.type == "tool-call":
                        tool_calls.append(ToolCall(part.tool_call_id, part.tool_name, part.args))
                    elif part.type in ("tool-call-streaming-start", "tool-call-delta"):
                        if not request.tool_call_streaming:
                            continue
                    generation._emit(part)

                output = StepOutput(
                    text="".join(text),
                    tool_calls=tool_calls,
                    finish_reason=step_finish.finish_reason if step_finish else None,
                )
                step = await self._finish_step(request, output, response)
                for result in step.tool_results:
                    generation._emit(
                        ToolResultEvent(
                            tool_call_id=result.tool_call_id,
                            tool_name=result.tool_name,
                            args=result.args,
                            result=result.result,
                        )
                    )
                generation._emit(StepFinishPart(finish_reason=step.finish_reason))
                steps.append(step)
                if not self._should_continue(request, step, len(steps)):
                    break

            result = self._result(steps, response)
            generation._emit(FinishPart(finish_reason=result.finish_reason))
            generation._resolve(result)
        except Exception as exc:
            logger.debug("Streaming generation failed: %s", exc)
            generation._fail(exc)
        finally:
            generation._parts.close()

    async def _finish_step(
        self,
        request: GenerationRequest,
        output: StepOutput,
        response: List[Message],
    ) -> StepResult:
        """Record the step's messages in ``response`` and run the tools the engine may execute."""
        produced: List[Message] = [_assistant_message(output)]
        tool_results = await self._execute_tools(request, output.tool_calls)
        if tool_results:
            produced.append(
                ToolMessage(
                    content=[
                        ToolResultPart(
                            tool_call_id=result.tool_call_id,
                            tool_name=result.tool_name,
                            result=result.result,
                        )
                        for result in tool_results
                    ]
                )
            )
        response.extend(produced)

        step = StepResult(
            text=output.text,
            tool_calls=list(output.tool_calls),
            tool_results=tool_results,
            finish_reason=output.finish_reason,
            response_messages=list(response),
        )
        if request.on_step_finish is not None:
            await maybe_await(request.on_step_finish(step))
        return step

    async def _execute_tools(self, request: GenerationRequest, calls: List[ToolCall]) -> List[ToolResult]:
        tools = request.tools or {}
        results: List[ToolResult] = []
        for call in calls:
            tool = tools.get(call.tool_name)
            if tool is None:
                raise NoSuchToolError(call.tool_name, sorted(tools))
            if tool.execute is None:
                continue
            logger.debug("Executing tool %s (%s)", call.tool_name, call.tool_call_id)
            result = await tool.execute(dict(call.args))
            results.append(ToolResult(call.tool_call_id, call.tool_name, call.args, result))
        return results

    @staticmethod
    def _should_continue(request: GenerationRequest, step: StepResult, step_count: int) -> bool:
        return (
            step.finish_reason == "tool-calls"
            and bool(step.tool_calls)
            and len(step.tool_results) == len(step.tool_calls)
            and step_count < request.max_steps
        )

    @staticmethod
    def _result(steps: List[StepResult], response: List[Message]) -> GenerationResult:
        last = steps[-1]
        return GenerationResult(
            finish_reason=last.finish_reason,
            text=last.text,
            response_messages=response,
            tool_calls=last.tool_calls,
            tool_results=last.tool_results,
            steps=steps,
        )


def _assistant_message(output: StepOutput) -> AssistantMessage:
    if not output.tool_calls:
        return AssistantMessage(content=output.text)
    content: List = [TextPart(text=output.text)] if output.text else []
    content.extend(
        ToolCallPart(tool_call_id=call.tool_call_id, tool_name=call.tool_name, args=call.args)
        for call in output.tool_calls
    )
    return AssistantMessage(content=content)
