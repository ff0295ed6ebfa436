from __future__ import annotations

import json
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from openai import AsyncOpenAI

from agent_swarm.engine.base import ModelEngine, StepOutput
from agent_swarm.errors import InvalidToolArgumentsError
from agent_swarm.schemas.generation import EngineTool, FinishReason, GenerationRequest, ToolCall, ToolChoice
from agent_swarm.schemas.messages import Message, text_of
from agent_swarm.schemas.stream import (
    StepFinishPart,
    StreamPart,
    TextDelta,
    ToolCallDelta,
    ToolCallEvent,
    ToolCallStreamingStart,
)

_FINISH_REASONS: Dict[str, FinishReason] = {
    "stop": "stop",
    "length": "length",
    "content_filter": "content-filter",
    "tool_calls": "tool-calls",
    "function_call": "tool-calls",
}


class OpenAIEngine(ModelEngine):
    """Chat Completions backend for OpenAI and OpenAI-compatible servers."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        temperature: float | None = None,
        **client_options: Any,
    ) -> None:
        self.client = client or AsyncOpenAI(**client_options)
        self.temperature = temperature

    async def _complete(self, request: GenerationRequest, messages: List[Message]) -> StepOutput:
        response = await self.client.chat.completions.create(**self._payload(request, messages))
        choice = response.choices[0]
        calls = [
            ToolCall(
                tool_call_id=call.id,
                tool_name=call.function.name,
                args=parse_arguments(call.function.name, call.function.arguments),
            )
            for call in choice.message.tool_calls or []
        ]
        return StepOutput(
            text=choice.message.content or "",
            tool_calls=calls,
            finish_reason=map_finish_reason(choice.finish_reason),
        )

    async def _stream_step(
        self, request: GenerationRequest, messages: List[Message]
    ) -> AsyncIterator[StreamPart]:
        stream = await self.client.chat.completions.create(
            **self._payload(request, messages), stream=True
        )
        pending: Dict[int, Dict[str, str]] = {}
        finish_reason: Optional[str] = None

        async for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = choice.delta
            if delta.content:
                yield TextDelta(text_delta=delta.content)

            for call_delta in delta.tool_calls or []:
                call = pending.get(call_delta.index)
                if call is None:
                    call = {
                        "id": call_delta.id or "",
                        "name": call_delta.function.name if call_delta.function else "",
                        "arguments": "",
                    }
                    pending[call_delta.index] = call
                    yield ToolCallStreamingStart(tool_call_id=call["id"], tool_name=call["name"])
                if call_delta.function and call_delta.function.arguments:
                    call["arguments"] += call_delta.function.arguments
                    yield ToolCallDelta(
                        tool_call_id=call["id"],
                        tool_name=call["name"],
                        args_text_delta=call_delta.function.arguments,
                    )

            if choice.finish_reason is not None:
                finish_reason = choice.finish_reason

        for index in sorted(pending):
            call = pending[index]
            yield ToolCallEvent(
                tool_call_id=call["id"],
                tool_name=call["name"],
                args=parse_arguments(call["name"], call["arguments"]),
            )
        yield StepFinishPart(finish_reason=map_finish_reason(finish_reason))

    def _payload(self, request: GenerationRequest, messages: List[Message]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": to_openai_messages(request.system, messages),
        }
        if request.tools:
            payload["tools"] = to_openai_tools(request.tools)
            if request.tool_choice is not None:
                payload["tool_choice"] = to_openai_tool_choice(request.tool_choice)
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload


def map_finish_reason(reason: Optional[str]) -> FinishReason:
    if reason is None:
        return "unknown"
    return _FINISH_REASONS.get(reason, "other")


def parse_arguments(tool_name: str, raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidToolArgumentsError(tool_name, raw) from exc
    if not isinstance(parsed, dict):
        raise InvalidToolArgumentsError(tool_name, raw)
    return parsed


def to_openai_messages(system: str, messages: List[Message]) -> List[Dict[str, Any]]:
    converted: List[Dict[str, Any]] = []
    if system:
        converted.append({"role": "system", "content": system})

    for message in messages:
        if message.role in ("system", "user"):
            converted.append({"role": message.role, "content": text_of(message.content)})
        elif message.role == "assistant":
            entry: Dict[str, Any] = {"role": "assistant", "content": message.text or None}
            calls = message.tool_calls
            if calls:
                entry["tool_calls"] = [
                    {
                        "id": call.tool_call_id,
                        "type": "function",
                        "function": {"name": call.tool_name, "arguments": json.dumps(call.args)},
                    }
                    for call in calls
                ]
            converted.append(entry)
        elif message.role == "tool":
            for part in message.content:
                content = part.result
                if not isinstance(content, str):
                    content = json.dumps(content, default=str)
                converted.append({"role": "tool", "tool_call_id": part.tool_call_id, "content": content})
    return converted


def to_openai_tools(tools: Mapping[str, EngineTool]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for name, tool in tools.items()
    ]


def to_openai_tool_choice(choice: ToolChoice) -> Any:
    if isinstance(choice, str):
        return choice
    return {"type": "function", "function": {"name": choice["tool_name"]}}
