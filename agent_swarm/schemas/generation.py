from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from agent_swarm.schemas.messages import Message

FinishReason = Literal["stop", "length", "content-filter", "tool-calls", "error", "other", "unknown"]

TERMINAL_FINISH_REASONS = frozenset({"stop", "length", "content-filter", "error"})

# "auto" | "none" | "required" | {"type": "tool", "tool_name": "..."}
ToolChoice = Union[Literal["auto", "none", "required"], Dict[str, str]]


@dataclass
class ToolCall:
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any]
    result: Any


@dataclass
class StepResult:
    """Outcome of a single model call inside one engine invocation."""

    text: str
    tool_calls: List[ToolCall]
    tool_results: List[ToolResult]
    finish_reason: FinishReason
    response_messages: List[Message] = field(default_factory=list)


StepObserver = Callable[[StepResult], Union[Awaitable[None], None]]


@dataclass
class EngineTool:
    """Tool as advertised to the engine; ``execute`` is None for tools the engine must not run."""

    name: str
    description: str
    parameters: Dict[str, Any]
    execute: Optional[Callable[[Dict[str, Any]], Awaitable[Any]]] = None


@dataclass
class GenerationRequest:
    model: str
    system: str
    messages: List[Message]
    tools: Optional[Dict[str, EngineTool]] = None
    max_steps: int = 1
    tool_choice: Optional[ToolChoice] = None
    on_step_finish: Optional[StepObserver] = None
    tool_call_streaming: bool = True


@dataclass
class GenerationResult:
    finish_reason: FinishReason
    text: str
    response_messages: List[Message]
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[ToolResult] = field(default_factory=list)
    steps: List[StepResult] = field(default_factory=list)
