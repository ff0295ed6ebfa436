"""Elements emitted on engine and swarm streams.

Every element carries a ``type`` tag and an optional ``agent`` reference. The
engine never sets ``agent``; the swarm's annotated view fills it in with the
agent that was active when the element was produced. Synthetic handover
results arrive already tagged with both the outgoing (``agent``) and incoming
(``handed_over_to``) agent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Union

from agent_swarm.schemas.generation import FinishReason


@dataclass(frozen=True)
class AgentRef:
    id: str
    name: str


@dataclass
class TextDelta:
    text_delta: str
    agent: Optional[AgentRef] = None
    type: Literal["text-delta"] = "text-delta"


@dataclass
class ToolCallStreamingStart:
    tool_call_id: str
    tool_name: str
    agent: Optional[AgentRef] = None
    type: Literal["tool-call-streaming-start"] = "tool-call-streaming-start"


@dataclass
class ToolCallDelta:
    tool_call_id: str
    tool_name: str
    args_text_delta: str
    agent: Optional[AgentRef] = None
    type: Literal["tool-call-delta"] = "tool-call-delta"


@dataclass
class ToolCallEvent:
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any] = field(default_factory=dict)
    agent: Optional[AgentRef] = None
    type: Literal["tool-call"] = "tool-call"


@dataclass
class ToolResultEvent:
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any]
    result: Any
    handed_over_to: Optional[AgentRef] = None
    agent: Optional[AgentRef] = None
    type: Literal["tool-result"] = "tool-result"


@dataclass
class StepFinishPart:
    finish_reason: FinishReason
    agent: Optional[AgentRef] = None
    type: Literal["step-finish"] = "step-finish"


@dataclass
class FinishPart:
    finish_reason: FinishReason
    agent: Optional[AgentRef] = None
    type: Literal["finish"] = "finish"


@dataclass
class ErrorPart:
    error: BaseException
    agent: Optional[AgentRef] = None
    type: Literal["error"] = "error"


StreamPart = Union[
    TextDelta,
    ToolCallStreamingStart,
    ToolCallDelta,
    ToolCallEvent,
    ToolResultEvent,
    StepFinishPart,
    FinishPart,
    ErrorPart,
]
