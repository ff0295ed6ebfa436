from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union


@dataclass
class TextPart:
    text: str
    type: Literal["text"] = "text"


@dataclass
class ToolCallPart:
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any] = field(default_factory=dict)
    type: Literal["tool-call"] = "tool-call"


@dataclass
class ToolResultPart:
    tool_call_id: str
    tool_name: str
    result: Any
    type: Literal["tool-result"] = "tool-result"


AssistantContent = Union[str, List[Union[TextPart, ToolCallPart]]]
UserContent = Union[str, List[TextPart]]


@dataclass
class UserMessage:
    content: UserContent
    role: Literal["user"] = "user"


@dataclass
class AssistantMessage:
    """Model output for one step; ``sender`` names the agent that produced it."""

    content: AssistantContent
    sender: Optional[str] = None
    role: Literal["assistant"] = "assistant"

    @property
    def tool_calls(self) -> List[ToolCallPart]:
        if isinstance(self.content, str):
            return []
        return [part for part in self.content if part.type == "tool-call"]

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text for part in self.content if part.type == "text")


@dataclass
class ToolMessage:
    content: List[ToolResultPart] = field(default_factory=list)
    role: Literal["tool"] = "tool"


@dataclass
class SystemMessage:
    content: str
    role: Literal["system"] = "system"


Message = Union[UserMessage, AssistantMessage, ToolMessage, SystemMessage]


def count_assistant_messages(messages: List[Message]) -> int:
    return sum(1 for message in messages if message.role == "assistant")


def text_of(content: UserContent) -> str:
    if isinstance(content, str):
        return content
    return "".join(part.text for part in content if part.type == "text")
