from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from agent_swarm.errors import AgentConfigurationError
from agent_swarm.schemas.generation import ToolChoice
from agent_swarm.schemas.stream import AgentRef
from agent_swarm.tools.base import Tool

Instructions = Union[str, Callable[[Mapping[str, Any]], str]]

_TOOL_TYPES = ("function", "handover")


class AgentConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: Optional[str] = None
    max_turns: Optional[int] = Field(default=None, ge=1)
    tool_choice: Optional[ToolChoice] = None


class Agent:
    """A named persona the swarm can hand control to.

    ``instructions`` is either a fixed system prompt or a function of the
    swarm context rendered before every turn. ``max_turns`` caps how many
    steps the agent may take in one turn; an agent that exhausts its cap
    returns control to the swarm's queen.
    """

    name: str

    def __init__(
        self,
        name: str,
        instructions: Instructions = "You are a helpful assistant.",
        tools: Mapping[str, Tool] | None = None,
        description: str | None = None,
        config: AgentConfig | None = None,
        **config_overrides: Any,
    ) -> None:
        self.name = name
        self.id = str(uuid.uuid4())
        self.description = description
        self.instructions = instructions
        declared = config.model_dump(exclude_unset=True) if config else {}
        self.config = AgentConfig(**{**declared, **config_overrides})
        self.tools: Dict[str, Tool] = {}
        for tool_name, tool in (tools or {}).items():
            self.register_tool(tool_name, tool)

    def get_instructions(self, context: Mapping[str, Any]) -> str:
        if callable(self.instructions):
            return self.instructions(context)
        return self.instructions

    def register_tool(self, name: str, tool: Tool) -> None:
        kind = getattr(tool, "type", None)
        if kind not in _TOOL_TYPES:
            raise AgentConfigurationError(
                f"Tool '{name}' of agent '{self.name}' has unknown type {kind!r}."
            )
        if not callable(getattr(tool, "execute", None)):
            raise AgentConfigurationError(
                f"{kind.capitalize()} tool '{name}' of agent '{self.name}' needs an executor."
            )
        self.tools[name] = tool

    @property
    def ref(self) -> AgentRef:
        return AgentRef(id=self.id, name=self.name)

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r})"
