from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Literal, Mapping, Optional, Type, Union

from pydantic import BaseModel

if TYPE_CHECKING:
    from agent_swarm.agents.base import Agent

# Parameter name a tool declares to receive the swarm's context instead of model output.
SWARM_CONTEXT_PROPERTY_NAME = "swarm_context"

Parameters = Union[Type[BaseModel], Dict[str, Any]]


@dataclass
class ToolOutput:
    """Return value of a function tool: the payload for the model plus an optional context patch."""

    result: Any
    context: Optional[Mapping[str, Any]] = None


@dataclass
class HandoverResult:
    agent: "Agent"
    context: Optional[Mapping[str, Any]] = None


@dataclass
class FunctionTool:
    description: str
    execute: Callable[[Dict[str, Any]], Any]
    parameters: Optional[Parameters] = None
    type: Literal["function"] = "function"


@dataclass
class HandoverTool:
    """Tool whose execution is intercepted by the swarm to switch the active agent."""

    description: str
    execute: Callable[[Dict[str, Any]], Any]
    parameters: Optional[Parameters] = None
    type: Literal["handover"] = "handover"


Tool = Union[FunctionTool, HandoverTool]


def parameters_schema(parameters: Optional[Parameters]) -> Dict[str, Any]:
    """JSON schema for a tool's parameters, whether declared as a pydantic model or a dict."""
    if parameters is None:
        return {"type": "object", "properties": {}}
    if isinstance(parameters, dict):
        return dict(parameters)
    return parameters.model_json_schema()


def handover_to(
    agent: "Agent",
    description: Optional[str] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> HandoverTool:
    """Build a handover tool that always transfers control to ``agent``."""
    return HandoverTool(
        description=description or f"Transfer the conversation to the {agent.name} agent.",
        execute=lambda _args: HandoverResult(agent=agent, context=context),
    )
