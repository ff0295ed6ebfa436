from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from agent_swarm.agents.base import Agent
from agent_swarm.engine.base import ModelEngine
from agent_swarm.schemas.messages import Message
from agent_swarm.utils.settings import SwarmConfig
from agent_swarm.workflows.orchestrator import DEFAULT_MODEL, Swarm


class HiveOptions(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    engine: ModelEngine
    queen: Agent = Field(description='The "entrypoint" agent of every swarm, often a router.')
    default_model: str = Field(
        default=DEFAULT_MODEL,
        description="Model used by agents that do not set their own.",
    )
    default_context: Dict[str, Any] = Field(default_factory=dict)
    swarm: SwarmConfig = Field(default_factory=SwarmConfig)


class HiveCreateSwarmOptions(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    default_model: Optional[str] = None
    messages: Optional[List[Message]] = None
    leader: Optional[Agent] = Field(
        default=None,
        description="Replaces the hive's queen as the entrypoint of this swarm.",
    )
    updated_context: Dict[str, Any] = Field(default_factory=dict)


class Hive:
    """Shared defaults from which independent swarms are spawned, one per conversation."""

    def __init__(self, options: HiveOptions) -> None:
        self.options = options

    @property
    def queen(self) -> Agent:
        return self.options.queen

    def spawn_swarm(self, options: HiveCreateSwarmOptions | None = None) -> Swarm:
        options = options or HiveCreateSwarmOptions()
        return Swarm(
            queen=options.leader or self.options.queen,
            engine=self.options.engine,
            initial_context={**self.options.default_context, **options.updated_context},
            messages=options.messages,
            name=self.options.swarm.name,
            default_model=options.default_model or self.options.default_model,
            max_turns=self.options.swarm.max_turns,
            return_to_queen=self.options.swarm.return_to_queen,
            tool_call_streaming=self.options.swarm.tool_call_streaming,
        )
