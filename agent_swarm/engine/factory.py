from __future__ import annotations

import os

from agent_swarm.engine.base import ModelEngine
from agent_swarm.engine.openai_engine import OpenAIEngine
from agent_swarm.engine.scripted import ScriptedEngine
from agent_swarm.utils.settings import LLMConfig


def build_engine(config: LLMConfig) -> ModelEngine:
    if config.provider == "scripted":
        return ScriptedEngine()
    return OpenAIEngine(
        temperature=config.temperature,
        api_key=os.environ.get(config.api_key_env),
        base_url=config.base_url,
    )
