from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    provider: Literal["openai", "scripted"] = "openai"
    model: str = "gpt-4o-mini"
    temperature: Optional[float] = None
    base_url: Optional[str] = None
    api_key_env: str = "OPENAI_API_KEY"


class SwarmConfig(BaseModel):
    name: Optional[str] = None
    max_turns: int = Field(default=100, ge=1)
    return_to_queen: bool = False
    tool_call_streaming: bool = True


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    swarm: SwarmConfig = Field(default_factory=SwarmConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(env: str = "base", config_dir: Path | str = "configs") -> AppConfig:
    config_dir = Path(config_dir)
    base = _read_yaml(config_dir / "base.yaml")
    if env != "base":
        override_path = config_dir / f"{env}.yaml"
        if override_path.exists():
            base = _merge_dicts(base, _read_yaml(override_path))
    return AppConfig(
        llm=LLMConfig(**base.get("llm", {})),
        swarm=SwarmConfig(**base.get("swarm", {})),
        logging=LoggingConfig(**base.get("logging", {"level": "INFO"})),
    )


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge_dicts(base[key], value)
        else:
            merged[key] = value
    return merged
