"""Expose an agent's tools to the engine.

Tools are re-wrapped for every engine invocation. The wrapping hides the
``swarm_context`` parameter from the model and injects the live context at
call time, lets function tools patch the context through their return value,
and strips the executor from handover tools so the engine hands those calls
back to the swarm unexecuted.
"""

from __future__ import annotations

import copy
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from agent_swarm.memory.context import ContextStore
from agent_swarm.schemas.generation import EngineTool
from agent_swarm.tools.base import (
    SWARM_CONTEXT_PROPERTY_NAME,
    FunctionTool,
    Tool,
    ToolOutput,
    parameters_schema,
)
from agent_swarm.utils.awaitables import maybe_await

Executor = Callable[[Dict[str, Any]], Awaitable[Any]]


def wrap_tools(
    tools: Optional[Mapping[str, Tool]],
    store: ContextStore,
) -> Optional[Dict[str, EngineTool]]:
    if not tools:
        return None
    return {name: wrap_tool(name, tool, store) for name, tool in tools.items()}


def wrap_tool(name: str, tool: Tool, store: ContextStore) -> EngineTool:
    schema = parameters_schema(tool.parameters)
    executor: Optional[Executor] = None

    if tool.type == "function":
        executor = _with_context_updates(tool, store)

    if declares_context(schema):
        schema = strip_context_property(schema)
        if executor is not None:
            executor = _with_injected_context(executor, store)

    if tool.type == "handover":
        executor = None

    return EngineTool(
        name=name,
        description=tool.description,
        parameters=schema,
        execute=executor,
    )


def declares_context(schema: Mapping[str, Any]) -> bool:
    return SWARM_CONTEXT_PROPERTY_NAME in (schema.get("properties") or {})


def strip_context_property(schema: Mapping[str, Any]) -> Dict[str, Any]:
    stripped = copy.deepcopy(dict(schema))
    stripped["properties"].pop(SWARM_CONTEXT_PROPERTY_NAME, None)
    if "required" in stripped:
        stripped["required"] = [
            field for field in stripped["required"] if field != SWARM_CONTEXT_PROPERTY_NAME
        ]
    return stripped


def _with_context_updates(tool: FunctionTool, store: ContextStore) -> Executor:
    async def execute(args: Dict[str, Any]) -> Any:
        output = await maybe_await(tool.execute(args))
        if not isinstance(output, ToolOutput):
            return output
        if output.context:
            store.merge(output.context)
        return output.result

    return execute


def _with_injected_context(executor: Executor, store: ContextStore) -> Executor:
    async def execute(args: Dict[str, Any]) -> Any:
        return await executor({**args, SWARM_CONTEXT_PROPERTY_NAME: dict(store.get())})

    return execute
