from __future__ import annotations


class SwarmError(Exception):
    """Base class for every error raised by the swarm itself."""


class InvocationError(SwarmError, ValueError):
    """Raised when a swarm invocation is given inconsistent options."""


class AgentConfigurationError(SwarmError, ValueError):
    """Raised when an agent is declared with a malformed tool set."""


class NoSuchToolError(SwarmError, LookupError):
    """Raised when the model calls a tool the active agent does not declare."""

    def __init__(self, tool_name: str, available: list[str]) -> None:
        self.tool_name = tool_name
        self.available = available
        super().__init__(
            f"Model tried to call unavailable tool '{tool_name}'. "
            f"Available tools: {', '.join(available) or '(none)'}."
        )


class InvalidToolArgumentsError(SwarmError, ValueError):
    """Raised when the model's arguments for a tool call are not a JSON object."""

    def __init__(self, tool_name: str, raw: str) -> None:
        self.tool_name = tool_name
        self.raw = raw
        super().__init__(f"Invalid arguments for tool '{tool_name}': {raw!r}")
