from __future__ import annotations

from typing import Iterable, List

from agent_swarm.schemas.messages import Message


class Transcript:
    """Append-only conversation history owned by a swarm."""

    def __init__(self, initial: Iterable[Message] | None = None) -> None:
        self._turns: List[Message] = list(initial or [])

    def reset(self, initial: Iterable[Message] | None = None) -> None:
        self._turns = list(initial or [])

    def extend(self, messages: Iterable[Message]) -> None:
        self._turns.extend(messages)

    def all(self) -> List[Message]:
        return list(self._turns)
