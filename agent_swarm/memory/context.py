from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

Context = Dict[str, Any]


class ContextStore:
    """Shared key/value state of one conversation.

    Every merge replaces the snapshot instead of mutating it, so a snapshot
    handed to an instructions function or a tool never changes underneath it.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._snapshot: Context = dict(initial or {})

    def get(self) -> Mapping[str, Any]:
        return MappingProxyType(self._snapshot)

    def merge(self, patch: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
        if patch:
            self._snapshot = {**self._snapshot, **patch}
        return self.get()

    def as_dict(self) -> Context:
        return dict(self._snapshot)
