"""
Thread-safe agent cache with atomic get-or-create.

The factory and the update callback both run while the store lock is held,
so concurrent first requests for the same key build exactly one agent and
no caller can observe an agent that is still being constructed.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, Hashable, Iterator, Optional, TypeVar

AgentT = TypeVar("AgentT")


class AgentStore(Generic[AgentT]):
    """Keyed cache of long-lived agents."""

    def __init__(self) -> None:
        self._agents: dict[Hashable, AgentT] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        key: Hashable,
        factory: Callable[[], AgentT],
        on_existing: Optional[Callable[[AgentT], None]] = None,
    ) -> AgentT:
        """
        Return the agent cached under `key`.

        If absent, `factory()` builds and caches it. If present and
        `on_existing` is given, it is applied to the cached agent in place.
        """
        with self._lock:
            agent = self._agents.get(key)
            if agent is None:
                agent = factory()
                self._agents[key] = agent
            elif on_existing is not None:
                on_existing(agent)
            return agent

    def get(self, key: Hashable) -> Optional[AgentT]:
        with self._lock:
            return self._agents.get(key)

    def clear(self) -> None:
        with self._lock:
            self._agents.clear()

    def keys(self) -> list[Hashable]:
        with self._lock:
            return list(self._agents.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._agents

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.keys())
