"""
Context loading boundary.

The orchestrator reads three things once per turn: the user's standing
preferences, a short inventory/expiry summary, and the thread's prior
messages.  Where they come from is the caller's business; anything
implementing :class:`ContextLoader` will do.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from chefmate.llm.types import Message


class ContextLoader(ABC):
    @abstractmethod
    async def load_preferences(self, user_id: str) -> str | None: ...

    @abstractmethod
    async def load_inventory_summary(self, user_id: str) -> str | None: ...

    @abstractmethod
    async def load_history(self, thread_id: str, limit: int) -> list[Message]:
        """Return at most *limit* messages of the thread, oldest first."""
        ...


@dataclass
class TurnContext:
    preferences: str | None
    inventory_summary: str | None
    history: list[Message] = field(default_factory=list)


async def load_turn_context(
    loader: ContextLoader, user_id: str, thread_id: str, history_limit: int
) -> TurnContext:
    return TurnContext(
        preferences=await loader.load_preferences(user_id),
        inventory_summary=await loader.load_inventory_summary(user_id),
        history=await loader.load_history(thread_id, history_limit),
    )


class InMemoryContextLoader(ContextLoader):
    """Dict-backed loader for tests and embedding."""

    def __init__(
        self,
        preferences: dict[str, str] | None = None,
        inventory: dict[str, str] | None = None,
        threads: dict[str, list[Message]] | None = None,
    ) -> None:
        self.preferences = dict(preferences or {})
        self.inventory = dict(inventory or {})
        self.threads = {k: list(v) for k, v in (threads or {}).items()}
        self.load_count = 0

    async def load_preferences(self, user_id: str) -> str | None:
        return self.preferences.get(user_id)

    async def load_inventory_summary(self, user_id: str) -> str | None:
        return self.inventory.get(user_id)

    async def load_history(self, thread_id: str, limit: int) -> list[Message]:
        self.load_count += 1
        messages = self.threads.get(thread_id, [])
        if limit <= 0:
            return []
        return list(messages[-limit:])
