"""Context loader backed by the thread store and the demo kitchen."""

from __future__ import annotations

from chefmate.kitchen.demo import DemoKitchen
from chefmate.llm.types import Message
from chefmate.orchestrator.context import ContextLoader
from chefmate.store.threads import ThreadStore


class StoreContextLoader(ContextLoader):
    def __init__(self, store: ThreadStore, kitchen: DemoKitchen) -> None:
        self.store = store
        self.kitchen = kitchen

    async def load_preferences(self, user_id: str) -> str | None:
        return self.kitchen.preferences or None

    async def load_inventory_summary(self, user_id: str) -> str | None:
        return self.kitchen.inventory_summary()

    async def load_history(self, thread_id: str, limit: int) -> list[Message]:
        return await self.store.load_history(thread_id, limit)
