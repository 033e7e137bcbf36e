from chefmate.store.loader import StoreContextLoader
from chefmate.store.threads import ThreadStore

__all__ = ["StoreContextLoader", "ThreadStore"]
