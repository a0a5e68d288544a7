"""Store backends for tenantvault (PostgreSQL and in-process)."""

from tenantvault.store.base import Session, Store
from tenantvault.store.memory import MemoryStore

__all__ = ["MemoryStore", "Session", "Store"]
