from __future__ import annotations

from .base import StateStore, StoreError, TransactionAborted, read_retrying
from .memory import MemoryStore


def create_store(url: str = "memory://") -> StateStore:
    url = (url or "memory://").strip()
    if url.startswith("memory"):
        return MemoryStore()
    if url.startswith("redis"):
        from .redis_store import RedisStore

        return RedisStore.from_url(url)
    raise ValueError(f"Unknown store type: {url}")


__all__ = [
    "MemoryStore",
    "StateStore",
    "StoreError",
    "TransactionAborted",
    "create_store",
    "read_retrying",
]
