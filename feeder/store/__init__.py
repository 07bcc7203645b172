"""Shared dedup store backends."""

from feeder.config import StoreSettings

from .base import DedupStore
from .memory import MemoryDedupStore
from .redis_store import RedisDedupStore


def create_store(settings: StoreSettings) -> DedupStore:
    """Build the configured store backend (not yet connected)."""
    if settings.backend == "memory":
        return MemoryDedupStore(map_name=settings.map_name)
    return RedisDedupStore(
        map_name=settings.map_name,
        url=settings.redis_url,
        socket_timeout=settings.socket_timeout,
        connect_timeout=settings.connect_timeout,
    )


__all__ = ["DedupStore", "MemoryDedupStore", "RedisDedupStore", "create_store"]
