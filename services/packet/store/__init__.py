"""
Packet Stores
=============

Persistence backends for packet records and nullifier sets.

Usage:
    from services.packet.store import get_store

    store = get_store()
    async with store.lock(packet_id):
        ...
"""

from shared.config import StoreBackend, settings

from services.packet.store.base import PacketStore
from services.packet.store.memory import InMemoryPacketStore
from services.packet.store.redis import RedisPacketStore


def get_store() -> PacketStore:
    """Create the store selected by PACKET_STORE."""
    if settings.packet.store == StoreBackend.REDIS:
        return RedisPacketStore(
            prefix=settings.packet.redis_prefix,
            lock_timeout_seconds=settings.packet.lock_timeout_seconds,
        )
    return InMemoryPacketStore()


__all__ = [
    "PacketStore",
    "InMemoryPacketStore",
    "RedisPacketStore",
    "get_store",
]
