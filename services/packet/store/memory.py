"""
In-Memory Packet Store
======================

Single-process store for development and testing. Data is lost on restart.

Version: 0.1.0
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from services.packet.errors import PacketBusy
from services.packet.models import Packet
from services.packet.store.base import PacketStore
from shared.logging import get_logger


logger = get_logger(__name__)


class InMemoryPacketStore(PacketStore):
    """Packets and nullifiers in dictionaries, one asyncio.Lock per packet."""

    def __init__(self) -> None:
        self._sequence = 0
        self._packets: dict[int, Packet] = {}
        self._nullifiers: dict[int, set[int]] = {}
        self._locks: dict[int, asyncio.Lock] = {}

        logger.debug("memory_packet_store_initialized")

    async def next_packet_id(self) -> int:
        self._sequence += 1
        return self._sequence

    async def get_packet(self, packet_id: int) -> Packet | None:
        packet = self._packets.get(packet_id)
        # Callers stage changes on copies; the stored record only changes on save or commit
        return packet.model_copy(deep=True) if packet else None

    async def save_packet(self, packet: Packet) -> None:
        self._packets[packet.packet_id] = packet.model_copy(deep=True)

    async def commit_packet(
        self,
        packet: Packet,
        expected_version: int,
        consume: int | None = None,
        release: int | None = None,
    ) -> bool:
        # No await between the checks and the writes
        current = self._packets.get(packet.packet_id)
        if current is None or current.version != expected_version:
            logger.warning("packet_commit_conflict", packet_id=packet.packet_id)
            raise PacketBusy(
                f"Packet {packet.packet_id} changed concurrently, retry later",
                packet_id=packet.packet_id,
            )

        spent = self._nullifiers.setdefault(packet.packet_id, set())
        if consume is not None and consume in spent:
            return False

        self._packets[packet.packet_id] = packet.model_copy(deep=True)
        if consume is not None:
            spent.add(consume)
        if release is not None:
            spent.discard(release)
        return True

    async def list_packets(self) -> list[Packet]:
        return [self._packets[pid].model_copy(deep=True) for pid in sorted(self._packets)]

    async def add_nullifier(self, packet_id: int, leaf: int) -> bool:
        spent = self._nullifiers.setdefault(packet_id, set())
        if leaf in spent:
            return False
        spent.add(leaf)
        return True

    async def remove_nullifier(self, packet_id: int, leaf: int) -> None:
        self._nullifiers.get(packet_id, set()).discard(leaf)

    async def has_nullifier(self, packet_id: int, leaf: int) -> bool:
        return leaf in self._nullifiers.get(packet_id, set())

    @asynccontextmanager
    async def lock(self, packet_id: int) -> AsyncIterator[None]:
        packet_lock = self._locks.setdefault(packet_id, asyncio.Lock())
        async with packet_lock:
            yield

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "backend": "memory",
            "packets": len(self._packets),
            "nullifiers": sum(len(s) for s in self._nullifiers.values()),
        }

    def clear_all(self) -> None:
        """Clear all data (for testing)."""
        self._sequence = 0
        self._packets.clear()
        self._nullifiers.clear()
        self._locks.clear()
