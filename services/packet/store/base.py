"""
Packet Store Interface
======================

Persistence for packet records, the packet-id counter and per-packet
nullifier sets, plus the per-packet critical section the ledger runs in.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any

from services.packet.models import Packet


class PacketStore(ABC):
    """
    Abstract base class for packet stores.

    Only the packet ledger writes through a store.
    """

    @abstractmethod
    async def next_packet_id(self) -> int:
        """Issue the next packet id (monotonically increasing, from 1)."""
        ...

    @abstractmethod
    async def get_packet(self, packet_id: int) -> Packet | None:
        """Load a packet record, or None if unknown."""
        ...

    @abstractmethod
    async def save_packet(self, packet: Packet) -> None:
        """Insert or replace a packet record."""
        ...

    @abstractmethod
    async def commit_packet(
        self,
        packet: Packet,
        expected_version: int,
        consume: int | None = None,
        release: int | None = None,
    ) -> bool:
        """
        Compare-and-set a packet together with one nullifier change.

        The stored packet must still be at `expected_version`; the packet is
        replaced and `consume` is added to / `release` removed from its
        nullifier set, all or nothing.

        Returns:
            False if `consume` was already spent (nothing written), else True

        Raises:
            PacketBusy: The packet is missing or changed since it was read
        """
        ...

    @abstractmethod
    async def list_packets(self) -> list[Packet]:
        """All packet records, ordered by packet id."""
        ...

    @abstractmethod
    async def add_nullifier(self, packet_id: int, leaf: int) -> bool:
        """
        Atomically insert (packet_id, leaf).

        Returns:
            True if inserted, False if it was already present
        """
        ...

    @abstractmethod
    async def remove_nullifier(self, packet_id: int, leaf: int) -> None:
        """Delete (packet_id, leaf); used only to roll back a claim."""
        ...

    @abstractmethod
    async def has_nullifier(self, packet_id: int, leaf: int) -> bool:
        ...

    @abstractmethod
    def lock(self, packet_id: int) -> AbstractAsyncContextManager[None]:
        """
        Exclusive critical section for one packet.

        Raises:
            PacketBusy: If the section cannot be entered in time
        """
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        ...
