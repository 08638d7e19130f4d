"""
Nullifier Ledger
================

Tracks which committed leaves have been redeemed, per packet.

Packet counters only say how many claims are left, not who claimed. The
nullifier set keyed by (packet_id, leaf) is what makes each eligible record
redeemable exactly once, including against resubmitted or raced proofs.

When a staged packet is passed, the nullifier change and the packet write
land in one store commit, so a slot is never spent without its accounting.
"""

from services.packet.models import ConsumeResult, Packet
from services.packet.store.base import PacketStore
from shared.logging import get_logger


logger = get_logger(__name__)


class NullifierLedger:
    """Atomic check-and-set over the store's nullifier sets."""

    def __init__(self, store: PacketStore) -> None:
        self.store = store

    async def try_consume(
        self,
        packet_id: int,
        leaf: int,
        staged: Packet | None = None,
        expected_version: int | None = None,
    ) -> ConsumeResult:
        """
        Mark (packet_id, leaf) spent if it was not already.

        Args:
            packet_id: Packet the leaf belongs to
            leaf: Committed claim leaf
            staged: Packet state to write in the same atomic step
            expected_version: Version `staged` was derived from

        Raises:
            PacketBusy: The packet changed since `staged` was read
        """
        if staged is None:
            consumed = await self.store.add_nullifier(packet_id, leaf)
        else:
            if expected_version is None:
                raise ValueError("expected_version is required with a staged packet")
            consumed = await self.store.commit_packet(
                staged, expected_version=expected_version, consume=leaf
            )

        if consumed:
            return ConsumeResult.CONSUMED
        logger.info("nullifier_already_consumed", packet_id=packet_id)
        return ConsumeResult.ALREADY_CONSUMED

    async def is_consumed(self, packet_id: int, leaf: int) -> bool:
        return await self.store.has_nullifier(packet_id, leaf)

    async def release(
        self,
        packet_id: int,
        leaf: int,
        staged: Packet | None = None,
        expected_version: int | None = None,
    ) -> None:
        """Undo a consumption, optionally restoring the packet with it."""
        if staged is None:
            await self.store.remove_nullifier(packet_id, leaf)
        else:
            if expected_version is None:
                raise ValueError("expected_version is required with a staged packet")
            await self.store.commit_packet(
                staged, expected_version=expected_version, release=leaf
            )
        logger.warning("nullifier_released", packet_id=packet_id)
