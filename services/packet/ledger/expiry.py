"""
Expiry & Refund Manager
=======================

Returns unclaimed value to a packet's creator once its validity window
has elapsed. The refund moves the packet to EXPIRED, a terminal state, so
a second refund finds it inactive. EXPIRED is committed before the value
moves and reopened if the transfer fails, so a refund is never paid twice.

Version: 0.1.0
"""

import time
from collections.abc import Callable

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from services.packet.errors import (
    NotActive,
    NotCreator,
    NotExpired,
    PacketBusy,
    PacketNotFound,
    TransferFailed,
)
from services.packet.models import Packet, PacketStatus, RefundResult
from services.packet.store.base import PacketStore
from shared.blockchain import BlockchainClient, TransferError
from shared.logging import get_logger


logger = get_logger(__name__)

Clock = Callable[[], int]

# Compare-and-set retries when undoing a commit whose transfer failed
ROLLBACK_ATTEMPTS = 3


def system_clock() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())


class ExpiryRefundManager:
    """Refund path for expired packets."""

    def __init__(
        self,
        store: PacketStore,
        transfers: BlockchainClient,
        clock: Clock = system_clock,
    ) -> None:
        self.store = store
        self.transfers = transfers
        self.clock = clock

    async def refund(self, packet_id: int, caller: str) -> RefundResult:
        """
        Return the remaining value of an expired packet to its creator.

        Args:
            packet_id: Packet to refund
            caller: Identity requesting the refund

        Returns:
            RefundResult with the refunded amount

        Raises:
            PacketNotFound: Unknown packet
            NotActive: Packet already FINISHED or EXPIRED
            NotExpired: Validity window still open
            NotCreator: Caller is not the packet's creator
            TransferFailed: Value could not be returned; packet restored
        """
        async with self.store.lock(packet_id):
            packet = await self.store.get_packet(packet_id)
            if packet is None:
                raise PacketNotFound(f"Packet {packet_id} not found", packet_id=packet_id)
            if not packet.is_active():
                raise NotActive(
                    f"Packet {packet_id} is {packet.status.value}",
                    packet_id=packet_id,
                )

            now = self.clock()
            if not packet.is_expired_at(now):
                raise NotExpired(
                    f"Packet {packet_id} expires at {packet.expires_at}",
                    packet_id=packet_id,
                )
            if caller != packet.creator:
                raise NotCreator(
                    f"Only the creator may refund packet {packet_id}",
                    packet_id=packet_id,
                )

            amount = packet.remaining_amount
            read_version = packet.version
            packet.remaining_amount = 0
            packet.status = PacketStatus.EXPIRED
            packet.version = read_version + 1
            await self.store.commit_packet(packet, expected_version=read_version)

            try:
                receipt = await self.transfers.transfer(
                    recipient=packet.creator,
                    amount=amount,
                    memo=f"packet:{packet_id}:refund",
                )
            except Exception as e:
                try:
                    await self._rollback_refund(packet_id, amount)
                except Exception:
                    logger.error("refund_rollback_failed", packet_id=packet_id, amount=amount)
                    raise
                if not isinstance(e, TransferError):
                    raise
                logger.error(
                    "value_transfer_failed",
                    packet_id=packet_id,
                    operation="refund",
                    error=str(e),
                )
                raise TransferFailed(
                    f"Refund transfer for packet {packet_id} failed",
                    packet_id=packet_id,
                ) from e

        logger.info(
            "packet_refunded",
            packet_id=packet_id,
            amount=amount,
            unclaimed_slots=packet.remaining_count,
            tx_hash=receipt.tx_hash,
        )

        return RefundResult(
            packet_id=packet_id,
            amount=amount,
            status=packet.status,
            tx_hash=receipt.tx_hash,
        )

    @retry(
        retry=retry_if_exception_type(PacketBusy),
        stop=stop_after_attempt(ROLLBACK_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, max=0.5),
        reraise=True,
    )
    async def _rollback_refund(self, packet_id: int, amount: int) -> None:
        """Reopen a packet whose refund transfer never went out."""
        current = await self.store.get_packet(packet_id)
        if current is None:
            raise PacketNotFound(f"Packet {packet_id} not found", packet_id=packet_id)

        read_version = current.version
        current.remaining_amount += amount
        current.status = PacketStatus.ACTIVE
        current.version = read_version + 1
        await self.store.commit_packet(current, expected_version=read_version)

    async def refundable(self, creator: str | None = None) -> list[Packet]:
        """ACTIVE packets past their deadline, optionally for one creator."""
        now = self.clock()
        return [
            p
            for p in await self.store.list_packets()
            if p.is_active()
            and p.is_expired_at(now)
            and (creator is None or p.creator == creator)
        ]
