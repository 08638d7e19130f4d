"""
Packet Ledger
=============

Owns packet records and runs the claim protocol.

A claim is authorized by three independent checks, in this order:

1. the claimed leaf is a member of the packet's commitment root,
2. the zero-knowledge proof is accepted for public inputs that bind
   the packet id, the leaf and the claimant,
3. the nullifier (packet_id, leaf) has not been consumed.

Only then is the payout computed. The nullifier and the debited packet are
written in one compare-and-set commit before any value moves; if the
transfer fails, a second commit gives the slot back. Everything runs inside
the packet's lock, and the version check keeps a holder whose lock expired
from overwriting a newer write.

Version: 0.1.0
"""

from collections.abc import Callable, Sequence

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from services.packet.errors import (
    AlreadyClaimed,
    Expired,
    InvalidMembership,
    InvalidParameters,
    InvalidProof,
    NotActive,
    PacketBusy,
    PacketNotFound,
    Paused,
    TransferFailed,
)
from services.packet.ledger.expiry import (
    ROLLBACK_ATTEMPTS,
    Clock,
    ExpiryRefundManager,
    system_clock,
)
from services.packet.ledger.nullifiers import NullifierLedger
from services.packet.ledger.split import EntropySource, SplitEngine, SystemEntropy
from services.packet.models import (
    ClaimReceipt,
    ClaimResult,
    ConsumeResult,
    Packet,
    PacketStatus,
    RefundResult,
    SplitPolicy,
)
from services.packet.store.base import PacketStore
from shared.blockchain import BlockchainClient, TransferError
from shared.config import settings
from shared.logging import get_logger
from shared.zk import (
    Hasher,
    MerkleMembershipChecker,
    ProofVerifier,
    Sha256FieldHasher,
    ZKProof,
    identity_to_field,
    is_field_element,
    tree_depth_for,
)


logger = get_logger(__name__)

PauseGuard = Callable[[], bool]


def settings_pause_guard() -> bool:
    """Read the operator-owned PACKET_PAUSED flag."""
    return settings.packet.paused


class PacketLedger:
    """
    Packet state machine.

    ACTIVE -> FINISHED when the last slot is claimed.
    ACTIVE -> EXPIRED when the creator refunds after the deadline.
    """

    def __init__(
        self,
        store: PacketStore,
        verifier: ProofVerifier,
        transfers: BlockchainClient,
        hasher: Hasher | None = None,
        entropy: EntropySource | None = None,
        clock: Clock = system_clock,
        is_paused: PauseGuard = settings_pause_guard,
        max_count: int | None = None,
        max_duration_seconds: int | None = None,
        min_amount: int | None = None,
        max_tree_depth: int | None = None,
    ) -> None:
        self.store = store
        self.verifier = verifier
        self.transfers = transfers
        self.hasher = hasher or Sha256FieldHasher()
        self.checker = MerkleMembershipChecker(self.hasher)
        self.nullifiers = NullifierLedger(store)
        self.entropy = entropy or SystemEntropy()
        self.clock = clock
        self.is_paused = is_paused

        self.max_count = max_count or settings.packet.max_count
        self.max_duration_seconds = max_duration_seconds or settings.packet.max_duration_seconds
        self.min_amount = min_amount or settings.packet.min_amount
        self.max_tree_depth = (
            max_tree_depth if max_tree_depth is not None else settings.packet.max_tree_depth
        )

        self.splitter = SplitEngine(self.min_amount)
        self.expiry = ExpiryRefundManager(store, transfers, clock)

    def _check_not_paused(self, operation: str) -> None:
        if self.is_paused():
            logger.warning("operation_paused", operation=operation)
            raise Paused(f"Packet {operation} is paused")

    def _validate_open(
        self,
        creator: str,
        policy: SplitPolicy,
        count: int,
        total_amount: int,
        commitment_root: int,
        duration: int,
        tree_depth: int,
    ) -> None:
        if not creator or not creator.strip():
            raise InvalidParameters("Creator must not be empty")
        if not 1 <= count <= self.max_count:
            raise InvalidParameters(f"count must be between 1 and {self.max_count}")
        if not 0 < duration <= self.max_duration_seconds:
            raise InvalidParameters(
                f"duration must be between 1 and {self.max_duration_seconds} seconds"
            )
        if total_amount <= 0:
            raise InvalidParameters("total_amount must be positive")

        if policy == SplitPolicy.FIXED:
            if total_amount % count != 0:
                raise InvalidParameters(
                    f"FIXED packet total {total_amount} is not a multiple of count {count}"
                )
        elif total_amount < count * self.min_amount:
            raise InvalidParameters(
                f"RANDOM packet total {total_amount} cannot pay "
                f"{self.min_amount} to each of {count} claimants"
            )

        if not is_field_element(commitment_root):
            raise InvalidParameters("commitment_root is not a field element")
        if not 0 <= tree_depth <= self.max_tree_depth:
            raise InvalidParameters(f"tree_depth must be between 0 and {self.max_tree_depth}")

    async def open(
        self,
        creator: str,
        policy: SplitPolicy,
        count: int,
        total_amount: int,
        commitment_root: int,
        duration: int,
        tree_depth: int | None = None,
    ) -> Packet:
        """
        Create a packet in ACTIVE status.

        Args:
            creator: Identity with refund rights
            policy: FIXED or RANDOM split
            count: Number of claim slots
            total_amount: Value pooled in the packet
            commitment_root: Merkle root over eligible claim leaves
            duration: Validity window in seconds
            tree_depth: Merkle depth of the commitment; defaults to the
                depth of a tree over `count` leaves, so it must be given
                when the commitment covers more leaves than `count`

        Raises:
            Paused: Opening is paused
            InvalidParameters: Any argument out of bounds
        """
        self._check_not_paused("open")

        depth_defaulted = tree_depth is None
        if tree_depth is None:
            tree_depth = tree_depth_for(count) if count >= 1 else 0
        self._validate_open(
            creator, policy, count, total_amount, commitment_root, duration, tree_depth
        )

        now = self.clock()
        packet = Packet(
            packet_id=await self.store.next_packet_id(),
            creator=creator,
            policy=policy,
            total_amount=total_amount,
            remaining_amount=total_amount,
            count=count,
            remaining_count=count,
            commitment_root=commitment_root,
            tree_depth=tree_depth,
            created_at=now,
            expires_at=now + duration,
        )
        await self.store.save_packet(packet)

        logger.info(
            "packet_opened",
            packet_id=packet.packet_id,
            policy=policy.value,
            count=count,
            total_amount=total_amount,
            expires_at=packet.expires_at,
            tree_depth=tree_depth,
            depth_defaulted=depth_defaulted,
        )
        return packet

    async def _authorize(
        self,
        packet: Packet,
        claimant: str,
        leaf: int,
        merkle_proof: Sequence[int],
        zk_proof: ZKProof,
        public_inputs: Sequence[int],
    ) -> None:
        """Membership then proof; raises without touching any state."""
        if not self.checker.verify(
            packet.commitment_root, leaf, merkle_proof, depth=packet.tree_depth
        ):
            raise InvalidMembership(
                f"Leaf is not committed under packet {packet.packet_id}",
                packet_id=packet.packet_id,
            )

        expected = [packet.packet_id, leaf, identity_to_field(claimant)]
        if list(public_inputs[: len(expected)]) != expected:
            raise InvalidProof(
                "Public inputs do not bind this packet, leaf and claimant",
                packet_id=packet.packet_id,
            )

        try:
            accepted = await self.verifier.verify(zk_proof, public_inputs)
        except Exception as e:
            logger.error("proof_verifier_failed", packet_id=packet.packet_id, error=str(e))
            raise InvalidProof(
                "Proof verification failed", packet_id=packet.packet_id
            ) from e

        if accepted is not True:
            raise InvalidProof("Proof rejected", packet_id=packet.packet_id)

    async def claim(
        self,
        packet_id: int,
        claimant: str,
        leaf: int,
        merkle_proof: Sequence[int],
        zk_proof: ZKProof,
        public_inputs: Sequence[int],
    ) -> ClaimResult:
        """
        Redeem one slot of a packet.

        Args:
            packet_id: Packet to claim from
            claimant: Identity receiving the payout
            leaf: Committed claim leaf
            merkle_proof: Sibling path from `leaf` to the commitment root
            zk_proof: Proof of knowledge of the leaf preimage
            public_inputs: Proof public inputs, starting with
                [packet_id, leaf, identity_to_field(claimant)]

        Returns:
            ClaimResult with the payout and the packet's new balances

        Raises:
            Paused, PacketNotFound, NotActive, Expired, InvalidMembership,
            InvalidProof, AlreadyClaimed, TransferFailed, PacketBusy
        """
        self._check_not_paused("claim")

        async with self.store.lock(packet_id):
            packet = await self.store.get_packet(packet_id)
            if packet is None:
                raise PacketNotFound(f"Packet {packet_id} not found", packet_id=packet_id)
            if not packet.is_active() or packet.remaining_count == 0:
                raise NotActive(
                    f"Packet {packet_id} is {packet.status.value}",
                    packet_id=packet_id,
                )
            if packet.is_expired_at(self.clock()):
                raise Expired(f"Packet {packet_id} has expired", packet_id=packet_id)

            try:
                await self._authorize(
                    packet, claimant, leaf, merkle_proof, zk_proof, public_inputs
                )
            except (InvalidMembership, InvalidProof) as e:
                logger.info("claim_rejected", packet_id=packet_id, reason=e.error_code)
                raise

            if await self.nullifiers.is_consumed(packet_id, leaf):
                raise self._already_claimed(packet_id)

            read_version = packet.version
            sequence = packet.count - packet.remaining_count + 1
            amount = self.splitter.next_payout(packet, self.entropy.draw(packet))

            packet.remaining_amount -= amount
            packet.remaining_count -= 1
            if packet.remaining_count == 0:
                packet.status = PacketStatus.FINISHED
            packet.claims.append(
                ClaimReceipt(
                    sequence=sequence,
                    leaf=leaf,
                    amount=amount,
                    claimed_at=self.clock(),
                )
            )
            packet.version = read_version + 1

            consumed = await self.nullifiers.try_consume(
                packet_id, leaf, staged=packet, expected_version=read_version
            )
            if consumed != ConsumeResult.CONSUMED:
                raise self._already_claimed(packet_id)

            try:
                receipt = await self.transfers.transfer(
                    recipient=claimant,
                    amount=amount,
                    memo=f"packet:{packet_id}:claim:{sequence}",
                )
            except Exception as e:
                try:
                    await self._rollback_claim(packet_id, leaf, sequence, amount)
                except Exception:
                    logger.error(
                        "claim_rollback_failed",
                        packet_id=packet_id,
                        sequence=sequence,
                        amount=amount,
                    )
                    raise
                if not isinstance(e, TransferError):
                    raise
                logger.error(
                    "value_transfer_failed",
                    packet_id=packet_id,
                    operation="claim",
                    error=str(e),
                )
                raise TransferFailed(
                    f"Payout transfer for packet {packet_id} failed",
                    packet_id=packet_id,
                ) from e

        logger.info(
            "packet_claimed",
            packet_id=packet_id,
            sequence=sequence,
            amount=amount,
            remaining_amount=packet.remaining_amount,
            remaining_count=packet.remaining_count,
            status=packet.status.value,
        )

        return ClaimResult(
            packet_id=packet_id,
            amount=amount,
            remaining_amount=packet.remaining_amount,
            remaining_count=packet.remaining_count,
            status=packet.status,
            tx_hash=receipt.tx_hash,
        )

    def _already_claimed(self, packet_id: int) -> AlreadyClaimed:
        logger.info("claim_rejected", packet_id=packet_id, reason="already_claimed")
        return AlreadyClaimed(
            f"Leaf already claimed from packet {packet_id}",
            packet_id=packet_id,
        )

    @retry(
        retry=retry_if_exception_type(PacketBusy),
        stop=stop_after_attempt(ROLLBACK_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, max=0.5),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "claim_rollback_retry",
            attempt=retry_state.attempt_number,
        ),
    )
    async def _rollback_claim(
        self,
        packet_id: int,
        leaf: int,
        sequence: int,
        amount: int,
    ) -> None:
        """Return a committed slot whose payout never went out."""
        current = await self.store.get_packet(packet_id)
        if current is None:
            raise PacketNotFound(f"Packet {packet_id} not found", packet_id=packet_id)

        read_version = current.version
        current.remaining_amount += amount
        current.remaining_count += 1
        if current.status == PacketStatus.FINISHED:
            current.status = PacketStatus.ACTIVE
        current.claims = [c for c in current.claims if c.sequence != sequence]
        current.version = read_version + 1

        await self.nullifiers.release(
            packet_id, leaf, staged=current, expected_version=read_version
        )

    async def refund(self, packet_id: int, caller: str) -> RefundResult:
        """Return an expired packet's remainder to its creator."""
        return await self.expiry.refund(packet_id, caller)

    async def refundable(self, creator: str | None = None) -> list[Packet]:
        return await self.expiry.refundable(creator)

    async def get_packet(self, packet_id: int) -> Packet:
        packet = await self.store.get_packet(packet_id)
        if packet is None:
            raise PacketNotFound(f"Packet {packet_id} not found", packet_id=packet_id)
        return packet

    async def is_claimed(self, packet_id: int, leaf: int) -> bool:
        """Whether `leaf` has already redeemed a slot of the packet."""
        await self.get_packet(packet_id)
        return await self.nullifiers.is_consumed(packet_id, leaf)

    async def list_packets(
        self,
        creator: str | None = None,
        status: PacketStatus | None = None,
    ) -> list[Packet]:
        packets = await self.store.list_packets()
        if creator is not None:
            packets = [p for p in packets if p.creator == creator]
        if status is not None:
            packets = [p for p in packets if p.status == status]
        return packets

    async def health_check(self) -> dict[str, object]:
        return {
            "store": await self.store.health_check(),
            "transfers": await self.transfers.health_check(),
            "paused": self.is_paused(),
        }
