"""
Split Engine
============

Computes the payout for the next claim on a packet.

FIXED packets pay `total_amount // count` per claim; creation guarantees
the division is exact. RANDOM packets draw uniformly from
[min_amount, remaining_amount - (remaining_count - 1) * min_amount], so every
claimant still pending can always receive at least `min_amount`; the last
claimant receives the exact remainder.

Entropy is injected. A draw is only as fair as its entropy source: if the
party ordering claims can predict or influence it, they can bias payouts.
Use `BeaconEntropy` with an externally published randomness value when
draws must be verifiable by third parties.

Version: 0.1.0
"""

import hashlib
import secrets
from typing import Protocol

from services.packet.models import Packet, SplitPolicy


ENTROPY_BITS = 256


class EntropySource(Protocol):
    """Supplies the entropy for one RANDOM draw."""

    def draw(self, packet: Packet) -> int:
        ...


class SystemEntropy:
    """Entropy from the operating system CSPRNG."""

    def draw(self, packet: Packet) -> int:
        return secrets.randbits(ENTROPY_BITS)


class BeaconEntropy:
    """
    Deterministic entropy derived from a public randomness beacon.

    Anyone holding the beacon value can recompute every draw.
    """

    def __init__(self, beacon: bytes) -> None:
        if not beacon:
            raise ValueError("Beacon value must not be empty")
        self.beacon = beacon

    def draw(self, packet: Packet) -> int:
        material = (
            self.beacon
            + packet.packet_id.to_bytes(8, "big")
            + packet.remaining_count.to_bytes(8, "big")
        )
        return int.from_bytes(hashlib.sha256(material).digest(), "big")


class SplitEngine:
    """Pure payout calculator; owns no state."""

    def __init__(self, min_amount: int = 1) -> None:
        if min_amount < 1:
            raise ValueError("min_amount must be at least 1")
        self.min_amount = min_amount

    def max_random_payout(self, packet: Packet) -> int:
        """Largest amount the next RANDOM claim may receive."""
        return packet.remaining_amount - (packet.remaining_count - 1) * self.min_amount

    def next_payout(self, packet: Packet, entropy: int) -> int:
        """
        Amount the next claim on `packet` receives.

        Args:
            packet: Packet with remaining_count >= 1
            entropy: Non-negative random integer, ignored for FIXED packets

        Returns:
            The payout amount

        Raises:
            ValueError: If the packet has no slot left or its state cannot
                honour the minimum payout
        """
        if packet.remaining_count < 1:
            raise ValueError(f"Packet {packet.packet_id} has no remaining slots")
        if entropy < 0:
            raise ValueError("Entropy must be non-negative")

        if packet.policy == SplitPolicy.FIXED:
            return packet.total_amount // packet.count

        if packet.remaining_count == 1:
            return packet.remaining_amount

        max_amount = self.max_random_payout(packet)
        if max_amount < self.min_amount:
            raise ValueError(
                f"Packet {packet.packet_id} cannot pay {self.min_amount} "
                f"to each of {packet.remaining_count} claimants"
            )

        span = max_amount - self.min_amount + 1
        return self.min_amount + entropy % span
