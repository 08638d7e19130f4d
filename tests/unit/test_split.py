"""
Unit tests for the split engine and entropy sources.
"""

import pytest

from services.packet.ledger.split import (
    ENTROPY_BITS,
    BeaconEntropy,
    SplitEngine,
    SystemEntropy,
)
from services.packet.models import Packet, PacketStatus, SplitPolicy


def make_packet(
    policy: SplitPolicy = SplitPolicy.RANDOM,
    total: int = 10,
    count: int = 5,
    remaining_amount: int | None = None,
    remaining_count: int | None = None,
) -> Packet:
    remaining_count = count if remaining_count is None else remaining_count
    return Packet(
        packet_id=1,
        creator="0xcreator",
        policy=policy,
        status=PacketStatus.FINISHED if remaining_count == 0 else PacketStatus.ACTIVE,
        total_amount=total,
        remaining_amount=total if remaining_amount is None else remaining_amount,
        count=count,
        remaining_count=remaining_count,
        commitment_root=1,
        tree_depth=3,
        created_at=0,
        expires_at=100,
    )


class TestFixedSplit:
    """Tests for FIXED payouts."""

    def test_equal_share(self) -> None:
        engine = SplitEngine()
        packet = make_packet(SplitPolicy.FIXED, total=50, count=5)

        assert engine.next_payout(packet, 0) == 10

    def test_entropy_ignored(self) -> None:
        engine = SplitEngine()
        packet = make_packet(SplitPolicy.FIXED, total=5, count=5, remaining_amount=2, remaining_count=2)

        assert engine.next_payout(packet, 123456) == 1


class TestRandomSplit:
    """Tests for RANDOM payouts."""

    def test_draw_within_bounds(self) -> None:
        """Test every entropy value lands in [min, max]."""
        engine = SplitEngine(min_amount=1)
        packet = make_packet(total=10, count=5)

        amounts = {engine.next_payout(packet, e) for e in range(50)}

        assert min(amounts) == 1
        assert max(amounts) == engine.max_random_payout(packet) == 6

    def test_modulo_draw(self) -> None:
        engine = SplitEngine(min_amount=1)
        packet = make_packet(total=10, count=3)

        # span = 8 - 1 + 1
        assert engine.next_payout(packet, 5) == 6
        assert engine.next_payout(packet, 13) == 6

    def test_last_slot_takes_remainder(self) -> None:
        engine = SplitEngine(min_amount=1)
        packet = make_packet(total=10, count=5, remaining_amount=7, remaining_count=1)

        assert engine.next_payout(packet, 0) == 7
        assert engine.next_payout(packet, 99) == 7

    def test_minimum_reserved_for_pending(self) -> None:
        """Test a draw never leaves less than min for each pending claimant."""
        engine = SplitEngine(min_amount=3)
        packet = make_packet(total=30, count=5, remaining_amount=12, remaining_count=4)

        for entropy in range(20):
            amount = engine.next_payout(packet, entropy)
            assert amount == 3
            assert packet.remaining_amount - amount >= 3 * (packet.remaining_count - 1)

    def test_tight_budget_pays_minimum(self) -> None:
        engine = SplitEngine(min_amount=2)
        packet = make_packet(total=10, count=5)

        assert engine.next_payout(packet, 2**200) == 2

    def test_rejects_exhausted_packet(self) -> None:
        engine = SplitEngine()
        packet = make_packet(total=5, count=5, remaining_amount=0, remaining_count=0)

        with pytest.raises(ValueError):
            engine.next_payout(packet, 0)

    def test_rejects_negative_entropy(self) -> None:
        with pytest.raises(ValueError):
            SplitEngine().next_payout(make_packet(), -1)

    def test_rejects_underfunded_state(self) -> None:
        engine = SplitEngine(min_amount=5)
        packet = make_packet(total=10, count=5)

        with pytest.raises(ValueError):
            engine.next_payout(packet, 0)

    def test_min_amount_positive(self) -> None:
        with pytest.raises(ValueError):
            SplitEngine(min_amount=0)


class TestEntropySources:
    """Tests for entropy sources."""

    def test_system_entropy_range(self) -> None:
        packet = make_packet()
        draws = {SystemEntropy().draw(packet) for _ in range(5)}

        assert all(0 <= d < 2**ENTROPY_BITS for d in draws)
        assert len(draws) > 1

    def test_beacon_entropy_reproducible(self) -> None:
        """Test anyone holding the beacon recomputes the same draw."""
        packet = make_packet()

        assert BeaconEntropy(b"round-1").draw(packet) == BeaconEntropy(b"round-1").draw(packet)
        assert BeaconEntropy(b"round-1").draw(packet) != BeaconEntropy(b"round-2").draw(packet)

    def test_beacon_entropy_varies_per_slot(self) -> None:
        source = BeaconEntropy(b"round-1")

        first = source.draw(make_packet(remaining_count=5))
        second = source.draw(make_packet(remaining_count=4))

        assert first != second

    def test_beacon_required(self) -> None:
        with pytest.raises(ValueError):
            BeaconEntropy(b"")
