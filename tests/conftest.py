"""
Test Configuration
==================

Pytest fixtures for red packet tests.
"""

import asyncio
import os
from collections.abc import AsyncGenerator, Callable, Sequence
from dataclasses import dataclass
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["BLOCKCHAIN_MODE"] = "mock"
os.environ["ZK_MODE"] = "mock"
os.environ["PACKET_STORE"] = "memory"

from services.packet.ledger import PacketLedger  # noqa: E402
from services.packet.models import Packet, SplitPolicy  # noqa: E402
from services.packet.store import InMemoryPacketStore, PacketStore  # noqa: E402
from shared.blockchain import MockBlockchainClient  # noqa: E402
from shared.zk import (  # noqa: E402
    EligibleClaimant,
    MockProver,
    MockVerifier,
    Sha256FieldHasher,
    ZKProof,
    build_commitment,
    claim_leaf,
    claim_public_inputs,
)


START_TIME = 1_700_000_000
DURATION = 3600


class FakeClock:
    """Settable clock returning integer Unix seconds."""

    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FixedEntropy:
    """Entropy source returning a preset sequence of draws."""

    def __init__(self, *values: int) -> None:
        self.values = list(values)
        self.draws = 0

    def draw(self, packet: Packet) -> int:
        value = self.values[self.draws % len(self.values)] if self.values else 0
        self.draws += 1
        return value


class GatedVerifier(MockVerifier):
    """Holds every verification until `parties` claims are verifying at once."""

    def __init__(self, parties: int) -> None:
        super().__init__()
        self.barrier = asyncio.Barrier(parties)

    async def verify(self, proof: ZKProof, public_inputs: Sequence[int]) -> bool:
        await self.barrier.wait()
        return await super().verify(proof, public_inputs)


class FlakyCommitStore(InMemoryPacketStore):
    """In-memory store whose chosen commit calls fail before writing."""

    def __init__(
        self,
        fail_calls: set[int],
        error: Callable[[], Exception] = lambda: ConnectionError("connection reset by peer"),
    ) -> None:
        super().__init__()
        self.fail_calls = fail_calls
        self.error = error
        self.commits = 0

    async def commit_packet(
        self,
        packet: Packet,
        expected_version: int,
        consume: int | None = None,
        release: int | None = None,
    ) -> bool:
        self.commits += 1
        if self.commits in self.fail_calls:
            raise self.error()
        return await super().commit_packet(
            packet, expected_version, consume=consume, release=release
        )


@dataclass
class ClaimKit:
    """Everything one claimant submits."""

    claimant: str
    leaf: int
    merkle_proof: list[int]
    zk_proof: ZKProof
    public_inputs: list[int]


class PacketFactory:
    """Opens packets over a fresh commitment and builds claim kits for them."""

    def __init__(self, ledger: PacketLedger, creator: str = "0xcreator") -> None:
        self.ledger = ledger
        self.creator = creator
        self.hasher = Sha256FieldHasher()
        self.prover = MockProver(self.hasher)
        self.claimants: list[str] = []
        self.commitment = None

    async def open(
        self,
        policy: SplitPolicy = SplitPolicy.FIXED,
        count: int = 5,
        total_amount: int = 5,
        duration: int = DURATION,
        eligible: int | None = None,
    ) -> Packet:
        n = eligible or count
        self.claimants = [f"0xclaimant{i:02d}" for i in range(n)]
        self.commitment = build_commitment(
            [EligibleClaimant(claimant=c, secret=f"secret-{c}") for c in self.claimants],
            hasher=self.hasher,
        )
        return await self.ledger.open(
            creator=self.creator,
            policy=policy,
            count=count,
            total_amount=total_amount,
            commitment_root=int(self.commitment.commitment_root),
            duration=duration,
            tree_depth=self.commitment.tree_depth,
        )

    def kit(self, packet_id: int, index: int, claimant: str | None = None) -> ClaimKit:
        """Valid claim material for eligible record `index`, submitted by `claimant`."""
        owner = self.claimants[index]
        claimant = claimant or owner
        leaf = claim_leaf(self.hasher, owner, f"secret-{owner}")
        inputs = claim_public_inputs(packet_id, leaf, claimant)
        bundle = self.commitment.claims[index]
        return ClaimKit(
            claimant=claimant,
            leaf=leaf,
            merkle_proof=[int(s) for s in bundle.merkle_proof],
            zk_proof=self.prover.prove(inputs),
            public_inputs=inputs,
        )

    async def claim(self, packet_id: int, index: int):
        kit = self.kit(packet_id, index)
        return await self.ledger.claim(
            packet_id=packet_id,
            claimant=kit.claimant,
            leaf=kit.leaf,
            merkle_proof=kit.merkle_proof,
            zk_proof=kit.zk_proof,
            public_inputs=kit.public_inputs,
        )


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryPacketStore:
    return InMemoryPacketStore()


@pytest.fixture
def verifier() -> MockVerifier:
    return MockVerifier()


@pytest.fixture
def transfers() -> MockBlockchainClient:
    return MockBlockchainClient(escrow_address="0xescrow")


@pytest.fixture
def paused() -> dict[str, bool]:
    """Mutable pause flag read by the ledger's pause guard."""
    return {"value": False}


@pytest.fixture
def build_ledger(
    verifier: MockVerifier,
    transfers: MockBlockchainClient,
    clock: FakeClock,
    paused: dict[str, bool],
) -> Callable[..., PacketLedger]:
    """Build ledgers over a given store with limits pinned for tests."""

    def _build(packet_store: PacketStore, **overrides: Any) -> PacketLedger:
        options: dict[str, Any] = {
            "verifier": verifier,
            "transfers": transfers,
            "clock": clock,
            "is_paused": lambda: paused["value"],
            "max_count": 100,
            "max_duration_seconds": 7 * 24 * 3600,
            "min_amount": 1,
            "max_tree_depth": 32,
        }
        options.update(overrides)
        return PacketLedger(store=packet_store, **options)

    return _build


@pytest.fixture
def ledger(
    store: InMemoryPacketStore,
    build_ledger: Callable[..., PacketLedger],
) -> PacketLedger:
    """Ledger over in-memory collaborators."""
    return build_ledger(store)


@pytest.fixture
def factory(ledger: PacketLedger) -> PacketFactory:
    return PacketFactory(ledger)


@pytest_asyncio.fixture
async def packet_client(ledger: PacketLedger) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Packet Service over the test ledger."""
    from services.packet.dependencies import reset_ledger, set_ledger
    from services.packet.main import app

    set_ledger(ledger)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    reset_ledger()


@pytest.fixture
def make_auth_headers() -> Callable[[str], dict[str, str]]:
    """Build bearer headers for an arbitrary identity."""
    from shared.auth import create_access_token

    def _headers(identity: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(identity)}"}

    return _headers


@pytest.fixture
def auth_headers(make_auth_headers: Callable[[str], dict[str, str]]) -> dict[str, str]:
    """Headers for the default packet creator."""
    return make_auth_headers("0xcreator")
